"""Route directives parsed from assistant text to chat actions."""

import logging
from typing import Any, Dict

from gigtrip.api.conversation.directives import Directive, DirectiveKind

logger = logging.getLogger(__name__)


class DirectiveHandler:
    """Applies directives from the assistant to one chat controller."""

    def __init__(self, controller):
        """Initialize directive handler.

        Args:
            controller: ChatController whose state the directives drive
        """
        self.controller = controller

        # Directive registry
        self.handlers = {
            DirectiveKind.SEARCH_EVENT: self._handle_search_event,
            DirectiveKind.FIND_PLACES: self._handle_find_places,
            DirectiveKind.ASK_HOTELS: self._handle_ask_hotels,
            DirectiveKind.CONFIRM_EVENT: self._handle_confirm_event,
        }

    def handle(self, directive: Directive) -> Dict[str, Any]:
        """Apply one directive.

        Args:
            directive: Directive parsed from the streaming reply

        Returns:
            Result dict with ``success`` and the directive name
        """
        logger.info(f"Handling directive: {directive.kind.value}")

        handler = self.handlers.get(directive.kind)
        if handler is None:
            return {"success": False, "error": f"Unknown directive: {directive.kind}"}

        try:
            result = handler(directive)
        except Exception as e:
            logger.error(f"Error applying directive {directive.kind.value}: {e}")
            return {"success": False, "error": str(e), "directive": directive.kind.value}

        result["directive"] = directive.kind.value
        return result

    def _handle_search_event(self, directive: Directive) -> Dict[str, Any]:
        started = self.controller.search_events(directive.keyword)
        return {"success": started, "keyword": directive.keyword, "action": "search_events"}

    def _handle_find_places(self, directive: Directive) -> Dict[str, Any]:
        # without a located event this is a no-op; the reply already says why
        started = self.controller.find_places(directive.query)
        return {"success": started, "action": "search_places"}

    def _handle_ask_hotels(self, directive: Directive) -> Dict[str, Any]:
        moved = self.controller.ask_hotels()
        return {"success": moved, "action": "ask_hotels"}

    def _handle_confirm_event(self, directive: Directive) -> Dict[str, Any]:
        moved = self.controller.request_event_confirmation()
        return {"success": moved, "action": "confirm_event_prompt"}
