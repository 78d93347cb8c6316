"""Lifecycle management for chat controllers bound to socket connections."""

import logging
import threading
import time
from typing import Any, Callable, Dict, Optional

from gigtrip.api.config import get_session_config
from gigtrip.api.conversation.controller import ChatController

logger = logging.getLogger(__name__)


class ChatSessionManager:
    """Keeps one ChatController per connected client."""

    def __init__(self, start_cleanup: bool = True):
        self.config = get_session_config()
        self.controllers: Dict[str, ChatController] = {}

        # Thread safety
        self.lock = threading.Lock()

        if start_cleanup:
            self.cleanup_thread = threading.Thread(
                target=self._cleanup_loop,
                daemon=True
            )
            self.cleanup_thread.start()

        logger.info("ChatSessionManager initialized")

    def create_controller(self, sid: str, user_id: Optional[str], store=None,
                          spawn: Callable = None,
                          emit: Callable[[str, Dict[str, Any]], None] = None,
                          **kwargs) -> ChatController:
        """Create a fresh draft chat for a connection, replacing any previous one.

        Args:
            sid: Socket.IO connection id
            user_id: Signed-in user, or None for an anonymous visitor
            store: Chat store used for persistence
            spawn: Background task launcher
            emit: Callback delivering events to this client

        Returns:
            The new ChatController
        """
        controller = ChatController(user_id=user_id, store=store, spawn=spawn, emit=emit, **kwargs)
        with self.lock:
            self.controllers[sid] = controller
        logger.info(f"Created chat {controller.chat_id} for connection {sid}")
        return controller

    def get_controller(self, sid: str) -> Optional[ChatController]:
        with self.lock:
            controller = self.controllers.get(sid)
        if controller:
            controller.update_activity()
        return controller

    def remove_controller(self, sid: str, reason: str = "unknown") -> bool:
        with self.lock:
            controller = self.controllers.pop(sid, None)
        if controller is None:
            return False
        logger.info(f"Removed chat {controller.chat_id} for connection {sid} (reason: {reason})")
        return True

    def get_stats(self) -> Dict[str, Any]:
        """Get overall manager statistics."""
        with self.lock:
            controllers = list(self.controllers.values())
        return {
            "active_chats": len(controllers),
            "streaming": sum(1 for c in controllers if c.stream.is_streaming),
            "signed_in": sum(1 for c in controllers if c.user_id),
            "config": {
                "timeout_seconds": self.config["session_timeout_seconds"],
            },
        }

    def _cleanup_loop(self):
        """Background thread to drop idle controllers."""
        while True:
            try:
                time.sleep(self.config["cleanup_interval_seconds"])
                self.cleanup_expired()
            except Exception as e:
                logger.error(f"Error in cleanup loop: {e}")

    def cleanup_expired(self) -> int:
        timeout_seconds = self.config["session_timeout_seconds"]
        with self.lock:
            expired = [sid for sid, c in self.controllers.items() if c.is_expired(timeout_seconds)]

        for sid in expired:
            self.remove_controller(sid, "timeout")

        if expired:
            logger.info(f"Cleaned up {len(expired)} idle chats")
        return len(expired)


# Global manager instance
_session_manager = None


def get_session_manager() -> ChatSessionManager:
    """Get the global ChatSessionManager instance."""
    global _session_manager
    if _session_manager is None:
        _session_manager = ChatSessionManager()
    return _session_manager
