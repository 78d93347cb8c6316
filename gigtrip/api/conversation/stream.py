"""Drives one streamed assistant reply at a time for a chat."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Iterable, List, Optional

from gigtrip.api.conversation.directives import Directive, DirectiveScanner, clean_text
from gigtrip.api.llm import stream_chat_completion
from gigtrip.api.models import Message

logger = logging.getLogger(__name__)

DirectiveCallback = Callable[[Directive], None]
UpdateCallback = Callable[[Message], None]
CompleteCallback = Callable[[Message, Optional[Exception]], None]


class ConversationStream:
    """Sends the transcript to the LLM and applies the streamed reply.

    The caller owns the transcript list; this class appends the assistant
    placeholder to it and mutates that message in place as chunks arrive.
    Only one reply may be outstanding at a time.
    """

    def __init__(self, llm_stream: Callable[[List[dict]], Iterable[str]] = None):
        self._llm_stream = llm_stream or stream_chat_completion
        self._lock = threading.Lock()
        self._in_flight = False

    @property
    def is_streaming(self) -> bool:
        return self._in_flight

    def begin(self, transcript: List[Message]) -> Optional[Message]:
        """Reserve the stream and append the assistant placeholder.

        Returns:
            The placeholder message, or None if a reply is already in flight
        """
        with self._lock:
            if self._in_flight:
                logger.warning("Send refused: an assistant reply is still streaming")
                return None
            self._in_flight = True
        placeholder = Message(role="assistant")
        transcript.append(placeholder)
        return placeholder

    def run(self, transcript: List[Message], placeholder: Message,
            on_directive: DirectiveCallback = None,
            on_update: UpdateCallback = None,
            on_complete: CompleteCallback = None) -> Message:
        """Consume the LLM stream into ``placeholder``.

        The request carries every message before the placeholder with its raw
        content, so the model sees its own earlier directives.
        """
        history = []
        for message in transcript:
            if message is placeholder:
                break
            history.append(message.to_transcript())
        scanner = DirectiveScanner()
        error: Optional[Exception] = None

        try:
            for chunk in self._llm_stream(history):
                placeholder.content += chunk
                result = scanner.scan(placeholder.content, streaming=True)
                placeholder.display = result.display
                for directive in result.directives:
                    self._fire(on_directive, directive)
                if on_update:
                    on_update(placeholder)
        except Exception as e:
            error = e
            logger.error(f"Chat stream failed after {len(placeholder.content)} chars: {e}")
        finally:
            placeholder.display = clean_text(placeholder.content)
            with self._lock:
                self._in_flight = False

        if on_update:
            on_update(placeholder)
        if on_complete:
            on_complete(placeholder, error)
        return placeholder

    def send(self, transcript: List[Message], **callbacks) -> Optional[Message]:
        """Append a placeholder and stream the reply into it synchronously."""
        placeholder = self.begin(transcript)
        if placeholder is None:
            return None
        return self.run(transcript, placeholder, **callbacks)

    @staticmethod
    def _fire(callback: Optional[DirectiveCallback], directive: Directive) -> None:
        if callback is None:
            return
        try:
            callback(directive)
        except Exception as e:
            logger.exception("Directive %s handler failed: %s", directive.kind.value, e)
