# gigtrip/routes/websocket/callback_helpers.py
"""Helpers bridging chat controller callbacks to Socket.IO events."""

import logging
from typing import Any, Callable, Dict

logger = logging.getLogger(__name__)


def client_emitter(socketio, sid: str, namespace: str = "/travel/ws") -> Callable[[str, Dict[str, Any]], None]:
    """Emit callback bound to one connection, usable from background tasks."""

    def _emit(event: str, data: Dict[str, Any]) -> None:
        try:
            socketio.emit(event, data, to=sid, namespace=namespace)
        except Exception as exc:
            logger.exception("Failed emitting %s: %s", event, exc)

    return _emit


def background_spawner(socketio) -> Callable:
    """Spawn callback running work as a Socket.IO background task."""

    def _spawn(fn, *args, **kwargs):
        return socketio.start_background_task(fn, *args, **kwargs)

    return _spawn
