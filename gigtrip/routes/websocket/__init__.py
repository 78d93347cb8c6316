# gigtrip/routes/websocket/__init__.py
"""WebSocket route handlers initialization."""

import logging

from .connection import ConnectionHandler
from .chat import ChatHandler
from .chats import ChatListHandler
from .base import NAMESPACE

logger = logging.getLogger(__name__)


def register_websocket_handlers(socketio, store=None, manager=None):
    """Register all WebSocket event handlers with SocketIO.

    Args:
        socketio: Flask-SocketIO instance
        store: Chat store shared by the handlers (global store when omitted)
        manager: ChatSessionManager (global manager when omitted)
    """
    logger.info("Registering WebSocket handlers...")

    try:
        handlers = [
            ConnectionHandler(socketio, NAMESPACE, store=store, manager=manager),
            ChatHandler(socketio, NAMESPACE, store=store, manager=manager),
            ChatListHandler(socketio, NAMESPACE, store=store, manager=manager),
        ]

        for handler in handlers:
            logger.info(f"Registering {type(handler).__name__} for namespace: {NAMESPACE}")
            handler.register_handlers()

        logger.info("WebSocket handlers registered successfully")

    except Exception as e:
        logger.error(f"Failed to register WebSocket handlers: {e}")
        logger.exception("WebSocket registration error:")
        raise


__all__ = ['register_websocket_handlers', 'NAMESPACE']
