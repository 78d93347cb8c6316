# gigtrip/routes/websocket/base.py
"""Base WebSocket handler with common functionality."""

import logging
from flask import request, session
from flask_socketio import emit

from gigtrip.api.conversation.session_manager import get_session_manager

logger = logging.getLogger(__name__)

# Define namespace constant
NAMESPACE = "/travel/ws"


class BaseWebSocketHandler:
    """Base class for WebSocket handlers with common functionality."""

    def __init__(self, socketio, namespace=NAMESPACE, store=None, manager=None):
        self.socketio = socketio
        self.namespace = namespace
        self._store = store
        self._manager = manager

    @property
    def store(self):
        if self._store is None:
            from gigtrip.api.database import get_chat_store
            self._store = get_chat_store()
        return self._store

    @property
    def manager(self):
        return self._manager or get_session_manager()

    def emit_to_client(self, event, data, room=None):
        """Emit event to a specific client or room."""
        try:
            if room:
                self.socketio.emit(event, data, to=room, namespace=self.namespace)
            else:
                emit(event, data, namespace=self.namespace)
        except Exception as e:
            logger.error(f"Failed to emit {event}: {e}")

    def get_client_info(self):
        """Get information about the connected client."""
        return {
            "sid": request.sid,
            "ip": request.remote_addr,
            "origin": request.headers.get('Origin', 'unknown'),
            "user_id": session.get('user_id'),
        }

    def get_controller(self, event_name=""):
        """Controller of the calling connection; emits an error when missing."""
        controller = self.manager.get_controller(request.sid)
        if controller is None:
            logger.warning(f"[WS] {event_name} without an open chat - Client: {request.sid}")
            self.emit_to_client('error', {'message': 'No chat open', 'event': event_name})
        return controller

    def log_event(self, event_name, data=None):
        """Log WebSocket events consistently."""
        client_info = self.get_client_info()
        if data:
            logger.info(f"[WS] {event_name} - Client: {client_info['sid']}, Data: {data}")
        else:
            logger.info(f"[WS] {event_name} - Client: {client_info['sid']}")

    def handle_error(self, error, event_name=""):
        """Handle and log errors consistently."""
        client_info = self.get_client_info()
        logger.error(f"[WS] Error in {event_name} - Client: {client_info['sid']}, Error: {error}")
        self.emit_to_client('error', {'message': str(error), 'event': event_name})
