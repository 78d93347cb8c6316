# gigtrip/routes/websocket/connection.py
"""WebSocket connection and disconnection handlers."""

import logging
import time
from flask import request, session
from flask_socketio import disconnect

from .base import BaseWebSocketHandler, NAMESPACE
from .callback_helpers import background_spawner, client_emitter

logger = logging.getLogger(__name__)


class ConnectionHandler(BaseWebSocketHandler):
    """Handles WebSocket connection lifecycle events."""

    def register_handlers(self):
        """Register connection-related event handlers."""

        @self.socketio.on('connect', namespace=NAMESPACE)
        def handle_connect(auth=None):
            """Open a draft chat for the connecting browser."""
            client_info = self.get_client_info()
            self.log_event('connect', {'user_id': client_info['user_id']})

            try:
                controller = self.manager.create_controller(
                    request.sid,
                    session.get('user_id'),
                    store=self.store,
                    spawn=background_spawner(self.socketio),
                    emit=client_emitter(self.socketio, request.sid, self.namespace),
                )
                self.emit_to_client('connected', {
                    'sid': request.sid,
                    'chat_id': controller.chat_id,
                    'user_id': client_info['user_id'],
                    'status': 'connected',
                })
                self.emit_to_client('chat_state', controller.snapshot())
            except Exception as e:
                logger.error(f"Connection error: {e}")
                self.handle_error(e, 'connect')
                disconnect()

        @self.socketio.on('disconnect', namespace=NAMESPACE)
        def handle_disconnect(*args):
            """Drop the connection's chat controller."""
            if not self.manager.remove_controller(request.sid, 'client_disconnect'):
                self.log_event('disconnect', {'no_chat': True})

        @self.socketio.on('ping', namespace=NAMESPACE)
        def handle_ping():
            """Handle ping for connection testing."""
            self.emit_to_client('pong', {'timestamp': time.time()})
