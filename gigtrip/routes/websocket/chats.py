# gigtrip/routes/websocket/chats.py
"""WebSocket handlers for the chat list sidebar."""

import logging
from flask import request, session

from gigtrip.api.services.session_service import ChatListModel
from .base import BaseWebSocketHandler, NAMESPACE
from .callback_helpers import background_spawner, client_emitter

logger = logging.getLogger(__name__)


class ChatListHandler(BaseWebSocketHandler):
    """Handles listing, pinning, renaming and deleting stored chats."""

    def _chat_list(self):
        model = ChatListModel(self.store, session.get("user_id"))
        model.reload()
        emit = client_emitter(self.socketio, request.sid, self.namespace)
        model.on_change = lambda chats: emit("chat_list", {"chats": chats})
        return model

    def register_handlers(self):
        """Register sidebar event handlers."""

        @self.socketio.on("list_chats", namespace=NAMESPACE)
        def handle_list_chats(data=None):
            try:
                self._chat_list().reload()
            except Exception as exc:
                self.handle_error(exc, "list_chats")

        @self.socketio.on("pin_chat", namespace=NAMESPACE)
        def handle_pin_chat(data):
            chat_id = (data or {}).get("chat_id")
            self.log_event("pin_chat", {"chat_id": chat_id})
            try:
                chats = self._chat_list().toggle_pin(chat_id)
                controller = self.manager.get_controller(request.sid)
                if controller is not None and controller.chat_id == chat_id:
                    entry = next((c for c in chats if c["id"] == chat_id), None)
                    if entry is not None:
                        controller.set_pinned(entry["isPinned"])
            except Exception as exc:
                self.handle_error(exc, "pin_chat")

        @self.socketio.on("rename_chat", namespace=NAMESPACE)
        def handle_rename_chat(data):
            data = data or {}
            chat_id, title = data.get("chat_id"), (data.get("title") or "").strip()
            self.log_event("rename_chat", {"chat_id": chat_id})
            if not title:
                self.emit_to_client("error", {"message": "Title is required", "event": "rename_chat"})
                return
            try:
                self._chat_list().rename(chat_id, title)
                controller = self.manager.get_controller(request.sid)
                if controller is not None and controller.chat_id == chat_id:
                    controller.rename(title)
            except Exception as exc:
                self.handle_error(exc, "rename_chat")

        @self.socketio.on("delete_chat", namespace=NAMESPACE)
        def handle_delete_chat(data):
            chat_id = (data or {}).get("chat_id")
            self.log_event("delete_chat", {"chat_id": chat_id})
            try:
                self._chat_list().delete(chat_id)
                controller = self.manager.get_controller(request.sid)
                if controller is not None and controller.chat_id == chat_id:
                    # the open chat is gone; continue in a fresh draft
                    controller = self.manager.create_controller(
                        request.sid,
                        session.get("user_id"),
                        store=self.store,
                        spawn=background_spawner(self.socketio),
                        emit=client_emitter(self.socketio, request.sid, self.namespace),
                    )
                    self.emit_to_client("chat_state", controller.snapshot())
            except Exception as exc:
                self.handle_error(exc, "delete_chat")
