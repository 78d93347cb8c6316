# gigtrip/routes/websocket/chat.py
"""WebSocket handlers for the conversation and the planning workflow."""

import logging
from flask import request, session

from gigtrip.api.models import ResultBucket
from .base import BaseWebSocketHandler, NAMESPACE
from .callback_helpers import background_spawner, client_emitter

logger = logging.getLogger(__name__)


def _bucket(data):
    """Result bucket named in an event payload; raises ValueError when unknown."""
    return ResultBucket((data or {}).get("bucket", ""))


class ChatHandler(BaseWebSocketHandler):
    """Handles chat, confirmation and search events for the open chat."""

    def register_handlers(self):
        """Register chat-related event handlers."""

        @self.socketio.on("new_chat", namespace=NAMESPACE)
        def handle_new_chat(data=None):
            """Start a fresh draft chat on this connection."""
            self.log_event("new_chat")
            try:
                controller = self.manager.create_controller(
                    request.sid,
                    session.get("user_id"),
                    store=self.store,
                    spawn=background_spawner(self.socketio),
                    emit=client_emitter(self.socketio, request.sid, self.namespace),
                )
                self.emit_to_client("chat_state", controller.snapshot())
            except Exception as exc:
                self.handle_error(exc, "new_chat")

        @self.socketio.on("open_chat", namespace=NAMESPACE)
        def handle_open_chat(data):
            """Load a stored chat into this connection."""
            chat_id = (data or {}).get("chat_id")
            self.log_event("open_chat", {"chat_id": chat_id})
            controller = self.get_controller("open_chat")
            if controller is None:
                return
            try:
                if not chat_id or not controller.load(chat_id):
                    self.emit_to_client("error", {"message": "Chat could not be opened", "event": "open_chat"})
            except Exception as exc:
                self.handle_error(exc, "open_chat")

        @self.socketio.on("send_message", namespace=NAMESPACE)
        def handle_send_message(data):
            """Send user text to the assistant."""
            controller = self.get_controller("send_message")
            if controller is None:
                return
            try:
                text = (data or {}).get("text", "")
                if not controller.send_message(text):
                    self.emit_to_client("error", {
                        "message": "Message not sent: empty or a reply is still streaming",
                        "event": "send_message",
                    })
            except Exception as exc:
                self.handle_error(exc, "send_message")

        @self.socketio.on("confirm_event", namespace=NAMESPACE)
        def handle_confirm_event(data):
            event_id = (data or {}).get("event_id")
            self.log_event("confirm_event", {"event_id": event_id})
            controller = self.get_controller("confirm_event")
            if controller is None:
                return
            try:
                if not controller.confirm_event(event_id):
                    self.emit_to_client("error", {"message": "Unknown event", "event": "confirm_event"})
            except Exception as exc:
                self.handle_error(exc, "confirm_event")

        @self.socketio.on("select_place", namespace=NAMESPACE)
        def handle_select_place(data):
            controller = self.get_controller("select_place")
            if controller is None:
                return
            try:
                controller.select_place((data or {}).get("place_id"))
            except Exception as exc:
                self.handle_error(exc, "select_place")

        @self.socketio.on("confirm_place", namespace=NAMESPACE)
        def handle_confirm_place(data):
            place_id = (data or {}).get("place_id")
            self.log_event("confirm_place", {"place_id": place_id})
            controller = self.get_controller("confirm_place")
            if controller is None:
                return
            try:
                controller.confirm_place(place_id)
            except Exception as exc:
                self.handle_error(exc, "confirm_place")

        @self.socketio.on("request_stage", namespace=NAMESPACE)
        def handle_request_stage(data):
            """User clicked one of the Find Hotels/Food/Things buttons."""
            controller = self.get_controller("request_stage")
            if controller is None:
                return
            try:
                controller.request_stage(_bucket(data))
            except Exception as exc:
                self.handle_error(exc, "request_stage")

        @self.socketio.on("accept_stage", namespace=NAMESPACE)
        def handle_accept_stage(data=None):
            controller = self.get_controller("accept_stage")
            if controller is None:
                return
            try:
                controller.accept_stage()
            except Exception as exc:
                self.handle_error(exc, "accept_stage")

        @self.socketio.on("decline_stage", namespace=NAMESPACE)
        def handle_decline_stage(data=None):
            controller = self.get_controller("decline_stage")
            if controller is None:
                return
            try:
                controller.decline_stage()
            except Exception as exc:
                self.handle_error(exc, "decline_stage")

        @self.socketio.on("run_search", namespace=NAMESPACE)
        def handle_run_search(data):
            """Search with the open filter panel's values."""
            data = data or {}
            self.log_event("run_search", data)
            controller = self.get_controller("run_search")
            if controller is None:
                return
            try:
                radius = data.get("radius")
                started = controller.run_search(
                    _bucket(data),
                    radius=int(radius) if radius not in (None, "") else None,
                    location_preference=data.get("locationPreference"),
                    keyword=data.get("keyword"),
                    min_rating=float(data.get("minRating") or 0),
                    max_price=int(data.get("maxPrice", 4)),
                )
                if not started:
                    self.emit_to_client("error", {"message": "That filter panel is not open", "event": "run_search"})
            except Exception as exc:
                self.handle_error(exc, "run_search")

        @self.socketio.on("close_panel", namespace=NAMESPACE)
        def handle_close_panel(data=None):
            controller = self.get_controller("close_panel")
            if controller is None:
                return
            try:
                controller.close_panel()
            except Exception as exc:
                self.handle_error(exc, "close_panel")

        @self.socketio.on("remove_item", namespace=NAMESPACE)
        def handle_remove_item(data):
            item_id = (data or {}).get("item_id")
            self.log_event("remove_item", {"item_id": item_id})
            controller = self.get_controller("remove_item")
            if controller is None:
                return
            try:
                controller.remove_item(item_id)
            except Exception as exc:
                self.handle_error(exc, "remove_item")

        @self.socketio.on("generate_schedule", namespace=NAMESPACE)
        def handle_generate_schedule(data=None):
            self.log_event("generate_schedule")
            controller = self.get_controller("generate_schedule")
            if controller is None:
                return
            try:
                if not controller.generate_schedule():
                    self.emit_to_client("error", {
                        "message": "Add something to the itinerary first, or wait for the current reply",
                        "event": "generate_schedule",
                    })
            except Exception as exc:
                self.handle_error(exc, "generate_schedule")

        @self.socketio.on("get_state", namespace=NAMESPACE)
        def handle_get_state(data=None):
            controller = self.get_controller("get_state")
            if controller is None:
                return
            self.emit_to_client("chat_state", controller.snapshot())
