"""Per-chat controller tying the transcript, planning state and persistence together."""

import logging
import threading
import uuid
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from gigtrip.api.conversation.directive_handler import DirectiveHandler
from gigtrip.api.conversation.directives import PlaceQuery
from gigtrip.api.conversation.stream import ConversationStream
from gigtrip.api.models import (
    ChatSession,
    Location,
    Message,
    PlanningState,
    ResultBucket,
    SearchFilters,
)
from gigtrip.api.services.itinerary_service import ItineraryService
from gigtrip.api.services.map_service import MapService
from gigtrip.api.services.planning_service import PlanningMachine, SearchToken
from gigtrip.api.services.search_service import (
    BUCKET_PLACE_TYPES,
    DIRECTIVE_BUCKETS,
    NO_LOCATION,
    SearchService,
    budget_to_max_price,
    resolve_search_center,
)
from gigtrip.api.services.session_service import SessionPersistence

logger = logging.getLogger(__name__)

Emit = Callable[[str, Dict[str, Any]], None]

DECLINE_REPLIES = {
    ResultBucket.HOTEL: "No thanks, I don't need a hotel.",
    ResultBucket.FOOD: "No thanks, I'll skip restaurants for now.",
    ResultBucket.EXPLORE: "No thanks, I'm done exploring.",
}


def _run_inline(fn, *args, **kwargs):
    return fn(*args, **kwargs)


def _no_emit(event: str, data: Dict[str, Any]) -> None:
    pass


class ChatController:
    """Owns the state of one open chat.

    Socket handlers, stream threads and search threads all go through the
    controller, and every state change happens under ``self.lock``.  Blocking
    work (LLM streaming, lookups, store writes) is handed to ``spawn`` and
    never runs while the lock is held.
    """

    def __init__(self, user_id: Optional[str] = None, store=None,
                 search_service: SearchService = None,
                 stream: ConversationStream = None,
                 spawn: Callable = None, emit: Emit = None,
                 chat_id: Optional[str] = None):
        self.user_id = user_id
        self.session = ChatSession(id=chat_id or str(uuid.uuid4()))
        self.messages: List[Message] = []
        self.planning = PlanningMachine()
        self.search = search_service or SearchService()
        self.stream = stream or ConversationStream()
        self.persistence = SessionPersistence(store, user_id, spawn=spawn)
        self.directives = DirectiveHandler(self)
        self.lock = threading.RLock()
        self.created_at = datetime.now()
        self.last_activity = datetime.now()

        self._spawn = spawn or _run_inline
        self._emit = emit or _no_emit
        self._schedule_reply: Optional[Message] = None

        # a brand new chat has nothing to load
        self.persistence.mark_loaded()

    @property
    def chat_id(self) -> str:
        return self.session.id

    def update_activity(self):
        self.last_activity = datetime.now()

    def is_expired(self, timeout_seconds: int) -> bool:
        return (datetime.now() - self.last_activity).total_seconds() > timeout_seconds

    # ------------------------------------------------------------------
    # Chat lifecycle
    # ------------------------------------------------------------------

    def load(self, chat_id: str) -> bool:
        """Replace the current chat with a stored one.

        Returns:
            False when the chat could not be read (current chat is kept)
        """
        session = self.persistence.load(chat_id)
        if session is None:
            return False

        with self.lock:
            self.session = session
            self.planning = self.planning.restarted()
            if session.selected_event is not None:
                self.planning.state = PlanningState.EVENT_SELECTED
            welcome = ItineraryService.format_welcome_back(session)
            self.messages = [Message(role="assistant", content=welcome, display=welcome)]
            self._schedule_reply = None
            self.update_activity()
            logger.info(f"Opened chat {chat_id} for user {self.user_id}")

        self.emit_state()
        return True

    def rename(self, title: str) -> None:
        """Follow a sidebar rename of the open chat so later saves keep it."""
        with self.lock:
            self.session.title = title

    def set_pinned(self, pinned: bool) -> None:
        with self.lock:
            self.session.is_pinned = pinned

    # ------------------------------------------------------------------
    # Messaging
    # ------------------------------------------------------------------

    def send_message(self, text: str) -> bool:
        """Send user text to the assistant.

        Returns:
            False when the text is empty or a reply is still streaming
        """
        text = (text or "").strip()
        if not text:
            return False

        with self.lock:
            self.update_activity()
            if self.stream.is_streaming:
                logger.info("Ignoring send while a reply is streaming")
                return False
            placeholder = self._post_user_message(text)

        self._emit_messages()
        if placeholder is not None:
            self._spawn(self._run_stream, placeholder)
        return placeholder is not None

    def _post_user_message(self, text: str) -> Optional[Message]:
        """Append a user message and reserve the stream if it is free.

        Caller holds the lock.  Returns the assistant placeholder to stream
        into, or None when another reply is in flight (the message is then
        part of the next request).
        """
        self.messages.append(Message(role="user", content=text, display=text))
        return self.stream.begin(self.messages)

    def _notify_assistant(self, text: str) -> None:
        """Tell the assistant about a UI action; caller holds the lock."""
        placeholder = self._post_user_message(text)
        if placeholder is not None:
            self._spawn(self._run_stream, placeholder)

    def _run_stream(self, placeholder: Message) -> None:
        chat_id = self.chat_id
        self.stream.run(
            self.messages,
            placeholder,
            on_directive=lambda directive: self._on_directive(directive, chat_id),
            on_update=self._on_stream_update,
            on_complete=self._on_stream_complete,
        )

    def _on_directive(self, directive, chat_id: str) -> None:
        if chat_id != self.chat_id:
            logger.info(f"Dropping {directive.kind.value} from a reply to chat {chat_id}")
            return
        result = self.directives.handle(directive)
        if not result.get("success"):
            logger.info(f"Directive {directive.kind.value} had no effect: {result}")

    def _on_stream_update(self, message: Message) -> None:
        with self.lock:
            try:
                index = next(i for i, m in enumerate(self.messages) if m is message)
            except StopIteration:
                # chat was switched while streaming
                return
            payload = {
                "chatId": self.chat_id,
                "index": index,
                "message": message.to_dict(),
                "streaming": self.stream.is_streaming,
            }
        self._emit("message_update", payload)

    def _on_stream_complete(self, message: Message, error: Optional[Exception]) -> None:
        with self.lock:
            is_schedule = message is self._schedule_reply
            if is_schedule:
                self._schedule_reply = None
        if is_schedule:
            self._apply_schedule_reply(message, error)
        self.emit_state()

    # ------------------------------------------------------------------
    # Directive-driven actions
    # ------------------------------------------------------------------

    def search_events(self, keyword: str) -> bool:
        """Start an event search; the newest search wins."""
        if not (keyword or "").strip():
            return False
        with self.lock:
            token = self.planning.begin_event_search()
            chat_id = self.chat_id
        self._spawn(self._run_event_search, keyword, token, chat_id)
        return True

    def _run_event_search(self, keyword: str, token: int, chat_id: str) -> None:
        outcome = self.search.search_events(keyword)
        with self.lock:
            if chat_id != self.chat_id:
                logger.info(f"Discarding event results for chat {chat_id}")
                return
            applied = False
            if not outcome.failed:
                applied = self.planning.events_populated(outcome.items, token)
            payload = {
                "chatId": self.chat_id,
                "kind": "events",
                "keyword": keyword,
                "count": len(outcome.items),
                "failed": outcome.failed,
                "error": outcome.error,
                "reason": outcome.reason,
            }
        self._emit("search_result", payload)
        if applied:
            self.emit_state()

    def find_places(self, query: PlaceQuery) -> bool:
        """Run an assistant-requested place search around the selected event."""
        with self.lock:
            event = self.session.selected_event
            if event is None or event.location is None:
                logger.info("FIND_PLACES skipped: no located event selected")
                return False
            bucket = DIRECTIVE_BUCKETS.get(query.type, ResultBucket.FOOD)
            self.planning.open_filters(bucket)
            filters = self.planning.update_filters(bucket, radius=query.radius)
            token = self.planning.begin_search(bucket)
            center = event.location
            chat_id = self.chat_id

        self.emit_state()
        self._spawn(self._run_place_search, bucket, center, filters.radius, None,
                    query.rating, budget_to_max_price(query.budget), token, chat_id)
        return True

    def ask_hotels(self) -> bool:
        return self.request_stage(ResultBucket.HOTEL)

    def request_event_confirmation(self) -> bool:
        with self.lock:
            moved = self.planning.event_confirmation_requested()
        if moved:
            self.emit_state()
        return moved

    # ------------------------------------------------------------------
    # User actions
    # ------------------------------------------------------------------

    def confirm_event(self, event_id: str) -> bool:
        """Make one of the listed events the chat's main event."""
        with self.lock:
            self.update_activity()
            event = next((e for e in self.planning.events if e.id == event_id), None)
            if event is None:
                logger.warning(f"Cannot confirm event {event_id}: not in the current list")
                return False
            self.planning.event_confirmed()
            announcement = ItineraryService.confirm_event(self.session, event)
            self.persistence.mark_user_action()
            self.persistence.save(self.session)
            self._notify_assistant(announcement)

        self.emit_state()
        return True

    def select_place(self, place_id: Optional[str]) -> bool:
        with self.lock:
            selected = self.planning.select_place(place_id)
        if selected:
            self.emit_state()
        return selected

    def confirm_place(self, place_id: str) -> bool:
        """Add a place from the current results to the itinerary.

        Returns:
            False when the place is unknown or already confirmed
        """
        with self.lock:
            self.update_activity()
            if self.session.itinerary.contains(place_id):
                logger.info(f"Place {place_id} already confirmed")
                return False
            bucket, place = self.planning.find_result(place_id)
            if place is None:
                logger.warning(f"Cannot confirm place {place_id}: not in any result list")
                return False

            ItineraryService.confirm_place(self.session, place)
            self.planning.place_confirmed(place, bucket)
            self.persistence.mark_user_action()
            self.persistence.save(self.session)
            self._notify_assistant(ItineraryService.format_place_added(place))

        self.emit_state()
        return True

    def request_stage(self, bucket: ResultBucket) -> bool:
        with self.lock:
            moved = self.planning.request_stage(bucket, has_event=self.session.selected_event is not None)
        if moved:
            self.emit_state()
        return moved

    def accept_stage(self) -> Optional[ResultBucket]:
        with self.lock:
            bucket = self.planning.accept()
        if bucket is not None:
            self.emit_state()
        return bucket

    def decline_stage(self) -> Optional[ResultBucket]:
        with self.lock:
            bucket = self.planning.decline()
            if bucket is not None:
                self._notify_assistant(DECLINE_REPLIES[bucket])
        if bucket is not None:
            self.emit_state()
        return bucket

    def close_panel(self) -> bool:
        with self.lock:
            closed = self.planning.close_panel()
        if closed:
            self.emit_state()
        return closed

    def run_search(self, bucket: ResultBucket, radius: Optional[int] = None,
                   location_preference: Optional[str] = None,
                   keyword: Optional[str] = None, min_rating: float = 0,
                   max_price: int = 4) -> bool:
        """Search with the filter panel that is currently open.

        Returns:
            False when ``bucket`` is not the open panel
        """
        with self.lock:
            self.update_activity()
            if self.planning.active_bucket != bucket:
                logger.info(f"Ignoring {bucket.value} search: panel not open")
                return False
            filters: SearchFilters = self.planning.update_filters(
                bucket, radius=radius, location_preference=location_preference, keyword=keyword)
            center = resolve_search_center(
                self.session.selected_event,
                self.session.itinerary,
                near_hotel=filters.location_preference == "hotel",
            )
            token = self.planning.begin_search(bucket)
            chat_id = self.chat_id

        self._spawn(self._run_place_search, bucket, center, filters.radius, filters.keyword,
                    min_rating, max_price, token, chat_id)
        return True

    def _run_place_search(self, bucket: ResultBucket, center: Optional[Location], radius: int,
                          keyword: Optional[str], min_rating: float, max_price: int,
                          token: SearchToken, chat_id: str) -> None:
        outcome = self.search.search_places(center, BUCKET_PLACE_TYPES[bucket], radius,
                                            keyword=keyword, min_rating=min_rating,
                                            max_price=max_price)
        with self.lock:
            if chat_id != self.chat_id:
                logger.info(f"Discarding {bucket.value} results for chat {chat_id}")
                return
            # failures and missing locations both leave an explicit empty bucket
            applied = self.planning.apply_results(bucket, outcome.items, token)
            payload = {
                "chatId": self.chat_id,
                "kind": "places",
                "bucket": bucket.value,
                "count": len(outcome.items),
                "failed": outcome.failed,
                "error": outcome.error,
                "reason": outcome.reason,
            }
        if not applied:
            return
        if outcome.reason == NO_LOCATION:
            logger.info(f"{bucket.value} search had no location to search near")
        self._emit("search_result", payload)
        self.emit_state()

    def remove_item(self, item_id: str) -> bool:
        with self.lock:
            self.update_activity()
            removed = ItineraryService.remove_from_itinerary(self.session, item_id)
            if removed:
                self.persistence.mark_user_action()
                self.persistence.save(self.session)
        if removed:
            self.emit_state()
        return removed

    def generate_schedule(self) -> bool:
        """Ask the assistant for a schedule of the whole itinerary.

        Returns:
            False when the itinerary is empty or a reply is still streaming
        """
        with self.lock:
            self.update_activity()
            try:
                request = ItineraryService.build_schedule_request(self.session)
            except ValueError as e:
                logger.info(f"Schedule not requested: {e}")
                return False
            if self.stream.is_streaming:
                logger.info("Schedule not requested: a reply is still streaming")
                return False
            placeholder = self._post_user_message(request)
            if placeholder is None:
                return False
            self._schedule_reply = placeholder

        self._emit_messages()
        self._spawn(self._run_stream, placeholder)
        return True

    def _apply_schedule_reply(self, message: Message, error: Optional[Exception]) -> None:
        items = None if error else ItineraryService.parse_schedule(message.content)
        with self.lock:
            if items:
                self.session.schedule = items
                message.display = ItineraryService.strip_schedule_block(message.display)
                self.persistence.mark_user_action()
                self.persistence.save(self.session)
            else:
                logger.warning("Keeping previous schedule: reply had no usable schedule")
            payload = {
                "chatId": self.chat_id,
                "failed": not items,
                "schedule": [s.to_dict() for s in self.session.schedule],
            }
        self._emit("schedule_updated", payload)

    # ------------------------------------------------------------------
    # State projection
    # ------------------------------------------------------------------

    def snapshot(self) -> Dict[str, Any]:
        """Everything the browser needs to render this chat."""
        with self.lock:
            planning = self.planning.to_dict()
            markers = MapService.build_markers(self.session.selected_event,
                                               self.planning.visible_markers())
            return {
                "chatId": self.session.id,
                "title": self.session.title,
                "isPinned": self.session.is_pinned,
                "messages": [m.to_dict() for m in self.messages],
                "isStreaming": self.stream.is_streaming,
                "itinerary": self.session.itinerary.to_dict(),
                "schedule": [s.to_dict() for s in self.session.schedule],
                "selectedEvent": self.session.selected_event.to_dict() if self.session.selected_event else None,
                "planning": planning,
                "markers": markers,
                "bounds": MapService.calculate_bounds(markers),
            }

    def emit_state(self) -> None:
        self._emit("chat_state", self.snapshot())

    def _emit_messages(self) -> None:
        with self.lock:
            payload = {
                "chatId": self.chat_id,
                "messages": [m.to_dict() for m in self.messages],
                "isStreaming": self.stream.is_streaming,
            }
        self._emit("message_update", payload)
