"""
Unit tests for gigtrip/api/database.py and gigtrip/api/services/session_service.py
"""
import pytest
from unittest.mock import MagicMock

from gigtrip.api.models import ChatSession, ScheduleItem
from gigtrip.api.services.itinerary_service import ItineraryService
from gigtrip.api.services.session_service import (
    ChatListModel,
    SessionPersistence,
    WriteSequencer,
    sort_chats,
)


def _titled_session(event, chat_id="c1"):
    session = ChatSession(id=chat_id)
    ItineraryService.confirm_event(session, event)
    return session


class TestChatStore:

    def test_upsert_and_get(self, store, event):
        session = _titled_session(event)
        store.upsert_chat("u1", "c1", session.title, session.to_data())
        record = store.get_chat("u1", "c1")
        assert record["title"] == event.name
        assert record["data"]["selectedEvent"]["id"] == "ev1"
        assert record["isPinned"] is False

    def test_scoped_to_user(self, store):
        store.upsert_chat("u1", "c1", "Trip", {})
        assert store.get_chat("u2", "c1") is None
        assert store.list_chats("u2") == []
        with pytest.raises(PermissionError):
            store.upsert_chat("u2", "c1", "Hijack", {})

    def test_rename_pin_delete(self, store):
        store.upsert_chat("u1", "c1", "Trip", {})
        assert store.rename_chat("u1", "c1", "Renamed")
        assert store.set_pinned("u1", "c1", True)
        chats = store.list_chats("u1")
        assert chats[0]["preview"] == "Renamed"
        assert chats[0]["isPinned"] is True
        assert store.delete_chat("u1", "c1")
        assert not store.delete_chat("u1", "c1")
        assert store.list_chats("u1") == []

    def test_update_keeps_pin_unless_given(self, store):
        store.upsert_chat("u1", "c1", "Trip", {}, is_pinned=True)
        store.upsert_chat("u1", "c1", "Trip", {"schedule": []})
        assert store.get_chat("u1", "c1")["isPinned"] is True


class TestWriteSequencer:

    def test_stale_revision_skipped(self):
        sequencer = WriteSequencer()
        first = sequencer.next_revision("c1")
        second = sequencer.next_revision("c1")
        writes = []
        assert sequencer.apply("c1", second, lambda: writes.append(second))
        assert not sequencer.apply("c1", first, lambda: writes.append(first))
        assert writes == [second]

    def test_independent_per_chat(self):
        sequencer = WriteSequencer()
        assert sequencer.next_revision("a") == 1
        assert sequencer.next_revision("b") == 1


class TestSessionPersistence:

    def test_draft_not_saved(self):
        store = MagicMock()
        persistence = SessionPersistence(store, "u1", sequencer=WriteSequencer())
        persistence.mark_loaded()
        persistence.mark_user_action()
        assert not persistence.save(ChatSession(id="c1"))
        store.upsert_chat.assert_not_called()

    def test_anonymous_not_saved(self, event):
        store = MagicMock()
        persistence = SessionPersistence(store, None, sequencer=WriteSequencer())
        persistence.mark_loaded()
        persistence.mark_user_action()
        assert not persistence.save(_titled_session(event))
        store.upsert_chat.assert_not_called()

    def test_no_save_before_user_action(self, event):
        store = MagicMock()
        persistence = SessionPersistence(store, "u1", sequencer=WriteSequencer())
        persistence.mark_loaded()
        assert not persistence.save(_titled_session(event))
        store.upsert_chat.assert_not_called()

    def test_save_through_spawn(self, event):
        store, spawn = MagicMock(), MagicMock()
        persistence = SessionPersistence(store, "u1", spawn=spawn, sequencer=WriteSequencer())
        persistence.mark_loaded()
        persistence.mark_user_action()
        assert persistence.save(_titled_session(event))
        spawn.assert_called_once()
        store.upsert_chat.assert_not_called()

    def test_out_of_order_writes(self, event):
        store = MagicMock()
        tasks = []
        persistence = SessionPersistence(store, "u1", spawn=lambda fn, *a: tasks.append((fn, a)),
                                         sequencer=WriteSequencer())
        persistence.mark_loaded()
        persistence.mark_user_action()
        session = _titled_session(event)
        persistence.save(session)
        session.schedule = [ScheduleItem(time="7:00 PM - 8:00 PM", activity="Show")]
        persistence.save(session)

        # the newer write lands first; the older one must be dropped
        fn, args = tasks.pop()
        fn(*args)
        fn, args = tasks.pop()
        fn(*args)

        store.upsert_chat.assert_called_once()
        assert store.upsert_chat.call_args.args[3]["schedule"][0]["activity"] == "Show"

    def test_store_failure_is_logged(self, event):
        store = MagicMock()
        store.upsert_chat.side_effect = RuntimeError("disk full")
        persistence = SessionPersistence(store, "u1", sequencer=WriteSequencer())
        persistence.mark_loaded()
        persistence.mark_user_action()
        assert persistence.save(_titled_session(event))

    def test_load_restores_state_without_marking_dirty(self, store, event, hotel):
        session = _titled_session(event)
        ItineraryService.confirm_place(session, hotel)
        store.upsert_chat("u1", "c1", session.title, session.to_data(), is_pinned=True)

        persistence = SessionPersistence(store, "u1", sequencer=WriteSequencer())
        loaded = persistence.load("c1")

        assert loaded.selected_event == event
        assert [p.id for p in loaded.itinerary.places] == ["h1"]
        assert loaded.is_pinned
        assert persistence.loaded and not persistence.user_mutated
        assert not persistence.save(loaded)

    def test_load_missing(self, store):
        assert SessionPersistence(store, "u1").load("nope") is None


class TestChatList:

    def test_sort_pinned_then_recent(self):
        chats = [
            {"id": "old", "timestamp": 1, "isPinned": False},
            {"id": "new", "timestamp": 3, "isPinned": False},
            {"id": "pinned", "timestamp": 0, "isPinned": True},
        ]
        assert [c["id"] for c in sort_chats(chats)] == ["pinned", "new", "old"]

    def test_optimistic_then_reload(self, store):
        store.upsert_chat("u1", "c1", "One", {})
        store.upsert_chat("u1", "c2", "Two", {})
        seen = []
        model = ChatListModel(store, "u1", on_change=lambda chats: seen.append([c["id"] for c in chats]))
        model.reload()

        model.delete("c1")

        assert seen[-2] == ["c2"]
        assert seen[-1] == ["c2"]

    def test_pin_moves_to_top(self, store):
        store.upsert_chat("u1", "c1", "One", {})
        store.upsert_chat("u1", "c2", "Two", {})
        model = ChatListModel(store, "u1")
        model.reload()
        chats = model.toggle_pin("c1")
        assert chats[0]["id"] == "c1"
        assert chats[0]["isPinned"]

    def test_failed_call_reloads_canonical_list(self, store):
        store.upsert_chat("u1", "c1", "One", {})
        model = ChatListModel(store, "u1")
        model.reload()
        store.rename_chat = MagicMock(side_effect=RuntimeError("db down"))
        chats = model.rename("c1", "Other")
        assert chats[0]["preview"] == "One"
