# gigtrip/api/services/session_service.py
"""Service layer for chat persistence and the chat list."""

import logging
import threading
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional

from gigtrip.api.models import ChatSession

logger = logging.getLogger(__name__)


def _run_inline(fn, *args, **kwargs):
    return fn(*args, **kwargs)


class WriteSequencer:
    """Per-chat revision counter so an older save never overwrites a newer one."""

    def __init__(self):
        self._lock = threading.Lock()
        self._issued: Dict[str, int] = defaultdict(int)
        self._applied: Dict[str, int] = defaultdict(int)

    def next_revision(self, chat_id: str) -> int:
        with self._lock:
            self._issued[chat_id] += 1
            return self._issued[chat_id]

    def apply(self, chat_id: str, revision: int, write: Callable[[], None]) -> bool:
        """Run ``write`` unless a newer revision of ``chat_id`` already landed."""
        with self._lock:
            if revision <= self._applied[chat_id]:
                logger.info(f"Skipping stale save r{revision} for chat {chat_id}")
                return False
            write()
            self._applied[chat_id] = revision
            return True


_sequencer = WriteSequencer()


class SessionPersistence:
    """Decides when a chat is saved and writes it through the chat store.

    A chat is write-eligible once it has a title and an owner.  Saves are
    issued only after the initial load finished and the user changed
    something in this process, so reading a chat back never rewrites it.
    """

    def __init__(self, store, user_id: Optional[str],
                 spawn: Callable = None, sequencer: WriteSequencer = None):
        self.store = store
        self.user_id = user_id
        self._spawn = spawn or _run_inline
        self._sequencer = sequencer or _sequencer
        self.loaded = False
        self.user_mutated = False

    def mark_loaded(self) -> None:
        self.loaded = True

    def mark_user_action(self) -> None:
        self.user_mutated = True

    def is_write_eligible(self, session: ChatSession) -> bool:
        return bool(session.title) and bool(self.user_id)

    def save(self, session: ChatSession) -> bool:
        """Schedule a write of ``session``; returns whether one was issued."""
        if not self.loaded or not self.user_mutated:
            logger.debug(f"Not saving chat {session.id}: nothing changed since load")
            return False
        if not self.is_write_eligible(session):
            logger.debug(f"Not saving chat {session.id}: draft or anonymous")
            return False

        revision = self._sequencer.next_revision(session.id)
        # snapshot now; the write may run on another thread later
        title, data, pinned = session.title, session.to_data(), session.is_pinned
        self._spawn(self._write, session.id, revision, title, data, pinned)
        return True

    def _write(self, chat_id: str, revision: int, title: str,
               data: Dict[str, Any], is_pinned: bool) -> None:
        def write():
            self.store.upsert_chat(self.user_id, chat_id, title, data,
                                   is_pinned=is_pinned if revision == 1 else None)

        try:
            if self._sequencer.apply(chat_id, revision, write):
                logger.debug(f"Saved chat {chat_id} (r{revision})")
        except Exception as e:
            # local state stays as it is; the next change saves again
            logger.error(f"Failed to save chat {chat_id}: {e}")

    def load(self, chat_id: str) -> Optional[ChatSession]:
        """Read a stored chat; message history is not part of the record."""
        if not self.user_id:
            logger.info(f"Cannot load chat {chat_id}: no signed-in user")
            return None
        try:
            record = self.store.get_chat(self.user_id, chat_id)
        except Exception as e:
            logger.error(f"Failed to load chat {chat_id}: {e}")
            return None
        if record is None:
            logger.warning(f"Chat {chat_id} not found for user {self.user_id}")
            return None
        session = ChatSession.from_record(record)
        self.loaded = True
        self.user_mutated = False
        return session


def sort_chats(chats: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Pinned chats first, then most recently updated."""
    return sorted(chats, key=lambda c: (not c.get("isPinned"), -(c.get("timestamp") or 0)))


class ChatListModel:
    """Sidebar list with optimistic pin/rename/delete.

    Each operation updates the local list and notifies ``on_change`` right
    away, calls the store, then reloads the canonical list whatever the
    store call did.
    """

    def __init__(self, store, user_id: Optional[str],
                 on_change: Callable[[List[Dict[str, Any]]], None] = None):
        self.store = store
        self.user_id = user_id
        self.chats: List[Dict[str, Any]] = []
        self.on_change = on_change

    def _notify(self) -> None:
        if self.on_change:
            self.on_change(list(self.chats))

    def reload(self) -> List[Dict[str, Any]]:
        if not self.user_id:
            self.chats = []
        else:
            try:
                self.chats = sort_chats(self.store.list_chats(self.user_id))
            except Exception as e:
                logger.error(f"Failed to list chats: {e}")
        self._notify()
        return self.chats

    def _settle(self, action: str, call: Callable[[], Any]) -> List[Dict[str, Any]]:
        self._notify()
        if self.user_id:
            try:
                call()
            except Exception as e:
                logger.error(f"Chat list {action} failed: {e}")
        return self.reload()

    def toggle_pin(self, chat_id: str) -> List[Dict[str, Any]]:
        target = next((c for c in self.chats if c["id"] == chat_id), None)
        if target is None:
            return self.reload()
        target["isPinned"] = not target.get("isPinned")
        pinned = target["isPinned"]
        self.chats = sort_chats(self.chats)
        return self._settle("pin", lambda: self.store.set_pinned(self.user_id, chat_id, pinned))

    def rename(self, chat_id: str, title: str) -> List[Dict[str, Any]]:
        title = (title or "").strip()
        if not title:
            return self.chats
        for chat in self.chats:
            if chat["id"] == chat_id:
                chat["preview"] = title
        return self._settle("rename", lambda: self.store.rename_chat(self.user_id, chat_id, title))

    def delete(self, chat_id: str) -> List[Dict[str, Any]]:
        self.chats = [c for c in self.chats if c["id"] != chat_id]
        return self._settle("delete", lambda: self.store.delete_chat(self.user_id, chat_id))
