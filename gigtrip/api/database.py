"""
Chat record storage - SQLite with SQLAlchemy by default
"""
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import Boolean, Column, DateTime, String, Text, create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from gigtrip.api.config import get_database_url

logger = logging.getLogger(__name__)

Base = declarative_base()


def _now():
    return datetime.now(timezone.utc).replace(tzinfo=None)


class ChatRecord(Base):
    __tablename__ = "chats"

    id = Column(String, primary_key=True)
    user_id = Column(String, index=True, nullable=False)
    title = Column(String, nullable=False)
    data = Column(Text)  # JSON: itinerary, schedule, selectedEvent
    is_pinned = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)
    updated_at = Column(DateTime, default=_now, nullable=False)

    def to_dict(self) -> Dict[str, Any]:
        try:
            data = json.loads(self.data) if self.data else {}
        except json.JSONDecodeError:
            logger.warning(f"Chat {self.id} has unreadable data, ignoring it")
            data = {}
        return {
            "id": self.id,
            "title": self.title,
            "data": data,
            "isPinned": bool(self.is_pinned),
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


class ChatStore:
    """CRUD over chat headers, always scoped to the owning user."""

    def __init__(self, url: Optional[str] = None):
        self.url = url or get_database_url()
        connect_args = {"check_same_thread": False} if self.url.startswith("sqlite") else {}
        self.engine = create_engine(self.url, connect_args=connect_args)
        Base.metadata.create_all(bind=self.engine)
        self.Session = sessionmaker(bind=self.engine)

    def list_chats(self, user_id: str) -> List[Dict[str, Any]]:
        db = self.Session()
        try:
            rows = (
                db.query(ChatRecord)
                .filter(ChatRecord.user_id == user_id)
                .order_by(ChatRecord.updated_at.desc())
                .all()
            )
            return [
                {
                    "id": r.id,
                    "preview": r.title,
                    "timestamp": r.updated_at.replace(tzinfo=timezone.utc).timestamp(),
                    "isPinned": bool(r.is_pinned),
                }
                for r in rows
            ]
        finally:
            db.close()

    def get_chat(self, user_id: str, chat_id: str) -> Optional[Dict[str, Any]]:
        db = self.Session()
        try:
            row = db.query(ChatRecord).filter(
                ChatRecord.id == chat_id, ChatRecord.user_id == user_id
            ).first()
            return row.to_dict() if row else None
        finally:
            db.close()

    def upsert_chat(self, user_id: str, chat_id: str, title: str, data: Dict[str, Any],
                    is_pinned: Optional[bool] = None) -> None:
        db = self.Session()
        try:
            row = db.query(ChatRecord).filter(ChatRecord.id == chat_id).first()
            if row is not None and row.user_id != user_id:
                raise PermissionError(f"Chat {chat_id} belongs to another user")
            if row is None:
                row = ChatRecord(
                    id=chat_id,
                    user_id=user_id,
                    is_pinned=bool(is_pinned),
                    created_at=_now(),
                )
                db.add(row)
            elif is_pinned is not None:
                row.is_pinned = is_pinned
            row.title = title
            row.data = json.dumps(data)
            row.updated_at = _now()
            db.commit()
        finally:
            db.close()

    def _update(self, user_id: str, chat_id: str, **fields) -> bool:
        db = self.Session()
        try:
            row = db.query(ChatRecord).filter(
                ChatRecord.id == chat_id, ChatRecord.user_id == user_id
            ).first()
            if row is None:
                return False
            for key, value in fields.items():
                setattr(row, key, value)
            row.updated_at = _now()
            db.commit()
            return True
        finally:
            db.close()

    def rename_chat(self, user_id: str, chat_id: str, title: str) -> bool:
        return self._update(user_id, chat_id, title=title)

    def set_pinned(self, user_id: str, chat_id: str, is_pinned: bool) -> bool:
        return self._update(user_id, chat_id, is_pinned=bool(is_pinned))

    def delete_chat(self, user_id: str, chat_id: str) -> bool:
        db = self.Session()
        try:
            deleted = db.query(ChatRecord).filter(
                ChatRecord.id == chat_id, ChatRecord.user_id == user_id
            ).delete()
            db.commit()
            return bool(deleted)
        finally:
            db.close()


# Global store instance
_chat_store = None


def get_chat_store() -> ChatStore:
    """Get the global ChatStore instance."""
    global _chat_store
    if _chat_store is None:
        _chat_store = ChatStore()
    return _chat_store
