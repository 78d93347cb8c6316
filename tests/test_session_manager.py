"""
Unit tests for gigtrip/api/conversation/session_manager.py
"""
from datetime import datetime, timedelta

from gigtrip.api.conversation.session_manager import ChatSessionManager


class TestChatSessionManager:

    def test_one_controller_per_connection(self, store):
        manager = ChatSessionManager(start_cleanup=False)
        first = manager.create_controller("sid1", "u1", store=store)
        second = manager.create_controller("sid1", "u1", store=store)
        assert manager.get_controller("sid1") is second
        assert first is not second
        assert manager.get_stats()["active_chats"] == 1

    def test_remove(self, store):
        manager = ChatSessionManager(start_cleanup=False)
        manager.create_controller("sid1", None, store=store)
        assert manager.remove_controller("sid1")
        assert not manager.remove_controller("sid1")
        assert manager.get_controller("sid1") is None

    def test_cleanup_expired(self, store):
        manager = ChatSessionManager(start_cleanup=False)
        idle = manager.create_controller("idle", "u1", store=store)
        manager.create_controller("busy", "u1", store=store)
        idle.last_activity = datetime.now() - timedelta(seconds=manager.config["session_timeout_seconds"] + 5)

        assert manager.cleanup_expired() == 1
        assert list(manager.controllers) == ["busy"]
