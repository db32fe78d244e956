# FILE: tests/test_memory_service.py
"""
Tests for kb_assistant/memory/service.py
Conversation store - conversations, append-only messages, titles, cascade.
"""

from datetime import datetime, timedelta

import pytest

from kb_assistant.memory import models, schemas, service


class TestDeriveTitle:
    """Test derive_title()."""

    def test_long_message_truncated(self):
        content = "x" * 60
        assert service.derive_title(content) == "x" * 50 + "..."

    def test_short_message_unchanged(self):
        assert service.derive_title("0123456789") == "0123456789"

    def test_exactly_fifty_unchanged(self):
        assert service.derive_title("y" * 50) == "y" * 50


class TestConversations:
    """Test conversation CRUD."""

    def test_create_defaults(self, db):
        conversation = service.create_conversation(db)
        assert conversation.id
        assert conversation.title == models.DEFAULT_TITLE
        assert conversation.created_at is not None
        assert conversation.updated_at is not None

    def test_create_with_title(self, db):
        conversation = service.create_conversation(db, schemas.ConversationCreate(title="Exams"))
        assert conversation.title == "Exams"

    def test_list_most_recently_updated_first(self, db):
        older = service.create_conversation(db)
        newer = service.create_conversation(db)
        now = datetime.utcnow()
        older.updated_at = now
        newer.updated_at = now - timedelta(hours=1)
        db.commit()

        ids = [c.id for c in service.list_conversations(db)]
        assert ids == [older.id, newer.id]

    def test_get_missing(self, db):
        assert service.get_conversation(db, "nope") is None

    def test_delete_missing(self, db):
        assert service.delete_conversation(db, "nope") is False


class TestMessages:
    """Test message persistence."""

    def test_first_user_message_sets_title(self, db):
        conversation = service.create_conversation(db)
        service.record_user_message(db, conversation.id, "a" * 60)
        db.expire_all()
        assert service.get_conversation(db, conversation.id).title == "a" * 50 + "..."

    def test_short_first_message_title(self, db):
        conversation = service.create_conversation(db)
        service.record_user_message(db, conversation.id, "Hello there")
        db.expire_all()
        assert service.get_conversation(db, conversation.id).title == "Hello there"

    def test_later_messages_keep_title(self, db):
        conversation = service.create_conversation(db)
        service.record_user_message(db, conversation.id, "First question")
        service.record_assistant_message(db, conversation.id, "Answer")
        service.record_user_message(db, conversation.id, "Second question")
        db.expire_all()
        assert service.get_conversation(db, conversation.id).title == "First question"

    def test_user_message_for_missing_conversation(self, db):
        with pytest.raises(LookupError):
            service.record_user_message(db, "missing", "Hello")

    def test_assistant_message_bumps_updated_at(self, db):
        conversation = service.create_conversation(db)
        conversation.updated_at = datetime(2020, 1, 1)
        db.commit()

        service.record_assistant_message(db, conversation.id, "Answer")
        db.expire_all()
        assert service.get_conversation(db, conversation.id).updated_at > datetime(2020, 1, 1)

    def test_list_messages_in_creation_order(self, db):
        conversation = service.create_conversation(db)
        messages = [
            service.record_user_message(db, conversation.id, "one"),
            service.record_assistant_message(db, conversation.id, "two"),
            service.record_user_message(db, conversation.id, "three"),
        ]
        base = datetime(2024, 1, 1)
        for offset, message in enumerate(messages):
            message.created_at = base + timedelta(seconds=offset)
        db.commit()

        assert [m.content for m in service.list_messages(db, conversation.id)] == ["one", "two", "three"]

    def test_equal_timestamps_list_in_id_order(self, db):
        conversation = service.create_conversation(db)
        messages = [
            service.record_user_message(db, conversation.id, "question"),
            service.record_assistant_message(db, conversation.id, "answer"),
        ]
        same = datetime(2024, 1, 1)
        for message in messages:
            message.created_at = same
        db.commit()

        expected = [m.id for m in sorted(messages, key=lambda m: m.id)]
        assert [m.id for m in service.list_messages(db, conversation.id)] == expected
        assert [m.id for m in service.list_messages(db, conversation.id)] == expected

    def test_lone_surrogates_are_replaced(self, db):
        conversation = service.create_conversation(db)
        service.record_user_message(db, conversation.id, "hello \ud800 there")
        service.record_assistant_message(db, conversation.id, "Hello \ud83d")
        db.expire_all()

        user, assistant = service.list_messages(db, conversation.id)
        assert user.content.startswith("hello ") and user.content.endswith(" there")
        assert "\ud800" not in user.content
        assert "\ufffd" in user.content
        assert "\ud83d" not in assistant.content
        assert service.get_conversation(db, conversation.id).title == user.content

    def test_list_messages_scoped_to_conversation(self, db):
        first = service.create_conversation(db)
        second = service.create_conversation(db)
        service.record_user_message(db, first.id, "mine")
        service.record_user_message(db, second.id, "theirs")
        assert [m.content for m in service.list_messages(db, first.id)] == ["mine"]


class TestCascadeDelete:
    """Deleting a conversation removes its messages."""

    def test_delete_removes_messages(self, db):
        conversation = service.create_conversation(db)
        service.record_user_message(db, conversation.id, "Hello")
        service.record_assistant_message(db, conversation.id, "Hi")

        assert service.delete_conversation(db, conversation.id) is True
        assert service.get_conversation(db, conversation.id) is None
        assert service.list_messages(db, conversation.id) == []
        assert db.query(models.Message).count() == 0
