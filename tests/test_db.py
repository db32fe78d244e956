# FILE: tests/test_db.py
"""
Tests for kb_assistant/db.py
Database core functionality - tables, foreign keys, cascade at the SQL level.
"""

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError


class TestDatabaseTables:
    """Test that the expected tables are registered."""

    def test_tables_registered(self):
        from kb_assistant.db import Base
        from kb_assistant.memory import models  # noqa: F401

        assert {"conversations", "messages"} <= set(Base.metadata.tables)

    def test_message_columns(self):
        from kb_assistant.db import Base
        from kb_assistant.memory import models  # noqa: F401

        columns = set(Base.metadata.tables["messages"].columns.keys())
        assert columns == {"id", "conversation_id", "role", "content", "created_at"}


class TestDatabaseIntegrity:
    """Test database integrity constraints."""

    def test_foreign_keys_enabled(self, engine):
        with engine.connect() as conn:
            assert conn.execute(text("PRAGMA foreign_keys")).scalar() == 1

    def test_message_requires_existing_conversation(self, db):
        from kb_assistant.memory import models

        db.add(models.Message(conversation_id="missing", role="user", content="Hello"))
        with pytest.raises(IntegrityError):
            db.commit()
        db.rollback()

    def test_role_constraint(self, db):
        from kb_assistant.memory import models

        conversation = models.Conversation()
        db.add(conversation)
        db.commit()
        db.add(models.Message(conversation_id=conversation.id, role="system", content="nope"))
        with pytest.raises(IntegrityError):
            db.commit()
        db.rollback()

    def test_sql_delete_cascades(self, engine, db):
        from kb_assistant.memory import models

        conversation_id = "c-cascade"
        db.add(models.Conversation(id=conversation_id))
        db.commit()
        db.add(models.Message(conversation_id=conversation_id, role="user", content="Hello"))
        db.commit()
        db.close()

        with engine.begin() as conn:
            conn.execute(text("DELETE FROM conversations WHERE id = :id"), {"id": conversation_id})
            remaining = conn.execute(
                text("SELECT COUNT(*) FROM messages WHERE conversation_id = :id"), {"id": conversation_id}
            ).scalar()
        assert remaining == 0
