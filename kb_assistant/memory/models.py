# kb_assistant/memory/models.py
"""
SQLAlchemy ORM models for conversation history.

Messages are append-only. Deleting a conversation removes its messages both
through the ORM cascade and the ON DELETE CASCADE foreign key.
"""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import Column, String, Text, ForeignKey, DateTime, CheckConstraint
from sqlalchemy.orm import relationship

from kb_assistant.db import Base

DEFAULT_TITLE = "New Chat"
MESSAGE_ROLES = ("user", "assistant")


def _new_id() -> str:
    return str(uuid4())


class Conversation(Base):
    __tablename__ = "conversations"

    id = Column(String(36), primary_key=True, default=_new_id)
    title = Column(Text, nullable=False, default=DEFAULT_TITLE)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    # Advanced explicitly on every assistant turn, not via onupdate
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    messages = relationship(
        "Message",
        back_populates="conversation",
        cascade="all, delete-orphan",
        order_by=lambda: (Message.created_at, Message.id),
    )


class Message(Base):
    __tablename__ = "messages"
    __table_args__ = (
        CheckConstraint("role IN ('user', 'assistant')", name="ck_messages_role"),
    )

    id = Column(String(36), primary_key=True, default=_new_id)
    conversation_id = Column(
        String(36),
        ForeignKey("conversations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    role = Column(String(20), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    conversation = relationship("Conversation", back_populates="messages")
