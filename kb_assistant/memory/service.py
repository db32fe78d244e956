# FILE: kb_assistant/memory/service.py
"""
Conversation store service layer.

Plain functions over a SQLAlchemy Session. Writes commit immediately; a
failed commit is rolled back and the SQLAlchemyError re-raised for the caller
to report.
"""
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from kb_assistant.memory import models, schemas

logger = logging.getLogger(__name__)

TITLE_MAX_CHARS = 50
TITLE_ELLIPSIS = "..."


def derive_title(content: str) -> str:
    """First TITLE_MAX_CHARS characters of the message, with an ellipsis if cut."""
    if len(content) > TITLE_MAX_CHARS:
        return content[:TITLE_MAX_CHARS] + TITLE_ELLIPSIS
    return content


def _commit(db: Session) -> None:
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise


# ============== CONVERSATION ==============

def create_conversation(db: Session, data: Optional[schemas.ConversationCreate] = None) -> models.Conversation:
    conversation = models.Conversation()
    if data is not None and data.title:
        conversation.title = data.title
    db.add(conversation)
    _commit(db)
    db.refresh(conversation)
    return conversation


def get_conversation(db: Session, conversation_id: str) -> Optional[models.Conversation]:
    return db.query(models.Conversation).filter(models.Conversation.id == conversation_id).first()


def list_conversations(db: Session) -> List[models.Conversation]:
    """Most recently updated first."""
    return (
        db.query(models.Conversation)
        .order_by(models.Conversation.updated_at.desc(), models.Conversation.created_at.desc())
        .all()
    )


def delete_conversation(db: Session, conversation_id: str) -> bool:
    conversation = get_conversation(db, conversation_id)
    if not conversation:
        return False
    db.delete(conversation)
    _commit(db)
    logger.info("[memory.service] Deleted conversation %s", conversation_id)
    return True


# ============== MESSAGE ==============

def count_messages(db: Session, conversation_id: str) -> int:
    return db.query(models.Message).filter(models.Message.conversation_id == conversation_id).count()


def _sanitize_utf8(text: str) -> str:
    """Replace lone surrogates (valid in JSON, rejected by the database driver)."""
    if not text:
        return text
    return text.encode("utf-8", errors="surrogatepass").decode("utf-8", errors="replace")


def list_messages(db: Session, conversation_id: str) -> List[models.Message]:
    """Creation order, oldest first; id breaks timestamp ties."""
    return (
        db.query(models.Message)
        .filter(models.Message.conversation_id == conversation_id)
        .order_by(models.Message.created_at.asc(), models.Message.id.asc())
        .all()
    )


def record_user_message(db: Session, conversation_id: str, content: str) -> models.Message:
    """
    Persist an incoming user message.

    On the first message of a conversation the title is derived from it;
    later turns leave the title alone.
    """
    conversation = get_conversation(db, conversation_id)
    if conversation is None:
        raise LookupError(f"Conversation {conversation_id} not found")

    content = _sanitize_utf8(content)
    is_first = count_messages(db, conversation_id) == 0
    message = models.Message(conversation_id=conversation_id, role="user", content=content)
    db.add(message)
    if is_first:
        conversation.title = derive_title(content)
    _commit(db)
    db.refresh(message)
    return message


def record_assistant_message(db: Session, conversation_id: str, content: str) -> models.Message:
    """Persist a completed assistant answer and bump the conversation's updated_at."""
    message = models.Message(conversation_id=conversation_id, role="assistant", content=_sanitize_utf8(content))
    db.add(message)
    conversation = get_conversation(db, conversation_id)
    if conversation is not None:
        conversation.updated_at = datetime.utcnow()
    _commit(db)
    db.refresh(message)
    return message
