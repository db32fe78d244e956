# file: kb_assistant/memory/router.py
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from kb_assistant.db import get_db
from kb_assistant.memory import service, schemas

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/conversations",
    tags=["conversations"],
)


def _store_error(action: str, exc: Exception) -> HTTPException:
    logger.exception("[memory.router] Failed to %s: %s", action, exc)
    return HTTPException(status_code=500, detail=f"Failed to {action}")


# ============== CONVERSATIONS ==============

@router.get("", response_model=List[schemas.ConversationOut])
def list_conversations(db: Session = Depends(get_db)):
    try:
        return service.list_conversations(db)
    except SQLAlchemyError as e:
        raise _store_error("list conversations", e)


@router.post("", response_model=schemas.ConversationOut, status_code=201)
def create_conversation(data: Optional[schemas.ConversationCreate] = None, db: Session = Depends(get_db)):
    try:
        return service.create_conversation(db, data)
    except SQLAlchemyError as e:
        raise _store_error("create conversation", e)


@router.get("/{conversation_id}", response_model=schemas.ConversationOut)
def get_conversation(conversation_id: str, db: Session = Depends(get_db)):
    try:
        conversation = service.get_conversation(db, conversation_id)
    except SQLAlchemyError as e:
        raise _store_error("load conversation", e)
    if not conversation:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return conversation


@router.delete("/{conversation_id}", status_code=204)
def delete_conversation(conversation_id: str, db: Session = Depends(get_db)):
    try:
        success = service.delete_conversation(db, conversation_id)
    except SQLAlchemyError as e:
        raise _store_error("delete conversation", e)
    if not success:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return None


# ============== MESSAGES (NESTED UNDER CONVERSATION) ==============

@router.get("/{conversation_id}/messages", response_model=List[schemas.MessageOut])
def list_messages(conversation_id: str, db: Session = Depends(get_db)):
    """List messages of a conversation, oldest first."""
    try:
        return service.list_messages(db, conversation_id)
    except SQLAlchemyError as e:
        raise _store_error("list messages", e)
