# FILE: kb_assistant/memory/schemas.py
"""Conversation store Pydantic schemas."""
from datetime import datetime
from typing import Optional, Literal
from pydantic import BaseModel, ConfigDict, Field


# ============== CONVERSATION ==============

class ConversationCreate(BaseModel):
    title: Optional[str] = None


class ConversationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str
    title: str
    created_at: datetime = Field(serialization_alias="createdAt")
    updated_at: datetime = Field(serialization_alias="updatedAt")


# ============== MESSAGE ==============

class MessageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str
    conversation_id: str = Field(serialization_alias="conversationId")
    role: Literal["user", "assistant"]
    content: str
    created_at: datetime = Field(serialization_alias="createdAt")
