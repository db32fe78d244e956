# FILE: kb_assistant/llm/stream_router.py
r"""
Chat endpoint with knowledge-grounded, streamed answers.
Uses Server-Sent Events (SSE).

Request lifecycle (RelayState):
    IDLE -> RECEIVING   user message persisted (title set on first turn)
         -> STREAMING   upstream open, deltas forwarded as they arrive
         -> FINALIZING  assistant message persisted, updated_at bumped
         -> CLOSED      `data: [DONE]` sent
    FAILED is terminal from any point after the stream was opened.

Errors before the StreamingResponse is returned answer as JSON
({"error": ...}); once it is returned they arrive as one SSE error frame.

The upstream read and the final persistence run in their own task, fed to
the response through a queue, so a client that disconnects mid-stream does
not stop the assistant message from being stored (unless
KB_PERSIST_ON_DISCONNECT=false).
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterator, Dict, List, Literal, Optional, Set

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session, sessionmaker
from starlette.concurrency import run_in_threadpool

from kb_assistant import config
from kb_assistant.db import get_db, get_session_factory
from kb_assistant.memory import service as memory_service
from kb_assistant.rag import augment, match_query
from kb_assistant.rag.index import KnowledgeIndex
from kb_assistant.rag.router import get_knowledge_index

from .streaming import open_chat_stream, complete_chat
from .stream_utils import (
    GENERIC_ERROR,
    SSE_DONE,
    SSE_HEADERS,
    content_frame,
    error_frame,
)

router = APIRouter(tags=["chat"])
logger = logging.getLogger(__name__)

# Strong references to in-flight upstream tasks
_background_tasks: Set[asyncio.Task] = set()


# =============================================================================
# RELAY STATE
# =============================================================================

class RelayState(str, Enum):
    IDLE = "idle"
    RECEIVING = "receiving"
    STREAMING = "streaming"
    FINALIZING = "finalizing"
    CLOSED = "closed"
    FAILED = "failed"


@dataclass
class ChatTurn:
    """Per-request relay state. Never shared between requests."""
    conversation_id: str
    state: RelayState = RelayState.IDLE

    def advance(self, state: RelayState) -> None:
        logger.debug("[stream] %s: %s -> %s", self.conversation_id, self.state.value, state.value)
        self.state = state


@dataclass(frozen=True)
class UpstreamFailure:
    message: str


# Queue sentinel: upstream finished and the answer has been persisted
_STREAM_END = object()


# =============================================================================
# REQUEST MODEL
# =============================================================================

class ChatMessage(BaseModel):
    role: Literal["user", "assistant", "system"]
    content: str


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    messages: List[ChatMessage] = Field(..., min_length=1)
    conversation_id: Optional[str] = Field(default=None, alias="conversationId")
    stream: bool = True


def _json_error(message: str, status_code: int, headers: Optional[Dict[str, str]] = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


# =============================================================================
# PERSISTENCE STEPS
# =============================================================================

def _receive_user_message(db: Session, conversation_id: Optional[str], content: str) -> str:
    """Persist the incoming user message, creating the conversation if none was given."""
    if conversation_id is None:
        conversation_id = memory_service.create_conversation(db).id
    memory_service.record_user_message(db, conversation_id, content)
    return conversation_id


def _persist_assistant_message(session_factory: sessionmaker, conversation_id: str, content: str) -> None:
    db = session_factory()
    try:
        memory_service.record_assistant_message(db, conversation_id, content)
    finally:
        db.close()


async def _finalize(turn: ChatTurn, session_factory: sessionmaker, content: str) -> None:
    turn.advance(RelayState.FINALIZING)
    try:
        await run_in_threadpool(_persist_assistant_message, session_factory, turn.conversation_id, content)
    except Exception as e:
        # The client already has the full answer; report the store failure in logs only
        logger.exception("[stream] Failed to persist assistant message for %s: %s", turn.conversation_id, e)


# =============================================================================
# UPSTREAM TASK + SSE RELAY
# =============================================================================

async def run_upstream(
    turn: ChatTurn,
    deltas: AsyncIterator[str],
    session_factory: sessionmaker,
    queue: "asyncio.Queue",
) -> Optional[str]:
    """
    Drain the upstream deltas into `queue`, then persist the full answer.

    Returns the accumulated content, or None if the upstream failed. Every
    exit puts exactly one terminal item on the queue, so the relay always ends.
    """
    turn.advance(RelayState.STREAMING)
    parts: List[str] = []
    terminal = UpstreamFailure(GENERIC_ERROR)
    try:
        try:
            async for delta in deltas:
                parts.append(delta)
                queue.put_nowait(delta)
        finally:
            aclose = getattr(deltas, "aclose", None)
            if aclose is not None:
                await aclose()

        content = "".join(parts)
        await _finalize(turn, session_factory, content)
        terminal = _STREAM_END
        return content
    except asyncio.CancelledError:
        turn.advance(RelayState.FAILED)
        logger.info("[stream] Upstream read cancelled for %s", turn.conversation_id)
        raise
    except Exception as e:
        logger.exception("[stream] Upstream failed mid-stream for %s: %s", turn.conversation_id, e)
        turn.advance(RelayState.FAILED)
        return None
    finally:
        queue.put_nowait(terminal)


async def relay_stream(turn: ChatTurn, upstream: asyncio.Task, queue: "asyncio.Queue"):
    """Forward queued deltas as SSE frames, in upstream order, without coalescing."""
    finished = False
    try:
        while True:
            item = await queue.get()
            if item is _STREAM_END:
                turn.advance(RelayState.CLOSED)
                finished = True
                yield SSE_DONE
                return
            if isinstance(item, UpstreamFailure):
                finished = True
                yield error_frame(item.message)
                return
            yield content_frame(item)
    finally:
        if not finished:
            logger.info("[stream] Client disconnected from %s", turn.conversation_id)
            if not config.PERSIST_ON_DISCONNECT:
                upstream.cancel()


def _start_upstream(turn: ChatTurn, deltas: AsyncIterator[str], session_factory: sessionmaker):
    queue: asyncio.Queue = asyncio.Queue()
    task = asyncio.create_task(run_upstream(turn, deltas, session_factory, queue))
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    return task, queue


# =============================================================================
# MAIN ENDPOINT
# =============================================================================

@router.post("/chat")
async def chat(
    req: ChatRequest,
    db: Session = Depends(get_db),
    index: KnowledgeIndex = Depends(get_knowledge_index),
    session_factory: sessionmaker = Depends(get_session_factory),
):
    last = req.messages[-1]
    if last.role != "user":
        return _json_error("The last message must come from the user", 400)

    # Receiving: no generation without durable input
    try:
        conversation_id = await run_in_threadpool(_receive_user_message, db, req.conversation_id, last.content)
    except LookupError:
        return _json_error(f"Conversation {req.conversation_id} not found", 404)
    except Exception as e:
        logger.exception("[stream] Failed to persist user message: %s", e)
        return _json_error(GENERIC_ERROR, 500)

    turn = ChatTurn(conversation_id=conversation_id, state=RelayState.RECEIVING)
    headers = {"X-Conversation-Id": conversation_id}

    match = match_query(index, last.content)
    if match:
        logger.info(
            "[stream] Knowledge match %s (score=%.2f overlap=%d)",
            match.entry.id, match.score, match.overlap_count,
        )
    outgoing = augment([m.model_dump() for m in req.messages], match)

    if not req.stream:
        try:
            content = await complete_chat(outgoing)
        except Exception as e:
            logger.exception("[stream] Completion failed for %s: %s", conversation_id, e)
            turn.advance(RelayState.FAILED)
            return _json_error(GENERIC_ERROR, 500, headers)
        await _finalize(turn, session_factory, content)
        turn.advance(RelayState.CLOSED)
        return JSONResponse(content={"role": "assistant", "content": content}, headers=headers)

    # Opening the upstream before returning keeps early failures in JSON form
    try:
        deltas = await open_chat_stream(outgoing)
    except Exception as e:
        logger.exception("[stream] Failed to open upstream stream for %s: %s", conversation_id, e)
        turn.advance(RelayState.FAILED)
        return _json_error(GENERIC_ERROR, 500, headers)

    upstream, queue = _start_upstream(turn, deltas, session_factory)
    return StreamingResponse(
        relay_stream(turn, upstream, queue),
        media_type="text/event-stream",
        headers={**SSE_HEADERS, **headers},
    )
