"""
FastAPI endpoints for the knowledge base.

GET /knowledge        - Index status
GET /knowledge/match  - What the scorer would retrieve for a query
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel

from kb_assistant.rag.index import KnowledgeIndex
from kb_assistant.rag.scorer import match_query

router = APIRouter(prefix="/knowledge", tags=["knowledge"])


def get_knowledge_index(request: Request) -> KnowledgeIndex:
    """
    FastAPI dependency returning the index built at startup.

    Tests swap in fixture datasets through app.dependency_overrides.
    """
    return getattr(request.app.state, "knowledge_index", ())


class StatusResponse(BaseModel):
    entries: int


class MatchedEntry(BaseModel):
    id: str
    question: str
    answer: str
    metadata: Optional[Dict[str, Any]] = None


class MatchResponse(BaseModel):
    query: str
    matched: bool
    score: Optional[float] = None
    overlap_count: Optional[int] = None
    entry: Optional[MatchedEntry] = None


@router.get("", response_model=StatusResponse)
def knowledge_status(index: KnowledgeIndex = Depends(get_knowledge_index)):
    return StatusResponse(entries=len(index))


@router.get("/match", response_model=MatchResponse)
def knowledge_match(
    q: str = Query(..., description="Free-text question"),
    index: KnowledgeIndex = Depends(get_knowledge_index),
):
    match = match_query(index, q)
    if match is None:
        return MatchResponse(query=q, matched=False)
    return MatchResponse(
        query=q,
        matched=True,
        score=match.score,
        overlap_count=match.overlap_count,
        entry=MatchedEntry(
            id=match.entry.id,
            question=match.entry.question,
            answer=match.entry.answer,
            metadata=match.entry.metadata,
        ),
    )
