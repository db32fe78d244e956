"""
Relevance scorer.

Blends substring containment with token overlap so both near-verbatim
repeats of a known question and loose paraphrases find their entry.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from kb_assistant.rag.config import (
    CONTAINMENT_SCORE,
    DIRECT_QUESTION_SCORE,
    MIN_OVERLAP_COUNT,
    MIN_SCORE,
)
from kb_assistant.rag.index import IndexedEntry, KnowledgeEntry
from kb_assistant.rag.text import normalize, tokenize

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MatchResult:
    """Best entry for one query. Ephemeral, never persisted."""
    entry: KnowledgeEntry
    score: float
    overlap_count: int


def score_entry(
    indexed: IndexedEntry,
    normalized_query: str,
    query_tokens: Sequence[str],
) -> Tuple[float, int]:
    """
    Score one entry against an already-normalized query.

    Returns (score, overlap_count) where score is the max of the direct
    question match, the containment match and the overlap ratio.
    """
    direct = DIRECT_QUESTION_SCORE if normalized_query in indexed.normalized_question else 0.0

    containment = 0.0
    if indexed.normalized_text and normalized_query in indexed.normalized_text:
        containment = CONTAINMENT_SCORE

    # Each distinct query token counts once, however often it repeats
    distinct = set(query_tokens)
    overlap = sum(1 for tok in distinct if tok in indexed.token_set)
    ratio = overlap / len(distinct) if distinct else 0.0

    return max(direct, containment, ratio), overlap


def is_accepted(score: float, overlap_count: int) -> bool:
    return overlap_count >= MIN_OVERLAP_COUNT or score >= MIN_SCORE


def match_query(index: Sequence[IndexedEntry], query: str) -> Optional[MatchResult]:
    """Best accepted match for `query`, or None."""
    if not index:
        return None

    query_tokens = tokenize(query)
    if not query_tokens:
        return None
    normalized_query = normalize(query)

    best: Optional[IndexedEntry] = None
    best_score = 0.0
    best_overlap = 0
    for indexed in index:
        score, overlap = score_entry(indexed, normalized_query, query_tokens)
        # Strictly greater: ties keep the earlier entry
        if best is None or score > best_score:
            best, best_score, best_overlap = indexed, score, overlap

    if best is None or not is_accepted(best_score, best_overlap):
        logger.debug("[rag.scorer] No match (best score=%.3f overlap=%d)", best_score, best_overlap)
        return None

    logger.debug(
        "[rag.scorer] Matched entry %s (score=%.3f overlap=%d)",
        best.entry.id, best_score, best_overlap,
    )
    return MatchResult(entry=best.entry, score=best_score, overlap_count=best_overlap)


def find_best_match(index: Sequence[IndexedEntry], query: str) -> Optional[KnowledgeEntry]:
    match = match_query(index, query)
    return match.entry if match else None
