"""
Knowledge index.

Loads the static Q&A dataset once at startup and precomputes everything the
scorer compares against. The index is a tuple of frozen dataclasses, so it
can be shared by every request without locking.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional, Tuple, Union

from kb_assistant.rag.text import normalize, tokenize

logger = logging.getLogger(__name__)

KnowledgeIndex = Tuple["IndexedEntry", ...]


@dataclass(frozen=True)
class KnowledgeEntry:
    """One static question/answer record."""
    id: str
    question: str
    answer: str
    combined_text: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = field(default=None, compare=False, hash=False)

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "KnowledgeEntry":
        """Build from a raw dataset record. Raises ValueError if it is unusable."""
        if not isinstance(record, Mapping):
            raise ValueError(f"record must be an object, got {type(record).__name__}")

        question = record.get("question")
        answer = record.get("answer")
        if not isinstance(question, str) or not isinstance(answer, str):
            raise ValueError("record needs string 'question' and 'answer'")

        combined = record.get("combinedText", record.get("combined_text"))
        if combined is not None and not isinstance(combined, str):
            combined = str(combined)

        metadata = record.get("metadata")
        if metadata is not None and not isinstance(metadata, dict):
            metadata = {"value": metadata}

        return cls(
            id=str(record.get("id", "")),
            question=question,
            answer=answer,
            combined_text=combined,
            metadata=metadata,
        )


@dataclass(frozen=True)
class IndexedEntry:
    """A KnowledgeEntry plus its precomputed searchable representation."""
    entry: KnowledgeEntry
    searchable_text: str
    tokens: Tuple[str, ...]
    normalized_question: str
    normalized_text: str
    token_set: FrozenSet[str]

    @classmethod
    def from_entry(cls, entry: KnowledgeEntry) -> "IndexedEntry":
        searchable_text = " ".join([entry.question, entry.answer, entry.combined_text or ""])
        tokens = tuple(tokenize(searchable_text))
        return cls(
            entry=entry,
            searchable_text=searchable_text,
            tokens=tokens,
            normalized_question=normalize(entry.question),
            normalized_text=normalize(searchable_text),
            token_set=frozenset(tokens),
        )


def build_index(raw_entries: Iterable[Union[KnowledgeEntry, Mapping[str, Any]]]) -> KnowledgeIndex:
    """
    Index raw records in dataset order.

    Records that cannot be turned into a KnowledgeEntry are skipped with a
    warning; the rest of the dataset still loads.
    """
    indexed = []
    for position, raw in enumerate(raw_entries):
        try:
            entry = raw if isinstance(raw, KnowledgeEntry) else KnowledgeEntry.from_record(raw)
        except ValueError as e:
            logger.warning("[rag.index] Skipping record #%d: %s", position, e)
            continue
        indexed.append(IndexedEntry.from_entry(entry))
    return tuple(indexed)


def load_knowledge_index(path: Union[str, Path]) -> KnowledgeIndex:
    """
    Read the JSON dataset at `path` and index it.

    Accepts either a top-level list of records or {"entries": [...]}.
    A missing or malformed dataset yields an empty index: the assistant then
    answers without retrieval augmentation.
    """
    dataset_path = Path(path)
    if not dataset_path.is_file():
        logger.warning("[rag.index] Knowledge dataset not found at %s; retrieval disabled", dataset_path)
        return ()

    try:
        with dataset_path.open("r", encoding="utf-8") as fh:
            data = json.load(fh)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.warning("[rag.index] Failed to read knowledge dataset %s: %s", dataset_path, e)
        return ()

    if isinstance(data, dict):
        data = data.get("entries")
    if not isinstance(data, list):
        logger.warning("[rag.index] Knowledge dataset %s is not a list of records", dataset_path)
        return ()

    index = build_index(data)
    logger.info("[rag.index] Indexed %d knowledge entries from %s", len(index), dataset_path)
    return index
