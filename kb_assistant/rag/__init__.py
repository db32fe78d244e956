"""Knowledge retrieval: normalization, indexing, scoring and prompt augmentation."""
from .text import normalize, tokenize
from .index import (
    KnowledgeEntry,
    IndexedEntry,
    KnowledgeIndex,
    build_index,
    load_knowledge_index,
)
from .scorer import MatchResult, score_entry, match_query, find_best_match
from .augmenter import augment, KNOWLEDGE_SYSTEM_PROMPT
