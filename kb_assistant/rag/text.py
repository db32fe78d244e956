"""Text canonicalization and tokenization for knowledge matching."""

import re
import unicodedata
from typing import List

from kb_assistant.rag.config import MIN_TOKEN_LENGTH

# Anything that is not a letter or digit; underscore counts as punctuation
_NON_ALNUM_RE = re.compile(r"[\W_]+", re.UNICODE)
_WHITESPACE_RE = re.compile(r"\s+")


def normalize(text: str) -> str:
    """
    Canonicalize text for comparison.

    Lower-cases, strips diacritics (NFD, then drop nonspacing marks), turns every
    non letter/digit into a space and collapses whitespace.
    "Café  Über!" -> "cafe uber"
    """
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFD", text.lower())
    stripped = "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")
    spaced = _NON_ALNUM_RE.sub(" ", stripped)
    return _WHITESPACE_RE.sub(" ", spaced).strip()


def tokenize(text: str) -> List[str]:
    """Normalized terms longer than two characters, in order, duplicates kept."""
    normalized = normalize(text)
    if not normalized:
        return []
    return [tok for tok in normalized.split(" ") if len(tok) >= MIN_TOKEN_LENGTH]
