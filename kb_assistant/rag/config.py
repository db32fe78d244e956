"""
Retrieval configuration.

All tunables in one place for easy adjustment.
"""

# ============================================================================
# TOKENIZATION
# ============================================================================

# Tokens shorter than this are noise ("hi", "to", "of")
MIN_TOKEN_LENGTH: int = 3

# ============================================================================
# SCORING
# ============================================================================

# Normalized query found verbatim inside the question field
DIRECT_QUESTION_SCORE: float = 1.0

# Normalized query found anywhere in question + answer + combined text
CONTAINMENT_SCORE: float = 0.95

# ============================================================================
# ACCEPTANCE GATE
# ============================================================================

# A best candidate is accepted if EITHER condition holds.
# A single-token query whose token overlaps scores 1.0 and passes via MIN_SCORE.
MIN_OVERLAP_COUNT: int = 2
MIN_SCORE: float = 0.55
