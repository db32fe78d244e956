"""Prompt augmentation with a retrieved knowledge entry."""

from typing import Dict, List, Optional, Sequence

from kb_assistant.rag.scorer import MatchResult

KNOWLEDGE_SYSTEM_PROMPT = (
    "You are a helpful assistant with access to a knowledge base. "
    "When the user's message includes knowledge base context, prefer that "
    "information over your own assumptions. "
    "Answer concisely and in the same language the user writes in. "
    "If the provided knowledge does not fully answer the question, say so honestly "
    "instead of inventing details."
)


def build_grounded_message(question: str, match: MatchResult) -> str:
    """Original question verbatim, then the matched Q&A pair as context."""
    return (
        f"{question}\n\n"
        "Relevant knowledge base entry:\n"
        f"Question: {match.entry.question}\n"
        f"Answer: {match.entry.answer}"
    )


def augment(messages: Sequence[Dict[str, str]], match: Optional[MatchResult]) -> List[Dict[str, str]]:
    """
    Rewrite the outgoing message sequence around a knowledge match.

    Without a match (or when the last message is not from the user) the
    messages go out unchanged.
    """
    if match is None or not messages or messages[-1].get("role") != "user":
        return list(messages)

    final = messages[-1]
    return [
        {"role": "system", "content": KNOWLEDGE_SYSTEM_PROMPT},
        *[dict(m) for m in messages[:-1]],
        {"role": "user", "content": build_grounded_message(final.get("content", ""), match)},
    ]
