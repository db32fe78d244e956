# FILE: kb_assistant/llm/streaming.py
"""
Upstream LLM client.

Talks to any OpenAI-compatible chat-completions endpoint (the Hugging Face
router by default) through the openai SDK's AsyncOpenAI.

Two entry points:
- open_chat_stream(): awaits the request and returns an async iterator of
  non-empty text deltas. Errors raised while opening surface to the caller
  before any byte has been sent to the client.
- complete_chat(): single, non-streamed completion.

NOTE: a client is created per call, matching how short-lived chat requests
use it. Configuration is read at call time so tests can patch it.
"""

import logging
from typing import Any, AsyncIterator, Dict, List, Optional

from openai import AsyncOpenAI

from kb_assistant import config

logger = logging.getLogger(__name__)


class UpstreamNotConfiguredError(RuntimeError):
    """No API key for the upstream LLM endpoint."""


def is_llm_configured() -> bool:
    return bool(config.get_llm_api_key())


def _get_client() -> AsyncOpenAI:
    api_key = config.get_llm_api_key()
    if not api_key:
        raise UpstreamNotConfiguredError("HF_TOKEN not set")
    return AsyncOpenAI(base_url=config.LLM_BASE_URL, api_key=api_key)


def _create_kwargs(messages: List[Dict[str, str]], model: Optional[str]) -> Dict[str, Any]:
    kwargs: Dict[str, Any] = {
        "model": model or config.LLM_MODEL,
        "messages": messages,
    }
    if config.LLM_MAX_TOKENS is not None:
        kwargs["max_tokens"] = config.LLM_MAX_TOKENS
    return kwargs


async def iter_text_deltas(stream: AsyncIterator[Any]) -> AsyncIterator[str]:
    """Yield the text content of each streamed chunk, skipping empty deltas."""
    async for chunk in stream:
        choices = getattr(chunk, "choices", None)
        if not choices:
            continue
        delta = getattr(choices[0], "delta", None)
        content = getattr(delta, "content", None) if delta is not None else None
        if content:
            yield content


async def open_chat_stream(
    messages: List[Dict[str, str]],
    model: Optional[str] = None,
) -> AsyncIterator[str]:
    """Open a streamed completion and return its text deltas."""
    client = _get_client()
    kwargs = _create_kwargs(messages, model)
    logger.info("[llm.streaming] Opening stream: model=%s messages=%d", kwargs["model"], len(messages))
    stream = await client.chat.completions.create(**kwargs, stream=True)
    return iter_text_deltas(stream)


async def complete_chat(
    messages: List[Dict[str, str]],
    model: Optional[str] = None,
) -> str:
    """Single completion; returns the assistant text ("" when the model sends none)."""
    client = _get_client()
    kwargs = _create_kwargs(messages, model)
    logger.info("[llm.streaming] Completion: model=%s messages=%d", kwargs["model"], len(messages))
    response = await client.chat.completions.create(**kwargs)
    if not response.choices:
        return ""
    return response.choices[0].message.content or ""
