# FILE: kb_assistant/config.py
"""
Runtime configuration.

Values come from the environment (main.py calls load_dotenv() before this
module is imported). Retrieval tunables live in kb_assistant/rag/config.py.
"""

import os
from typing import List, Optional


def _bool_env(name: str, default: bool) -> bool:
    v = os.getenv(name, "").strip().lower()
    if not v:
        return default
    return v in ("1", "true", "yes", "on")


def _int_env(name: str) -> Optional[int]:
    v = os.getenv(name, "").strip()
    if not v:
        return None
    try:
        return int(v)
    except ValueError:
        return None


# ============================================================================
# STORAGE
# ============================================================================

DATABASE_URL = os.getenv("KB_DATABASE_URL", "sqlite:///./data/kb_assistant.db")

# Static Q&A dataset read once at startup
KNOWLEDGE_PATH = os.getenv("KB_KNOWLEDGE_PATH", "./data/knowledge.json")

# ============================================================================
# UPSTREAM LLM (OpenAI-compatible endpoint)
# ============================================================================

LLM_BASE_URL = os.getenv("KB_LLM_BASE_URL", "https://router.huggingface.co/v1")
LLM_MODEL = os.getenv("KB_LLM_MODEL", "openai/gpt-oss-120b:fastest")
LLM_MAX_TOKENS = _int_env("KB_LLM_MAX_TOKENS")


def get_llm_api_key() -> Optional[str]:
    """HF_TOKEN wins; OPENAI_API_KEY is accepted for other compatible hosts."""
    return os.getenv("HF_TOKEN") or os.getenv("OPENAI_API_KEY")


# ============================================================================
# HTTP
# ============================================================================

def get_cors_origins() -> List[str]:
    raw = os.getenv("KB_CORS_ORIGINS", "*")
    return [o.strip() for o in raw.split(",") if o.strip()]


STATIC_DIR = os.getenv("KB_STATIC_DIR", "").strip() or None

# Keep the upstream read + final persistence running after the client leaves
PERSIST_ON_DISCONNECT = _bool_env("KB_PERSIST_ON_DISCONNECT", True)

LOG_LEVEL = os.getenv("KB_LOG_LEVEL", "INFO").upper()
