# FILE: main.py
"""
KB Assistant Backend - FastAPI Application
Version: 0.1.0

Features:
- Streaming chat (SSE) against an OpenAI-compatible LLM endpoint
- Retrieval augmentation from a static Q&A knowledge base
- Conversation history persisted with SQLAlchemy
- Optional serving of the built frontend (KB_STATIC_DIR)
"""
import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from dotenv import load_dotenv
from starlette.exceptions import HTTPException as StarletteHTTPException

# Load .env FIRST before any other imports that might need env vars
load_dotenv()

from kb_assistant import __version__, config
from kb_assistant.db import init_db
from kb_assistant.memory.router import router as conversations_router
from kb_assistant.llm.stream_router import router as chat_router
from kb_assistant.llm.streaming import is_llm_configured
from kb_assistant.rag import load_knowledge_index
from kb_assistant.rag.router import router as knowledge_router

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="KB Assistant",
    version=__version__,
    description="Chat assistant grounded in a static knowledge base",
)

# ====== CORS ======

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.get_cors_origins(),
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Conversation-Id"],
)


# ====== STARTUP ======

@app.on_event("startup")
def on_startup():
    if config.DATABASE_URL.startswith("sqlite:///./data"):
        os.makedirs("data", exist_ok=True)

    init_db()
    print(f"[startup] Database: [OK] {config.DATABASE_URL}")

    # Built once, read-only for the life of the process
    app.state.knowledge_index = load_knowledge_index(config.KNOWLEDGE_PATH)
    if app.state.knowledge_index:
        print(f"[startup] Knowledge index: [OK] {len(app.state.knowledge_index)} entries")
    else:
        print(f"[startup] Knowledge index: [X] empty - answering without retrieval ({config.KNOWLEDGE_PATH})")

    if is_llm_configured():
        print(f"[startup] LLM: [OK] {config.LLM_MODEL} via {config.LLM_BASE_URL}")
    else:
        print("[startup] HF_TOKEN: [X] NOT SET - chat requests will fail")


# ====== ROUTERS ======

app.include_router(chat_router)
app.include_router(conversations_router)
app.include_router(knowledge_router)


# ====== PUBLIC ENDPOINTS ======

@app.get("/ping")
def ping():
    """Health check."""
    return {
        "status": "ok",
        "knowledge_entries": len(getattr(app.state, "knowledge_index", ())),
        "llm_configured": is_llm_configured(),
    }


# ====== STATIC FILES ======

class SPAStaticFiles(StaticFiles):
    """Serves the built frontend; unknown paths fall back to index.html."""

    async def get_response(self, path, scope):
        try:
            return await super().get_response(path, scope)
        except StarletteHTTPException as e:
            if e.status_code != 404:
                raise
            return await super().get_response("index.html", scope)


if config.STATIC_DIR and os.path.isdir(config.STATIC_DIR):
    app.mount("/", SPAStaticFiles(directory=config.STATIC_DIR, html=True), name="frontend")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=int(os.getenv("PORT", "3001")))
