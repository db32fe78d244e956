# FILE: tests/conftest.py
"""
Pytest configuration for the KB Assistant test suite.

Configures:
- in-memory SQLite (one shared connection via StaticPool)
- a fixture knowledge index
- a FastAPI app with the routers and dependency overrides

pytest-asyncio runs in auto mode (see pyproject.toml).
"""
import sys
from pathlib import Path

_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool


KNOWLEDGE_RECORDS = [
    {
        "id": "about",
        "question": "What is UNASAT?",
        "answer": "An org.",
    },
    {
        "id": "programmes",
        "question": "Which study programmes are offered?",
        "answer": "Software engineering and business administration bachelor programmes.",
        "combinedText": "courses studies bachelor",
    },
    {
        "id": "library",
        "question": "When is the library open?",
        "answer": "The library is open on weekdays from eight to five.",
        "metadata": {"category": "campus"},
    },
]


@pytest.fixture
def engine():
    from kb_assistant.db import Base
    from kb_assistant.memory import models  # noqa: F401

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def knowledge_index():
    from kb_assistant.rag import build_index
    return build_index(KNOWLEDGE_RECORDS)


@pytest.fixture
def app(session_factory, knowledge_index):
    """Test app wired like main.py, minus startup side effects."""
    from kb_assistant.db import get_db, get_session_factory
    from kb_assistant.llm.stream_router import router as chat_router
    from kb_assistant.memory.router import router as conversations_router
    from kb_assistant.rag.router import router as knowledge_router, get_knowledge_index

    app = FastAPI()
    app.include_router(chat_router)
    app.include_router(conversations_router)
    app.include_router(knowledge_router)

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_knowledge_index] = lambda: knowledge_index
    return app


@pytest.fixture
def client(app):
    return TestClient(app)
