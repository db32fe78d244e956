# FILE: kb_assistant/db.py
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base

from kb_assistant.config import DATABASE_URL

# Database path: ./data/kb_assistant.db relative to project root
# Override with KB_DATABASE_URL env var if needed
_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(
    DATABASE_URL,
    connect_args=_connect_args,
    echo=False,  # Set True to log SQL statements for debugging
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    """SQLite ignores ON DELETE CASCADE unless foreign keys are switched on per connection."""
    if type(dbapi_connection).__module__.startswith("sqlite3"):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def get_db():
    """FastAPI dependency that yields a DB session and closes it after the request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_session_factory():
    """
    FastAPI dependency returning the session factory.

    The chat relay persists the assistant message after the response has
    started, when the request-scoped session from get_db may already be closed.
    """
    return SessionLocal


def init_db():
    """Create all tables. Call once at startup."""
    # Import models so Base.metadata knows about them
    from kb_assistant.memory import models  # noqa: F401
    Base.metadata.create_all(bind=engine)
