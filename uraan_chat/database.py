"""Database engine and session helpers."""
import logging
from typing import Iterator

from sqlmodel import Session, SQLModel, create_engine

from uraan_chat.config import settings

logger = logging.getLogger(__name__)


def _connect_args(url: str) -> dict:
    # SQLite sessions are used from the streaming worker thread too
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(
    settings.DATABASE_URL,
    connect_args=_connect_args(settings.DATABASE_URL),
    pool_pre_ping=True,
)


def init_db() -> None:
    """Create all tables registered on SQLModel.metadata."""
    from uraan_chat.models import attachment, auth, conversation  # noqa: F401

    SQLModel.metadata.create_all(engine)
    logger.info("Database tables ensured")


def new_session() -> Session:
    """
    Open a session that is not tied to a request.

    Used by work that outlives the request handler: streamed responses and
    background title generation. Reads the module-level engine at call time.
    """
    return Session(engine)


def get_db() -> Iterator[Session]:
    """FastAPI dependency yielding a request-scoped session."""
    with Session(engine) as session:
        yield session
