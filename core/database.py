"""
core/database.py -- Engine construction and error translation shared by stores.

Every store (auth/store.py, chirps/store.py) owns its own Engine, built here
so SQLite gets the same connection arguments and PRAGMAs everywhere.

Timestamps are stored as ISO 8601 UTC text. SQLite has no native timestamp
type, and fixed-offset ISO strings sort correctly as text.

Layer rule: core/ is the kernel. No imports from api/, auth/ or chirps/.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from core.errors import PersistenceFailure

logger = logging.getLogger("chirpy.db")


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def make_engine(db_url: str) -> Engine:
    """Create an Engine for db_url with SQLite-specific settings applied."""
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        # FastAPI runs sync handlers on a thread pool; connections move between threads.
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_wal_mode)
    return engine


@contextmanager
def translate_errors(operation: str) -> Iterator[None]:
    """Re-raise any SQLAlchemyError from the block as PersistenceFailure.

    Callers that need to react to a specific constraint (IntegrityError) catch
    it inside the block before it reaches this wrapper.
    """
    try:
        yield
    except SQLAlchemyError as exc:
        logger.error("Storage error during %s: %s", operation, exc.__class__.__name__)
        raise PersistenceFailure(f"Storage error during {operation}.") from exc


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def from_iso(value: str | None) -> datetime | None:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
