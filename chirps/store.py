"""
chirps/store.py -- SQLAlchemy Core persistence for chirps.

Pattern: Repository + Data Mapper, same as auth/store.py. Pass-through
queries only; ownership checks and filtering happen in the route layer.

Layer rule: no imports from api/ or auth/.
"""

from __future__ import annotations

import uuid

from sqlalchemy import Column, Index, MetaData, String, Table, Text
from sqlalchemy.engine import Engine

from chirps.models import Chirp
from core.database import from_iso, make_engine, now_utc, to_iso, translate_errors

_metadata = MetaData()

_chirps = Table(
    "chirps",
    _metadata,
    Column("id", String(36), primary_key=True),
    Column("body", Text, nullable=False),
    Column("user_id", String(36), nullable=False),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
    Index("ix_chirps_user_id", "user_id"),
)


class ChirpStore:
    """Repository for Chirp records."""

    def __init__(self, db_url: str) -> None:
        self.engine: Engine = make_engine(db_url)
        with translate_errors("schema creation"):
            _metadata.create_all(self.engine)

    def create(self, body: str, user_id: uuid.UUID) -> Chirp:
        now = now_utc()
        chirp = Chirp(id=uuid.uuid4(), body=body, user_id=user_id, created_at=now, updated_at=now)
        with translate_errors("create_chirp"):
            with self.engine.begin() as conn:
                conn.execute(
                    _chirps.insert().values(
                        id=str(chirp.id),
                        body=body,
                        user_id=str(user_id),
                        created_at=to_iso(now),
                        updated_at=to_iso(now),
                    )
                )
        return chirp

    def list_all(self) -> list[Chirp]:
        """Return every chirp, oldest first."""
        with translate_errors("list_chirps"):
            with self.engine.connect() as conn:
                rows = conn.execute(_chirps.select().order_by(_chirps.c.created_at, _chirps.c.id)).fetchall()
        return [_row_to_chirp(r) for r in rows]

    def get(self, chirp_id: uuid.UUID) -> Chirp | None:
        with translate_errors("get_chirp"):
            with self.engine.connect() as conn:
                row = conn.execute(_chirps.select().where(_chirps.c.id == str(chirp_id))).fetchone()
        return _row_to_chirp(row) if row is not None else None

    def delete(self, chirp_id: uuid.UUID) -> bool:
        """Hard delete. Returns True if a row was removed."""
        with translate_errors("delete_chirp"):
            with self.engine.begin() as conn:
                result = conn.execute(_chirps.delete().where(_chirps.c.id == str(chirp_id)))
        return result.rowcount > 0

    def delete_all(self) -> int:
        """Delete every chirp. Only the dev reset endpoint calls this."""
        with translate_errors("delete_all_chirps"):
            with self.engine.begin() as conn:
                result = conn.execute(_chirps.delete())
        return result.rowcount

    def close(self) -> None:
        self.engine.dispose()


def _row_to_chirp(row) -> Chirp:
    return Chirp(
        id=uuid.UUID(row.id),
        body=row.body,
        user_id=uuid.UUID(row.user_id),
        created_at=from_iso(row.created_at),
        updated_at=from_iso(row.updated_at),
    )
