"""
auth/store.py -- SQLAlchemy Core persistence layer for auth entities.

Pattern: Repository + Data Mapper.
UserStore and RefreshTokenStore are the repositories; _row_to_user and
_row_to_refresh_token are the mappers. Session and route code never touches
SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  refresh_tokens.token is the primary key, so the database enforces global
  uniqueness. A colliding insert raises DuplicateRefreshToken; with 256-bit
  random tokens that only happens if something is badly wrong, so it is
  surfaced rather than retried.

  Revocation is one atomic UPDATE guarded by "revoked_at IS NULL". The first
  revocation timestamp is therefore never overwritten, and concurrent revokes
  of the same token cannot race each other.

Every SQLAlchemyError leaves these classes as PersistenceFailure, so callers
can tell "the database is down" from an authentication outcome.

Layer rule: no imports from api/ or chirps/.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Column, Index, MetaData, String, Table, Text, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.errors import (
    DuplicateRefreshToken,
    EmailAlreadyRegistered,
    RefreshTokenExpired,
    RefreshTokenNotFound,
    RefreshTokenRevoked,
)
from auth.models import RefreshToken, User
from auth.tokens import generate_refresh_token
from core.config import REFRESH_TOKEN_LIFETIME
from core.database import from_iso, make_engine, now_utc, to_iso, translate_errors

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", String(36), primary_key=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

_refresh_tokens = Table(
    "refresh_tokens",
    _metadata,
    Column("token", String(64), primary_key=True),
    Column("user_id", String(36), nullable=False),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
    Column("expires_at", String(32), nullable=False),
    Column("revoked_at", String(32)),  # NULL = active
    Index("ix_refresh_tokens_user_id", "user_id"),
)


# ---------------------------------------------------------------------------
# User directory
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User records.

    Usage:
        store = UserStore("sqlite:///chirpy.db")
        user = store.create_user("a@example.com", hash_password("secret"))
        store.get_by_email("a@example.com")
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        self.engine: Engine = make_engine(db_url)
        with translate_errors("schema creation"):
            _metadata.create_all(self.engine)

    def create_user(self, email: str, hashed_password: str) -> User:
        """Insert a new user and return it with its assigned UUID and timestamps.

        Raises EmailAlreadyRegistered if the email is taken.
        """
        now = now_utc()
        user = User(
            id=uuid.uuid4(),
            email=email,
            hashed_password=hashed_password,
            created_at=now,
            updated_at=now,
        )
        with translate_errors("create_user"):
            try:
                with self.engine.begin() as conn:
                    conn.execute(
                        _users.insert().values(
                            id=str(user.id),
                            email=email,
                            hashed_password=hashed_password,
                            created_at=to_iso(now),
                            updated_at=to_iso(now),
                        )
                    )
            except IntegrityError as exc:
                raise EmailAlreadyRegistered() from exc
        return user

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by exact email. Returns None if not found."""
        with translate_errors("get_by_email"):
            with self.engine.connect() as conn:
                row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: uuid.UUID) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with translate_errors("get_by_id"):
            with self.engine.connect() as conn:
                row = conn.execute(_users.select().where(_users.c.id == str(user_id))).fetchone()
        return _row_to_user(row) if row is not None else None

    def update_user(self, user_id: uuid.UUID, email: str, hashed_password: str) -> bool:
        """Replace a user's email and password hash.

        Returns True if a row was updated, False if user_id was not found.
        Raises EmailAlreadyRegistered if the new email belongs to someone else.
        """
        with translate_errors("update_user"):
            try:
                with self.engine.begin() as conn:
                    result = conn.execute(
                        _users.update()
                        .where(_users.c.id == str(user_id))
                        .values(email=email, hashed_password=hashed_password, updated_at=to_iso(now_utc()))
                    )
            except IntegrityError as exc:
                raise EmailAlreadyRegistered() from exc
        return result.rowcount > 0

    def delete_all(self) -> int:
        """Delete every user. Only the dev reset endpoint calls this."""
        with translate_errors("delete_all_users"):
            with self.engine.begin() as conn:
                result = conn.execute(_users.delete())
        return result.rowcount

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Refresh tokens
# ---------------------------------------------------------------------------


class RefreshTokenStore:
    """Repository that owns the refresh-token record lifecycle.

    issue -> resolve (any number of times) -> revoke (once, idempotent).
    resolve() never modifies the record: there is no rotation on use here.
    rotate() revokes and issues in one transaction; auth/session.py uses it
    when rotation is enabled.
    """

    def __init__(self, db_url: str) -> None:
        self.engine: Engine = make_engine(db_url)
        with translate_errors("schema creation"):
            _metadata.create_all(self.engine)

    def issue(self, user_id: uuid.UUID, now: datetime | None = None) -> RefreshToken:
        """Create, persist and return a new refresh token for user_id.

        The raw token string in the returned record is what the client gets.
        """
        record = _new_record(user_id, now or now_utc())
        with translate_errors("issue_refresh_token"):
            with self.engine.begin() as conn:
                self._insert(conn, record)
        return record

    def get(self, token: str) -> RefreshToken | None:
        """Return the stored record for token, or None."""
        with translate_errors("get_refresh_token"):
            with self.engine.connect() as conn:
                row = conn.execute(_refresh_tokens.select().where(_refresh_tokens.c.token == token)).fetchone()
        return _row_to_refresh_token(row) if row is not None else None

    def resolve(self, token: str, now: datetime | None = None) -> uuid.UUID:
        """Return the owning user's UUID for an active token.

        Check order: unknown, then revoked, then expired. The distinct
        exceptions are for logs; auth/session.py collapses them into one
        AuthenticationFailure before anything reaches a client.
        """
        record = self.get(token)
        if record is None:
            raise RefreshTokenNotFound()
        if record.is_revoked:
            raise RefreshTokenRevoked()
        if record.expires_at <= (now or now_utc()):
            raise RefreshTokenExpired()
        return record.user_id

    def revoke(self, token: str, now: datetime | None = None) -> bool:
        """Mark token revoked. Idempotent.

        Returns True if the token exists (whether this call revoked it or it
        was already revoked), False if it is unknown.
        """
        stamp = to_iso(now or now_utc())
        with translate_errors("revoke_refresh_token"):
            with self.engine.begin() as conn:
                if self._mark_revoked(conn, token, stamp):
                    return True
                # Zero rows: either already revoked or never existed.
                existing = conn.execute(
                    select(func.count()).select_from(_refresh_tokens).where(_refresh_tokens.c.token == token)
                ).scalar()
        return (existing or 0) > 0

    def rotate(self, token: str, user_id: uuid.UUID, now: datetime | None = None) -> RefreshToken | None:
        """Revoke token and issue its replacement for user_id in one transaction.

        Returns None without issuing anything if token was not active, which
        is how the loser of two concurrent refreshes of the same token finds
        out. If the insert fails, the revocation rolls back with it and the
        presented token stays usable.
        """
        now = now or now_utc()
        record = _new_record(user_id, now)
        with translate_errors("rotate_refresh_token"):
            with self.engine.begin() as conn:
                if not self._mark_revoked(conn, token, to_iso(now)):
                    return None
                self._insert(conn, record)
        return record

    @staticmethod
    def _insert(conn, record: RefreshToken) -> None:
        try:
            conn.execute(
                _refresh_tokens.insert().values(
                    token=record.token,
                    user_id=str(record.user_id),
                    created_at=to_iso(record.created_at),
                    updated_at=to_iso(record.updated_at),
                    expires_at=to_iso(record.expires_at),
                    revoked_at=None,
                )
            )
        except IntegrityError as exc:
            raise DuplicateRefreshToken("Refresh token collided with an existing record.") from exc

    @staticmethod
    def _mark_revoked(conn, token: str, stamp: str) -> bool:
        result = conn.execute(
            _refresh_tokens.update()
            .where((_refresh_tokens.c.token == token) & (_refresh_tokens.c.revoked_at.is_(None)))
            .values(revoked_at=stamp, updated_at=stamp)
        )
        return result.rowcount > 0

    def purge_expired(self, before: datetime) -> int:
        """Delete records whose expires_at is older than before.

        Retention cleanup only; see the purge task in api/main.py. Returns the
        number of rows removed.
        """
        with translate_errors("purge_refresh_tokens"):
            with self.engine.begin() as conn:
                result = conn.execute(_refresh_tokens.delete().where(_refresh_tokens.c.expires_at < to_iso(before)))
        return result.rowcount

    def delete_all(self) -> int:
        """Delete every refresh token. Only the dev reset endpoint calls this."""
        with translate_errors("delete_all_refresh_tokens"):
            with self.engine.begin() as conn:
                result = conn.execute(_refresh_tokens.delete())
        return result.rowcount

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=uuid.UUID(row.id),
        email=row.email,
        hashed_password=row.hashed_password,
        created_at=from_iso(row.created_at),
        updated_at=from_iso(row.updated_at),
    )


def _row_to_refresh_token(row) -> RefreshToken:
    return RefreshToken(
        token=row.token,
        user_id=uuid.UUID(row.user_id),
        created_at=from_iso(row.created_at),
        updated_at=from_iso(row.updated_at),
        expires_at=from_iso(row.expires_at),
        revoked_at=from_iso(row.revoked_at),
    )


def _new_record(user_id: uuid.UUID, now: datetime) -> RefreshToken:
    return RefreshToken(
        token=generate_refresh_token(),
        user_id=user_id,
        created_at=now,
        updated_at=now,
        expires_at=now + REFRESH_TOKEN_LIFETIME,
        revoked_at=None,
    )
