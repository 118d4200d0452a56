"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic beyond derived flags).
Stores and the session service do the work.

Layer rule: no imports from api/ or chirps/.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime


@dataclass
class User:
    """An account in the user directory.

    hashed_password is a bcrypt string and never leaves the server: API
    response models copy the profile fields explicitly and omit it.
    """

    email: str
    hashed_password: str
    id: uuid.UUID | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class RefreshToken:
    """A server-tracked, long-lived credential used to mint access tokens.

    expires_at is fixed at creation (60 days) and never extended by use.
    revoked_at is None while the token is active; once set it is never
    cleared.
    """

    token: str
    user_id: uuid.UUID
    created_at: datetime
    updated_at: datetime
    expires_at: datetime
    revoked_at: datetime | None = None

    @property
    def is_revoked(self) -> bool:
        return self.revoked_at is not None


@dataclass
class LoginResult:
    """What a successful login hands back to the HTTP layer."""

    user: User
    access_token: str
    refresh_token: str


@dataclass
class RefreshResult:
    """A freshly minted access token; refresh_token is set only when rotating."""

    access_token: str
    refresh_token: str | None = None
