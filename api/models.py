"""
API request and response models for Chirpy REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are separate from the dataclasses in auth/models.py and
chirps/models.py, which own the internal domain representation. Route
handlers map between the two.

Response models copy profile fields explicitly, so hashed_password can never
be serialized by accident.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from auth.models import User
from chirps.models import Chirp

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class CredentialsRequest(BaseModel):
    """Request body for POST /api/users and PUT /api/users."""

    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=1, max_length=255, json_schema_extra={"format": "password"})


class LoginRequest(CredentialsRequest):
    """Request body for POST /api/login.

    expires_in_seconds is optional. Absent, zero or above one hour, the
    server substitutes one hour.
    """

    expires_in_seconds: Optional[int] = None


class ChirpCreate(BaseModel):
    """Request body for POST /api/chirps. Length is checked by chirps.filter."""

    body: str


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    """Public profile of a user."""

    model_config = ConfigDict(frozen=True)

    id: uuid.UUID
    created_at: datetime
    updated_at: datetime
    email: str

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(id=user.id, created_at=user.created_at, updated_at=user.updated_at, email=user.email)


class LoginResponse(UserResponse):
    """Profile plus the access/refresh token pair returned by POST /api/login."""

    token: str
    refresh_token: str


class RefreshResponse(BaseModel):
    """Response for POST /api/refresh. refresh_token is only present when rotating."""

    model_config = ConfigDict(frozen=True)

    token: str
    refresh_token: Optional[str] = None


class ChirpResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: uuid.UUID
    created_at: datetime
    updated_at: datetime
    body: str
    user_id: uuid.UUID

    @classmethod
    def from_chirp(cls, chirp: Chirp) -> "ChirpResponse":
        return cls(
            id=chirp.id,
            created_at=chirp.created_at,
            updated_at=chirp.updated_at,
            body=chirp.body,
            user_id=chirp.user_id,
        )


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail
