"""
auth/errors.py -- Internal failure kinds for the auth core.

These carry enough detail for logs. They must never be turned into a response
directly: auth/session.py catches them, logs the reason, and raises the public
AuthenticationFailure from core/errors.py instead.

Layer rule: no imports from api/ or chirps/.
"""

from __future__ import annotations

from core.errors import PersistenceFailure, ValidationFailure


class HashingFailure(Exception):
    """The bcrypt backend refused to produce a hash (parameter or entropy error)."""


class InvalidToken(Exception):
    """An access token failed validation.

    One kind for every cause: bad signature, expired, wrong issuer,
    malformed structure and unparsable subject all look the same.
    """


class MissingOrMalformedAuthorization(Exception):
    """The Authorization header is absent or not of the form 'Bearer <token>'."""


class RefreshTokenRejected(Exception):
    """Base for refresh-token resolve failures. `reason` is for logs only."""

    reason = "rejected"


class RefreshTokenNotFound(RefreshTokenRejected):
    reason = "not_found"


class RefreshTokenRevoked(RefreshTokenRejected):
    reason = "revoked"


class RefreshTokenExpired(RefreshTokenRejected):
    reason = "expired"


class DuplicateRefreshToken(PersistenceFailure):
    """Insert hit the unique token column. Surfaced, never retried."""


class EmailAlreadyRegistered(ValidationFailure):
    """A user directory write collided with the unique email column."""

    def __init__(self) -> None:
        super().__init__("Email already registered.")
