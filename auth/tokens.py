"""
auth/tokens.py -- Access token codec and refresh token generation.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with the process-wide SECRET
       and carry only iss, sub (user UUID), iat and exp. Nothing is stored
       server-side, so an access token cannot be revoked before it expires.

  Validation raises a single InvalidToken for every failure (bad signature,
       wrong issuer, expired, missing claim, unparsable subject). The caller
       learns nothing about which check failed.

  Expiry is strict: the token is valid only while exp > now, with no leeway.
       python-jose on its own accepts exp == now, so we re-check after decode.

  TTL policy is not applied here. issue_access_token() signs whatever ttl it
       is given; the clamp to ACCESS_TOKEN_MAX_TTL lives in auth/session.py.

  Refresh tokens: secrets.token_hex(32) gives 256 bits of entropy as 64 hex
       characters. They are opaque -- not JWTs -- and only mean something when
       looked up in the refresh_tokens table.

Layer rule: no imports from api/ or chirps/. Import from core/ is allowed.
"""

from __future__ import annotations

import secrets
import uuid
from datetime import datetime, timezone

from jose import JWTError, jwt

from auth.errors import InvalidToken
from core.config import TOKEN_ISSUER

_ALGORITHM = "HS256"

_DECODE_OPTIONS = {
    "require_exp": True,
    "require_iat": True,
    "require_sub": True,
    "require_iss": True,
    "leeway": 0,
}


def issue_access_token(user_id: uuid.UUID, secret: str, ttl: int, now: datetime | None = None) -> str:
    """Encode a signed JWT for user_id that expires ttl seconds after now.

    Args:
        user_id: Owning user's UUID, stored as the sub claim.
        secret:  HMAC signing key.
        ttl:     Lifetime in seconds. Not clamped here.
        now:     Issue time; defaults to the current UTC time. Tests pass a
                 past value to mint already-expired tokens.
    """
    issued_at = int((now or datetime.now(timezone.utc)).timestamp())
    payload = {
        "iss": TOKEN_ISSUER,
        "sub": str(user_id),
        "iat": issued_at,
        "exp": issued_at + int(ttl),
    }
    return jwt.encode(payload, secret, algorithm=_ALGORITHM)


def validate_access_token(token: str, secret: str) -> uuid.UUID:
    """Verify a JWT and return the user UUID from its subject.

    Raises InvalidToken on any failure.
    """
    if not isinstance(token, str) or not token:
        raise InvalidToken()
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[_ALGORITHM],
            issuer=TOKEN_ISSUER,
            options=_DECODE_OPTIONS,
        )
    except JWTError as exc:
        raise InvalidToken() from exc

    exp = payload.get("exp")
    if not isinstance(exp, int) or exp <= int(datetime.now(timezone.utc).timestamp()):
        raise InvalidToken()

    try:
        return uuid.UUID(payload["sub"])
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise InvalidToken() from exc


def generate_refresh_token() -> str:
    """Return a new opaque refresh token: 64 hex chars, 256 bits of entropy."""
    return secrets.token_hex(32)
