"""
auth/passwords.py -- Credential hashing and verification (bcrypt).

Security design decisions:
  bcrypt directly, no passlib wrapper. The salt and cost factor are embedded
  in the returned string, so verify needs nothing but the stored value.

  bcrypt only reads the first 72 bytes of its input and recent releases raise
  instead of truncating. We cut the UTF-8 encoding to 72 bytes ourselves so
  the content of a password can never make hashing fail. Errors that remain
  (bad cost factor, entropy source) surface as HashingFailure.

  verify_password() returns False for a wrong password AND for a stored value
  that is not a bcrypt hash. Callers cannot tell the two apart, which keeps
  the stored hash format from being probed through the login endpoint.

  _DUMMY_HASH enables timing equalization: login runs verify_dummy() when the
  email is unknown so response time does not reveal whether an account exists.

Layer rule: no imports from api/ or chirps/.
"""

from __future__ import annotations

import bcrypt

from auth.errors import HashingFailure
from core.config import get_settings

_BCRYPT_MAX_BYTES = 72


def _encode(plain: str) -> bytes:
    return plain.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(plain: str) -> str:
    """Return a salted bcrypt hash of the given plaintext password.

    Two calls with the same plaintext return different strings (fresh salt
    each time); both verify against the plaintext.
    """
    rounds = get_settings().bcrypt_rounds
    try:
        return bcrypt.hashpw(_encode(plain), bcrypt.gensalt(rounds=rounds)).decode("ascii")
    except ValueError as exc:
        raise HashingFailure("bcrypt could not hash the password") from exc


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext matches the stored bcrypt hash.

    bcrypt.checkpw compares in constant time. A malformed stored hash is
    reported exactly like a mismatch.
    """
    try:
        return bcrypt.checkpw(_encode(plain), hashed.encode("utf-8"))
    except (ValueError, TypeError, AttributeError):
        return False


# Computed once at module load so the first login attempt is not measurably
# slower than subsequent ones.
_DUMMY_HASH: str = hash_password("chirpy_timing_dummy")


def verify_dummy(plain: str) -> None:
    """Burn one bcrypt verification. Used when the account does not exist."""
    verify_password(plain, _DUMMY_HASH)
