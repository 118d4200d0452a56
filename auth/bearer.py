"""
auth/bearer.py -- Authorization header parsing.

Only the literal, case-sensitive "Bearer " scheme with a single space is
accepted. "bearer x", "Basic x" and "Bearer" with nothing after it are all
MissingOrMalformedAuthorization.
"""

from __future__ import annotations

from collections.abc import Mapping

from auth.errors import MissingOrMalformedAuthorization

_SCHEME = "Bearer "


def extract_bearer_token(header_value: str | None) -> str:
    """Return the raw token from an Authorization header value."""
    if header_value is None or not header_value.startswith(_SCHEME):
        raise MissingOrMalformedAuthorization()
    token = header_value[len(_SCHEME) :].strip()
    if not token:
        raise MissingOrMalformedAuthorization()
    return token


def bearer_from_headers(headers: Mapping[str, str]) -> str:
    """Read the Authorization entry of a header mapping and extract the token.

    Starlette's Headers is case-insensitive, so request.headers works as-is.
    """
    return extract_bearer_token(headers.get("Authorization"))
