"""
auth/session.py -- Session facade: login, refresh, revoke, authenticate.

SessionService composes the credential hasher, the access token codec, the
refresh token store and the bearer extractor into the user-facing flows.
It owns WHEN tokens are minted or revoked; RefreshTokenStore owns the record.

Lifecycle of one refresh token:

    Anonymous --login--> Authenticated --refresh--> Refreshed --refresh--> ...
        any state --revoke--> Revoked (terminal for that token only)

Error collapsing:
  Every internal failure on the login, refresh and authenticate paths (unknown
  email, wrong password, missing header, unknown/expired/revoked refresh
  token, invalid access token) is logged with its specific reason and then
  raised as the single public AuthenticationFailure. PersistenceFailure is
  NOT collapsed: a database outage must stay distinguishable from a bad
  password.

Known gaps:
  - No rotation on refresh by default. A stolen refresh token stays usable
    until it expires (60 days) or is revoked. Setting
    ROTATE_REFRESH_TOKENS=true turns on rotation: the presented token is
    revoked and a new one is returned with the access token.
  - No brute-force protection or rate limiting on login/refresh. If needed it
    belongs in a separate throttling layer in front of these routes, keyed by
    identity or client IP.

Layer rule: no imports from api/ or chirps/.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping
from typing import TYPE_CHECKING

from auth.bearer import bearer_from_headers
from auth.errors import InvalidToken, MissingOrMalformedAuthorization, RefreshTokenRejected
from auth.models import LoginResult, RefreshResult, User
from auth.passwords import hash_password, verify_dummy, verify_password
from auth.tokens import issue_access_token, validate_access_token
from core.config import ACCESS_TOKEN_MAX_TTL
from core.errors import AuthenticationFailure

if TYPE_CHECKING:
    from auth.store import RefreshTokenStore, UserStore

logger = logging.getLogger("chirpy.auth")

_INVALID_CREDENTIALS = "Invalid email or password."


def clamp_ttl(requested: int | None) -> int:
    """Return the access token lifetime to use for a requested value.

    Absent, zero, negative or above-ceiling requests all get the ceiling.
    """
    if requested is None or requested <= 0 or requested > ACCESS_TOKEN_MAX_TTL:
        return ACCESS_TOKEN_MAX_TTL
    return requested


class SessionService:
    """Entry point for every credential-related operation the HTTP layer performs."""

    def __init__(
        self,
        users: UserStore,
        refresh_tokens: RefreshTokenStore,
        secret: str,
        rotate_refresh_tokens: bool = False,
    ) -> None:
        self._users = users
        self._refresh_tokens = refresh_tokens
        self._secret = secret
        self._rotate = rotate_refresh_tokens

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def register(self, email: str, password: str) -> User:
        """Create an account. EmailAlreadyRegistered propagates as a ValidationFailure."""
        return self._users.create_user(email, hash_password(password))

    def update_credentials(self, user_id: uuid.UUID, email: str, password: str) -> User:
        """Replace the email and password of an authenticated user."""
        if not self._users.update_user(user_id, email, hash_password(password)):
            # The access token outlived its account (e.g. after a dev reset).
            logger.info("Credential update for missing user %s", user_id)
            raise AuthenticationFailure()
        user = self._users.get_by_id(user_id)
        if user is None:
            raise AuthenticationFailure()
        return user

    # ------------------------------------------------------------------
    # Session flows
    # ------------------------------------------------------------------

    def login(self, email: str, password: str, expires_in: int | None = None) -> LoginResult:
        """Anonymous -> Authenticated. Returns an access/refresh pair plus the user.

        bcrypt runs whether or not the email exists, so response time does
        not reveal which accounts are registered.
        """
        user = self._users.get_by_email(email)
        if user is None:
            verify_dummy(password)
            logger.info("Login rejected (unknown_email)")
            raise AuthenticationFailure(_INVALID_CREDENTIALS)
        if not verify_password(password, user.hashed_password):
            logger.info("Login rejected (password_mismatch) for user %s", user.id)
            raise AuthenticationFailure(_INVALID_CREDENTIALS)

        access_token = issue_access_token(user.id, self._secret, clamp_ttl(expires_in))
        refresh = self._refresh_tokens.issue(user.id)
        logger.info("Login succeeded for user %s", user.id)
        return LoginResult(user=user, access_token=access_token, refresh_token=refresh.token)

    def refresh(self, headers: Mapping[str, str]) -> RefreshResult:
        """Authenticated/Refreshed -> Refreshed. Mints a new access token.

        The access token's expiry is computed from now at the ceiling TTL.
        Without rotation the refresh token is left untouched.
        """
        try:
            token = bearer_from_headers(headers)
            user_id = self._refresh_tokens.resolve(token)
        except MissingOrMalformedAuthorization as exc:
            logger.info("Refresh rejected (missing_or_malformed_header)")
            raise AuthenticationFailure() from exc
        except RefreshTokenRejected as exc:
            logger.info("Refresh rejected (%s)", exc.reason)
            raise AuthenticationFailure() from exc

        if not self._rotate:
            return RefreshResult(access_token=issue_access_token(user_id, self._secret, ACCESS_TOKEN_MAX_TTL))

        replacement = self._refresh_tokens.rotate(token, user_id)
        if replacement is None:
            # Lost a race with a concurrent refresh or revoke of the same token.
            logger.warning("Refresh rejected (rotation_race) for user %s", user_id)
            raise AuthenticationFailure()
        return RefreshResult(
            access_token=issue_access_token(user_id, self._secret, ACCESS_TOKEN_MAX_TTL),
            refresh_token=replacement.token,
        )

    def revoke(self, headers: Mapping[str, str]) -> None:
        """any -> Revoked for the presented refresh token only.

        Revoking an unknown or already-revoked token is a silent success;
        other refresh tokens of the same user stay valid.
        """
        try:
            token = bearer_from_headers(headers)
        except MissingOrMalformedAuthorization as exc:
            logger.info("Revoke rejected (missing_or_malformed_header)")
            raise AuthenticationFailure() from exc
        if not self._refresh_tokens.revoke(token):
            logger.info("Revoke of unknown refresh token ignored")

    def authenticate(self, headers: Mapping[str, str]) -> uuid.UUID:
        """Resolve the Bearer access token in a header mapping to a user UUID."""
        try:
            return validate_access_token(bearer_from_headers(headers), self._secret)
        except (MissingOrMalformedAuthorization, InvalidToken) as exc:
            logger.debug("Access token rejected (%s)", exc.__class__.__name__)
            raise AuthenticationFailure() from exc
