"""Unit tests for auth/session.py::SessionService.

Covers:
- TTL clamping policy
- login: token pair, profile, clamped lifetime, one undifferentiated failure
- login runs bcrypt for unknown emails (timing equalization)
- refresh: new access token for the right user, refresh token unchanged
- revoke: terminal for that token only, idempotent, unknown tokens ignored
- optional rotation mode
- authenticate: access tokens only
- PersistenceFailure is never collapsed into AuthenticationFailure
"""

import uuid

import pytest
from jose import jwt

import auth.session
import auth.store
from auth.errors import EmailAlreadyRegistered
from auth.session import SessionService, clamp_ttl
from auth.tokens import validate_access_token
from conftest import TEST_SECRET
from core.errors import AuthenticationFailure, PersistenceFailure, ValidationFailure

EMAIL = "walt@breakingbad.com"
PASSWORD = "123456"


def _bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _headers(value: str | None) -> dict[str, str]:
    return {} if value is None else {"Authorization": value}


def _lifetime(token: str) -> int:
    claims = jwt.get_unverified_claims(token)
    return claims["exp"] - claims["iat"]


@pytest.fixture
def user(sessions):
    return sessions.register(EMAIL, PASSWORD)


# ---------------------------------------------------------------------------
# TTL policy
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    ("requested", "expected"),
    [(None, 3600), (0, 3600), (-5, 3600), (3601, 3600), (999999, 3600), (3600, 3600), (60, 60), (1, 1)],
)
def test_clamp_ttl(requested, expected):
    assert clamp_ttl(requested) == expected


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------


def test_login_returns_token_pair_and_profile(sessions, user, refresh_store):
    result = sessions.login(EMAIL, PASSWORD)
    assert result.user.id == user.id
    assert result.user.email == EMAIL
    assert validate_access_token(result.access_token, TEST_SECRET) == user.id
    assert refresh_store.resolve(result.refresh_token) == user.id


@pytest.mark.parametrize("requested", [None, 0, 999999])
def test_login_clamps_access_token_lifetime(sessions, user, requested):
    result = sessions.login(EMAIL, PASSWORD, expires_in=requested)
    assert _lifetime(result.access_token) == 3600


def test_login_honours_short_lifetime(sessions, user):
    result = sessions.login(EMAIL, PASSWORD, expires_in=120)
    assert _lifetime(result.access_token) == 120


def test_login_failures_are_indistinguishable(sessions, user):
    with pytest.raises(AuthenticationFailure) as unknown:
        sessions.login("nobody@example.com", PASSWORD)
    with pytest.raises(AuthenticationFailure) as mismatch:
        sessions.login(EMAIL, "wrong-password")
    assert str(unknown.value) == str(mismatch.value)
    assert type(unknown.value) is type(mismatch.value)


def test_login_unknown_email_still_runs_bcrypt(sessions, monkeypatch):
    calls = []
    monkeypatch.setattr(auth.session, "verify_dummy", lambda plain: calls.append(plain))
    with pytest.raises(AuthenticationFailure):
        sessions.login("nobody@example.com", "guess")
    assert calls == ["guess"]


def test_login_persistence_failure_is_not_collapsed(sessions, user_store, monkeypatch):
    def down(email):
        raise PersistenceFailure("database unavailable")

    monkeypatch.setattr(user_store, "get_by_email", down)
    with pytest.raises(PersistenceFailure):
        sessions.login(EMAIL, PASSWORD)


def test_each_login_issues_a_new_refresh_token(sessions, user):
    first = sessions.login(EMAIL, PASSWORD)
    second = sessions.login(EMAIL, PASSWORD)
    assert first.refresh_token != second.refresh_token


# ---------------------------------------------------------------------------
# Refresh
# ---------------------------------------------------------------------------


def test_refresh_issues_access_token_for_same_user(sessions, user, refresh_store):
    login = sessions.login(EMAIL, PASSWORD, expires_in=60)
    result = sessions.refresh(_bearer(login.refresh_token))
    assert validate_access_token(result.access_token, TEST_SECRET) == user.id
    assert _lifetime(result.access_token) == 3600
    assert result.refresh_token is None
    # No rotation: the refresh token keeps working.
    assert refresh_store.resolve(login.refresh_token) == user.id
    assert sessions.refresh(_bearer(login.refresh_token)).access_token


@pytest.mark.parametrize("header", [None, "", "bearer abc", "Bearer   ", "Bearer " + "0" * 64])
def test_refresh_rejects_bad_headers_and_unknown_tokens(sessions, header):
    with pytest.raises(AuthenticationFailure):
        sessions.refresh(_headers(header))


def test_refresh_rejects_access_token(sessions, user):
    login = sessions.login(EMAIL, PASSWORD)
    with pytest.raises(AuthenticationFailure):
        sessions.refresh(_bearer(login.access_token))


def test_refresh_failure_causes_look_identical(sessions, user):
    login = sessions.login(EMAIL, PASSWORD)
    sessions.revoke(_bearer(login.refresh_token))
    with pytest.raises(AuthenticationFailure) as revoked:
        sessions.refresh(_bearer(login.refresh_token))
    with pytest.raises(AuthenticationFailure) as unknown:
        sessions.refresh(_bearer("0" * 64))
    assert str(revoked.value) == str(unknown.value)


# ---------------------------------------------------------------------------
# Revoke
# ---------------------------------------------------------------------------


def test_revoke_then_refresh_is_unauthorized(sessions, user):
    login = sessions.login(EMAIL, PASSWORD)
    sessions.revoke(_bearer(login.refresh_token))
    with pytest.raises(AuthenticationFailure):
        sessions.refresh(_bearer(login.refresh_token))


def test_revoke_is_idempotent(sessions, user):
    login = sessions.login(EMAIL, PASSWORD)
    sessions.revoke(_bearer(login.refresh_token))
    sessions.revoke(_bearer(login.refresh_token))


def test_revoke_unknown_token_is_silent(sessions):
    sessions.revoke(_bearer("0" * 64))


def test_revoke_without_header_is_unauthorized(sessions):
    with pytest.raises(AuthenticationFailure):
        sessions.revoke({})


def test_revoke_leaves_other_sessions_alone(sessions, user):
    phone = sessions.login(EMAIL, PASSWORD)
    laptop = sessions.login(EMAIL, PASSWORD)
    sessions.revoke(_bearer(phone.refresh_token))
    assert sessions.refresh(_bearer(laptop.refresh_token)).access_token


# ---------------------------------------------------------------------------
# Rotation (opt-in)
# ---------------------------------------------------------------------------


def test_rotation_replaces_refresh_token(user_store, refresh_store):
    rotating = SessionService(user_store, refresh_store, TEST_SECRET, rotate_refresh_tokens=True)
    user = rotating.register(EMAIL, PASSWORD)
    login = rotating.login(EMAIL, PASSWORD)

    result = rotating.refresh(_bearer(login.refresh_token))
    assert result.refresh_token is not None
    assert result.refresh_token != login.refresh_token
    assert validate_access_token(result.access_token, TEST_SECRET) == user.id

    with pytest.raises(AuthenticationFailure):
        rotating.refresh(_bearer(login.refresh_token))
    assert rotating.refresh(_bearer(result.refresh_token)).refresh_token


def test_failed_rotation_keeps_presented_token(user_store, refresh_store, monkeypatch):
    rotating = SessionService(user_store, refresh_store, TEST_SECRET, rotate_refresh_tokens=True)
    user = rotating.register(EMAIL, PASSWORD)
    other = rotating.login(EMAIL, PASSWORD)
    login = rotating.login(EMAIL, PASSWORD)
    monkeypatch.setattr(auth.store, "generate_refresh_token", lambda: other.refresh_token)

    with pytest.raises(PersistenceFailure):
        rotating.refresh(_bearer(login.refresh_token))

    assert refresh_store.get(login.refresh_token).revoked_at is None
    monkeypatch.undo()
    result = rotating.refresh(_bearer(login.refresh_token))
    assert validate_access_token(result.access_token, TEST_SECRET) == user.id


# ---------------------------------------------------------------------------
# Authenticate / accounts
# ---------------------------------------------------------------------------


def test_authenticate_accepts_access_token(sessions, user):
    login = sessions.login(EMAIL, PASSWORD)
    assert sessions.authenticate(_bearer(login.access_token)) == user.id


@pytest.mark.parametrize("header", [None, "Bearer not-a-jwt", "Token abc"])
def test_authenticate_rejects_bad_headers(sessions, header):
    with pytest.raises(AuthenticationFailure):
        sessions.authenticate(_headers(header))


def test_authenticate_rejects_refresh_token(sessions, user):
    login = sessions.login(EMAIL, PASSWORD)
    with pytest.raises(AuthenticationFailure):
        sessions.authenticate(_bearer(login.refresh_token))


def test_register_duplicate_email(sessions, user):
    with pytest.raises(EmailAlreadyRegistered) as excinfo:
        sessions.register(EMAIL, "another-password")
    assert isinstance(excinfo.value, ValidationFailure)


def test_register_stores_hash_not_plaintext(sessions, user_store):
    user = sessions.register("jesse@breakingbad.com", "yo-mr-white")
    stored = user_store.get_by_id(user.id)
    assert stored.hashed_password != "yo-mr-white"


def test_update_credentials_changes_login(sessions, user):
    updated = sessions.update_credentials(user.id, "heisenberg@breakingbad.com", "losPollos")
    assert updated.email == "heisenberg@breakingbad.com"
    with pytest.raises(AuthenticationFailure):
        sessions.login(EMAIL, PASSWORD)
    assert sessions.login("heisenberg@breakingbad.com", "losPollos").user.id == user.id


def test_update_credentials_for_missing_user(sessions):
    with pytest.raises(AuthenticationFailure):
        sessions.update_credentials(uuid.uuid4(), "ghost@example.com", "boo")
