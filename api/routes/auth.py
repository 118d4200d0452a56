"""
api/routes/auth.py -- Account and session REST endpoints.

Routes:
  POST /api/users    -- register (public)
  PUT  /api/users    -- change own email/password (access token)
  POST /api/login    -- email/password -> access + refresh token pair
  POST /api/refresh  -- refresh token -> new access token
  POST /api/revoke   -- revoke the presented refresh token; 204

Security:
  Every session failure reaches the client as the same 401 envelope; the
  specific reason is only logged by auth/session.py.
  Cache-Control: no-store on every response that carries a token.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from api.models import CredentialsRequest, LoginRequest, LoginResponse, RefreshResponse, UserResponse
from auth.dependencies import get_current_user_id, get_session_service
from auth.session import SessionService

# Auth policy:
# - POST /api/users:    public
# - PUT  /api/users:    requires access token (get_current_user_id)
# - POST /api/login:    public
# - POST /api/refresh:  requires refresh token in Authorization header
# - POST /api/revoke:   requires refresh token in Authorization header
router = APIRouter()


def _no_store(payload: dict, status_code: int = 200) -> JSONResponse:
    resp = JSONResponse(status_code=status_code, content=payload)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/users", response_model=UserResponse, status_code=201)
def create_user(body: CredentialsRequest, sessions: SessionService = Depends(get_session_service)) -> UserResponse:
    """Register a new account. 400 if the email is already taken."""
    user = sessions.register(body.email, body.password)
    return UserResponse.from_user(user)


@router.put("/users", response_model=UserResponse)
def update_user(
    body: CredentialsRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    sessions: SessionService = Depends(get_session_service),
) -> UserResponse:
    """Replace the caller's email and password."""
    user = sessions.update_credentials(user_id, body.email, body.password)
    return UserResponse.from_user(user)


@router.post("/login", response_model=LoginResponse)
def login(body: LoginRequest, sessions: SessionService = Depends(get_session_service)) -> JSONResponse:
    """Authenticate with email and password; return profile plus token pair.

    Unknown email and wrong password produce the identical 401.
    """
    result = sessions.login(body.email, body.password, body.expires_in_seconds)
    user = result.user
    payload = LoginResponse(
        id=user.id,
        created_at=user.created_at,
        updated_at=user.updated_at,
        email=user.email,
        token=result.access_token,
        refresh_token=result.refresh_token,
    )
    return _no_store(payload.model_dump(mode="json"))


@router.post("/refresh", response_model=RefreshResponse, response_model_exclude_none=True)
def refresh(request: Request, sessions: SessionService = Depends(get_session_service)) -> JSONResponse:
    """Exchange the refresh token in the Authorization header for a new access token."""
    result = sessions.refresh(request.headers)
    payload = RefreshResponse(token=result.access_token, refresh_token=result.refresh_token)
    return _no_store(payload.model_dump(mode="json", exclude_none=True))


@router.post("/revoke", status_code=204)
def revoke(request: Request, sessions: SessionService = Depends(get_session_service)) -> Response:
    """Revoke the refresh token in the Authorization header. Idempotent."""
    sessions.revoke(request.headers)
    return Response(status_code=204)
