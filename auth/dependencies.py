"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Protected chirp and user routes accept exactly one credential: an access
token in "Authorization: Bearer <token>". Refresh tokens are NOT accepted
here; they only work on /api/refresh and /api/revoke.

get_session_service() hands routes the SessionService built in the lifespan.
get_current_user_id() raises AuthenticationFailure, which the app-level
handler in api/main.py turns into a uniform 401.

Layer rule: auth/dependencies.py may import from fastapi because it is part
of the FastAPI dependency injection system.
"""

from __future__ import annotations

import uuid

from fastapi import Request

from auth.session import SessionService


def get_session_service(request: Request) -> SessionService:
    return request.app.state.sessions


def get_current_user_id(request: Request) -> uuid.UUID:
    """Require a valid access token and return its subject.

    Use as a FastAPI dependency:
        @router.post("/chirps")
        def route(user_id: uuid.UUID = Depends(get_current_user_id)): ...
    """
    sessions: SessionService = request.app.state.sessions
    return sessions.authenticate(request.headers)
