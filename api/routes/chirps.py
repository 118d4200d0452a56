"""
api/routes/chirps.py -- Chirp CRUD endpoints.

Routes:
  POST   /api/chirps             -- create (access token); 140-char limit, profanity masked
  GET    /api/chirps             -- list all, oldest first (public)
  GET    /api/chirps/{chirp_id}  -- fetch one (public); 404 if missing
  DELETE /api/chirps/{chirp_id}  -- delete own chirp (access token); 403 if not owner
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from api.models import ChirpCreate, ChirpResponse
from auth.dependencies import get_current_user_id
from chirps.filter import clean_body
from chirps.store import ChirpStore

router = APIRouter()


def _not_found() -> HTTPException:
    return HTTPException(status_code=404, detail={"code": "not_found", "message": "Chirp not found."})


@router.post("/chirps", response_model=ChirpResponse, status_code=201)
def create_chirp(
    request: Request,
    body: ChirpCreate,
    user_id: uuid.UUID = Depends(get_current_user_id),
) -> ChirpResponse:
    """Create a chirp for the authenticated user."""
    store: ChirpStore = request.app.state.chirp_store
    chirp = store.create(clean_body(body.body), user_id)
    return ChirpResponse.from_chirp(chirp)


@router.get("/chirps", response_model=list[ChirpResponse])
def list_chirps(request: Request) -> list[ChirpResponse]:
    store: ChirpStore = request.app.state.chirp_store
    return [ChirpResponse.from_chirp(c) for c in store.list_all()]


@router.get("/chirps/{chirp_id}", response_model=ChirpResponse)
def get_chirp(request: Request, chirp_id: uuid.UUID) -> ChirpResponse:
    store: ChirpStore = request.app.state.chirp_store
    chirp = store.get(chirp_id)
    if chirp is None:
        raise _not_found()
    return ChirpResponse.from_chirp(chirp)


@router.delete("/chirps/{chirp_id}", status_code=204)
def delete_chirp(
    request: Request,
    chirp_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
) -> Response:
    """Delete a chirp. Ownership is verified before the delete."""
    store: ChirpStore = request.app.state.chirp_store
    chirp = store.get(chirp_id)
    if chirp is None:
        raise _not_found()
    if chirp.user_id != user_id:
        raise HTTPException(
            status_code=403,
            detail={"code": "forbidden", "message": "You can only delete your own chirps."},
        )
    store.delete(chirp_id)
    return Response(status_code=204)
