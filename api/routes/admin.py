"""
api/routes/admin.py -- Visit metrics and development reset.

Routes:
  GET  /admin/metrics -- HTML page with the static file hit count
  POST /admin/reset   -- zero the counter and wipe users, chirps and refresh
                         tokens; 403 unless PLATFORM=dev
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import HTMLResponse, PlainTextResponse

from core.config import get_settings

logger = logging.getLogger("chirpy.api")

router = APIRouter()

_METRICS_TEMPLATE = """<html>
  <body>
    <h1>Welcome, Chirpy Admin</h1>
    <p>Chirpy has been visited {hits} times!</p>
  </body>
</html>"""


@router.get("/metrics", response_class=HTMLResponse)
def metrics(request: Request) -> HTMLResponse:
    return HTMLResponse(_METRICS_TEMPLATE.format(hits=request.app.state.visits.value))


@router.post("/reset", response_class=PlainTextResponse)
def reset(request: Request) -> PlainTextResponse:
    """Development-only wipe. Checked against settings on every call."""
    if not get_settings().is_dev:
        raise HTTPException(
            status_code=403,
            detail={"code": "forbidden", "message": "Reset is only available in development."},
        )
    state = request.app.state
    state.visits.reset()
    chirps = state.chirp_store.delete_all()
    tokens = state.refresh_store.delete_all()
    users = state.user_store.delete_all()
    logger.warning("Dev reset: removed %d users, %d chirps, %d refresh tokens", users, chirps, tokens)
    return PlainTextResponse("Hits reset to 0")
