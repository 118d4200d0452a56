"""
api/main.py -- FastAPI application entry point for Chirpy.

Run with:  python main.py
           uvicorn api.main:app --reload

Middleware stack (outermost to innermost):
  1. log_requests   -- one log line per request with latency
  2. count_visits   -- increments the visit counter for /app static hits
  3. CORSMiddleware -- adds CORS headers for allowed browser origins

Lifespan builds the stores, the SessionService and the visit counter on
startup and disposes of them on shutdown. Configuration problems (missing
SECRET outside dev) raise ConfigurationFailure while the settings singleton
is first built, before the server accepts a request.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager, suppress
from datetime import timedelta

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.models import ErrorDetail, ErrorResponse
from api.routes.admin import router as admin_router
from api.routes.auth import router as auth_router
from api.routes.chirps import router as chirps_router
from auth.session import SessionService
from auth.store import RefreshTokenStore, UserStore
from chirps.store import ChirpStore
from core.config import get_settings
from core.database import now_utc
from core.errors import AuthenticationFailure, PersistenceFailure, ValidationFailure
from core.metrics import VisitCounter

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("chirpy.api")

_PURGE_INTERVAL_SECONDS = 6 * 60 * 60

# ---------------------------------------------------------------------------
# Background purge task
# ---------------------------------------------------------------------------


async def _purge_loop(app: FastAPI, retention_days: int, interval: float = _PURGE_INTERVAL_SECONDS) -> None:
    """Delete refresh tokens that expired more than retention_days ago.

    Only started when REFRESH_TOKEN_RETENTION_DAYS > 0. CancelledError from
    task.cancel() during shutdown propagates out of asyncio.sleep and unwinds
    the coroutine cleanly.
    """
    while True:
        await asyncio.sleep(interval)
        cutoff = now_utc() - timedelta(days=retention_days)
        try:
            removed = await asyncio.to_thread(app.state.refresh_store.purge_expired, cutoff)
        except PersistenceFailure:
            logger.exception("Refresh token purge failed; retrying next cycle")
            continue
        logger.info("Purged %d expired refresh tokens", removed)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime.

    Everything before yield runs on startup; everything after yield runs on
    shutdown.
    """
    settings = get_settings()
    logger.info("Chirpy API starting up (platform=%s)", settings.platform)

    app.state.visits = VisitCounter()
    app.state.user_store = UserStore(settings.db_url)
    app.state.refresh_store = RefreshTokenStore(settings.db_url)
    app.state.chirp_store = ChirpStore(settings.db_url)
    app.state.sessions = SessionService(
        users=app.state.user_store,
        refresh_tokens=app.state.refresh_store,
        secret=settings.secret,
        rotate_refresh_tokens=settings.rotate_refresh_tokens,
    )
    logger.info("Auth initialized (rotate_refresh_tokens=%s)", settings.rotate_refresh_tokens)

    app.state.purge_task = None
    if settings.refresh_token_retention_days > 0:
        app.state.purge_task = asyncio.create_task(_purge_loop(app, settings.refresh_token_retention_days))

    yield

    if app.state.purge_task is not None:
        app.state.purge_task.cancel()
        # Let an in-flight purge finish before the stores are closed.
        with suppress(asyncio.CancelledError):
            await app.state.purge_task
    app.state.chirp_store.close()
    app.state.refresh_store.close()
    app.state.user_store.close()
    logger.info("Chirpy API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Chirpy API",
    description="Short text posts with bearer-token sessions.",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost", "http://localhost:8080", "http://127.0.0.1"],
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)


# ---------------------------------------------------------------------------
# Visit counting middleware
#
# Counts every request for the static site under /app, whatever the outcome.
# ---------------------------------------------------------------------------


@app.middleware("http")
async def count_visits(request: Request, call_next):
    path = request.url.path
    if path == "/app" or path.startswith("/app/"):
        request.app.state.visits.increment()
    return await call_next(request)


# ---------------------------------------------------------------------------
# Request logging middleware
#
# Registered last, so it is the outermost layer and its timing covers every
# other middleware. Logs method and path only: query strings and headers can
# carry tokens.
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api", tags=["Auth"])
app.include_router(chirps_router, prefix="/api", tags=["Chirps"])
app.include_router(admin_router, prefix="/admin", tags=["Admin"])

# check_dir=False: a missing directory yields 404s instead of a startup crash.
app.mount("/app", StaticFiles(directory=get_settings().static_dir, html=True, check_dir=False), name="app")


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly. Messages come from the public error kinds in core/errors.py
# only; chained internal causes are never rendered.
# ---------------------------------------------------------------------------


def _error(status_code: int, code: str, message: str, detail: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail)).model_dump(),
    )


@app.exception_handler(AuthenticationFailure)
async def authentication_failure_handler(request: Request, exc: AuthenticationFailure) -> JSONResponse:
    """401 for every credential problem, whatever the internal cause."""
    response = _error(401, "unauthorized", str(exc))
    response.headers["WWW-Authenticate"] = "Bearer"
    return response


@app.exception_handler(ValidationFailure)
async def validation_failure_handler(request: Request, exc: ValidationFailure) -> JSONResponse:
    return _error(400, "bad_request", str(exc))


@app.exception_handler(PersistenceFailure)
async def persistence_failure_handler(request: Request, exc: PersistenceFailure) -> JSONResponse:
    """500 for storage problems. Logged with traceback, never detailed to the client."""
    logger.exception("Persistence failure on %s %s", request.method, request.url.path)
    return _error(500, "internal_error", "An unexpected error occurred.")


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed JSON or body fields that fail the Pydantic models.

    Reported as 400 so every client error from this service is a BadRequest.
    Only field locations and messages are echoed, never input values (they
    may contain a password).
    """
    fields = "; ".join(f"{'.'.join(str(p) for p in e['loc'])}: {e['msg']}" for e in exc.errors())
    return _error(400, "validation_error", "Request validation failed.", fields)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Return a structured error for all FastAPI/Starlette HTTP exceptions.

    Route handlers raise HTTPException with a {"code", "message"} dict as
    detail. When detail is already a structured dict, use it directly.
    """
    if isinstance(exc.detail, dict):
        response = JSONResponse(status_code=exc.status_code, content={"error": exc.detail})
    else:
        response = _error(exc.status_code, f"http_{exc.status_code}", str(exc.detail))
    # 405 carries Allow.
    if exc.headers:
        response.headers.update(exc.headers)
    return response


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception is written to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error(500, "internal_error", "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py (not in a router) so it is always reachable
# regardless of router registration state.
# ---------------------------------------------------------------------------


@app.get("/api/healthz", response_class=PlainTextResponse, tags=["Health"])
async def healthz() -> PlainTextResponse:
    """Liveness probe."""
    return PlainTextResponse("OK")
