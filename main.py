#!/usr/bin/env python3
"""
Chirpy -- short text posts with bearer-token sessions.

Usage:
  python main.py
  python main.py --port 9000
  python main.py --host 127.0.0.1 --reload

Environment variables (or .env):
  SECRET     Token signing secret. Required unless PLATFORM=dev.
  PLATFORM   "dev" enables POST /admin/reset and an auto-generated SECRET.
  DB_URL     SQLAlchemy database URL. Defaults to a SQLite file beside the code.
  ROTATE_REFRESH_TOKENS          "true" to rotate refresh tokens on every refresh.
  REFRESH_TOKEN_RETENTION_DAYS   >0 to purge long-expired refresh tokens.
"""

import argparse

import uvicorn

from core.config import get_settings


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="chirpy",
        description="Run the Chirpy API server.",
    )
    parser.add_argument("--host", default="0.0.0.0", help="Interface to bind (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=8080, help="Port to listen on (default: 8080)")
    parser.add_argument("--reload", action="store_true", help="Restart on code changes (development)")
    args = parser.parse_args()

    # Build the settings singleton before uvicorn starts, so a missing SECRET
    # stops the process here with a readable error instead of inside a worker.
    get_settings()

    uvicorn.run("api.main:app", host=args.host, port=args.port, reload=args.reload)


if __name__ == "__main__":
    main()
