"""CLI entrypoint for serving the deploy_tracker HTTP API."""

from __future__ import annotations

import argparse
import os

import uvicorn

from deploy_tracker.adapters.observability import configure_runtime_logging


def build_arg_parser() -> argparse.ArgumentParser:
    """Create CLI args for the API server process."""
    parser = argparse.ArgumentParser(description="Serve the deploy_tracker API.")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--reload", action="store_true")
    parser.add_argument(
        "--db-path",
        default="",
        help="SQLite path for story and account persistence (default: work/local/deploy_tracker.db).",
    )
    parser.add_argument(
        "--store",
        choices=("sqlite", "memory"),
        default="",
        help="Story document store backend (default: DEPLOY_TRACKER_STORE_BACKEND or sqlite).",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """Parse CLI flags and start uvicorn with the app factory path."""
    parser = build_arg_parser()
    parsed = parser.parse_args(argv)
    db_path = str(parsed.db_path).strip()
    if db_path:
        os.environ["DEPLOY_TRACKER_DB_PATH"] = db_path
    if parsed.store:
        os.environ["DEPLOY_TRACKER_STORE_BACKEND"] = str(parsed.store)
    configure_runtime_logging()
    uvicorn.run(
        "deploy_tracker.api.app:app",
        host=str(parsed.host),
        port=int(parsed.port),
        reload=bool(parsed.reload),
    )


if __name__ == "__main__":
    main()
