"""Process entry point for the asset browser preview server."""

from __future__ import annotations

import argparse
import logging
from collections.abc import Sequence
from typing import Final

import uvicorn

from .api import create_app
from .config import configure

__all__ = ["APP_TITLE", "build_parser", "main"]

APP_TITLE: Final[str] = "asset-browser"
"""Program name shown in ``--help`` output."""

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=APP_TITLE, description="Serve asset thumbnails and previews.")
    parser.add_argument("--host", help="Interface to bind (default: configured host)")
    parser.add_argument("--port", type=int, help="Port to listen on (default: configured port)")
    parser.add_argument("--start-path", help="Directory browsed on startup")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        help="Logging verbosity",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Launch the HTTP server."""

    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    overrides = {}
    if args.host:
        overrides["host"] = args.host
    if args.port is not None:
        overrides["port"] = args.port
    config = configure(start_path=args.start_path, **overrides)

    logger.info("Starting %s on %s:%d (browsing %s)", APP_TITLE, config.host, config.port, config.start_path)
    uvicorn.run(create_app(), host=config.host, port=config.port, log_level=args.log_level.lower())
    logger.info("Server stopped")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
