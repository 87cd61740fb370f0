"""Serve the events API: ``python -m apps.events_api`` or ``eventhub-api``."""

from __future__ import annotations

import argparse
import logging
import os
from dataclasses import replace

import uvicorn

from libs.eventhub_core.eventhub.config import Settings, configure_logging

_log = logging.getLogger("apps.events_api")

APP_FACTORY = "apps.events_api.api:create_app"


def build_parser(settings: Settings) -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="eventhub-api", description="EventHub events API server")
    p.add_argument("--host", default=os.getenv("HOST", "0.0.0.0"), help="Bind address (env HOST)")
    p.add_argument("--port", type=int, default=int(os.getenv("PORT", "8080")), help="Bind port (env PORT)")
    p.add_argument(
        "--log-level",
        default=settings.log_level,
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Root log level (env EVENTHUB_LOG_LEVEL)",
    )
    p.add_argument("--reload", action="store_true", help="Restart on code changes (development only)")
    return p


def main(argv=None) -> int:
    settings = Settings.from_env()
    args = build_parser(settings).parse_args(argv)
    settings = replace(settings, log_level=args.log_level)
    configure_logging(settings)

    if args.reload and not settings.development:
        _log.warning("--reload ignored outside development mode (mode=%s)", settings.mode)
        args.reload = False

    _log.info("Starting events API on %s:%s (mode=%s)", args.host, args.port, settings.mode)
    uvicorn.run(
        APP_FACTORY,
        factory=True,
        host=args.host,
        port=args.port,
        log_level=settings.log_level.lower(),
        reload=args.reload,
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
