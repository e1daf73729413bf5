#!/usr/bin/env python3
"""Serve the settlement API.

USAGE:
    PYTHONPATH=. python scripts/run_api.py [--host 0.0.0.0] [--port 8787]
"""
from __future__ import annotations

import argparse

import structlog
import uvicorn

from config.settings import settings
from src.utils.logging import configure_logging

configure_logging(settings.LOG_LEVEL)


logger = structlog.get_logger()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Intent settlement API")
    parser.add_argument("--host", type=str, default=settings.API_HOST)
    parser.add_argument("--port", type=int, default=settings.API_PORT)
    args = parser.parse_args()

    logger.info("api_starting", host=args.host, port=args.port, mode=settings.LEDGER_MODE)
    uvicorn.run("src.api.intents_api:create_app", factory=True,
                host=args.host, port=args.port)
