#!/usr/bin/env python3
"""Solver daemon: discovers open intents, prices them and fills each once.

USAGE:
    PYTHONPATH=. python scripts/run_solver.py                 # poll forever
    PYTHONPATH=. python scripts/run_solver.py --once          # single tick, then exit
    PYTHONPATH=. python scripts/run_solver.py --interval 2.5  # override POLL_INTERVAL_SECONDS
"""
from __future__ import annotations

import argparse
import asyncio
import signal
import sys

import structlog

from config.settings import settings
from src.utils.logging import configure_logging

configure_logging(settings.LOG_LEVEL)

from config.validators import validate_solver_settings
from src.exceptions import ConfigError
from src.ledger.factory import build_ledger
from src.pricing.prices import load_price_table
from src.solver.engine import SolverEngine

logger = structlog.get_logger()


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Intent solver loop")
    p.add_argument("--once", action="store_true", help="Run one tick then exit")
    p.add_argument("--interval", type=float, default=settings.POLL_INTERVAL_SECONDS,
                   help="Seconds between ticks")
    p.add_argument("--page-size", type=int, default=settings.PAGE_SIZE,
                   dest="page_size")
    p.add_argument("--max-pages", type=int, default=settings.MAX_PAGES,
                   dest="max_pages")
    p.add_argument("--solver-id", type=str, default=settings.SOLVER_ID,
                   dest="solver_id")
    return p


async def main(args: argparse.Namespace) -> None:
    settings.POLL_INTERVAL_SECONDS = args.interval
    settings.PAGE_SIZE = args.page_size
    settings.MAX_PAGES = args.max_pages
    settings.SOLVER_ID = args.solver_id
    validate_solver_settings(settings)

    engine = SolverEngine(
        ledger=build_ledger(settings),
        prices=load_price_table(settings),
        solver_id=settings.SOLVER_ID,
        route_id=settings.SOLVER_ROUTE_ID,
        poll_interval=settings.POLL_INTERVAL_SECONDS,
        page_size=settings.PAGE_SIZE,
        max_pages=settings.MAX_PAGES,
    )
    try:
        if args.once:
            report = await engine.run_once()
            logger.info("solver_once_done", filled=report.filled, failed=report.failed)
            return

        stop = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, stop.set)
            except NotImplementedError:
                pass
        await engine.run(stop)
    finally:
        await engine.ledger.aclose()


if __name__ == "__main__":
    args = build_parser().parse_args()
    try:
        asyncio.run(main(args))
    except ConfigError as exc:
        logger.error("solver_fatal", error=str(exc))
        sys.exit(1)
