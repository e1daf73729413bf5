from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Optional

import structlog

from src.intents.models import IntentStatus, effective_status
from src.ledger.base import LedgerAdapter, list_all_intents
from src.pricing.prices import PriceTable
from src.pricing.quote_engine import quote_intent
from src.solver.attempts import FAILED, FILLED, AttemptLog

logger = structlog.get_logger()


@dataclass(slots=True)
class TickReport:
    now: int = 0
    scanned: int = 0
    candidates: int = 0
    unquotable: int = 0
    filled: int = 0
    failed: int = 0
    interrupted: bool = False


class SolverEngine:
    """Polls the ledger, prices open intents and fills each at most once.

    Ticks run one at a time. A failure on one intent is logged and recorded;
    it never stops the rest of the tick. Once ``stop`` is set no new fill is
    dispatched, but the one in flight is allowed to land.
    """

    def __init__(
        self, *,
        ledger: LedgerAdapter,
        prices: PriceTable,
        solver_id: str,
        route_id: str = "internal-amm-v1",
        poll_interval: float = 10.0,
        page_size: int = 10,
        max_pages: int = 20,
        attempts: Optional[AttemptLog] = None,
    ) -> None:
        self.ledger = ledger
        self.prices = prices
        self.solver_id = solver_id
        self.route_id = route_id
        self.poll_interval = poll_interval
        self.page_size = page_size
        self.max_pages = max_pages
        self.attempts = attempts if attempts is not None else AttemptLog()

    @property
    def attempted(self) -> frozenset[int]:
        return self.attempts.ids()

    async def run_once(self) -> TickReport:
        return await self.tick()

    async def run(self, stop: asyncio.Event) -> None:
        logger.info("solver_started", mode=self.ledger.mode,
                    interval=self.poll_interval, solver=self.solver_id)
        while not stop.is_set():
            try:
                await self.tick(stop)
            except Exception as exc:
                logger.error("solver_tick_failed", error=str(exc))
            try:
                await asyncio.wait_for(stop.wait(), timeout=self.poll_interval)
            except asyncio.TimeoutError:
                pass
        logger.info("solver_stopped", attempted=len(self.attempts))

    async def tick(self, stop: Optional[asyncio.Event] = None) -> TickReport:
        """One pass. Ledger read failures propagate and end this tick only."""
        now = await self.ledger.current_time()
        intents = await list_all_intents(
            self.ledger, page_size=self.page_size, max_pages=self.max_pages, now=now,
        )
        report = TickReport(now=now, scanned=len(intents))

        candidates = [
            intent for intent in intents
            if effective_status(intent.status, intent.deadline, now) is IntentStatus.OPEN
            and intent.id not in self.attempts
        ]
        report.candidates = len(candidates)

        for intent in candidates:
            if stop is not None and stop.is_set():
                report.interrupted = True
                logger.info("solver_tick_interrupted", remaining=report.candidates
                            - report.filled - report.failed - report.unquotable)
                break

            quote = quote_intent(intent, self.prices)
            if not quote.valid:
                report.unquotable += 1
                logger.debug("solver_skip_unquotable", intent_id=intent.id,
                             reason=quote.reason)
                continue

            record = self.attempts.begin(intent.id, quote.gross_amount_out)
            try:
                result = await self.ledger.fill(
                    intent.id, self.solver_id, quote.gross_amount_out,
                    route_id=self.route_id,
                )
            except Exception as exc:
                record.outcome = FAILED
                record.error = str(exc)
                report.failed += 1
                logger.warning("solver_fill_failed", intent_id=intent.id,
                               error_type=type(exc).__name__, error=str(exc))
                continue

            record.outcome = FILLED
            record.tx_id = result.tx_id
            report.filled += 1
            logger.info("solver_fill_ok", intent_id=intent.id,
                        amount_out=str(quote.gross_amount_out),
                        solver_fee=str(quote.solver_fee), tx_id=result.tx_id)

        logger.info("solver_tick", now=now, scanned=report.scanned,
                    candidates=report.candidates, filled=report.filled,
                    failed=report.failed, unquotable=report.unquotable)
        return report
