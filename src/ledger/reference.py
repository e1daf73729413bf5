"""In-memory reference ledger.

Holds intents as immutable snapshots keyed by id. Each intent has its own
lock, so transitions on one intent serialize while unrelated intents proceed
in parallel. Reads take no per-intent lock: swapping a snapshot reference is
atomic, so a reader sees either the old or the new intent, never a mix.
The short registry lock only covers id allocation and copying the key set.
"""

from __future__ import annotations

import itertools
import threading
import time
from dataclasses import replace
from typing import Callable, Optional

import structlog

from src.exceptions import (
    AuthorizationError,
    InvalidStateError,
    NotFoundError,
    QuoteRejected,
    ValidationError,
)
from src.intents.models import (
    CreateIntentParams,
    Intent,
    IntentStatus,
    IntentType,
    effective_status,
)
from src.intents.validation import parse_amount, validate_create_params, validate_identifier
from src.ledger.base import SubmitResult

logger = structlog.get_logger()


def wall_clock() -> int:
    return int(time.time())


class ReferenceLedger:
    """Ledger of record kept in process memory, one instance per owner."""

    mode = "reference"

    def __init__(self, *, clock: Optional[Callable[[], int]] = None) -> None:
        self._clock = clock or wall_clock
        self._intents: dict[int, Intent] = {}
        self._locks: dict[int, threading.Lock] = {}
        self._registry_lock = threading.Lock()
        self._next_id = 1
        self._tx_seq = itertools.count(1)

    # ── Reads ───────────────────────────────────────────────────────

    async def current_time(self) -> int:
        return self._clock()

    async def get(self, intent_id: int, now: Optional[int] = None) -> Optional[Intent]:
        intent = self._intents.get(intent_id)
        if intent is None:
            return None
        return intent.observed_at(self._clock() if now is None else now)

    async def list_intents(
        self, offset: int, limit: int, now: Optional[int] = None,
    ) -> list[Intent]:
        if offset < 0 or limit < 0:
            raise ValidationError("offset and limit must be non-negative")
        with self._registry_lock:
            ids = sorted(self._intents)
        at = self._clock() if now is None else now
        page = []
        for intent_id in ids[offset:offset + limit]:
            page.append(self._intents[intent_id].observed_at(at))
        return page

    # ── Transitions ─────────────────────────────────────────────────

    async def create(self, creator: str, params: CreateIntentParams) -> SubmitResult:
        validate_identifier(creator, "creator")
        validate_create_params(params)
        now = self._clock()
        if params.deadline <= now:
            raise ValidationError("deadline must be later than the current time")

        with self._registry_lock:
            intent_id = self._next_id
            self._next_id += 1
            tx_id = self._tx_id("create", intent_id)
            intent = Intent(
                id=intent_id,
                creator=creator,
                intent_type=params.intent_type,
                token_in=params.token_in,
                token_out=params.token_out,
                amount_in=params.amount_in,
                min_amount_out=params.min_amount_out,
                deadline=params.deadline,
                solver_fee_bps=params.solver_fee_bps,
                status=IntentStatus.OPEN,
                created_at=now,
                last_tx_id=tx_id,
            )
            self._locks[intent_id] = threading.Lock()
            self._intents[intent_id] = intent

        logger.info("intent_created", intent_id=intent_id, creator=creator, tx_id=tx_id)
        return SubmitResult(tx_id=tx_id, intent=intent)

    async def cancel(
        self, intent_id: int, creator: str, token_in: Optional[str] = None,
    ) -> SubmitResult:
        with self._lock_for(intent_id):
            current = self._intents[intent_id]
            if current.creator != creator:
                raise AuthorizationError(f"only the creator can cancel intent {intent_id}")
            if token_in is not None and token_in != current.token_in:
                raise ValidationError(f"tokenIn does not match intent {intent_id}")
            self._require_open(current)

            tx_id = self._tx_id("cancel", intent_id)
            updated = replace(current, status=IntentStatus.CANCELED, last_tx_id=tx_id)
            self._intents[intent_id] = updated

        logger.info("intent_canceled", intent_id=intent_id, tx_id=tx_id)
        return SubmitResult(tx_id=tx_id, intent=updated)

    async def fill(
        self, intent_id: int, solver: str, quoted_amount_out: int, *, route_id: str = "",
    ) -> SubmitResult:
        validate_identifier(solver, "solver")
        amount_out = parse_amount(quoted_amount_out, "quotedAmountOut")

        with self._lock_for(intent_id):
            current = self._intents[intent_id]
            self._require_open(current)
            if amount_out < current.min_amount_out:
                raise QuoteRejected(
                    f"quoted {amount_out} below minimum output {current.min_amount_out}"
                )

            tx_id = self._tx_id("fill", intent_id)
            updated = replace(
                current,
                status=IntentStatus.FILLED,
                amount_out=amount_out,
                solver=solver,
                last_tx_id=tx_id,
            )
            self._intents[intent_id] = updated

        logger.info("intent_filled", intent_id=intent_id, solver=solver,
                    amount_out=amount_out, route_id=route_id, tx_id=tx_id)
        return SubmitResult(tx_id=tx_id, intent=updated)

    async def aclose(self) -> None:
        return None

    # ── Seeding ─────────────────────────────────────────────────────

    def seed_demo_intents(self) -> list[Intent]:
        """Load two demo intents; the second is already past its deadline."""
        now = self._clock()
        seeds = [
            Intent(
                id=0,
                creator="ST2J8EVYHPJ5F36W7P5N4A5M4EXAMPLE1",
                intent_type=IntentType.SWAP,
                token_in="STTEST.token-a",
                token_out="STTEST.token-b",
                amount_in=100_000,
                min_amount_out=97_000,
                deadline=now + 1800,
                solver_fee_bps=30,
                status=IntentStatus.OPEN,
                created_at=now - 120,
                last_tx_id="seed-open",
            ),
            Intent(
                id=0,
                creator="ST2J8EVYHPJ5F36W7P5N4A5M4EXAMPLE2",
                intent_type=IntentType.YIELD,
                token_in="STTEST.token-b",
                token_out="STTEST.token-a",
                amount_in=250_000,
                min_amount_out=240_000,
                deadline=now - 60,
                solver_fee_bps=15,
                status=IntentStatus.OPEN,
                created_at=now - 3600,
                last_tx_id="seed-expired",
            ),
        ]
        seeded = []
        with self._registry_lock:
            for seed in seeds:
                intent = replace(seed, id=self._next_id)
                self._locks[intent.id] = threading.Lock()
                self._intents[intent.id] = intent
                self._next_id += 1
                seeded.append(intent)
        logger.info("reference_ledger_seeded", count=len(seeded))
        return seeded

    # ── Internals ───────────────────────────────────────────────────

    def _lock_for(self, intent_id: int) -> threading.Lock:
        lock = self._locks.get(intent_id)
        if lock is None:
            raise NotFoundError(f"intent {intent_id} not found")
        return lock

    def _require_open(self, intent: Intent) -> None:
        status = effective_status(intent.status, intent.deadline, self._clock())
        if status is not IntentStatus.OPEN:
            raise InvalidStateError(f"intent {intent.id} is {status.value}, not open")

    def _tx_id(self, action: str, intent_id: int) -> str:
        seq = next(self._tx_seq)
        if action == "create":
            return f"ref-create-{seq}"
        return f"ref-{action}-{intent_id}-{seq}"
