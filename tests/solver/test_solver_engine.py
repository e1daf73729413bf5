from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from src.exceptions import AdapterError, InvalidStateError
from src.intents.models import CreateIntentParams, IntentStatus, IntentType
from src.ledger.base import SubmitResult
from src.ledger.reference import ReferenceLedger
from src.pricing.prices import PriceTable, Rate, pair_key
from src.solver.attempts import FAILED, FILLED, AttemptLog
from src.solver.engine import SolverEngine

A = "STTEST.token-a"
B = "STTEST.token-b"
CREATOR = "STCREATOR01"
SOLVER = "STSOLVER01"


class FakeClock:
    def __init__(self, now: int = 1_000) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now


def params(**overrides) -> CreateIntentParams:
    fields = dict(
        intent_type=IntentType.SWAP,
        token_in=A,
        token_out=B,
        amount_in=100_000,
        min_amount_out=97_000,
        deadline=5_000,
        solver_fee_bps=30,
    )
    fields.update(overrides)
    return CreateIntentParams(**fields)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def ledger(clock):
    return ReferenceLedger(clock=clock)


@pytest.fixture
def prices():
    return PriceTable({pair_key(A, B): Rate(98, 100)})


def make_engine(ledger, prices, **kwargs) -> SolverEngine:
    return SolverEngine(
        ledger=ledger, prices=prices, solver_id=SOLVER,
        poll_interval=0.01, page_size=2, max_pages=10, **kwargs,
    )


@pytest.mark.asyncio
async def test_tick_fills_open_intent_with_gross_amount(ledger, prices):
    intent = (await ledger.create(CREATOR, params())).intent
    engine = make_engine(ledger, prices)

    report = await engine.run_once()

    filled = await ledger.get(intent.id)
    assert filled.status is IntentStatus.FILLED
    assert filled.amount_out == 98_000
    assert filled.solver == SOLVER
    assert report.filled == 1
    assert engine.attempted == frozenset({intent.id})
    record = engine.attempts.get(intent.id)
    assert record.outcome == FILLED
    assert record.tx_id == filled.last_tx_id
    assert record.quoted_amount_out == 98_000


@pytest.mark.asyncio
async def test_tick_pages_through_all_intents(ledger, prices):
    for _ in range(5):
        await ledger.create(CREATOR, params())
    engine = make_engine(ledger, prices)

    report = await engine.tick()

    assert report.scanned == 5
    assert report.filled == 5
    statuses = {i.status for i in await ledger.list_intents(0, 10)}
    assert statuses == {IntentStatus.FILLED}


@pytest.mark.asyncio
async def test_skips_unquotable_without_marking_attempted(ledger, prices):
    below = (await ledger.create(CREATOR, params(min_amount_out=100_000))).intent
    unpriced = (await ledger.create(CREATOR, params(token_in=B, token_out=A))).intent
    engine = make_engine(ledger, prices)

    report = await engine.tick()

    assert report.unquotable == 2
    assert report.filled == 0
    assert engine.attempted == frozenset()
    assert (await ledger.get(below.id)).status is IntentStatus.OPEN
    assert (await ledger.get(unpriced.id)).status is IntentStatus.OPEN


@pytest.mark.asyncio
async def test_ignores_expired_canceled_and_filled(ledger, prices, clock):
    expiring = (await ledger.create(CREATOR, params(deadline=1_100))).intent
    canceled = (await ledger.create(CREATOR, params())).intent
    await ledger.cancel(canceled.id, CREATOR)
    filled = (await ledger.create(CREATOR, params())).intent
    await ledger.fill(filled.id, "STOTHER", 98_000)
    clock.now = 1_101

    engine = make_engine(ledger, prices)
    report = await engine.tick()

    assert report.candidates == 0
    assert engine.attempted == frozenset()
    assert (await ledger.get(expiring.id)).status is IntentStatus.EXPIRED


@pytest.mark.asyncio
async def test_failed_attempt_is_never_retried(ledger, prices):
    intent = (await ledger.create(CREATOR, params())).intent
    real_fill = ledger.fill
    ledger.fill = AsyncMock(side_effect=AdapterError("gateway timeout"))
    engine = make_engine(ledger, prices)

    first = await engine.tick()
    assert first.failed == 1
    assert engine.attempts.get(intent.id).outcome == FAILED
    assert "gateway timeout" in engine.attempts.get(intent.id).error

    # The ledger recovers, but the solver does not try the same id again.
    ledger.fill = AsyncMock(side_effect=real_fill)
    second = await engine.tick()
    third = await engine.tick()

    assert second.candidates == 0
    assert third.candidates == 0
    ledger.fill.assert_not_called()
    assert (await ledger.get(intent.id)).status is IntentStatus.OPEN


@pytest.mark.asyncio
async def test_one_failure_does_not_abort_the_tick(ledger, prices):
    ids = [(await ledger.create(CREATOR, params())).intent.id for _ in range(3)]
    real_fill = ledger.fill

    async def flaky_fill(intent_id, solver, amount, *, route_id=""):
        if intent_id == ids[0]:
            raise InvalidStateError("lost the race")
        return await real_fill(intent_id, solver, amount, route_id=route_id)

    ledger.fill = flaky_fill
    engine = make_engine(ledger, prices)
    report = await engine.tick()

    assert report.failed == 1
    assert report.filled == 2
    assert engine.attempted == frozenset(ids)


@pytest.mark.asyncio
async def test_fill_uses_route_label(prices):
    ledger = AsyncMock()
    ledger.mode = "fake"
    ledger.current_time.return_value = 10
    intent_ledger = ReferenceLedger(clock=lambda: 10)
    intent = (await intent_ledger.create(CREATOR, params(deadline=50))).intent
    ledger.list_intents.side_effect = [[intent]]
    ledger.fill.return_value = SubmitResult(tx_id="0xfill")

    engine = SolverEngine(ledger=ledger, prices=prices, solver_id=SOLVER,
                          route_id="internal-amm-v1", page_size=10, max_pages=1)
    await engine.tick()

    ledger.fill.assert_awaited_once_with(
        intent.id, SOLVER, 98_000, route_id="internal-amm-v1",
    )


@pytest.mark.asyncio
async def test_ledger_read_failure_aborts_only_that_tick(ledger, prices):
    intent = (await ledger.create(CREATOR, params())).intent
    engine = make_engine(ledger, prices)
    real_time = ledger.current_time
    ledger.current_time = AsyncMock(side_effect=[AdapterError("down"), 1_000, 1_000])

    with pytest.raises(AdapterError):
        await engine.tick()
    assert engine.attempted == frozenset()

    report = await engine.tick()
    assert report.filled == 1
    ledger.current_time = real_time
    assert (await ledger.get(intent.id)).status is IntentStatus.FILLED


@pytest.mark.asyncio
async def test_stop_prevents_new_dispatches(ledger, prices):
    ids = [(await ledger.create(CREATOR, params())).intent.id for _ in range(3)]
    stop = asyncio.Event()
    real_fill = ledger.fill

    async def fill_then_stop(intent_id, solver, amount, *, route_id=""):
        result = await real_fill(intent_id, solver, amount, route_id=route_id)
        stop.set()
        return result

    ledger.fill = fill_then_stop
    engine = make_engine(ledger, prices)
    report = await engine.tick(stop)

    assert report.interrupted is True
    assert report.filled == 1
    assert engine.attempted == frozenset({ids[0]})
    assert (await ledger.get(ids[0])).status is IntentStatus.FILLED
    assert (await ledger.get(ids[1])).status is IntentStatus.OPEN


@pytest.mark.asyncio
async def test_run_survives_tick_failures_and_stops_on_event(ledger, prices):
    engine = make_engine(ledger, prices)
    calls = 0
    stop = asyncio.Event()

    async def failing_tick(stop_event=None):
        nonlocal calls
        calls += 1
        if calls >= 3:
            stop.set()
        raise AdapterError("ledger unreachable")

    engine.tick = failing_tick
    await asyncio.wait_for(engine.run(stop), timeout=2.0)
    assert calls == 3


@pytest.mark.asyncio
async def test_attempted_set_is_per_engine_instance(ledger, prices):
    intent = (await ledger.create(CREATOR, params(min_amount_out=0))).intent
    shared = AttemptLog()
    first = make_engine(ledger, prices, attempts=shared)
    ledger.fill = AsyncMock(side_effect=AdapterError("boom"))
    await first.tick()

    # A restarted process starts with an empty log and would try again.
    fresh = make_engine(ledger, prices)
    assert intent.id not in fresh.attempted
    # Sharing the log carries the dedup across engines.
    resumed = make_engine(ledger, prices, attempts=shared)
    assert (await resumed.tick()).candidates == 0


def test_attempt_log_rejects_duplicates():
    log = AttemptLog()
    log.begin(1, 10)
    with pytest.raises(ValueError):
        log.begin(1, 10)
    assert 1 in log
    assert len(log) == 1
    assert [r.intent_id for r in log] == [1]
