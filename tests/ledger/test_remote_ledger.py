from __future__ import annotations

import json

import httpx
import pytest
import respx

from src.exceptions import (
    AdapterError,
    AuthorizationError,
    ConfigError,
    InvalidStateError,
    NotFoundError,
    QuoteRejected,
    ValidationError,
)
from src.intents.models import CreateIntentParams, IntentStatus, IntentType
from src.ledger.base import LedgerAdapter
from src.ledger.remote import RemoteLedger

BASE = "http://gateway.test"
CONTRACT = "ST1CONTRACT.intent-escrow"
INTENTS = f"{BASE}/v2/contracts/{CONTRACT}/intents"


def tuple_row(**overrides) -> dict:
    row = {
        "id": 4,
        "creator": "STCREATOR01",
        "intent-type": 0,
        "token-in": "STTEST.token-a",
        "token-out": "STTEST.token-b",
        "amount-in": "100000",
        "min-amount-out": "97000",
        "deadline": 500,
        "solver-fee-bps": 30,
        "status": 0,
        "amount-out": "0",
        "solver": None,
        "created-at": 400,
        "last-tx-id": "0xabc",
    }
    row.update(overrides)
    return row


def make_ledger(**kwargs) -> RemoteLedger:
    return RemoteLedger(BASE, CONTRACT, retry_base_delay=0.0, **kwargs)


def test_satisfies_protocol():
    assert isinstance(make_ledger(), LedgerAdapter)


def test_bad_contract_id_is_config_error():
    with pytest.raises(ConfigError):
        RemoteLedger(BASE, "no-dot-here")


@pytest.mark.asyncio
@respx.mock
async def test_current_time_reads_tip_height():
    respx.get(f"{BASE}/v2/info").mock(return_value=httpx.Response(200, json={"tip_height": 812}))
    assert await make_ledger().current_time() == 812


@pytest.mark.asyncio
@respx.mock
async def test_get_decodes_tuple_and_reconciles_expiry():
    respx.get(f"{INTENTS}/4").mock(
        return_value=httpx.Response(200, json={"intent": tuple_row(**{"amount-in": 2**70})})
    )
    ledger = make_ledger()

    open_intent = await ledger.get(4, now=499)
    assert open_intent.status is IntentStatus.OPEN
    assert open_intent.intent_type is IntentType.SWAP
    assert open_intent.amount_in == 2**70
    assert open_intent.min_amount_out == 97_000
    assert open_intent.last_tx_id == "0xabc"

    assert (await ledger.get(4, now=500)).status is IntentStatus.OPEN
    assert (await ledger.get(4, now=501)).status is IntentStatus.EXPIRED


@pytest.mark.asyncio
@respx.mock
async def test_get_without_now_fetches_tip_height():
    respx.get(f"{INTENTS}/4").mock(return_value=httpx.Response(200, json={"intent": tuple_row()}))
    info = respx.get(f"{BASE}/v2/info").mock(
        return_value=httpx.Response(200, json={"tip_height": 900})
    )
    intent = await make_ledger().get(4)
    assert info.called
    assert intent.status is IntentStatus.EXPIRED


@pytest.mark.asyncio
@respx.mock
async def test_get_missing_returns_none():
    respx.get(f"{INTENTS}/9").mock(return_value=httpx.Response(200, json={"intent": None}))
    assert await make_ledger().get(9, now=1) is None


@pytest.mark.asyncio
@respx.mock
async def test_list_passes_offset_and_limit():
    route = respx.get(INTENTS).mock(return_value=httpx.Response(200, json={
        "intents": [tuple_row(id=1), tuple_row(id=2, status=1, solver="STSOLVER", **{"amount-out": "98000"})],
    }))
    items = await make_ledger().list_intents(10, 2, now=100)

    request = route.calls.last.request
    assert request.url.params["offset"] == "10"
    assert request.url.params["limit"] == "2"
    assert [i.id for i in items] == [1, 2]
    assert items[1].status is IntentStatus.FILLED
    assert items[1].solver == "STSOLVER"
    assert items[1].amount_out == 98_000


@pytest.mark.parametrize("bad", [
    {"status": 7},
    {"intent-type": 2},
    {"amount-in": "12.5"},
    {"amount-in": 1.5},
    {"amount-in": -1},
    {"deadline": "soon"},
    {"solver-fee-bps": 10_001},
    {"creator": 123},
    {"status": "0"},
])
@pytest.mark.asyncio
@respx.mock
async def test_unexpected_shapes_fail_fast(bad):
    respx.get(f"{INTENTS}/4").mock(return_value=httpx.Response(200, json={"intent": tuple_row(**bad)}))
    with pytest.raises(AdapterError):
        await make_ledger().get(4, now=1)


@pytest.mark.asyncio
@respx.mock
async def test_missing_field_fails_fast():
    row = tuple_row()
    del row["min-amount-out"]
    respx.get(f"{INTENTS}/4").mock(return_value=httpx.Response(200, json={"intent": row}))
    with pytest.raises(AdapterError):
        await make_ledger().get(4, now=1)


@pytest.mark.asyncio
@respx.mock
async def test_non_json_body_is_adapter_error():
    respx.get(f"{BASE}/v2/info").mock(return_value=httpx.Response(200, text="<html>"))
    with pytest.raises(AdapterError):
        await make_ledger().current_time()


@pytest.mark.asyncio
@respx.mock
async def test_reads_retry_on_server_errors():
    route = respx.get(f"{BASE}/v2/info").mock(side_effect=[
        httpx.Response(503),
        httpx.ConnectError("refused"),
        httpx.Response(200, json={"tip_height": 5}),
    ])
    assert await make_ledger(read_retries=3).current_time() == 5
    assert route.call_count == 3


@pytest.mark.asyncio
@respx.mock
async def test_reads_give_up_after_max_attempts():
    route = respx.get(f"{BASE}/v2/info").mock(return_value=httpx.Response(502))
    with pytest.raises(AdapterError):
        await make_ledger(read_retries=2).current_time()
    assert route.call_count == 2


@pytest.mark.asyncio
@respx.mock
async def test_fill_is_submitted_once_even_on_server_error():
    route = respx.post(f"{INTENTS}/4/fill").mock(return_value=httpx.Response(500))
    with pytest.raises(AdapterError):
        await make_ledger(read_retries=5).fill(4, "STSOLVER", 98_000, route_id="internal-amm-v1")
    assert route.call_count == 1


@pytest.mark.asyncio
@respx.mock
async def test_fill_body_and_result():
    route = respx.post(f"{INTENTS}/4/fill").mock(
        return_value=httpx.Response(200, json={"txid": "0xfill"})
    )
    result = await make_ledger().fill(4, "STSOLVER", 2**60, route_id="internal-amm-v1")

    body = json.loads(route.calls.last.request.content)
    assert body == {
        "solver": "STSOLVER",
        "quoted-amount-out": str(2**60),
        "route-id": "internal-amm-v1",
    }
    assert result.tx_id == "0xfill"
    assert result.intent is None


@pytest.mark.asyncio
@respx.mock
async def test_create_encodes_tuple_fields():
    route = respx.post(INTENTS).mock(return_value=httpx.Response(200, json={
        "txid": "0xcreate", "intent": tuple_row(id=11),
    }))
    params = CreateIntentParams(
        intent_type=IntentType.YIELD,
        token_in="STTEST.token-a",
        token_out="STTEST.token-b",
        amount_in=100_000,
        min_amount_out=97_000,
        deadline=5_000,
        solver_fee_bps=30,
    )
    result = await make_ledger(token="secret").create("STCREATOR01", params)

    request = route.calls.last.request
    assert request.headers["Authorization"] == "Bearer secret"
    assert json.loads(request.content) == {
        "creator": "STCREATOR01",
        "intent-type": 1,
        "token-in": "STTEST.token-a",
        "token-out": "STTEST.token-b",
        "amount-in": "100000",
        "min-amount-out": "97000",
        "deadline": 5_000,
        "solver-fee-bps": 30,
    }
    assert result.tx_id == "0xcreate"
    assert result.intent.id == 11


@pytest.mark.asyncio
async def test_create_requires_contract_token_ids():
    params = CreateIntentParams(
        intent_type=IntentType.SWAP,
        token_in="tokenA",
        token_out="STTEST.token-b",
        amount_in=1,
        min_amount_out=1,
        deadline=5,
        solver_fee_bps=0,
    )
    with pytest.raises(ValidationError):
        await make_ledger().create("STCREATOR01", params)


@pytest.mark.asyncio
@respx.mock
async def test_cancel_looks_up_token_when_not_given():
    respx.get(f"{INTENTS}/4").mock(return_value=httpx.Response(200, json={"intent": tuple_row()}))
    respx.get(f"{BASE}/v2/info").mock(return_value=httpx.Response(200, json={"tip_height": 1}))
    route = respx.post(f"{INTENTS}/4/cancel").mock(
        return_value=httpx.Response(200, json={"txid": "0xcancel"})
    )
    result = await make_ledger().cancel(4, "STCREATOR01")
    assert json.loads(route.calls.last.request.content) == {
        "creator": "STCREATOR01", "token-in": "STTEST.token-a",
    }
    assert result.tx_id == "0xcancel"


@pytest.mark.parametrize("code,exc_type", [
    ("not-found", NotFoundError),
    ("unauthorized", AuthorizationError),
    ("not-open", InvalidStateError),
    ("below-min-out", QuoteRejected),
    ("invalid", ValidationError),
])
@pytest.mark.asyncio
@respx.mock
async def test_rejections_map_to_taxonomy(code, exc_type):
    respx.post(f"{INTENTS}/4/cancel").mock(
        return_value=httpx.Response(400, json={"error": code, "message": "nope"})
    )
    with pytest.raises(exc_type, match="nope"):
        await make_ledger().cancel(4, "STCREATOR01", "STTEST.token-a")


@pytest.mark.asyncio
@respx.mock
async def test_unknown_rejection_is_adapter_error():
    respx.post(f"{INTENTS}/4/cancel").mock(return_value=httpx.Response(409, text="conflict"))
    with pytest.raises(AdapterError):
        await make_ledger().cancel(4, "STCREATOR01", "STTEST.token-a")
