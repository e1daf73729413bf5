"""HTTP adapter for the ledger-of-record gateway.

The gateway holds the signing keys: it turns the logical parameters sent
here into signed contract calls, broadcasts them and answers with a
transaction id. Intent records come back in the contract's tuple shape
(kebab-case keys, numeric enum codes) and are decoded strictly; anything
unexpected raises ``AdapterError`` rather than being coerced.

Routes, relative to ``LEDGER_API_URL``::

    GET  /v2/info                                  -> {"tip_height": int}
    GET  /v2/contracts/{contract}/intents/{id}     -> {"intent": tuple | null}
    GET  /v2/contracts/{contract}/intents          -> {"intents": [tuple, ...]}
    POST /v2/contracts/{contract}/intents          -> {"txid": str, "intent": tuple | null}
    POST /v2/contracts/{contract}/intents/{id}/cancel
    POST /v2/contracts/{contract}/intents/{id}/fill

Rejections are 4xx with ``{"error": "<code>", "message": "..."}``.
"""

from __future__ import annotations

import re
from typing import Annotated, Any, Optional, TypeVar

import httpx
import structlog
from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, StrictStr, field_validator
from pydantic import ValidationError as PydanticValidationError

from src.exceptions import (
    AdapterError,
    AuthorizationError,
    ConfigError,
    InvalidStateError,
    NotFoundError,
    QuoteRejected,
    SettlementError,
    ValidationError,
)
from src.intents.models import CreateIntentParams, Intent, IntentStatus, IntentType
from src.intents.validation import parse_amount, validate_create_params, validate_identifier
from src.ledger.base import SubmitResult
from src.ledger.resilience import read_retry

logger = structlog.get_logger()

M = TypeVar("M", bound=BaseModel)

STATUS_CODES: dict[int, IntentStatus] = {
    0: IntentStatus.OPEN,
    1: IntentStatus.FILLED,
    2: IntentStatus.CANCELED,
    3: IntentStatus.EXPIRED,
}
TYPE_CODES: dict[int, IntentType] = {0: IntentType.SWAP, 1: IntentType.YIELD}
TYPE_TO_CODE = {kind: code for code, kind in TYPE_CODES.items()}

REJECTIONS: dict[str, type[SettlementError]] = {
    "not-found": NotFoundError,
    "unauthorized": AuthorizationError,
    "not-open": InvalidStateError,
    "below-min-out": QuoteRejected,
    "invalid": ValidationError,
}

_DIGITS = re.compile(r"[0-9]+")


def _uint(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError("expected an unsigned integer")
    if isinstance(value, int) and value >= 0:
        return value
    if isinstance(value, str) and _DIGITS.fullmatch(value):
        return int(value)
    raise ValueError("expected an unsigned integer or decimal-digit string")


UInt = Annotated[int, BeforeValidator(_uint)]


def _code(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError("expected an integer code")
    return value


Code = Annotated[int, BeforeValidator(_code)]


class IntentTuple(BaseModel):
    """One intent as the contract's read-only functions return it."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    id: UInt
    creator: StrictStr
    intent_type: Code = Field(alias="intent-type")
    token_in: StrictStr = Field(alias="token-in")
    token_out: StrictStr = Field(alias="token-out")
    amount_in: UInt = Field(alias="amount-in")
    min_amount_out: UInt = Field(alias="min-amount-out")
    deadline: UInt
    solver_fee_bps: UInt = Field(alias="solver-fee-bps", le=10_000)
    status: Code
    amount_out: UInt = Field(alias="amount-out")
    solver: Optional[StrictStr] = None
    created_at: UInt = Field(alias="created-at")
    last_tx_id: Optional[StrictStr] = Field(default=None, alias="last-tx-id")

    @field_validator("intent_type")
    @classmethod
    def _known_type(cls, value: int) -> int:
        if value not in TYPE_CODES:
            raise ValueError(f"unknown intent-type code {value}")
        return value

    @field_validator("status")
    @classmethod
    def _known_status(cls, value: int) -> int:
        if value not in STATUS_CODES:
            raise ValueError(f"unknown status code {value}")
        return value

    def to_intent(self) -> Intent:
        return Intent(
            id=self.id,
            creator=self.creator,
            intent_type=TYPE_CODES[self.intent_type],
            token_in=self.token_in,
            token_out=self.token_out,
            amount_in=self.amount_in,
            min_amount_out=self.min_amount_out,
            deadline=self.deadline,
            solver_fee_bps=self.solver_fee_bps,
            status=STATUS_CODES[self.status],
            created_at=self.created_at,
            amount_out=self.amount_out,
            solver=self.solver or None,
            last_tx_id=self.last_tx_id or None,
        )


class InfoEnvelope(BaseModel):
    model_config = ConfigDict(extra="ignore")

    tip_height: UInt


class IntentEnvelope(BaseModel):
    model_config = ConfigDict(extra="ignore")

    intent: Optional[IntentTuple]


class IntentListEnvelope(BaseModel):
    model_config = ConfigDict(extra="ignore")

    intents: list[IntentTuple]


class SubmitEnvelope(BaseModel):
    model_config = ConfigDict(extra="ignore")

    txid: StrictStr = Field(min_length=1)
    intent: Optional[IntentTuple] = None


def parse_contract_identifier(value: str, field: str = "contract") -> tuple[str, str]:
    """Split ``<address>.<name>``; raises ValidationError."""
    address, sep, name = value.partition(".")
    if not sep or not address or not name or "." in name:
        raise ValidationError(f"{field} must look like <address>.<name>, got {value!r}")
    return address, name


class RemoteLedger:
    """LedgerAdapter backed by the HTTP ledger gateway."""

    mode = "remote"

    def __init__(
        self,
        base_url: str,
        contract_id: str,
        *,
        token: str = "",
        timeout: float = 10.0,
        read_retries: int = 3,
        retry_base_delay: float = 0.5,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        try:
            parse_contract_identifier(contract_id, "LEDGER_CONTRACT_ID")
        except ValidationError as exc:
            raise ConfigError(str(exc)) from exc
        self.contract_id = contract_id
        self._read_retries = max(1, read_retries)
        self._retry_base_delay = retry_base_delay
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self._client = client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"), timeout=timeout, headers=headers,
        )

    # ── Reads ───────────────────────────────────────────────────────

    async def current_time(self) -> int:
        payload = await self._call("GET", "/v2/info", idempotent=True)
        return self._decode(InfoEnvelope, payload, "info").tip_height

    async def get(self, intent_id: int, now: Optional[int] = None) -> Optional[Intent]:
        payload = await self._call(
            "GET", f"{self._base}/intents/{intent_id}", idempotent=True,
        )
        envelope = self._decode(IntentEnvelope, payload, "get-intent")
        if envelope.intent is None:
            return None
        if now is None:
            now = await self.current_time()
        return envelope.intent.to_intent().observed_at(now)

    async def list_intents(
        self, offset: int, limit: int, now: Optional[int] = None,
    ) -> list[Intent]:
        payload = await self._call(
            "GET", f"{self._base}/intents",
            params={"offset": offset, "limit": limit}, idempotent=True,
        )
        envelope = self._decode(IntentListEnvelope, payload, "list-intents")
        if not envelope.intents:
            return []
        if now is None:
            now = await self.current_time()
        return [row.to_intent().observed_at(now) for row in envelope.intents]

    # ── Transitions ─────────────────────────────────────────────────

    async def create(self, creator: str, params: CreateIntentParams) -> SubmitResult:
        validate_identifier(creator, "creator")
        validate_create_params(params)
        parse_contract_identifier(params.token_in, "tokenIn")
        parse_contract_identifier(params.token_out, "tokenOut")
        body = {
            "creator": creator,
            "intent-type": TYPE_TO_CODE[params.intent_type],
            "token-in": params.token_in,
            "token-out": params.token_out,
            "amount-in": str(params.amount_in),
            "min-amount-out": str(params.min_amount_out),
            "deadline": params.deadline,
            "solver-fee-bps": params.solver_fee_bps,
        }
        payload = await self._call("POST", f"{self._base}/intents", body=body)
        result = self._submit_result(payload, "create-intent")
        logger.info("intent_create_submitted", creator=creator, tx_id=result.tx_id)
        return result

    async def cancel(
        self, intent_id: int, creator: str, token_in: Optional[str] = None,
    ) -> SubmitResult:
        if token_in is None:
            intent = await self.get(intent_id)
            if intent is None:
                raise NotFoundError(f"intent {intent_id} not found")
            token_in = intent.token_in
        parse_contract_identifier(token_in, "tokenIn")
        payload = await self._call(
            "POST", f"{self._base}/intents/{intent_id}/cancel",
            body={"creator": creator, "token-in": token_in},
        )
        result = self._submit_result(payload, "cancel-intent")
        logger.info("intent_cancel_submitted", intent_id=intent_id, tx_id=result.tx_id)
        return result

    async def fill(
        self, intent_id: int, solver: str, quoted_amount_out: int, *, route_id: str = "",
    ) -> SubmitResult:
        amount_out = parse_amount(quoted_amount_out, "quotedAmountOut")
        payload = await self._call(
            "POST", f"{self._base}/intents/{intent_id}/fill",
            body={
                "solver": solver,
                "quoted-amount-out": str(amount_out),
                "route-id": route_id,
            },
        )
        result = self._submit_result(payload, "fill-intent")
        logger.info("intent_fill_submitted", intent_id=intent_id,
                    amount_out=amount_out, tx_id=result.tx_id)
        return result

    async def aclose(self) -> None:
        await self._client.aclose()

    # ── Internals ───────────────────────────────────────────────────

    @property
    def _base(self) -> str:
        return f"/v2/contracts/{self.contract_id}"

    async def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        response = await self._client.request(method, path, **kwargs)
        if response.status_code >= 500:
            response.raise_for_status()
        return response

    async def _call(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict[str, Any]] = None,
        body: Optional[dict[str, Any]] = None,
        idempotent: bool = False,
    ) -> Any:
        operation = f"{method} {path}"
        try:
            if idempotent:
                response = await read_retry(
                    lambda: self._send(method, path, params=params, json=body),
                    max_attempts=self._read_retries,
                    base_delay=self._retry_base_delay,
                    operation=operation,
                )
            else:
                response = await self._send(method, path, params=params, json=body)
        except httpx.HTTPError as exc:
            raise AdapterError(f"{operation} failed: {exc}") from exc

        if response.is_error:
            raise self._rejection(response, operation)
        try:
            return response.json()
        except ValueError as exc:
            raise AdapterError(f"{operation} returned non-JSON body") from exc

    @staticmethod
    def _rejection(response: httpx.Response, operation: str) -> SettlementError:
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if isinstance(payload, dict):
            code = payload.get("error")
            message = payload.get("message") or code
            exc_type = REJECTIONS.get(code) if isinstance(code, str) else None
            if exc_type is not None:
                return exc_type(str(message))
        return AdapterError(f"{operation} rejected with HTTP {response.status_code}")

    @staticmethod
    def _decode(model: type[M], payload: Any, operation: str) -> M:
        try:
            return model.model_validate(payload)
        except PydanticValidationError as exc:
            raise AdapterError(
                f"{operation}: unexpected response shape ({exc.error_count()} errors)"
            ) from exc

    def _submit_result(self, payload: Any, operation: str) -> SubmitResult:
        envelope = self._decode(SubmitEnvelope, payload, operation)
        intent = envelope.intent.to_intent() if envelope.intent else None
        return SubmitResult(tx_id=envelope.txid, intent=intent)
