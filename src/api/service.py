"""Settlement operations behind the HTTP routes.

Transport-free: each method takes boundary values, validates them, delegates
to the ledger adapter and quote engine, and raises the exception taxonomy.
"""

from __future__ import annotations

from typing import Any, Optional

import structlog

from src.exceptions import NotFoundError, QuoteRejected, ValidationError
from src.intents.models import Intent, IntentStatus, Quote
from src.intents.validation import build_create_params, validate_identifier
from src.ledger.base import LedgerAdapter, SubmitResult, list_all_intents
from src.pricing.prices import PriceTable
from src.pricing.quote_engine import quote_intent

logger = structlog.get_logger()


class SettlementService:
    def __init__(
        self, *,
        ledger: LedgerAdapter,
        prices: PriceTable,
        default_creator: str = "STDEMOUSER",
        page_size: int = 10,
        max_pages: int = 20,
    ) -> None:
        self.ledger = ledger
        self.prices = prices
        self.default_creator = default_creator
        self.page_size = page_size
        self.max_pages = max_pages

    async def list_intents(
        self, creator: Optional[str] = None, status: Optional[str] = None,
    ) -> list[Intent]:
        wanted: Optional[IntentStatus] = None
        if status:
            try:
                wanted = IntentStatus(status)
            except ValueError:
                raise ValidationError(f"unknown status {status!r}") from None

        now = await self.ledger.current_time()
        intents = await list_all_intents(
            self.ledger, page_size=self.page_size, max_pages=self.max_pages, now=now,
        )
        return [
            intent for intent in intents
            if (not creator or intent.creator == creator)
            and (wanted is None or intent.status is wanted)
        ]

    async def get_intent(self, intent_id: int) -> Intent:
        _check_id(intent_id)
        intent = await self.ledger.get(intent_id)
        if intent is None:
            raise NotFoundError(f"intent {intent_id} not found")
        return intent

    async def create_intent(self, body: dict[str, Any]) -> SubmitResult:
        """Validate, pre-quote, then submit. Nothing reaches the ledger on rejection."""
        params = build_create_params(
            intent_type=body.get("intentType"),
            token_in=body.get("tokenIn"),
            token_out=body.get("tokenOut"),
            amount_in=body.get("amountIn"),
            min_amount_out=body.get("minAmountOut"),
            deadline=body.get("deadline"),
            solver_fee_bps=body.get("solverFeeBps"),
        )
        creator = validate_identifier(body.get("creator") or self.default_creator, "creator")
        now = await self.ledger.current_time()
        if params.deadline <= now:
            raise ValidationError("deadline must be later than the current time")

        draft = Intent(
            id=0,
            creator=creator,
            intent_type=params.intent_type,
            token_in=params.token_in,
            token_out=params.token_out,
            amount_in=params.amount_in,
            min_amount_out=params.min_amount_out,
            deadline=params.deadline,
            solver_fee_bps=params.solver_fee_bps,
            status=IntentStatus.OPEN,
            created_at=0,
        )
        quote = quote_intent(draft, self.prices)
        if not quote.valid:
            logger.info("intent_create_rejected", creator=creator, reason=quote.reason)
            raise QuoteRejected(quote.reason or "quote rejected")

        return await self.ledger.create(creator, params)

    async def cancel_intent(
        self, intent_id: int, creator: Any, token_in: Any,
    ) -> SubmitResult:
        _check_id(intent_id)
        creator = validate_identifier(creator, "creator")
        token_in = validate_identifier(token_in, "tokenIn")
        return await self.ledger.cancel(intent_id, creator, token_in)

    async def quote(self, intent_id: int) -> Quote:
        intent = await self.get_intent(intent_id)
        return quote_intent(intent, self.prices)


def _check_id(intent_id: Any) -> None:
    if isinstance(intent_id, bool) or not isinstance(intent_id, int) or intent_id <= 0:
        raise ValidationError("invalid intent id")
