"""Ledger adapter protocol and bounded pagination."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, runtime_checkable

import structlog

from src.intents.models import CreateIntentParams, Intent

logger = structlog.get_logger()


@dataclass(frozen=True, slots=True)
class SubmitResult:
    """Outcome of a state-changing ledger call.

    ``intent`` is the post-transition snapshot when the ledger returns one;
    a real ledger may only hand back the transaction reference.
    """

    tx_id: str
    intent: Optional[Intent] = None


@runtime_checkable
class LedgerAdapter(Protocol):
    """Interface every ledger of record must satisfy.

    Read methods accept an optional ``now``; when given, returned intents have
    their status reconciled against it, otherwise against the ledger's own
    ``current_time()``.
    """

    mode: str

    async def current_time(self) -> int: ...

    async def get(self, intent_id: int, now: Optional[int] = None) -> Optional[Intent]: ...

    async def list_intents(
        self, offset: int, limit: int, now: Optional[int] = None,
    ) -> list[Intent]: ...

    async def create(self, creator: str, params: CreateIntentParams) -> SubmitResult: ...

    async def cancel(
        self, intent_id: int, creator: str, token_in: Optional[str] = None,
    ) -> SubmitResult: ...

    async def fill(
        self, intent_id: int, solver: str, quoted_amount_out: int, *, route_id: str = "",
    ) -> SubmitResult: ...

    async def aclose(self) -> None: ...


async def list_all_intents(
    ledger: LedgerAdapter,
    *,
    page_size: int,
    max_pages: int,
    now: Optional[int] = None,
) -> list[Intent]:
    """Walk pages until an empty or short page, never more than ``max_pages``."""
    if page_size <= 0 or max_pages <= 0:
        raise ValueError("page_size and max_pages must be positive")

    items: list[Intent] = []
    for page in range(max_pages):
        batch = await ledger.list_intents(page * page_size, page_size, now=now)
        items.extend(batch)
        if len(batch) < page_size:
            return items

    logger.warning("ledger_page_cap_reached", max_pages=max_pages,
                   page_size=page_size, collected=len(items))
    return items
