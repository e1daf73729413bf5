"""Intent and quote data structures plus the effective-status rule."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Optional

BPS_DENOMINATOR = 10_000


class IntentType(str, Enum):
    SWAP = "swap"
    YIELD = "yield"


class IntentStatus(str, Enum):
    OPEN = "open"
    FILLED = "filled"
    CANCELED = "canceled"
    EXPIRED = "expired"

    @property
    def is_terminal(self) -> bool:
        return self is not IntentStatus.OPEN


def effective_status(stored: IntentStatus, deadline: int, now: int) -> IntentStatus:
    """Reconcile a stored status against the current time/height.

    Only ``open`` is time-sensitive: once ``now`` passes ``deadline`` the
    intent reads as ``expired``; at the deadline itself it is still open. Terminal statuses are returned unchanged.
    """
    if stored is IntentStatus.OPEN and now > deadline:
        return IntentStatus.EXPIRED
    return stored


@dataclass(frozen=True, slots=True)
class CreateIntentParams:
    """Creation parameters; immutable once the intent is issued."""

    intent_type: IntentType
    token_in: str
    token_out: str
    amount_in: int
    min_amount_out: int
    deadline: int
    solver_fee_bps: int


@dataclass(frozen=True, slots=True)
class Intent:
    """Snapshot of one intent as held by a ledger.

    Snapshots are never mutated in place; the owning ledger swaps in a new
    snapshot on every transition so readers never see a half-applied change.
    """

    id: int
    creator: str
    intent_type: IntentType
    token_in: str
    token_out: str
    amount_in: int
    min_amount_out: int
    deadline: int
    solver_fee_bps: int
    status: IntentStatus
    created_at: int
    amount_out: int = 0
    solver: Optional[str] = None
    last_tx_id: Optional[str] = None

    def observed_at(self, now: int) -> "Intent":
        """Return this snapshot with its status reconciled against ``now``."""
        status = effective_status(self.status, self.deadline, now)
        if status is self.status:
            return self
        return replace(self, status=status)

    def to_dict(self) -> dict[str, Any]:
        """Wire shape: camelCase keys, amounts as decimal-digit strings."""
        return {
            "id": self.id,
            "creator": self.creator,
            "intentType": self.intent_type.value,
            "tokenIn": self.token_in,
            "tokenOut": self.token_out,
            "amountIn": str(self.amount_in),
            "minAmountOut": str(self.min_amount_out),
            "deadline": self.deadline,
            "solverFeeBps": self.solver_fee_bps,
            "status": self.status.value,
            "amountOut": str(self.amount_out),
            "solver": self.solver,
            "createdAt": self.created_at,
            "lastTxId": self.last_tx_id,
        }


@dataclass(frozen=True, slots=True)
class Quote:
    """What a fill would yield. Computed on demand, never stored."""

    gross_amount_out: int
    solver_fee: int
    creator_amount_out: int
    valid: bool
    reason: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "grossAmountOut": str(self.gross_amount_out),
            "solverFee": str(self.solver_fee),
            "creatorAmountOut": str(self.creator_amount_out),
            "valid": self.valid,
        }
        if self.reason is not None:
            out["reason"] = self.reason
        return out
