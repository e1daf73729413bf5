"""Record of every intent the solver has tried to fill.

An id enters the log before its fill is dispatched and never leaves, so a
failed or interrupted attempt is not retried. The log lives in process
memory and starts empty on every process start.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Iterator, Optional

PENDING = "pending"
FILLED = "filled"
FAILED = "failed"


@dataclass(slots=True)
class AttemptRecord:
    intent_id: int
    attempted_at: float
    quoted_amount_out: int
    outcome: str = PENDING
    tx_id: Optional[str] = None
    error: Optional[str] = None


class AttemptLog:
    def __init__(self) -> None:
        self._records: dict[int, AttemptRecord] = {}

    def __contains__(self, intent_id: object) -> bool:
        return intent_id in self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[AttemptRecord]:
        return iter(list(self._records.values()))

    def begin(self, intent_id: int, quoted_amount_out: int) -> AttemptRecord:
        """Mark ``intent_id`` attempted. Raises if it already was."""
        if intent_id in self._records:
            raise ValueError(f"intent {intent_id} already attempted")
        record = AttemptRecord(
            intent_id=intent_id,
            attempted_at=time.time(),
            quoted_amount_out=quoted_amount_out,
        )
        self._records[intent_id] = record
        return record

    def get(self, intent_id: int) -> Optional[AttemptRecord]:
        return self._records.get(intent_id)

    def ids(self) -> frozenset[int]:
        return frozenset(self._records)
