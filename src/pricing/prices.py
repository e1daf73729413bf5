"""Static price table keyed by ordered asset pair."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Mapping, Optional

from src.exceptions import ConfigError

PAIR_SEPARATOR = "::"
_DIGITS = re.compile(r"[0-9]+")


def pair_key(token_in: str, token_out: str) -> str:
    return f"{token_in}{PAIR_SEPARATOR}{token_out}"


@dataclass(frozen=True, slots=True)
class Rate:
    """Exchange rate as an exact fraction; both parts strictly positive."""

    numerator: int
    denominator: int

    def __post_init__(self) -> None:
        for part in (self.numerator, self.denominator):
            if isinstance(part, bool) or not isinstance(part, int) or part <= 0:
                raise ConfigError(
                    f"rate parts must be positive integers, got {self.numerator}/{self.denominator}"
                )

    @classmethod
    def parse(cls, raw: str) -> "Rate":
        """Parse ``"98/100"``."""
        num, sep, den = str(raw).partition("/")
        num, den = num.strip(), den.strip()
        if not sep or not _DIGITS.fullmatch(num) or not _DIGITS.fullmatch(den):
            raise ConfigError(f"rate must look like <numerator>/<denominator>, got {raw!r}")
        return cls(int(num), int(den))


class PriceTable:
    """Read-only mapping from ``(token_in, token_out)`` to a ``Rate``.

    Directions are independent keys: a rate for A->B says nothing about B->A.
    """

    def __init__(self, rates: Optional[Mapping[str, Rate]] = None) -> None:
        self._rates: dict[str, Rate] = dict(rates or {})

    def get(self, token_in: str, token_out: str) -> Optional[Rate]:
        return self._rates.get(pair_key(token_in, token_out))

    def pairs(self) -> list[str]:
        return sorted(self._rates)

    def __len__(self) -> int:
        return len(self._rates)

    def __contains__(self, key: object) -> bool:
        return key in self._rates

    @classmethod
    def from_json(cls, raw: str) -> "PriceTable":
        """Build from ``{"<in>::<out>": "<num>/<den>"}``; raises ConfigError."""
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"PRICE_TABLE is not valid JSON: {exc}") from exc
        if not isinstance(payload, dict):
            raise ConfigError("PRICE_TABLE must be a JSON object")

        rates: dict[str, Rate] = {}
        for key, value in payload.items():
            token_in, sep, token_out = key.partition(PAIR_SEPARATOR)
            if not sep or not token_in or not token_out:
                raise ConfigError(f"price key must look like <in>::<out>, got {key!r}")
            rates[key] = Rate.parse(value)
        return cls(rates)


def load_price_table(cfg=None) -> PriceTable:
    if cfg is None:
        from config.settings import settings as cfg
    return PriceTable.from_json(cfg.PRICE_TABLE)
