"""Deterministic fill quotes from the internal price table.

All arithmetic is on Python ints, so amounts beyond 2**53 stay exact.
Every division floors; the solver fee therefore never rounds against the
creator and ``creator_amount_out + solver_fee == gross_amount_out``.
"""

from __future__ import annotations

from src.intents.models import BPS_DENOMINATOR, Intent, Quote
from src.pricing.prices import PriceTable

REASON_NO_PRICE = "no price configured"
REASON_BELOW_MIN = "quote below minimum output"


def quote_intent(intent: Intent, prices: PriceTable) -> Quote:
    rate = prices.get(intent.token_in, intent.token_out)
    if rate is None:
        return Quote(0, 0, 0, valid=False, reason=REASON_NO_PRICE)

    gross = intent.amount_in * rate.numerator // rate.denominator

    # No fee on a rejected quote.
    if gross < intent.min_amount_out:
        return Quote(gross, 0, gross, valid=False, reason=REASON_BELOW_MIN)

    fee = gross * intent.solver_fee_bps // BPS_DENOMINATOR
    return Quote(gross, fee, gross - fee, valid=True)
