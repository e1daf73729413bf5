"""Shape validation for intent creation and cancellation inputs.

Everything here raises ``ValidationError`` and runs before any ledger call,
so a rejected request never mutates state.
"""

from __future__ import annotations

import re
from typing import Any

from src.exceptions import ValidationError
from src.intents.models import BPS_DENOMINATOR, CreateIntentParams, IntentType

_DIGITS = re.compile(r"[0-9]+")
MIN_TOKEN_LENGTH = 3


def parse_amount(value: Any, field: str) -> int:
    """Parse a non-negative integer amount from a decimal-digit string.

    Plain ints are accepted for in-process callers; floats and bools never are.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a non-negative integer string")
    if isinstance(value, int):
        if value < 0:
            raise ValidationError(f"{field} must be non-negative")
        return value
    if isinstance(value, str) and _DIGITS.fullmatch(value):
        return int(value)
    raise ValidationError(f"{field} must be a non-negative integer string")


def _require_int(value: Any, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer")
    return value


def validate_identifier(value: Any, field: str) -> str:
    """Token ids and creator identities are opaque but never trivially short."""
    if not isinstance(value, str) or len(value) < MIN_TOKEN_LENGTH:
        raise ValidationError(
            f"{field} must be a string of at least {MIN_TOKEN_LENGTH} characters"
        )
    return value


def validate_fee_bps(value: Any) -> int:
    fee = _require_int(value, "solverFeeBps")
    if not 0 <= fee <= BPS_DENOMINATOR:
        raise ValidationError(f"solverFeeBps must be within [0, {BPS_DENOMINATOR}]")
    return fee


def validate_create_params(params: CreateIntentParams) -> CreateIntentParams:
    """Re-check an already-built parameter set (ledgers call this too)."""
    if not isinstance(params.intent_type, IntentType):
        raise ValidationError("intentType must be one of swap, yield")
    validate_identifier(params.token_in, "tokenIn")
    validate_identifier(params.token_out, "tokenOut")
    parse_amount(params.amount_in, "amountIn")
    parse_amount(params.min_amount_out, "minAmountOut")
    if _require_int(params.deadline, "deadline") <= 0:
        raise ValidationError("deadline must be a positive integer")
    validate_fee_bps(params.solver_fee_bps)
    return params


def build_create_params(
    *,
    intent_type: Any,
    token_in: Any,
    token_out: Any,
    amount_in: Any,
    min_amount_out: Any,
    deadline: Any,
    solver_fee_bps: Any,
) -> CreateIntentParams:
    """Coerce boundary values into ``CreateIntentParams`` or raise."""
    try:
        kind = IntentType(intent_type)
    except ValueError:
        raise ValidationError("intentType must be one of swap, yield") from None

    params = CreateIntentParams(
        intent_type=kind,
        token_in=validate_identifier(token_in, "tokenIn"),
        token_out=validate_identifier(token_out, "tokenOut"),
        amount_in=parse_amount(amount_in, "amountIn"),
        min_amount_out=parse_amount(min_amount_out, "minAmountOut"),
        deadline=_require_int(deadline, "deadline"),
        solver_fee_bps=validate_fee_bps(solver_fee_bps),
    )
    return validate_create_params(params)
