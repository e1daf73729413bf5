from src.intents.models import (
    BPS_DENOMINATOR,
    CreateIntentParams,
    Intent,
    IntentStatus,
    IntentType,
    Quote,
    effective_status,
)
from src.intents.validation import build_create_params, validate_create_params

__all__ = [
    "BPS_DENOMINATOR",
    "CreateIntentParams",
    "Intent",
    "IntentStatus",
    "IntentType",
    "Quote",
    "effective_status",
    "build_create_params",
    "validate_create_params",
]
