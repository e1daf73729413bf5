"""Builds the configured ledger adapter."""

from __future__ import annotations

from typing import Any

import structlog

from config.validators import validate_ledger_settings
from src.ledger.base import LedgerAdapter
from src.ledger.reference import ReferenceLedger
from src.ledger.remote import RemoteLedger

logger = structlog.get_logger()


def build_ledger(cfg: Any = None) -> LedgerAdapter:
    """Return a ReferenceLedger or RemoteLedger; raises ConfigError."""
    if cfg is None:
        from config.settings import settings as cfg
    validate_ledger_settings(cfg)

    if cfg.LEDGER_MODE == "remote":
        logger.info("ledger_remote", url=cfg.LEDGER_API_URL, contract=cfg.LEDGER_CONTRACT_ID)
        return RemoteLedger(
            cfg.LEDGER_API_URL,
            cfg.LEDGER_CONTRACT_ID,
            token=cfg.LEDGER_API_TOKEN,
            timeout=cfg.LEDGER_TIMEOUT_SECONDS,
            read_retries=cfg.LEDGER_READ_RETRIES,
        )

    ledger = ReferenceLedger()
    if cfg.SEED_DEMO_INTENTS:
        ledger.seed_demo_intents()
    logger.info("ledger_reference", seeded=cfg.SEED_DEMO_INTENTS)
    return ledger
