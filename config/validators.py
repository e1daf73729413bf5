"""Configuration validators run before a process starts serving."""

from __future__ import annotations

from typing import Any

from src.exceptions import ConfigError

LEDGER_MODES = ("reference", "remote")


def validate_ledger_settings(cfg: Any = None) -> None:
    """Raise ConfigError if the ledger settings cannot produce an adapter."""
    if cfg is None:
        from config.settings import settings as cfg
    if cfg.LEDGER_MODE not in LEDGER_MODES:
        raise ConfigError(
            f"LEDGER_MODE must be one of {', '.join(LEDGER_MODES)}, got {cfg.LEDGER_MODE!r}"
        )
    if cfg.LEDGER_MODE == "remote":
        if not cfg.LEDGER_API_URL:
            raise ConfigError("LEDGER_API_URL is required in remote mode")
        address, _, name = cfg.LEDGER_CONTRACT_ID.partition(".")
        if not address or not name:
            raise ConfigError(
                "LEDGER_CONTRACT_ID must be set as <address>.<contract-name> in remote mode"
            )
    if cfg.LEDGER_TIMEOUT_SECONDS <= 0:
        raise ConfigError("LEDGER_TIMEOUT_SECONDS must be positive")
    if cfg.LEDGER_READ_RETRIES < 1:
        raise ConfigError("LEDGER_READ_RETRIES must be at least 1")


def validate_solver_settings(cfg: Any = None) -> None:
    """Raise ConfigError if the solver loop cannot be scheduled."""
    if cfg is None:
        from config.settings import settings as cfg
    if cfg.POLL_INTERVAL_SECONDS <= 0:
        raise ConfigError("POLL_INTERVAL_SECONDS must be positive")
    if cfg.PAGE_SIZE <= 0:
        raise ConfigError("PAGE_SIZE must be positive")
    if cfg.MAX_PAGES <= 0:
        raise ConfigError("MAX_PAGES must be positive")
    if not cfg.SOLVER_ID:
        raise ConfigError("SOLVER_ID is required")
