"""Custom exceptions for the intent settlement engine."""


class SettlementError(Exception):
    """Base exception for all settlement errors."""


class ValidationError(SettlementError):
    """Malformed input; never reaches the ledger."""


class NotFoundError(SettlementError):
    """Unknown intent id."""


class AuthorizationError(SettlementError):
    """Requester is not allowed to act on the intent."""


class InvalidStateError(SettlementError):
    """Transition attempted from a non-open effective status."""


class QuoteRejected(SettlementError):
    """Output below the intent's floor, or no price available."""


class AdapterError(SettlementError):
    """The ledger of record failed, rejected the call, or answered garbage."""


class ConfigError(SettlementError):
    """Missing or invalid configuration."""
