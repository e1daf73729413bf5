from src.ledger.base import LedgerAdapter, SubmitResult, list_all_intents
from src.ledger.factory import build_ledger
from src.ledger.reference import ReferenceLedger
from src.ledger.remote import RemoteLedger

__all__ = [
    "LedgerAdapter",
    "SubmitResult",
    "list_all_intents",
    "build_ledger",
    "ReferenceLedger",
    "RemoteLedger",
]
