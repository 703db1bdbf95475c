from .base import BaseModel, UTCTimestamp, as_utc, utcnow
from .credit_account import CreditAccount, CreditKind
from .credit_transaction import (
    CreditTransaction,
    TransactionKind,
    TransactionStatus,
    TERMINAL_STATUSES,
    is_legal_transition,
)
from .agent import AgentRegistration
from .errors import LedgerErrorCode

__all__ = [
    "BaseModel",
    "utcnow",
    "as_utc",
    "UTCTimestamp",
    "CreditAccount",
    "CreditKind",
    "CreditTransaction",
    "TransactionKind",
    "TransactionStatus",
    "TERMINAL_STATUSES",
    "is_legal_transition",
    "AgentRegistration",
    "LedgerErrorCode",
]
