from .unit_of_work import UnitOfWork
from .write_lock import LedgerWriteLock
from .event_publisher import TransactionEventPublisher
from .transaction_validator import TransactionValidator, TransactionCandidate
from .balance_projector import BalanceProjector, NegativeBalanceError, balance_deltas, fold_balances

__all__ = [
    "UnitOfWork",
    "LedgerWriteLock",
    "TransactionEventPublisher",
    "TransactionValidator",
    "TransactionCandidate",
    "BalanceProjector",
    "NegativeBalanceError",
    "balance_deltas",
    "fold_balances",
]
