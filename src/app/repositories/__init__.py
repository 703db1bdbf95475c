from .credit_account_repository import CreditAccountRepository
from .credit_transaction_repository import CreditTransactionRepository, TransactionFilter
from .agent_repository import AgentRepository

__all__ = [
    "CreditAccountRepository",
    "CreditTransactionRepository",
    "TransactionFilter",
    "AgentRepository",
]
