"""Transaction Event Publisher Interface

Defines the contract for announcing transaction status changes to
subscribers (UI, chain layer, agent runtime).
"""

from abc import ABC, abstractmethod
from src.domain.credit_transaction import CreditTransaction


class TransactionEventPublisher(ABC):
    """
    Abstract publisher for committed transaction events

    Implementations can deliver events via:
    - Application log
    - Webhook (HTTP POST)
    - Several channels at once
    """

    @abstractmethod
    async def publish(self, event_type: str, transaction: CreditTransaction) -> bool:
        """
        Publish an event about a committed transaction

        Args:
            event_type: "transaction.admitted", "transaction.completed" or "transaction.failed"
            transaction: The transaction as committed

        Returns:
            True if delivered, False otherwise (never raises)
        """
        pass
