"""Credit Transaction Repository Interface

Defines the contract for the append-only transaction log.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import AsyncIterator, Callable, Optional, Sequence
from src.domain.credit_account import CreditKind
from src.domain.credit_transaction import CreditTransaction, TransactionKind, TransactionStatus


@dataclass
class TransactionFilter:
    """History filter; every unset field matches everything"""
    owner_id: Optional[str] = None
    credit_kind: Optional[CreditKind] = None
    kind: Optional[TransactionKind] = None
    status: Optional[TransactionStatus] = None
    text_search: Optional[str] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None


class CreditTransactionRepository(ABC):
    """
    Repository interface for the CreditTransaction log

    Transactions are append-only. The only permitted write after append
    is a single status transition out of pending (see transition()).
    """

    @abstractmethod
    async def append(self, transaction: CreditTransaction) -> CreditTransaction:
        """
        Append a transaction to the log

        Args:
            transaction: CreditTransaction to persist (id not yet assigned)

        Returns:
            The persisted transaction with its sequence id assigned

        Raises:
            IntegrityError: If external_tx_hash already exists
        """
        pass

    @abstractmethod
    async def append_many(self, transactions: Sequence[CreditTransaction]) -> list[CreditTransaction]:
        """
        Append several transactions in insertion order within the current unit of work

        Used for the two legs of a transfer, which must become visible together.
        """
        pass

    @abstractmethod
    async def save(self, transaction: CreditTransaction) -> CreditTransaction:
        """Persist bookkeeping fields (transfer_group_id) of rows appended in the current unit of work"""
        pass

    @abstractmethod
    async def transition(
        self,
        transaction: CreditTransaction,
        expected: TransactionStatus,
        **values,
    ) -> bool:
        """
        Guarded status write

        Applies values only while the stored row still has the expected
        status, so two writers racing on one pending transaction cannot both
        move it out of pending.

        Returns:
            True if the row was updated (transaction is refreshed), False if
            another writer changed its status first
        """
        pass

    @abstractmethod
    async def get_by_id(self, transaction_id: int, for_update: bool = False) -> Optional[CreditTransaction]:
        """
        Args:
            transaction_id: Sequence id
            for_update: If True, lock the row with SELECT FOR UPDATE
        """
        pass

    @abstractmethod
    async def get_by_external_tx_hash(self, external_tx_hash: str) -> Optional[CreditTransaction]:
        """
        Retrieve transaction by on-chain hash

        Used to reject re-submission of an already recorded purchase.
        """
        pass

    @abstractmethod
    async def get_last(self) -> Optional[CreditTransaction]:
        """Return the transaction with the highest sequence id, if any"""
        pass

    @abstractmethod
    def scan(
        self,
        predicate: Optional[Callable[[CreditTransaction], bool]] = None,
        from_id: int = 1,
        batch_size: int = 500,
    ) -> AsyncIterator[CreditTransaction]:
        """
        Lazily iterate the log in ascending id order

        Each call starts a fresh pass from from_id. Rows are fetched in
        batches of batch_size so the whole log never sits in memory.

        Args:
            predicate: Optional filter applied to every row
            from_id: First sequence id to include
            batch_size: Rows fetched per round trip
        """
        pass

    @abstractmethod
    async def sum_pending_debits(self, owner_id: str, credit_kind: CreditKind) -> int:
        """
        Sum of negative amounts of pending transactions on an account

        Returns:
            A value <= 0 (0 when nothing is pending)
        """
        pass

    @abstractmethod
    async def find(
        self,
        criteria: TransactionFilter,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> tuple[list[CreditTransaction], int]:
        """
        Filtered history, newest first by timestamp then by descending id

        Args:
            criteria: TransactionFilter
            limit: Maximum rows to return (None = all)
            offset: Rows to skip

        Returns:
            Tuple of (transactions, total matching count)
        """
        pass

    @abstractmethod
    async def list_pending(
        self,
        kind: Optional[TransactionKind] = None,
        older_than: Optional[datetime] = None,
    ) -> list[CreditTransaction]:
        """Pending transactions, optionally of one kind and admitted before older_than"""
        pass
