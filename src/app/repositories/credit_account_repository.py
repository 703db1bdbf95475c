"""Credit Account Repository Interface

Defines the contract for the derived balance table.
"""

from abc import ABC, abstractmethod
from typing import Optional
from src.domain.credit_account import CreditAccount, CreditKind


class CreditAccountRepository(ABC):
    """
    Repository interface for CreditAccount persistence

    Methods accept for_update to lock the row (SELECT FOR UPDATE) on
    backends that support it.
    """

    @abstractmethod
    async def get(
        self, owner_id: str, credit_kind: CreditKind, for_update: bool = False
    ) -> Optional[CreditAccount]:
        """
        Retrieve account by owner and credit kind

        Args:
            owner_id: Owner identifier
            credit_kind: Credit kind
            for_update: If True, lock the row with SELECT FOR UPDATE

        Returns:
            CreditAccount if found, None otherwise
        """
        pass

    @abstractmethod
    async def get_or_create(
        self, owner_id: str, credit_kind: CreditKind, for_update: bool = False
    ) -> CreditAccount:
        """Retrieve the account, creating it with a zero balance on first reference"""
        pass

    @abstractmethod
    async def list_by_owner(self, owner_id: str) -> list[CreditAccount]:
        pass

    @abstractmethod
    async def get_all(self, for_update: bool = False) -> list[CreditAccount]:
        pass

    @abstractmethod
    async def adjust_balance(self, account: CreditAccount, delta: int) -> None:
        """
        Add delta to the stored balance in a single UPDATE (balance = balance + delta)

        Unlike update_balance, a write committed by another session between
        reading the account and adjusting it is kept, not overwritten.
        """
        pass

    @abstractmethod
    async def update_balance(self, account: CreditAccount, new_balance: int) -> None:
        """
        Update account balance and updated_at timestamp

        Note:
            Should be called within a unit of work holding the ledger write lock
        """
        pass
