"""SQLAlchemy implementation of CreditAccountRepository

Provides persistence for the derived balance table with pessimistic locking
support so concurrent writers never interleave on one account.
"""

from typing import Optional
from sqlalchemy import update
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.credit_account_repository import CreditAccountRepository
from src.domain.base import utcnow
from src.domain.credit_account import CreditAccount, CreditKind


class SqlAlchemyCreditAccountRepository(CreditAccountRepository):
    """
    SQLAlchemy implementation of CreditAccountRepository

    Features:
    - Pessimistic locking via SELECT FOR UPDATE (ignored by SQLite)
    - Lazy account creation on first reference
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(
        self, owner_id: str, credit_kind: CreditKind, for_update: bool = False
    ) -> Optional[CreditAccount]:
        stmt = select(CreditAccount).where(
            CreditAccount.owner_id == owner_id,
            CreditAccount.credit_kind == credit_kind,
        )

        if for_update:
            stmt = stmt.with_for_update()

        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_or_create(
        self, owner_id: str, credit_kind: CreditKind, for_update: bool = False
    ) -> CreditAccount:
        account = await self.get(owner_id, credit_kind, for_update=for_update)
        if account:
            return account

        account = CreditAccount(owner_id=owner_id, credit_kind=credit_kind, balance=0)
        self.session.add(account)
        await self.session.flush()
        await self.session.refresh(account)
        return account

    async def list_by_owner(self, owner_id: str) -> list[CreditAccount]:
        stmt = (
            select(CreditAccount)
            .where(CreditAccount.owner_id == owner_id)
            .order_by(CreditAccount.credit_kind)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_all(self, for_update: bool = False) -> list[CreditAccount]:
        stmt = select(CreditAccount).order_by(CreditAccount.id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def update_balance(self, account: CreditAccount, new_balance: int) -> None:
        account.balance = new_balance
        account.updated_at = utcnow()
        self.session.add(account)
        await self.session.flush()

    async def adjust_balance(self, account: CreditAccount, delta: int) -> None:
        stmt = (
            update(CreditAccount)
            .where(CreditAccount.id == account.id)
            .values(balance=CreditAccount.balance + delta, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(stmt)
        await self.session.refresh(account)
