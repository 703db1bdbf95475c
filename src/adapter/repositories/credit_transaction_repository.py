"""SQLAlchemy implementation of CreditTransactionRepository

Provides persistence for the append-only transaction log. Uniqueness of
on-chain hashes is backed by a unique constraint on external_tx_hash.
"""

from datetime import datetime
from typing import AsyncIterator, Callable, Optional, Sequence
from sqlalchemy import update
from sqlmodel import select, func, and_, or_
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.credit_transaction_repository import (
    CreditTransactionRepository,
    TransactionFilter,
)
from src.domain.credit_account import CreditKind
from src.domain.credit_transaction import CreditTransaction, TransactionKind, TransactionStatus


class SqlAlchemyCreditTransactionRepository(CreditTransactionRepository):
    """
    SQLAlchemy implementation of CreditTransactionRepository

    Features:
    - Append-only writes, flushed inside the caller's unit of work
    - Keyset-paginated lazy scan over the log
    - History filtering and ordering pushed down to SQL
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def append(self, transaction: CreditTransaction) -> CreditTransaction:
        """
        Append a transaction to the log

        Raises:
            IntegrityError: If external_tx_hash already exists
        """
        self.session.add(transaction)
        await self.session.flush()
        await self.session.refresh(transaction)
        return transaction

    async def append_many(self, transactions: Sequence[CreditTransaction]) -> list[CreditTransaction]:
        appended = []
        for transaction in transactions:
            self.session.add(transaction)
            # Flush one by one so ids follow list order
            await self.session.flush()
            appended.append(transaction)
        for transaction in appended:
            await self.session.refresh(transaction)
        return appended

    async def save(self, transaction: CreditTransaction) -> CreditTransaction:
        self.session.add(transaction)
        await self.session.flush()
        return transaction

    async def transition(
        self,
        transaction: CreditTransaction,
        expected: TransactionStatus,
        **values,
    ) -> bool:
        stmt = (
            update(CreditTransaction)
            .where(CreditTransaction.id == transaction.id, CreditTransaction.status == expected)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        if result.rowcount != 1:
            return False

        await self.session.refresh(transaction)
        return True

    async def get_by_id(self, transaction_id: int, for_update: bool = False) -> Optional[CreditTransaction]:
        stmt = select(CreditTransaction).where(CreditTransaction.id == transaction_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_external_tx_hash(self, external_tx_hash: str) -> Optional[CreditTransaction]:
        stmt = select(CreditTransaction).where(
            CreditTransaction.external_tx_hash == external_tx_hash
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_last(self) -> Optional[CreditTransaction]:
        stmt = select(CreditTransaction).order_by(CreditTransaction.id.desc()).limit(1)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def scan(
        self,
        predicate: Optional[Callable[[CreditTransaction], bool]] = None,
        from_id: int = 1,
        batch_size: int = 500,
    ) -> AsyncIterator[CreditTransaction]:
        cursor = from_id
        while True:
            stmt = (
                select(CreditTransaction)
                .where(CreditTransaction.id >= cursor)
                .order_by(CreditTransaction.id)
                .limit(batch_size)
            )
            result = await self.session.execute(stmt)
            batch = result.scalars().all()
            if not batch:
                return

            for transaction in batch:
                if predicate is None or predicate(transaction):
                    yield transaction

            cursor = batch[-1].id + 1

    async def sum_pending_debits(self, owner_id: str, credit_kind: CreditKind) -> int:
        stmt = select(func.coalesce(func.sum(CreditTransaction.amount), 0)).where(
            CreditTransaction.owner_id == owner_id,
            CreditTransaction.credit_kind == credit_kind,
            CreditTransaction.status == TransactionStatus.PENDING,
            CreditTransaction.amount < 0,
        )
        result = await self.session.execute(stmt)
        return int(result.scalar_one())

    async def find(
        self,
        criteria: TransactionFilter,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> tuple[list[CreditTransaction], int]:
        conditions = self._conditions(criteria)

        count_stmt = select(func.count()).select_from(CreditTransaction)
        stmt = select(CreditTransaction)
        if conditions:
            count_stmt = count_stmt.where(and_(*conditions))
            stmt = stmt.where(and_(*conditions))

        stmt = stmt.order_by(CreditTransaction.timestamp.desc(), CreditTransaction.id.desc())
        if offset:
            stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)

        total = (await self.session.execute(count_stmt)).scalar_one()
        result = await self.session.execute(stmt)
        return list(result.scalars().all()), int(total)

    async def list_pending(
        self,
        kind: Optional[TransactionKind] = None,
        older_than: Optional[datetime] = None,
    ) -> list[CreditTransaction]:
        stmt = select(CreditTransaction).where(
            CreditTransaction.status == TransactionStatus.PENDING
        )
        if kind is not None:
            stmt = stmt.where(CreditTransaction.kind == kind)
        if older_than is not None:
            stmt = stmt.where(CreditTransaction.timestamp < older_than)

        result = await self.session.execute(stmt.order_by(CreditTransaction.id))
        return list(result.scalars().all())

    @staticmethod
    def _conditions(criteria: TransactionFilter) -> list:
        conditions = []
        if criteria.owner_id is not None:
            conditions.append(CreditTransaction.owner_id == criteria.owner_id)
        if criteria.credit_kind is not None:
            conditions.append(CreditTransaction.credit_kind == criteria.credit_kind)
        if criteria.kind is not None:
            conditions.append(CreditTransaction.kind == criteria.kind)
        if criteria.status is not None:
            conditions.append(CreditTransaction.status == criteria.status)
        if criteria.date_from is not None:
            conditions.append(CreditTransaction.timestamp >= criteria.date_from)
        if criteria.date_to is not None:
            conditions.append(CreditTransaction.timestamp <= criteria.date_to)
        if criteria.text_search:
            needle = criteria.text_search.lower()
            # NULL columns yield NULL, which or_() treats as a non-match
            conditions.append(
                or_(
                    *[
                        func.lower(column).contains(needle, autoescape=True)
                        for column in (
                            CreditTransaction.agent_id,
                            CreditTransaction.operation_label,
                            CreditTransaction.from_agent_id,
                            CreditTransaction.to_agent_id,
                        )
                    ]
                )
            )
        return conditions
