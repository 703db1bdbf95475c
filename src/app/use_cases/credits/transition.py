"""Status transitions of pending transactions

Shared flow behind ConfirmPurchase, FailPurchase, SettleUsage and
ReleaseUsage. A transaction leaves pending exactly once, either to
completed (balances updated in the same commit) or to failed (no effect).
"""

import logging
from datetime import datetime
from typing import Callable, Optional
from sqlalchemy.exc import IntegrityError
from libs.result import Result, Return, Error
from src.app.repositories.credit_account_repository import CreditAccountRepository
from src.app.repositories.credit_transaction_repository import CreditTransactionRepository
from src.app.services.balance_projector import BalanceProjector, NegativeBalanceError
from src.app.services.event_publisher import TransactionEventPublisher
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.write_lock import LedgerWriteLock
from src.domain.base import utcnow
from src.domain.credit_transaction import (
    CreditTransaction,
    TransactionKind,
    TransactionStatus,
    is_legal_transition,
)
from src.domain.errors import LedgerErrorCode
from .dtos import TransactionDTO
from .submit_transaction import is_duplicate_hash_error

logger = logging.getLogger(__name__)


class TransitionTransaction:
    """
    Base use case for moving a pending transaction to a terminal status

    Subclasses set `kind` and `target` and may override `_prepare` to check
    kind-specific fields and add them to the guarded status write.
    """

    kind: TransactionKind
    target: TransactionStatus

    def __init__(
        self,
        uow: UnitOfWork,
        account_repo: CreditAccountRepository,
        transaction_repo: CreditTransactionRepository,
        write_lock: LedgerWriteLock,
        publisher: Optional[TransactionEventPublisher] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.uow = uow
        self.transaction_repo = transaction_repo
        self.write_lock = write_lock
        self.publisher = publisher
        self.clock = clock
        self.projector = BalanceProjector(account_repo, transaction_repo)

    async def _transition(
        self,
        transaction_id: int,
        reason: Optional[str] = None,
        **fields,
    ) -> Result[TransactionDTO]:
        try:
            async with self.write_lock:
                transaction = await self.transaction_repo.get_by_id(transaction_id, for_update=True)

                changes = {"status": self.target, "settled_at": self.clock()}
                if self.target == TransactionStatus.FAILED:
                    changes["failure_reason"] = reason

                error = self._check(transaction_id, transaction)
                if error is None:
                    error = await self._prepare(transaction, changes, **fields)
                if error is None and not await self.transaction_repo.transition(
                    transaction, TransactionStatus.PENDING, **changes
                ):
                    # Another writer (e.g. a worker process) resolved it first
                    error = self._already_resolved(transaction_id)
                if error:
                    await self.uow.rollback()
                    return Return.err(error)

                if self.target == TransactionStatus.COMPLETED:
                    await self.projector.apply(transaction)

                await self.uow.commit()

        except NegativeBalanceError as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code=LedgerErrorCode.INSUFFICIENT_BALANCE.value,
                    message=f"Completing transaction {transaction_id} would drive the balance below zero",
                    reason=str(e),
                )
            )
        except IntegrityError as e:
            await self.uow.rollback()
            if not is_duplicate_hash_error(e):
                return self._storage_failure(transaction_id, e)
            return Return.err(
                Error(
                    code=LedgerErrorCode.DUPLICATE_EXTERNAL_TX.value,
                    message=f"External transaction hash of {transaction_id} already recorded",
                    reason=str(e.orig),
                )
            )
        except Exception as e:
            await self.uow.rollback()
            return self._storage_failure(transaction_id, e)

        logger.info(
            f"Transaction #{transaction.id} ({transaction.kind.value}) -> {transaction.status.value}"
            + (f": {reason}" if reason else "")
        )
        if self.publisher is not None:
            await self.publisher.publish(f"transaction.{self.target.value}", transaction)

        return Return.ok(TransactionDTO.from_entity(transaction))

    def _check(self, transaction_id: int, transaction: Optional[CreditTransaction]) -> Optional[Error]:
        if transaction is None:
            return Error(
                code=LedgerErrorCode.TRANSACTION_NOT_FOUND.value,
                message=f"Transaction {transaction_id} not found",
            )

        if transaction.kind != self.kind:
            return Error(
                code=LedgerErrorCode.INVALID_STATE_TRANSITION.value,
                message=f"Transaction {transaction_id} is a {transaction.kind.value}, not a {self.kind.value}",
            )

        if not is_legal_transition(transaction.status, self.target):
            return Error(
                code=LedgerErrorCode.INVALID_STATE_TRANSITION.value,
                message=(
                    f"Cannot move transaction {transaction_id} from "
                    f"{transaction.status.value} to {self.target.value}"
                ),
                reason="only pending -> completed and pending -> failed are allowed",
            )
        return None

    def _storage_failure(self, transaction_id: int, e: Exception) -> Result:
        logger.error(f"Failed to move transaction {transaction_id} to {self.target.value}: {e}")
        return Return.err(
            Error(
                code=LedgerErrorCode.STORAGE_FAILURE.value,
                message=f"Failed to update transaction {transaction_id}",
                reason=str(e),
            )
        )

    @staticmethod
    def _already_resolved(transaction_id: int) -> Error:
        return Error(
            code=LedgerErrorCode.INVALID_STATE_TRANSITION.value,
            message=f"Transaction {transaction_id} is no longer pending",
            reason="status changed by a concurrent writer",
        )

    async def _prepare(self, transaction: CreditTransaction, changes: dict, **fields) -> Optional[Error]:
        """Check kind-specific fields and add them to changes; None to proceed"""
        return None
