"""SubmitTransaction Use Case

Admits a purchase, usage or transfer to the credit ledger: validates it,
appends it to the log, projects completed legs onto balances and commits,
all under the ledger write lock.
"""

import logging
from datetime import datetime
from typing import Callable, Optional
from sqlalchemy.exc import IntegrityError
from libs.result import Result, Return, Error
from src.app.repositories.agent_repository import AgentRepository
from src.app.repositories.credit_account_repository import CreditAccountRepository
from src.app.repositories.credit_transaction_repository import CreditTransactionRepository
from src.app.services.balance_projector import BalanceProjector, NegativeBalanceError
from src.app.services.event_publisher import TransactionEventPublisher
from src.app.services.transaction_validator import TransactionCandidate, TransactionValidator
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.write_lock import LedgerWriteLock
from src.domain.base import utcnow
from src.domain.credit_transaction import CreditTransaction, TransactionKind, TransactionStatus
from src.domain.errors import LedgerErrorCode
from .dtos import SubmitTransactionCommandDTO, SubmitTransactionResponseDTO, TransactionDTO

logger = logging.getLogger(__name__)


def is_duplicate_hash_error(e: IntegrityError) -> bool:
    """True when the violated constraint is the unique index on external_tx_hash"""
    return "external_tx_hash" in str(e.orig)


class SubmitTransaction:
    """
    Use Case: Admit a transaction to the ledger

    Business Rules:
    1. Validation happens before anything is written (see TransactionValidator)
    2. Purchases are admitted pending and wait for external confirmation
    3. Usage and transfers complete immediately, unless usage is a hold
    4. A transfer is appended as a debit leg and a credit leg in one commit
    5. Every submission either returns an id or a synchronous error

    Flow:
    1. Acquire the ledger write lock
    2. Validate candidate against projected balances
    3. Assign a monotonic timestamp and append leg(s)
    4. Apply completed legs to balances
    5. Commit, then publish the event
    """

    def __init__(
        self,
        uow: UnitOfWork,
        account_repo: CreditAccountRepository,
        transaction_repo: CreditTransactionRepository,
        agent_repo: AgentRepository,
        write_lock: LedgerWriteLock,
        publisher: Optional[TransactionEventPublisher] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.uow = uow
        self.transaction_repo = transaction_repo
        self.write_lock = write_lock
        self.publisher = publisher
        self.validator = TransactionValidator(account_repo, transaction_repo, agent_repo, clock=clock)
        self.projector = BalanceProjector(account_repo, transaction_repo)

    async def execute(self, command: SubmitTransactionCommandDTO) -> Result[SubmitTransactionResponseDTO]:
        """
        Submit a transaction candidate

        Args:
            command: SubmitTransactionCommandDTO

        Returns:
            Result[SubmitTransactionResponseDTO]: admitted transaction(s) or a validation error
        """
        candidate = command.to_candidate()

        try:
            async with self.write_lock:
                # Step 1: Validate against the projected balance
                error = await self.validator.validate(candidate)
                if error:
                    await self.uow.rollback()
                    return Return.err(error)

                # Step 2: Append to the log
                timestamp = await self.validator.next_timestamp()
                transactions = await self._append(candidate, timestamp)

                # Step 3: Project completed legs (both transfer legs together)
                completed = [t for t in transactions if t.status == TransactionStatus.COMPLETED]
                if completed:
                    await self.projector.apply(*completed)

                # Step 4: Commit
                await self.uow.commit()

        except NegativeBalanceError as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code=LedgerErrorCode.INSUFFICIENT_BALANCE.value,
                    message="Transaction would drive the balance below zero",
                    reason=str(e),
                )
            )
        except IntegrityError as e:
            await self.uow.rollback()
            if candidate.external_tx_hash and is_duplicate_hash_error(e):
                return Return.err(
                    Error(
                        code=LedgerErrorCode.DUPLICATE_EXTERNAL_TX.value,
                        message=f"External transaction {candidate.external_tx_hash} already recorded",
                        reason=str(e.orig),
                    )
                )
            return self._storage_failure(e)
        except Exception as e:
            await self.uow.rollback()
            return self._storage_failure(e)

        head = transactions[0]
        logger.info(
            f"Admitted {head.kind.value} #{head.id} for owner {head.owner_id}: "
            f"{head.amount} {head.credit_kind.value} ({head.status.value})"
        )
        await self._publish(transactions)

        return Return.ok(
            SubmitTransactionResponseDTO(
                transaction_id=head.id,
                status=head.status,
                transactions=[TransactionDTO.from_entity(t) for t in transactions],
            )
        )

    async def _append(self, candidate: TransactionCandidate, timestamp: datetime) -> list[CreditTransaction]:
        if candidate.kind == TransactionKind.TRANSFER:
            return await self._append_transfer(candidate, timestamp)

        if candidate.kind == TransactionKind.PURCHASE:
            status = TransactionStatus.PENDING
        elif candidate.hold:
            status = TransactionStatus.PENDING
        else:
            status = TransactionStatus.COMPLETED

        transaction = CreditTransaction(
            owner_id=candidate.owner_id,
            kind=candidate.kind,
            credit_kind=candidate.credit_kind,
            amount=candidate.amount,
            status=status,
            timestamp=timestamp,
            cost_in_native_currency=candidate.cost_in_native_currency,
            external_tx_hash=candidate.external_tx_hash,
            agent_id=candidate.agent_id,
            operation_label=candidate.operation_label,
            settled_at=timestamp if status == TransactionStatus.COMPLETED else None,
        )
        return [await self.transaction_repo.append(transaction)]

    async def _append_transfer(self, candidate: TransactionCandidate, timestamp: datetime) -> list[CreditTransaction]:
        magnitude = abs(candidate.amount)
        legs = [
            CreditTransaction(
                owner_id=candidate.owner_id,
                kind=TransactionKind.TRANSFER,
                credit_kind=candidate.credit_kind,
                amount=signed,
                status=TransactionStatus.COMPLETED,
                timestamp=timestamp,
                from_agent_id=candidate.from_agent_id,
                to_agent_id=candidate.to_agent_id,
                settled_at=timestamp,
            )
            for signed in (-magnitude, magnitude)
        ]
        debit, credit = await self.transaction_repo.append_many(legs)

        for leg in (debit, credit):
            leg.transfer_group_id = debit.id
            await self.transaction_repo.save(leg)
        return [debit, credit]

    async def _publish(self, transactions: list[CreditTransaction]) -> None:
        if self.publisher is None:
            return
        for transaction in transactions:
            event_type = (
                "transaction.completed"
                if transaction.status == TransactionStatus.COMPLETED
                else "transaction.admitted"
            )
            await self.publisher.publish(event_type, transaction)

    @staticmethod
    def _storage_failure(e: Exception) -> Result:
        logger.error(f"Failed to submit transaction: {e}")
        return Return.err(
            Error(
                code=LedgerErrorCode.STORAGE_FAILURE.value,
                message="Failed to submit transaction",
                reason=str(e),
            )
        )
