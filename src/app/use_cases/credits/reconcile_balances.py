"""ReconcileBalances Use Case

Compares the stored balance table against a full replay of the transaction
log, and optionally rebuilds the table from the replay.
"""

import logging
import time
from typing import Optional
from libs.result import Result, Return, Error
from src.app.repositories.credit_account_repository import CreditAccountRepository
from src.app.repositories.credit_transaction_repository import CreditTransactionRepository
from src.app.services.balance_projector import BalanceProjector
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.write_lock import LedgerWriteLock
from src.domain.base import utcnow
from src.domain.errors import LedgerErrorCode
from .dtos import AccountDiscrepancyDTO, ReconciliationResultDTO

logger = logging.getLogger(__name__)


class ReconcileBalances:
    """
    Use Case: Reconcile credit accounts against the log

    Business Rules:
    1. Expected balance of an account = replay of its completed transactions
    2. Every account present in the table or in the replay is checked
    3. Without repair the check is read-only
    4. With repair the table is overwritten from the replay under the write lock

    Flow:
    1. Acquire the write lock (so no admission lands mid-replay)
    2. Snapshot the stored balances and replay the log
    3. Record a discrepancy for every differing account
    4. If repair was requested and discrepancies exist, rebuild and commit
    """

    def __init__(
        self,
        uow: UnitOfWork,
        account_repo: CreditAccountRepository,
        transaction_repo: CreditTransactionRepository,
        write_lock: Optional[LedgerWriteLock] = None,
    ):
        self.uow = uow
        self.projector = BalanceProjector(account_repo, transaction_repo)
        self.write_lock = write_lock or LedgerWriteLock()

    async def execute(self, repair: bool = False) -> Result[ReconciliationResultDTO]:
        start_time = time.time()
        reconciliation_time = utcnow()

        try:
            logger.info("Starting credit balance reconciliation")

            async with self.write_lock:
                stored = await self.projector.snapshot()
                replayed = await self.projector.replay()

                discrepancies: list[AccountDiscrepancyDTO] = []
                keys = sorted(set(stored) | set(replayed))

                for key in keys:
                    stored_balance = stored.get(key, 0)
                    replayed_balance = replayed.get(key, 0)
                    if stored_balance != replayed_balance:
                        owner_id, credit_kind = key
                        discrepancies.append(
                            AccountDiscrepancyDTO(
                                owner_id=owner_id,
                                credit_kind=credit_kind,
                                stored_balance=stored_balance,
                                replayed_balance=replayed_balance,
                                discrepancy=stored_balance - replayed_balance,
                            )
                        )
                        logger.warning(
                            f"Discrepancy found for owner {owner_id} ({credit_kind.value}): "
                            f"stored={stored_balance}, replayed={replayed_balance}"
                        )

                repaired = False
                if repair and discrepancies:
                    await self.projector.rebuild()
                    await self.uow.commit()
                    repaired = True
                    logger.warning(f"Rebuilt {len(discrepancies)} account balances from the log")

            execution_time_ms = int((time.time() - start_time) * 1000)

            if discrepancies:
                logger.warning(
                    f"Reconciliation complete. Found {len(discrepancies)} discrepancies "
                    f"out of {len(keys)} accounts in {execution_time_ms}ms"
                )
            else:
                logger.info(
                    f"Reconciliation complete. All {len(keys)} accounts balanced "
                    f"in {execution_time_ms}ms"
                )

            return Return.ok(
                ReconciliationResultDTO(
                    total_accounts_checked=len(keys),
                    discrepancies_found=len(discrepancies),
                    discrepancies=discrepancies,
                    repaired=repaired,
                    reconciliation_time=reconciliation_time,
                    execution_time_ms=execution_time_ms,
                )
            )

        except Exception as e:
            await self.uow.rollback()
            logger.error(f"Balance reconciliation failed: {e}")
            return Return.err(
                Error(
                    code=LedgerErrorCode.STORAGE_FAILURE.value,
                    message="Failed to reconcile credit balances",
                    reason=str(e),
                )
            )
