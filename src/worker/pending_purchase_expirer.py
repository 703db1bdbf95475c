"""Pending Purchase Expiry Background Worker

Fails purchases that have waited for on-chain confirmation longer than
PENDING_PURCHASE_TIMEOUT_SECONDS. Each purchase is failed in its own
session so one bad row does not block the rest.
"""

import asyncio
import logging
import time
from datetime import timedelta
from typing import Optional
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from config import ApplicationConfig
from src.adapter.repositories.credit_account_repository import SqlAlchemyCreditAccountRepository
from src.adapter.repositories.credit_transaction_repository import SqlAlchemyCreditTransactionRepository
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.app.services.event_publisher import TransactionEventPublisher
from src.app.services.write_lock import LedgerWriteLock
from src.app.use_cases.credits import FailPurchase, FailTransactionCommandDTO
from src.domain.base import utcnow
from src.domain.credit_transaction import TransactionKind

logger = logging.getLogger(__name__)

EXPIRY_REASON = "confirmation timeout"


class ExpiryResultDTO(BaseModel):
    total_pending: int
    expired: int
    failed: int
    execution_time_ms: int


class PendingPurchaseExpirerWorker:
    """
    Background worker that expires stale pending purchases

    Usage:
        worker = PendingPurchaseExpirerWorker(timeout_seconds=3600)
        result = await worker.run_once()
    """

    def __init__(
        self,
        db_uri: Optional[str] = None,
        timeout_seconds: Optional[int] = None,
        write_lock: Optional[LedgerWriteLock] = None,
        publisher: Optional[TransactionEventPublisher] = None,
    ):
        self.db_uri = db_uri or ApplicationConfig.DB_URI
        self.timeout_seconds = timeout_seconds or ApplicationConfig.PENDING_PURCHASE_TIMEOUT_SECONDS
        self.write_lock = write_lock or LedgerWriteLock()
        self.publisher = publisher

        self.engine = create_async_engine(self.db_uri, echo=False, future=True)
        self.async_session_factory = sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
        )

        logger.info("PendingPurchaseExpirerWorker initialized")

    async def run_once(self) -> ExpiryResultDTO:
        start_time = time.time()
        cutoff = utcnow() - timedelta(seconds=self.timeout_seconds)

        async with self.async_session_factory() as session:
            transaction_repo = SqlAlchemyCreditTransactionRepository(session)
            stale = await transaction_repo.list_pending(
                kind=TransactionKind.PURCHASE, older_than=cutoff
            )
            stale_ids = [t.id for t in stale]

        logger.info(f"Found {len(stale_ids)} pending purchases older than {cutoff.isoformat()}")

        expired = 0
        failed = 0
        for transaction_id in stale_ids:
            try:
                async with self.async_session_factory() as session:
                    use_case = FailPurchase(
                        uow=SqlAlchemyUnitOfWork(session),
                        account_repo=SqlAlchemyCreditAccountRepository(session),
                        transaction_repo=SqlAlchemyCreditTransactionRepository(session),
                        write_lock=self.write_lock,
                        publisher=self.publisher,
                    )
                    result = await use_case.execute(
                        FailTransactionCommandDTO(transaction_id=transaction_id, reason=EXPIRY_REASON)
                    )

                if result.is_err():
                    # Confirmed or failed elsewhere since the scan
                    logger.warning(
                        f"Could not expire purchase #{transaction_id}: {result.error.message}"
                    )
                    failed += 1
                else:
                    expired += 1

            except Exception as e:
                logger.error(f"Unexpected error expiring purchase #{transaction_id}: {e}")
                failed += 1

        execution_time_ms = int((time.time() - start_time) * 1000)
        logger.info(
            f"Pending purchase expiry complete: {expired}/{len(stale_ids)} expired in {execution_time_ms}ms"
        )

        return ExpiryResultDTO(
            total_pending=len(stale_ids),
            expired=expired,
            failed=failed,
            execution_time_ms=execution_time_ms,
        )

    async def run_forever(self, check_interval_seconds: Optional[int] = None):
        check_interval_seconds = (
            check_interval_seconds or ApplicationConfig.PENDING_PURCHASE_CHECK_INTERVAL_SECONDS
        )
        logger.info(f"Starting pending purchase expiry with {check_interval_seconds}s interval")

        while True:
            if ApplicationConfig.PENDING_PURCHASE_EXPIRY_ENABLED:
                try:
                    await self.run_once()
                except Exception as e:
                    logger.error(f"Expiry cycle failed: {e}")
            else:
                logger.debug("Pending purchase expiry is disabled, skipping")

            await asyncio.sleep(check_interval_seconds)

    async def shutdown(self):
        await self.engine.dispose()
        logger.info("PendingPurchaseExpirerWorker shutdown complete")


async def main():
    """
    Usage:
        python -m src.worker.pending_purchase_expirer
        python -m src.worker.pending_purchase_expirer --timeout 600 --continuous
    """
    import argparse

    logging.basicConfig(
        level=ApplicationConfig.LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    parser = argparse.ArgumentParser(description="Pending Purchase Expiry Worker")
    parser.add_argument("--timeout", type=int, help="Seconds a purchase may stay pending")
    parser.add_argument("--continuous", action="store_true", help="Run continuously")
    args = parser.parse_args()

    worker = PendingPurchaseExpirerWorker(timeout_seconds=args.timeout)

    try:
        if args.continuous:
            await worker.run_forever()
        else:
            result = await worker.run_once()
            print("Expiry complete:")
            print(f"  Pending purchases: {result.total_pending}")
            print(f"  Expired: {result.expired}")
            print(f"  Failed: {result.failed}")
            print(f"  Execution time: {result.execution_time_ms}ms")
    except KeyboardInterrupt:
        logger.info("Received shutdown signal")
    finally:
        await worker.shutdown()


if __name__ == "__main__":
    asyncio.run(main())
