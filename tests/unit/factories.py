"""Builders shared by unit tests"""

from datetime import datetime, timezone

from src.domain.credit_account import CreditKind
from src.domain.credit_transaction import CreditTransaction, TransactionKind, TransactionStatus

OWNER = "0xowner"
NOW = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_transaction(**overrides) -> CreditTransaction:
    """CreditTransaction with defaults for a completed compute purchase"""
    fields = dict(
        id=1,
        owner_id=OWNER,
        kind=TransactionKind.PURCHASE,
        credit_kind=CreditKind.COMPUTE,
        amount=100,
        status=TransactionStatus.COMPLETED,
        timestamp=NOW,
    )
    fields.update(overrides)
    return CreditTransaction(**fields)


def make_scan(transactions):
    """Stand-in for CreditTransactionRepository.scan over an in-memory log"""

    async def scan(predicate=None, from_id=1, batch_size=500):
        for transaction in sorted(transactions, key=lambda t: t.id):
            if transaction.id >= from_id and (predicate is None or predicate(transaction)):
                yield transaction

    return scan
