"""Get Transaction Use Case

Point lookup used by callers polling for a pending -> terminal transition.
"""

from libs.result import Result, Return, Error
from src.app.repositories.credit_transaction_repository import CreditTransactionRepository
from src.domain.errors import LedgerErrorCode
from .dtos import TransactionDTO


class GetTransaction:

    def __init__(self, transaction_repo: CreditTransactionRepository):
        self.transaction_repo = transaction_repo

    async def execute(self, transaction_id: int) -> Result[TransactionDTO]:
        transaction = await self.transaction_repo.get_by_id(transaction_id)
        if transaction is None:
            return Return.err(
                Error(
                    code=LedgerErrorCode.TRANSACTION_NOT_FOUND.value,
                    message=f"Transaction {transaction_id} not found",
                )
            )
        return Return.ok(TransactionDTO.from_entity(transaction))
