"""SettleUsage and ReleaseUsage Use Cases

Resolve a usage admitted with hold=True. Settling completes it and debits
the reserved credits; releasing fails it and frees the reservation.
"""

from libs.result import Result
from src.domain.credit_transaction import TransactionKind, TransactionStatus
from .dtos import FailTransactionCommandDTO, TransactionDTO
from .transition import TransitionTransaction


class SettleUsage(TransitionTransaction):
    kind = TransactionKind.USAGE
    target = TransactionStatus.COMPLETED

    async def execute(self, transaction_id: int) -> Result[TransactionDTO]:
        return await self._transition(transaction_id)


class ReleaseUsage(TransitionTransaction):
    kind = TransactionKind.USAGE
    target = TransactionStatus.FAILED

    async def execute(self, command: FailTransactionCommandDTO) -> Result[TransactionDTO]:
        return await self._transition(command.transaction_id, reason=command.reason)
