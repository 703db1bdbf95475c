"""FailPurchase Use Case

Called by the chain layer (or a caller's timeout policy) when a purchase
will never be confirmed. This is an expected business outcome: the
transaction ends failed and no balance changes.
"""

from libs.result import Result
from src.domain.credit_transaction import TransactionKind, TransactionStatus
from .dtos import FailTransactionCommandDTO, TransactionDTO
from .transition import TransitionTransaction


class FailPurchase(TransitionTransaction):
    kind = TransactionKind.PURCHASE
    target = TransactionStatus.FAILED

    async def execute(self, command: FailTransactionCommandDTO) -> Result[TransactionDTO]:
        return await self._transition(command.transaction_id, reason=command.reason)
