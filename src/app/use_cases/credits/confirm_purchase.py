"""ConfirmPurchase Use Case

Called by the chain layer once a purchase transaction is mined. Promotes
the pending purchase to completed and credits the owner's account.
"""

from typing import Optional
from libs.result import Result, Error
from src.domain.credit_transaction import CreditTransaction, TransactionKind, TransactionStatus
from src.domain.errors import LedgerErrorCode
from .dtos import ConfirmPurchaseCommandDTO, TransactionDTO
from .transition import TransitionTransaction


class ConfirmPurchase(TransitionTransaction):
    """
    Use Case: Confirm a pending purchase

    Business Rules:
    1. Only a pending purchase can be confirmed, and only once
    2. If the purchase was submitted with a hash, the confirmation must carry the same hash
    3. A hash already recorded on another transaction is rejected (no double credit)
    4. Status change and balance credit are committed together
    """

    kind = TransactionKind.PURCHASE
    target = TransactionStatus.COMPLETED

    async def execute(self, command: ConfirmPurchaseCommandDTO) -> Result[TransactionDTO]:
        return await self._transition(
            command.transaction_id, external_tx_hash=command.external_tx_hash
        )

    async def _prepare(
        self, transaction: CreditTransaction, changes: dict, external_tx_hash: str = None, **fields
    ) -> Optional[Error]:
        if transaction.external_tx_hash:
            if transaction.external_tx_hash != external_tx_hash:
                return Error(
                    code=LedgerErrorCode.EXTERNAL_TX_MISMATCH.value,
                    message=f"Transaction {transaction.id} was submitted with a different external hash",
                    reason=f"expected={transaction.external_tx_hash}, received={external_tx_hash}",
                )
            return None

        existing = await self.transaction_repo.get_by_external_tx_hash(external_tx_hash)
        if existing is not None and existing.id != transaction.id:
            return Error(
                code=LedgerErrorCode.DUPLICATE_EXTERNAL_TX.value,
                message=f"External transaction {external_tx_hash} already recorded",
                reason=f"existing_transaction_id={existing.id}",
            )

        changes["external_tx_hash"] = external_tx_hash
        return None
