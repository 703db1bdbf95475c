"""
List History Use Case

Filtered transaction history, newest first.
"""
from typing import Optional
from libs.result import Result, Return
from src.app.repositories.credit_transaction_repository import (
    CreditTransactionRepository,
    TransactionFilter,
)
from .dtos import HistoryFilterDTO, ListHistoryResponseDTO, TransactionDTO


class ListHistory:
    """
    Use case: View credit transaction history

    Read-only. Results are ordered by timestamp descending, ties broken by
    descending sequence id. text_search matches agent_id, operation_label
    and both transfer endpoints case-insensitively.
    """

    def __init__(self, transaction_repo: CreditTransactionRepository):
        self.transaction_repo = transaction_repo

    async def execute(
        self, history_filter: HistoryFilterDTO, limit: Optional[int] = 50, offset: int = 0
    ) -> Result[ListHistoryResponseDTO]:
        """
        List transactions matching a filter

        Args:
            history_filter: Filter fields; unset fields match everything
            limit: Maximum number of transactions to return (None = all)
            offset: Number of transactions to skip

        Returns:
            Result[ListHistoryResponseDTO]: Page of transactions plus total match count
        """
        transactions, total = await self.transaction_repo.find(
            TransactionFilter(
                owner_id=history_filter.owner_id,
                credit_kind=history_filter.credit_kind,
                kind=history_filter.kind,
                status=history_filter.status,
                text_search=history_filter.text_search or None,
                date_from=history_filter.date_from,
                date_to=history_filter.date_to,
            ),
            limit=limit,
            offset=offset,
        )

        return Return.ok(
            ListHistoryResponseDTO(
                transactions=[TransactionDTO.from_entity(txn) for txn in transactions],
                total=total,
                limit=limit,
                offset=offset,
            )
        )
