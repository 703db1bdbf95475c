"""
Get Credit Analytics Use Case

Aggregates an owner's completed transactions over a time window.
"""
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Optional
from libs.result import Result, Return
from src.app.repositories.credit_transaction_repository import CreditTransactionRepository
from src.domain.base import as_utc
from src.domain.credit_account import CreditKind
from src.domain.credit_transaction import TransactionKind, TransactionStatus
from .dtos import (
    CreditAnalyticsDTO,
    CreditKindTotalsDTO,
    DailyConsumptionDTO,
    HistoryFilterDTO,
    TransactionDTO,
)
from .list_history import ListHistory

# Longest window for which every day is listed, including days without usage
MAX_FILLED_DAYS = 366


class GetCreditAnalytics:
    """
    Use case: Credit analytics for the dashboard

    Folds the owner's completed history within [window_start, window_end]:
    - total_purchased / total_consumed
    - consumption_by_agent (usage only)
    - distribution_by_credit_kind (purchased, consumed, transferred per kind)
    - daily_consumption per credit kind
    - total_spent_native (sum of purchase costs)

    A window with no transactions returns all-zero totals, never an error.
    Pending and failed transactions are excluded.
    """

    def __init__(self, transaction_repo: CreditTransactionRepository):
        self.history = ListHistory(transaction_repo)

    async def execute(
        self,
        owner_id: str,
        window_start: Optional[datetime] = None,
        window_end: Optional[datetime] = None,
    ) -> Result[CreditAnalyticsDTO]:
        """
        Args:
            owner_id: Owner whose transactions are aggregated
            window_start: Inclusive lower bound (None = unbounded)
            window_end: Inclusive upper bound (None = unbounded)
        """
        # Daily buckets are UTC days
        window_start, window_end = as_utc(window_start), as_utc(window_end)
        history = await self.history.execute(
            HistoryFilterDTO(
                owner_id=owner_id,
                status=TransactionStatus.COMPLETED,
                date_from=window_start,
                date_to=window_end,
            ),
            limit=None,
        )

        analytics = CreditAnalyticsDTO(
            owner_id=owner_id,
            window_start=window_start,
            window_end=window_end,
        )
        daily: dict[date, dict[CreditKind, int]] = {}

        for txn in history.value.transactions:
            self._fold(analytics, daily, txn)

        analytics.daily_consumption = self._daily_series(daily, window_start, window_end)
        return Return.ok(analytics)

    @staticmethod
    def _fold(
        analytics: CreditAnalyticsDTO,
        daily: dict[date, dict[CreditKind, int]],
        txn: TransactionDTO,
    ) -> None:
        totals = analytics.distribution_by_credit_kind.setdefault(txn.credit_kind, CreditKindTotalsDTO())

        if txn.kind == TransactionKind.PURCHASE:
            analytics.total_purchased += txn.amount
            analytics.total_spent_native += txn.cost_in_native_currency or Decimal("0")
            totals.purchased += txn.amount

        elif txn.kind == TransactionKind.USAGE:
            consumed = abs(txn.amount)
            analytics.total_consumed += consumed
            totals.consumed += consumed
            agent = txn.agent_id or "unknown"
            analytics.consumption_by_agent[agent] = analytics.consumption_by_agent.get(agent, 0) + consumed
            day = daily.setdefault(txn.timestamp.date(), {})
            day[txn.credit_kind] = day.get(txn.credit_kind, 0) + consumed

        elif txn.kind == TransactionKind.TRANSFER and txn.amount > 0:
            # Count each transfer once, on its credit leg
            totals.transferred += txn.amount

    @staticmethod
    def _daily_series(
        daily: dict[date, dict[CreditKind, int]],
        window_start: Optional[datetime],
        window_end: Optional[datetime],
    ) -> list[DailyConsumptionDTO]:
        days = set(daily)
        if window_start is not None and window_end is not None:
            span = (window_end.date() - window_start.date()).days
            if 0 <= span < MAX_FILLED_DAYS:
                days.update(window_start.date() + timedelta(days=i) for i in range(span + 1))

        return [
            DailyConsumptionDTO(
                day=day,
                compute=daily.get(day, {}).get(CreditKind.COMPUTE, 0),
                storage=daily.get(day, {}).get(CreditKind.STORAGE, 0),
            )
            for day in sorted(days)
        ]
