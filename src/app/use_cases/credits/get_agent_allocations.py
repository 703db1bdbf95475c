"""
Get Agent Allocations Use Case

Per-agent split of an owner's credits, with a runway projection.
"""
from datetime import datetime, timedelta
from typing import Callable, Optional
from libs.result import Result, Return
from src.app.repositories.agent_repository import AgentRepository
from src.app.repositories.credit_transaction_repository import CreditTransactionRepository
from src.domain.base import utcnow
from src.domain.credit_account import CreditKind
from src.domain.credit_transaction import TransactionKind, TransactionStatus
from .dtos import AgentAllocationDTO, AgentAllocationsDTO, HistoryFilterDTO, TransactionDTO
from .list_history import ListHistory

DEFAULT_LOOKBACK_DAYS = 7


class GetAgentAllocations:
    """
    Use case: Credit allocation per agent

    Folds the owner's completed history:
    - transfer debit legs count against from_agent_id, credit legs for to_agent_id
    - usage counts against agent_id, and towards *_used when inside the lookback window
    - purchases fund the owner's pool and belong to no agent

    Runway per credit kind is allocation * lookback_days // used_in_window,
    floored at zero; the agent's runway is the shortest of its kinds.
    Every registered agent is listed, plus unregistered agents that appear in
    the history. Read-only.
    """

    def __init__(
        self,
        transaction_repo: CreditTransactionRepository,
        agent_repo: AgentRepository,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.history = ListHistory(transaction_repo)
        self.agent_repo = agent_repo
        self.clock = clock

    async def execute(self, owner_id: str, lookback_days: int = DEFAULT_LOOKBACK_DAYS) -> Result[AgentAllocationsDTO]:
        """
        Args:
            owner_id: Owner whose agents are listed
            lookback_days: Usage window for the runway rate (>= 1)
        """
        as_of = self.clock()
        window_start = as_of - timedelta(days=lookback_days)

        allocations: dict[str, AgentAllocationDTO] = {
            agent.agent_id: AgentAllocationDTO(agent_id=agent.agent_id)
            for agent in await self.agent_repo.list_by_owner(owner_id)
        }

        history = await self.history.execute(
            HistoryFilterDTO(owner_id=owner_id, status=TransactionStatus.COMPLETED),
            limit=None,
        )
        for txn in history.value.transactions:
            self._fold(allocations, txn, window_start)

        for allocation in allocations.values():
            self._project(allocation, lookback_days)

        return Return.ok(
            AgentAllocationsDTO(
                owner_id=owner_id,
                lookback_days=lookback_days,
                as_of=as_of,
                agents=sorted(allocations.values(), key=lambda a: a.agent_id),
            )
        )

    @staticmethod
    def _fold(allocations: dict[str, AgentAllocationDTO], txn: TransactionDTO, window_start: datetime) -> None:
        if txn.kind == TransactionKind.TRANSFER:
            agent_id = txn.from_agent_id if txn.amount < 0 else txn.to_agent_id
        elif txn.kind == TransactionKind.USAGE:
            agent_id = txn.agent_id
        else:
            return
        if not agent_id:
            return

        allocation = allocations.get(agent_id)
        if allocation is None:
            allocation = allocations[agent_id] = AgentAllocationDTO(agent_id=agent_id, registered=False)

        field = "compute" if txn.credit_kind == CreditKind.COMPUTE else "storage"
        setattr(allocation, field, getattr(allocation, field) + txn.amount)

        if txn.kind == TransactionKind.USAGE and txn.timestamp >= window_start:
            used = f"{field}_used"
            setattr(allocation, used, getattr(allocation, used) + abs(txn.amount))

    @staticmethod
    def _runway(held: int, used: int, lookback_days: int) -> Optional[int]:
        if used <= 0:
            return None
        return max(held, 0) * lookback_days // used

    def _project(self, allocation: AgentAllocationDTO, lookback_days: int) -> None:
        allocation.compute_runway_days = self._runway(allocation.compute, allocation.compute_used, lookback_days)
        allocation.storage_runway_days = self._runway(allocation.storage, allocation.storage_used, lookback_days)
        runways = [
            days
            for days in (allocation.compute_runway_days, allocation.storage_runway_days)
            if days is not None
        ]
        allocation.runway_days = min(runways) if runways else None
