"""BillUsage Use Case

Entry point for the agent execution layer: charges an agent operation to
its owner's credit account.
"""

from datetime import datetime
from typing import Callable, Optional
from libs.result import Result
from src.app.repositories.agent_repository import AgentRepository
from src.app.repositories.credit_account_repository import CreditAccountRepository
from src.app.repositories.credit_transaction_repository import CreditTransactionRepository
from src.app.services.event_publisher import TransactionEventPublisher
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.write_lock import LedgerWriteLock
from src.domain.base import utcnow
from src.domain.credit_transaction import TransactionKind
from .dtos import BillUsageCommandDTO, SubmitTransactionCommandDTO, SubmitTransactionResponseDTO
from .submit_transaction import SubmitTransaction


class BillUsage:
    """
    Use Case: Bill an agent operation

    The caller passes the number of credits consumed; it is submitted as a
    usage with a negative amount. An INSUFFICIENT_BALANCE error means the
    operation must be declined.

    With hold=True the usage is admitted pending, reserving the credits
    until SettleUsage or ReleaseUsage is called.
    """

    def __init__(
        self,
        uow: UnitOfWork,
        account_repo: CreditAccountRepository,
        transaction_repo: CreditTransactionRepository,
        agent_repo: AgentRepository,
        write_lock: LedgerWriteLock,
        publisher: Optional[TransactionEventPublisher] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.submit = SubmitTransaction(
            uow, account_repo, transaction_repo, agent_repo, write_lock,
            publisher=publisher, clock=clock,
        )

    async def execute(self, command: BillUsageCommandDTO) -> Result[SubmitTransactionResponseDTO]:
        return await self.submit.execute(
            SubmitTransactionCommandDTO(
                owner_id=command.owner_id,
                kind=TransactionKind.USAGE,
                credit_kind=command.credit_kind,
                amount=-command.amount,
                agent_id=command.agent_id,
                operation_label=command.operation_label,
                hold=command.hold,
            )
        )
