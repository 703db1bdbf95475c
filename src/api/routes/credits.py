"""Credit Ledger API Routes

FastAPI routes for submitting, settling and reading credit transactions.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlmodel.ext.asyncio.session import AsyncSession

from config import ApplicationConfig
from src.adapter.repositories.agent_repository import SqlAlchemyAgentRepository
from src.adapter.repositories.credit_account_repository import SqlAlchemyCreditAccountRepository
from src.adapter.repositories.credit_transaction_repository import SqlAlchemyCreditTransactionRepository
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.api.error import ClientError
from src.api.schemas.credit_request import (
    BillUsageRequestSchema,
    ConfirmPurchaseRequestSchema,
    FailTransactionRequestSchema,
)
from src.app.services.event_publisher import TransactionEventPublisher
from src.app.services.write_lock import LedgerWriteLock
from src.app.use_cases.credits import (
    BillUsage,
    ConfirmPurchase,
    FailPurchase,
    GetBalanceSummary,
    GetAgentAllocations,
    GetCreditAnalytics,
    GetTransaction,
    ListHistory,
    QuotePurchase,
    ReleaseUsage,
    SettleUsage,
    SubmitTransaction,
    AgentAllocationsDTO,
    BalanceSummaryDTO,
    BillUsageCommandDTO,
    ConfirmPurchaseCommandDTO,
    CreditAnalyticsDTO,
    DEFAULT_LOOKBACK_DAYS,
    FailTransactionCommandDTO,
    HistoryFilterDTO,
    ListHistoryResponseDTO,
    QuoteCommandDTO,
    QuoteResponseDTO,
    SubmitTransactionCommandDTO,
    SubmitTransactionResponseDTO,
    TransactionDTO,
)
from src.depends import get_publisher, get_session, get_write_lock
from src.domain.credit_account import CreditKind
from src.domain.credit_transaction import TransactionKind, TransactionStatus

router = APIRouter(prefix="/credits", tags=["Credits"])

ERROR_EXAMPLE = {
    "application/json": {
        "example": {
            "error": {
                "code": "INSUFFICIENT_BALANCE",
                "message": "Insufficient compute credits. Required: 30, Available: 10",
            }
        }
    }
}


def _raise_for(result):
    if result.is_err():
        raise ClientError.from_error(result.error)
    return result.value


def _submit_use_case(session, write_lock, publisher) -> SubmitTransaction:
    return SubmitTransaction(
        uow=SqlAlchemyUnitOfWork(session),
        account_repo=SqlAlchemyCreditAccountRepository(session),
        transaction_repo=SqlAlchemyCreditTransactionRepository(session),
        agent_repo=SqlAlchemyAgentRepository(session),
        write_lock=write_lock,
        publisher=publisher,
    )


def _transition_use_case(cls, session, write_lock, publisher):
    return cls(
        uow=SqlAlchemyUnitOfWork(session),
        account_repo=SqlAlchemyCreditAccountRepository(session),
        transaction_repo=SqlAlchemyCreditTransactionRepository(session),
        write_lock=write_lock,
        publisher=publisher,
    )


@router.post(
    "/transactions",
    response_model=SubmitTransactionResponseDTO,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Invalid transaction (sign, transfer target, missing fields)"},
        402: {"description": "Insufficient balance", "content": ERROR_EXAMPLE},
        409: {"description": "External transaction hash already recorded"},
    },
)
async def submit_transaction(
    command: SubmitTransactionCommandDTO,
    session: AsyncSession = Depends(get_session),
    write_lock: LedgerWriteLock = Depends(get_write_lock),
    publisher: TransactionEventPublisher = Depends(get_publisher),
):
    """
    Submit a purchase, usage or transfer.

    Purchases are admitted `pending` and must be confirmed once the on-chain
    transaction lands. Usage and transfers complete immediately.

    **Returns:**
    - 201: Transaction admitted
    - 400: Invalid transaction
    - 402: Insufficient balance
    - 409: Duplicate external transaction hash
    """
    use_case = _submit_use_case(session, write_lock, publisher)
    return _raise_for(await use_case.execute(command))


@router.post(
    "/usage",
    response_model=SubmitTransactionResponseDTO,
    status_code=status.HTTP_201_CREATED,
    responses={402: {"description": "Insufficient balance", "content": ERROR_EXAMPLE}},
)
async def bill_usage(
    request: BillUsageRequestSchema,
    session: AsyncSession = Depends(get_session),
    write_lock: LedgerWriteLock = Depends(get_write_lock),
    publisher: TransactionEventPublisher = Depends(get_publisher),
):
    """
    Bill credits consumed by an agent operation.

    A 402 means the operation must be declined. With `hold=true` the credits
    are reserved and must later be settled or released.
    """
    command = BillUsageCommandDTO(
        owner_id=request.owner_id,
        agent_id=request.agent_id,
        credit_kind=request.credit_kind,
        amount=request.amount,
        operation_label=request.operation_label,
        hold=request.hold,
    )

    use_case = BillUsage(
        uow=SqlAlchemyUnitOfWork(session),
        account_repo=SqlAlchemyCreditAccountRepository(session),
        transaction_repo=SqlAlchemyCreditTransactionRepository(session),
        agent_repo=SqlAlchemyAgentRepository(session),
        write_lock=write_lock,
        publisher=publisher,
    )
    return _raise_for(await use_case.execute(command))


@router.post("/purchases/{transaction_id}/confirm", response_model=TransactionDTO)
async def confirm_purchase(
    transaction_id: int,
    request: ConfirmPurchaseRequestSchema,
    session: AsyncSession = Depends(get_session),
    write_lock: LedgerWriteLock = Depends(get_write_lock),
    publisher: TransactionEventPublisher = Depends(get_publisher),
):
    """
    Confirm a pending purchase with its on-chain transaction hash.

    **Returns:**
    - 200: Purchase completed, balance credited
    - 404: Transaction not found
    - 409: Not pending, or the hash conflicts with another transaction
    """
    use_case = _transition_use_case(ConfirmPurchase, session, write_lock, publisher)
    result = await use_case.execute(
        ConfirmPurchaseCommandDTO(transaction_id=transaction_id, external_tx_hash=request.external_tx_hash)
    )
    return _raise_for(result)


@router.post("/purchases/{transaction_id}/fail", response_model=TransactionDTO)
async def fail_purchase(
    transaction_id: int,
    request: FailTransactionRequestSchema,
    session: AsyncSession = Depends(get_session),
    write_lock: LedgerWriteLock = Depends(get_write_lock),
    publisher: TransactionEventPublisher = Depends(get_publisher),
):
    """Mark a pending purchase as failed. Balances are not affected."""
    use_case = _transition_use_case(FailPurchase, session, write_lock, publisher)
    result = await use_case.execute(
        FailTransactionCommandDTO(transaction_id=transaction_id, reason=request.reason)
    )
    return _raise_for(result)


@router.post("/usage/{transaction_id}/settle", response_model=TransactionDTO)
async def settle_usage(
    transaction_id: int,
    session: AsyncSession = Depends(get_session),
    write_lock: LedgerWriteLock = Depends(get_write_lock),
    publisher: TransactionEventPublisher = Depends(get_publisher),
):
    """Complete a held usage, debiting the reserved credits."""
    use_case = _transition_use_case(SettleUsage, session, write_lock, publisher)
    return _raise_for(await use_case.execute(transaction_id))


@router.post("/usage/{transaction_id}/release", response_model=TransactionDTO)
async def release_usage(
    transaction_id: int,
    request: FailTransactionRequestSchema,
    session: AsyncSession = Depends(get_session),
    write_lock: LedgerWriteLock = Depends(get_write_lock),
    publisher: TransactionEventPublisher = Depends(get_publisher),
):
    """Fail a held usage, returning the reservation to the available balance."""
    use_case = _transition_use_case(ReleaseUsage, session, write_lock, publisher)
    result = await use_case.execute(
        FailTransactionCommandDTO(transaction_id=transaction_id, reason=request.reason)
    )
    return _raise_for(result)


@router.get("/transactions/{transaction_id}", response_model=TransactionDTO)
async def get_transaction(
    transaction_id: int,
    session: AsyncSession = Depends(get_session),
):
    """Current state of one transaction (used to poll pending purchases)."""
    use_case = GetTransaction(SqlAlchemyCreditTransactionRepository(session))
    return _raise_for(await use_case.execute(transaction_id))


@router.get("/history", response_model=ListHistoryResponseDTO)
async def list_history(
    owner_id: Optional[str] = Query(default=None),
    credit_kind: Optional[CreditKind] = Query(default=None),
    kind: Optional[TransactionKind] = Query(default=None),
    transaction_status: Optional[TransactionStatus] = Query(default=None, alias="status"),
    q: Optional[str] = Query(default=None, description="Matches agent, operation and transfer endpoints"),
    date_from: Optional[datetime] = Query(default=None),
    date_to: Optional[datetime] = Query(default=None),
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    session: AsyncSession = Depends(get_session),
):
    """
    Filtered transaction history, newest first.

    **Query parameters:** all optional; `q` is a case-insensitive substring.
    """
    history_filter = HistoryFilterDTO(
        owner_id=owner_id,
        credit_kind=credit_kind,
        kind=kind,
        status=transaction_status,
        text_search=q,
        date_from=date_from,
        date_to=date_to,
    )
    use_case = ListHistory(SqlAlchemyCreditTransactionRepository(session))
    return _raise_for(await use_case.execute(history_filter, limit=limit, offset=offset))


@router.get("/owners/{owner_id}/balance", response_model=BalanceSummaryDTO)
async def get_balance(
    owner_id: str,
    session: AsyncSession = Depends(get_session),
):
    """Completed compute and storage balances. Unknown owners read as zero."""
    use_case = GetBalanceSummary(SqlAlchemyCreditAccountRepository(session))
    return _raise_for(await use_case.execute(owner_id))


@router.get("/owners/{owner_id}/analytics", response_model=CreditAnalyticsDTO)
async def get_analytics(
    owner_id: str,
    window_start: Optional[datetime] = Query(default=None),
    window_end: Optional[datetime] = Query(default=None),
    session: AsyncSession = Depends(get_session),
):
    """Totals, per-agent consumption and daily usage over completed transactions."""
    use_case = GetCreditAnalytics(SqlAlchemyCreditTransactionRepository(session))
    return _raise_for(await use_case.execute(owner_id, window_start, window_end))


@router.get("/owners/{owner_id}/allocations", response_model=AgentAllocationsDTO)
async def get_allocations(
    owner_id: str,
    lookback_days: int = Query(default=DEFAULT_LOOKBACK_DAYS, ge=1, le=90, description="Usage window for the runway rate"),
    session: AsyncSession = Depends(get_session),
):
    """Credits each agent holds out of the owner's pool, and how many days they last at recent usage."""
    use_case = GetAgentAllocations(
        SqlAlchemyCreditTransactionRepository(session),
        SqlAlchemyAgentRepository(session),
    )
    return _raise_for(await use_case.execute(owner_id, lookback_days))


@router.post("/quote", response_model=QuoteResponseDTO)
async def quote_purchase(command: QuoteCommandDTO):
    """Native-currency cost of a package or of explicit credit counts."""
    use_case = QuotePurchase(
        prices={
            CreditKind.COMPUTE: Decimal(ApplicationConfig.COMPUTE_CREDIT_PRICE),
            CreditKind.STORAGE: Decimal(ApplicationConfig.STORAGE_CREDIT_PRICE),
        }
    )
    return _raise_for(await use_case.execute(command))
