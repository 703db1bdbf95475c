"""Data Transfer Objects for Credit Ledger Use Cases

Pydantic models for command inputs and response outputs.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field, field_validator
from src.app.services.transaction_validator import TransactionCandidate
from src.domain.base import as_utc
from src.domain.credit_account import CreditKind
from src.domain.credit_transaction import CreditTransaction, TransactionKind, TransactionStatus


class SubmitTransactionCommandDTO(BaseModel):
    """
    Command DTO for submitting any transaction kind

    Sign convention: purchase amount > 0, usage amount < 0, transfer amount != 0
    (the magnitude moves from from_agent_id to to_agent_id).
    """

    owner_id: str = Field(..., description="Owner of the credit account")
    kind: TransactionKind = Field(..., description="purchase, usage or transfer")
    credit_kind: CreditKind = Field(..., description="compute or storage")
    amount: int = Field(..., description="Signed credit amount")

    cost_in_native_currency: Optional[Decimal] = Field(
        default=None,
        description="Purchase price in the chain's native currency"
    )
    external_tx_hash: Optional[str] = Field(
        default=None,
        description="On-chain hash, if already known at submission"
    )
    agent_id: Optional[str] = Field(default=None, description="Billed agent (usage)")
    operation_label: Optional[str] = Field(default=None, description="Billed operation (usage)")
    from_agent_id: Optional[str] = Field(default=None, description="Source agent (transfer)")
    to_agent_id: Optional[str] = Field(default=None, description="Target agent (transfer)")
    hold: bool = Field(
        default=False,
        description="Usage only: admit as a pending reservation instead of completing immediately"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "owner_id": "0x9f2c...a1b4",
                "kind": "purchase",
                "credit_kind": "storage",
                "amount": 100,
                "cost_in_native_currency": "0.00001",
                "external_tx_hash": "0xabc",
            }
        }

    def to_candidate(self) -> TransactionCandidate:
        return TransactionCandidate(
            owner_id=self.owner_id,
            kind=self.kind,
            credit_kind=self.credit_kind,
            amount=self.amount,
            cost_in_native_currency=self.cost_in_native_currency,
            external_tx_hash=self.external_tx_hash or None,
            agent_id=self.agent_id,
            operation_label=self.operation_label,
            from_agent_id=self.from_agent_id,
            to_agent_id=self.to_agent_id,
            hold=self.hold,
        )


class BillUsageCommandDTO(BaseModel):
    """
    Command DTO for billing an agent operation

    amount is the number of credits consumed; it is recorded as a negative usage.
    """

    owner_id: str = Field(..., min_length=1)
    agent_id: str = Field(..., min_length=1)
    credit_kind: CreditKind
    amount: int = Field(..., gt=0, description="Credits consumed (must be > 0)")
    operation_label: Optional[str] = Field(default=None, description="e.g. 'Text analysis'")
    hold: bool = Field(default=False, description="Reserve now, settle or release later")


class ConfirmPurchaseCommandDTO(BaseModel):
    transaction_id: int
    external_tx_hash: str = Field(..., min_length=1)


class FailTransactionCommandDTO(BaseModel):
    transaction_id: int
    reason: Optional[str] = Field(default=None, max_length=500)


class TransactionDTO(BaseModel):
    """Read model of a single log entry"""

    id: int
    owner_id: str
    kind: TransactionKind
    credit_kind: CreditKind
    amount: int
    status: TransactionStatus
    timestamp: datetime
    cost_in_native_currency: Optional[Decimal] = None
    external_tx_hash: Optional[str] = None
    agent_id: Optional[str] = None
    operation_label: Optional[str] = None
    from_agent_id: Optional[str] = None
    to_agent_id: Optional[str] = None
    transfer_group_id: Optional[int] = None
    failure_reason: Optional[str] = None
    settled_at: Optional[datetime] = None

    @classmethod
    def from_entity(cls, transaction: CreditTransaction) -> "TransactionDTO":
        return cls(
            id=transaction.id,
            owner_id=transaction.owner_id,
            kind=transaction.kind,
            credit_kind=transaction.credit_kind,
            amount=transaction.amount,
            status=transaction.status,
            timestamp=transaction.timestamp,
            cost_in_native_currency=transaction.cost_in_native_currency,
            external_tx_hash=transaction.external_tx_hash,
            agent_id=transaction.agent_id,
            operation_label=transaction.operation_label,
            from_agent_id=transaction.from_agent_id,
            to_agent_id=transaction.to_agent_id,
            transfer_group_id=transaction.transfer_group_id,
            failure_reason=transaction.failure_reason,
            settled_at=transaction.settled_at,
        )


class SubmitTransactionResponseDTO(BaseModel):
    """
    Response DTO for an admitted transaction

    transaction_id identifies the submission (the debit leg for transfers);
    transactions lists every appended leg.
    """

    transaction_id: int
    status: TransactionStatus
    transactions: list[TransactionDTO]


class HistoryFilterDTO(BaseModel):
    owner_id: Optional[str] = None
    credit_kind: Optional[CreditKind] = None
    kind: Optional[TransactionKind] = None
    status: Optional[TransactionStatus] = None
    text_search: Optional[str] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None

    @field_validator('date_from', 'date_to')
    @classmethod
    def normalize_bounds(cls, v):
        """Compare bounds in UTC whatever offset the caller used"""
        return as_utc(v)


class ListHistoryResponseDTO(BaseModel):
    transactions: list[TransactionDTO]
    total: int
    limit: Optional[int]
    offset: int


class BalanceSummaryDTO(BaseModel):
    """Current completed balances of one owner"""

    owner_id: str
    compute: int = 0
    storage: int = 0


class CreditKindTotalsDTO(BaseModel):
    purchased: int = 0
    consumed: int = 0
    transferred: int = 0


class DailyConsumptionDTO(BaseModel):
    day: date
    compute: int = 0
    storage: int = 0


class CreditAnalyticsDTO(BaseModel):
    """
    Aggregates over completed transactions of one owner in a time window

    An empty window yields zeros everywhere.
    """

    owner_id: str
    window_start: Optional[datetime] = None
    window_end: Optional[datetime] = None
    total_purchased: int = 0
    total_consumed: int = 0
    total_spent_native: Decimal = Decimal("0")
    consumption_by_agent: dict[str, int] = Field(default_factory=dict)
    distribution_by_credit_kind: dict[CreditKind, CreditKindTotalsDTO] = Field(
        default_factory=lambda: {kind: CreditKindTotalsDTO() for kind in CreditKind}
    )
    daily_consumption: list[DailyConsumptionDTO] = Field(default_factory=list)

    @field_validator('window_start', 'window_end')
    @classmethod
    def normalize_window(cls, v):
        return as_utc(v)


class AgentAllocationDTO(BaseModel):
    """
    Credits one agent holds out of its owner's pool

    compute / storage are net transfer legs into the agent minus its usage,
    so an agent that only spends from the shared pool reads negative.
    *_used counts usage within the lookback window; runway is None without any.
    """

    agent_id: str
    registered: bool = True
    compute: int = 0
    storage: int = 0
    compute_used: int = 0
    storage_used: int = 0
    compute_runway_days: Optional[int] = None
    storage_runway_days: Optional[int] = None
    runway_days: Optional[int] = Field(
        default=None,
        description="Days until the first credit kind runs out at the recent usage rate"
    )


class AgentAllocationsDTO(BaseModel):
    owner_id: str
    lookback_days: int
    as_of: datetime
    agents: list[AgentAllocationDTO] = Field(default_factory=list)


class QuoteCommandDTO(BaseModel):
    """Either a named package or explicit credit counts"""

    package: Optional[str] = Field(default=None, description="starter, pro or enterprise")
    compute_credits: int = Field(default=0, ge=0)
    storage_credits: int = Field(default=0, ge=0)


class QuoteResponseDTO(BaseModel):
    package: Optional[str] = None
    compute_credits: int
    storage_credits: int
    compute_cost: Decimal
    storage_cost: Decimal
    total_cost: Decimal


class RegisterAgentCommandDTO(BaseModel):
    agent_id: str = Field(..., min_length=1)
    owner_id: str = Field(..., min_length=1)
    name: Optional[str] = None
    token_id: Optional[str] = Field(default=None, description="Minted NFT token id")


class AgentResponseDTO(BaseModel):
    agent_id: str
    owner_id: str
    name: Optional[str] = None
    token_id: Optional[str] = None
    registered_at: datetime


class AccountDiscrepancyDTO(BaseModel):
    owner_id: str
    credit_kind: CreditKind
    stored_balance: int
    replayed_balance: int
    discrepancy: int


class ReconciliationResultDTO(BaseModel):
    total_accounts_checked: int
    discrepancies_found: int
    discrepancies: list[AccountDiscrepancyDTO]
    repaired: bool = False
    reconciliation_time: datetime
    execution_time_ms: int
