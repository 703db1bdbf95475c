"""Credit Transaction Domain Entity

Immutable append-only audit trail of all credit movements.

A transaction is a tagged variant: ``kind`` selects which of the
kind-specific columns carry data. The only mutation ever applied to a stored
row is a single status transition out of ``pending``.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from sqlmodel import Field, Column, Index
from sqlalchemy import BigInteger, Integer, Numeric, String
from src.domain.base import BaseModel, UTCTimestamp, utcnow
from src.domain.credit_account import CreditKind


class TransactionKind(str, Enum):
    """Credit transaction kinds"""
    PURCHASE = "purchase"    # Credits bought on-chain (positive amount)
    USAGE = "usage"          # Credits consumed by an agent operation (negative amount)
    TRANSFER = "transfer"    # Credits moved between two agents of one owner (paired legs)


class TransactionStatus(str, Enum):
    """Lifecycle status; completed and failed are terminal"""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATUSES = frozenset({TransactionStatus.COMPLETED, TransactionStatus.FAILED})


def is_legal_transition(current: TransactionStatus, target: TransactionStatus) -> bool:
    """Only pending -> completed and pending -> failed are legal"""
    return current == TransactionStatus.PENDING and target in TERMINAL_STATUSES


class CreditTransaction(BaseModel, table=True):
    """
    Credit Transaction - one leg of a credit movement

    Domain Rules:
    - id is assigned in insertion order and is the authoritative ordering
    - timestamp is monotonically non-decreasing across the log
    - purchase: amount > 0, external_tx_hash unique once set
    - usage: amount < 0, agent_id and operation_label describe the billed work
    - transfer: stored as a debit leg (-n) and a credit leg (+n) sharing
      transfer_group_id, committed in the same database transaction
    - completed and failed rows are never modified again
    """

    __tablename__ = "credit_transactions"
    __table_args__ = (
        Index("ix_credit_transactions_timestamp", "timestamp"),
        Index("ix_credit_transactions_owner_kind", "owner_id", "credit_kind"),
        Index("ix_credit_transactions_status", "status"),
    )

    id: Optional[int] = Field(
        default=None,
        sa_column=Column(
            BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True
        ),
        description="Sequence id (auto-increment, authoritative order)"
    )

    owner_id: str = Field(
        description="Owner of the affected credit account"
    )

    kind: TransactionKind = Field(
        description="Variant tag (purchase, usage, transfer)"
    )

    credit_kind: CreditKind = Field(
        description="Credit kind moved by this transaction"
    )

    amount: int = Field(
        description="Signed credit delta applied to the owner's account once completed"
    )

    status: TransactionStatus = Field(
        default=TransactionStatus.PENDING,
        description="Lifecycle status"
    )

    timestamp: datetime = Field(
        default_factory=utcnow,
        sa_type=UTCTimestamp,
        description="Admission timestamp (non-decreasing across the log)"
    )

    # purchase
    cost_in_native_currency: Optional[Decimal] = Field(
        default=None,
        sa_column=Column(Numeric(36, 18), nullable=True),
        description="Price paid on-chain in the native currency"
    )

    external_tx_hash: Optional[str] = Field(
        default=None,
        sa_column=Column(String(132), nullable=True, unique=True),
        description="On-chain transaction hash (unique once set)"
    )

    # usage
    agent_id: Optional[str] = Field(
        default=None,
        sa_column=Column(String(255), nullable=True),
        description="Billed agent"
    )

    operation_label: Optional[str] = Field(
        default=None,
        sa_column=Column(String(255), nullable=True),
        description="Human readable operation (e.g. 'Text analysis')"
    )

    # transfer
    from_agent_id: Optional[str] = Field(
        default=None,
        sa_column=Column(String(255), nullable=True),
        description="Agent the credits are moved away from"
    )

    to_agent_id: Optional[str] = Field(
        default=None,
        sa_column=Column(String(255), nullable=True),
        description="Agent the credits are moved to"
    )

    transfer_group_id: Optional[int] = Field(
        default=None,
        sa_column=Column(BigInteger, nullable=True, index=True),
        description="Id of the debit leg, shared by both legs of a transfer"
    )

    failure_reason: Optional[str] = Field(
        default=None,
        sa_column=Column(String(500), nullable=True),
        description="Why the transaction ended in failed state"
    )

    settled_at: Optional[datetime] = Field(
        default=None,
        sa_type=UTCTimestamp,
        description="When the terminal status was reached"
    )

    @property
    def account_key(self) -> tuple[str, CreditKind]:
        return (self.owner_id, self.credit_kind)

    @property
    def is_debit(self) -> bool:
        return self.amount < 0

    def matches_text(self, term: str) -> bool:
        """Case-insensitive match on agent and operation fields; missing fields never match"""
        needle = term.lower()
        for value in (self.agent_id, self.operation_label, self.from_agent_id, self.to_agent_id):
            if value is not None and needle in value.lower():
                return True
        return False
