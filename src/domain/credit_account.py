"""Credit Account Domain Entity

Holds the projected balance of one credit kind for one owner. Accounts are
created lazily by the first transaction that references them and are never
deleted, only zeroed.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from sqlmodel import Field, Column
from sqlalchemy import BigInteger, CheckConstraint, Integer, UniqueConstraint
from src.domain.base import BaseModel, UTCTimestamp, utcnow


class CreditKind(str, Enum):
    """Fungible resource types tracked by the ledger"""
    COMPUTE = "compute"
    STORAGE = "storage"


class CreditAccount(BaseModel, table=True):
    """
    Credit Account - derived balance row keyed by (owner_id, credit_kind)

    Domain Rules:
    - One account per owner and credit kind
    - Balance must be non-negative
    - Balance equals the sum of completed transaction amounts for the account
    - Balance is only written by the BalanceProjector
    """

    __tablename__ = "credit_accounts"
    __table_args__ = (
        UniqueConstraint("owner_id", "credit_kind", name="uq_credit_accounts_owner_kind"),
        CheckConstraint("balance >= 0", name="balance_non_negative"),
    )

    id: Optional[int] = Field(
        default=None,
        sa_column=Column(
            BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True
        ),
        description="Unique account identifier (auto-increment)"
    )

    owner_id: str = Field(
        index=True,
        description="Wallet address or user id that holds the balance"
    )

    credit_kind: CreditKind = Field(
        description="Credit kind held by this account"
    )

    balance: int = Field(
        default=0,
        description="Current completed balance (never negative)"
    )

    created_at: datetime = Field(
        default_factory=utcnow,
        sa_type=UTCTimestamp,
        description="Account creation timestamp"
    )

    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_type=UTCTimestamp,
        description="Last balance update timestamp"
    )

    @property
    def key(self) -> tuple[str, CreditKind]:
        return (self.owner_id, self.credit_kind)
