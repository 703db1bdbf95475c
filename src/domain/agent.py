"""Agent Registration Domain Entity

Records which owner a minted agent NFT belongs to. Agents are billing labels
on the owner's credit accounts; the registry is what lets the ledger check
that both ends of a transfer belong to the same owner.
"""

from datetime import datetime
from typing import Optional
from sqlmodel import Field, Column
from sqlalchemy import BigInteger, Integer, String
from src.domain.base import BaseModel, UTCTimestamp, utcnow


class AgentRegistration(BaseModel, table=True):
    __tablename__ = "agents"

    id: Optional[int] = Field(
        default=None,
        sa_column=Column(
            BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True
        ),
    )

    agent_id: str = Field(
        unique=True,
        index=True,
        description="Agent identifier (unique across owners)"
    )

    owner_id: str = Field(
        index=True,
        description="Owner holding the agent NFT"
    )

    name: Optional[str] = Field(
        default=None,
        sa_column=Column(String(255), nullable=True),
        description="Display name (e.g. 'Research Assistant')"
    )

    token_id: Optional[str] = Field(
        default=None,
        sa_column=Column(String(128), nullable=True),
        description="Minted NFT token id"
    )

    registered_at: datetime = Field(
        default_factory=utcnow,
        sa_type=UTCTimestamp,
    )
