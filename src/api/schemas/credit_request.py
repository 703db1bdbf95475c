"""Request schemas for the Credit Ledger API

Pydantic models for validating incoming HTTP requests.
"""

from typing import Optional
from pydantic import BaseModel, Field, field_validator
from src.domain.credit_account import CreditKind


class BillUsageRequestSchema(BaseModel):
    """
    Request schema for billing an agent operation

    Used for POST /credits/usage.
    """

    owner_id: str = Field(..., min_length=1, description="Owner of the credit account")
    agent_id: str = Field(..., min_length=1, description="Agent that performed the operation")
    credit_kind: CreditKind = Field(..., description="compute or storage")
    amount: int = Field(..., gt=0, description="Credits consumed (must be > 0)")
    operation_label: Optional[str] = Field(
        default=None,
        max_length=200,
        description="Human-readable operation, e.g. 'Text analysis'"
    )
    hold: bool = Field(
        default=False,
        description="Reserve the credits now and settle or release them later"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "owner_id": "0x9f2c...a1b4",
                "agent_id": "agent_7",
                "credit_kind": "compute",
                "amount": 30,
                "operation_label": "Text analysis",
            }
        }


class ConfirmPurchaseRequestSchema(BaseModel):
    """Used for POST /credits/purchases/{id}/confirm"""

    external_tx_hash: str = Field(..., min_length=1, max_length=132, description="On-chain transaction hash")

    @field_validator("external_tx_hash")
    @classmethod
    def strip_hash(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("external_tx_hash must not be blank")
        return v


class FailTransactionRequestSchema(BaseModel):
    """Used for POST /credits/purchases/{id}/fail and /credits/usage/{id}/release"""

    reason: Optional[str] = Field(default=None, max_length=500, description="Why the transaction failed")


class RegisterAgentRequestSchema(BaseModel):
    """Used for POST /agents"""

    agent_id: str = Field(..., min_length=1)
    owner_id: str = Field(..., min_length=1)
    name: Optional[str] = Field(default=None, max_length=200)
    token_id: Optional[str] = Field(default=None, description="Minted NFT token id")

    class Config:
        json_schema_extra = {
            "example": {
                "agent_id": "agent_7",
                "owner_id": "0x9f2c...a1b4",
                "name": "Research assistant",
                "token_id": "42",
            }
        }
