"""Escrow Schemas — Pydantic models for escrow API boundaries.

Invariants:
    - amount is a strict non-negative int in minor units (floats rejected, not rounded)
    - event must be one of EscrowEvent values
    - platform fee and net amount are response-only, computed from the record
"""

from datetime import datetime

from pydantic import BaseModel, Field, StrictInt

from trustgate.core.domain_types import EscrowEvent, EscrowStatus
from trustgate.core.escrow_ledger import EscrowTransaction
from trustgate.core.payout_split import PayoutSplit


class EscrowCreate(BaseModel):
    amount: StrictInt = Field(ge=0)
    counterparty_ref: str = Field(min_length=1, max_length=100)
    payer_ref: str | None = Field(None, max_length=100)
    resource_ref: str | None = Field(None, max_length=100)


class EscrowEventRequest(BaseModel):
    """Trigger from the payment gateway, a confirmation, or dispute resolution."""
    event: EscrowEvent
    release_deadline: datetime | None = None


class EscrowResponse(BaseModel):
    id: str
    transaction_ref: str | None
    amount: int
    platform_fee_bps: int
    platform_fee: int
    net_amount: int
    status: EscrowStatus
    payer_ref: str | None
    counterparty_ref: str
    resource_ref: str | None
    created_at: datetime
    release_deadline: datetime | None

    @classmethod
    def from_transaction(cls, tx: EscrowTransaction) -> "EscrowResponse":
        return cls(
            id=tx.id,
            transaction_ref=tx.transaction_ref,
            amount=tx.amount,
            platform_fee_bps=tx.platform_fee_bps,
            platform_fee=tx.platform_fee,
            net_amount=tx.net_amount,
            status=tx.status,
            payer_ref=tx.payer_ref,
            counterparty_ref=tx.counterparty_ref,
            resource_ref=tx.resource_ref,
            created_at=tx.created_at,
            release_deadline=tx.release_deadline,
        )


class EscrowListResponse(BaseModel):
    """A party's escrows (optionally filtered) and the funds currently held."""
    party_ref: str
    escrows: list[EscrowResponse]
    held_total: int


class PayoutResponse(BaseModel):
    gross: int
    platform_fee: int
    provider_share: int
    payer_refund: int
    fee_bps: int

    @classmethod
    def from_split(cls, split: PayoutSplit) -> "PayoutResponse":
        return cls(**split.__dict__)
