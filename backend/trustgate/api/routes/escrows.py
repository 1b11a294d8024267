"""Escrow Routes — open escrows, apply trigger events, read effective status.

Invariants:
    - GET returns the effective status (lazy deadline applied, written through)
    - Invalid transitions answer 409 INVALID_ESCROW_TRANSITION; nothing is stored
    - Fee and net amount are computed on every response, never read from storage
    - Listing reports effective statuses; held_total ignores the status filter
"""

from fastapi import APIRouter, Depends, Query, status

from trustgate.api.dependencies import get_escrow_service
from trustgate.core.domain_types import EscrowStatus
from trustgate.schemas.escrow import (
    EscrowCreate, EscrowEventRequest, EscrowListResponse, EscrowResponse,
    PayoutResponse,
)
from trustgate.services.escrow_service import EscrowService

router = APIRouter(prefix="/api/v1/escrows", tags=["escrows"])


@router.post(
    "", response_model=EscrowResponse, status_code=status.HTTP_201_CREATED,
)
async def create_escrow(
    body: EscrowCreate, service: EscrowService = Depends(get_escrow_service),
):
    tx = await service.create(
        amount=body.amount,
        counterparty_ref=body.counterparty_ref,
        payer_ref=body.payer_ref,
        resource_ref=body.resource_ref,
    )
    return EscrowResponse.from_transaction(tx)


@router.get("", response_model=EscrowListResponse)
async def list_escrows(
    party_ref: str = Query(..., min_length=1, max_length=100),
    status_filter: EscrowStatus | None = Query(None, alias="status"),
    service: EscrowService = Depends(get_escrow_service),
):
    """Escrows where party_ref is payer or counterparty, newest first."""
    escrows, held = await service.list_for_party(party_ref, status_filter)
    return EscrowListResponse(
        party_ref=party_ref,
        escrows=[EscrowResponse.from_transaction(tx) for tx in escrows],
        held_total=held,
    )


@router.get("/{escrow_id}", response_model=EscrowResponse)
async def get_escrow(
    escrow_id: str, service: EscrowService = Depends(get_escrow_service),
):
    return EscrowResponse.from_transaction(await service.get(escrow_id))


@router.post("/{escrow_id}/events", response_model=EscrowResponse)
async def apply_escrow_event(
    escrow_id: str,
    body: EscrowEventRequest,
    service: EscrowService = Depends(get_escrow_service),
):
    tx = await service.apply(escrow_id, body.event, body.release_deadline)
    return EscrowResponse.from_transaction(tx)


@router.get("/{escrow_id}/payout", response_model=PayoutResponse)
async def escrow_payout(
    escrow_id: str, service: EscrowService = Depends(get_escrow_service),
):
    return PayoutResponse.from_split(await service.payout(escrow_id))
