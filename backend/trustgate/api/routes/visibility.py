"""Visibility Routes — gate decisions and resource location views.

Invariants:
    - Decisions come from core/visibility_gate at a single clock reading
    - Unknown identity ids evaluate as guest (never an error)
    - Unknown escrow ids evaluate as "no escrow" (has_escrow_payment False)
    - An escrow counts only for its payer, and for a resource only when bound to it
    - A resource without a coordinate answers 404 LOCATION_UNAVAILABLE
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query, status

from trustgate.api.dependencies import (
    get_escrow_service, get_location_service, get_persona_registry, get_session_store,
)
from trustgate.core.visibility_gate import (
    escrow_for_payer, escrow_for_resource, evaluate_visibility,
)
from trustgate.infrastructure.repositories import SqlSessionStore
from trustgate.schemas.location import CoordinateIn, MapViewResponse
from trustgate.services.escrow_service import EscrowService
from trustgate.services.location_service import LocationService
from trustgate.services.persona_registry import PersonaRegistry

router = APIRouter(prefix="/api/v1", tags=["visibility"])


@router.get("/visibility")
async def visibility_decision(
    identity_id: str | None = Query(None),
    escrow_id: str | None = Query(None),
    resource_id: str | None = Query(None),
    registry: PersonaRegistry = Depends(get_persona_registry),
    store: SqlSessionStore = Depends(get_session_store),
    escrows: EscrowService = Depends(get_escrow_service),
):
    session = await registry.get(identity_id, store)
    escrow = await escrows.find(escrow_id)
    if resource_id is not None:
        escrow = escrow_for_resource(escrow, session, resource_id)
    else:
        escrow = escrow_for_payer(escrow, session)
    decision = evaluate_visibility(
        session, escrow, now=datetime.now(timezone.utc),
    )
    return {
        "identity_id": session.identity_id,
        "active_role": session.active_role.value,
        "escrow_status": escrow.status.value if escrow else None,
        "decision": decision.as_dict(),
    }


@router.put(
    "/resources/{resource_id}/location",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def register_location(
    resource_id: str,
    body: CoordinateIn,
    locations: LocationService = Depends(get_location_service),
):
    await locations.register(resource_id, body.to_domain())


@router.get(
    "/resources/{resource_id}/location", response_model=MapViewResponse,
)
async def resource_location(
    resource_id: str,
    identity_id: str | None = Query(None),
    escrow_id: str | None = Query(None),
    zoom: int | None = Query(None, ge=0, le=22),
    registry: PersonaRegistry = Depends(get_persona_registry),
    store: SqlSessionStore = Depends(get_session_store),
    escrows: EscrowService = Depends(get_escrow_service),
    locations: LocationService = Depends(get_location_service),
):
    session = await registry.get(identity_id, store)
    escrow = await escrows.find(escrow_id)
    view = await locations.view(session, resource_id, escrow, zoom)
    return MapViewResponse.from_view(resource_id, view)
