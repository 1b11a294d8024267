"""Persona Routes — authenticate, switch, unlock and reset persona sessions.

Invariants:
    - Sessions live in the PersonaRegistry; the DB copy is best-effort
    - A denied switch answers 409 INVALID_ROLE_SWITCH; the session is unchanged
    - Logout returns the guest session and drops the viewer's obfuscations
    - Persona areas are guarded by check_role_unlocked: 401 for guests, 403 while
      the persona is still locked (with its onboarding path)
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse

from trustgate.api.dependencies import get_persona_registry, get_session_store
from trustgate.core.domain_types import IdentityId, Persona, PERSONA_CATALOG
from trustgate.core.identity import Identity
from trustgate.core.visibility_gate import check_role_unlocked
from trustgate.infrastructure.repositories import SqlSessionStore
from trustgate.schemas.persona import (
    IdentityFacts, RoleChangedResponse, RoleRequest, SessionResponse, SwitchResponse,
)
from trustgate.services.persona_registry import PersonaRegistry

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/personas", tags=["personas"])


def _identity(body: IdentityFacts) -> Identity:
    return Identity(
        identity_id=IdentityId(body.identity_id),
        institution=body.institution,
        matric_number=body.matric_number,
    )


@router.get("/catalog")
async def persona_catalog():
    """Ordered persona catalog (guest is virtual and not listed)."""
    return {"personas": [p.value for p in PERSONA_CATALOG], "virtual": ["guest"]}


@router.post(
    "/sessions", response_model=SessionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def authenticate_session(
    body: IdentityFacts,
    registry: PersonaRegistry = Depends(get_persona_registry),
    store: SqlSessionStore = Depends(get_session_store),
):
    session = await registry.authenticate(_identity(body), store)
    logger.info("Session authenticated", extra={"identity_id": body.identity_id})
    return SessionResponse.from_session(session)


@router.get("/sessions/{identity_id}", response_model=SessionResponse)
async def get_session(
    identity_id: str,
    registry: PersonaRegistry = Depends(get_persona_registry),
    store: SqlSessionStore = Depends(get_session_store),
):
    return SessionResponse.from_session(await registry.get(identity_id, store))


@router.put("/sessions/{identity_id}/identity", response_model=SessionResponse)
async def refresh_identity(
    identity_id: str,
    body: IdentityFacts,
    registry: PersonaRegistry = Depends(get_persona_registry),
    store: SqlSessionStore = Depends(get_session_store),
):
    """Profile store pushes updated verification facts."""
    if body.identity_id != identity_id:
        raise HTTPException(
            status.HTTP_400_BAD_REQUEST, detail="identity_id mismatch",
        )
    session = await registry.refresh_identity(_identity(body), store)
    return SessionResponse.from_session(session)


@router.post("/sessions/{identity_id}/switch", response_model=SwitchResponse)
async def switch_persona(
    identity_id: str,
    body: RoleRequest,
    registry: PersonaRegistry = Depends(get_persona_registry),
    store: SqlSessionStore = Depends(get_session_store),
):
    session = await registry.switch(identity_id, body.role, store)
    history = registry.role_history(identity_id)
    return SwitchResponse(
        session=SessionResponse.from_session(session),
        event=RoleChangedResponse.from_event(history[-1]) if history else None,
    )


@router.post("/sessions/{identity_id}/unlock", response_model=SessionResponse)
async def unlock_persona(
    identity_id: str,
    body: RoleRequest,
    registry: PersonaRegistry = Depends(get_persona_registry),
    store: SqlSessionStore = Depends(get_session_store),
):
    """Called when a persona's onboarding completes."""
    session = await registry.unlock(identity_id, body.role, store)
    return SessionResponse.from_session(session)


@router.delete("/sessions/{identity_id}", response_model=SessionResponse)
async def logout_session(
    identity_id: str,
    registry: PersonaRegistry = Depends(get_persona_registry),
    store: SqlSessionStore = Depends(get_session_store),
):
    session = await registry.logout(identity_id, store)
    return SessionResponse.from_session(session)


@router.get("/sessions/{identity_id}/role-events")
async def role_events(
    identity_id: str,
    registry: PersonaRegistry = Depends(get_persona_registry),
):
    """Recent persona switches (activity log)."""
    return {
        "events": [
            RoleChangedResponse.from_event(e).model_dump(mode="json")
            for e in registry.role_history(identity_id)
        ],
    }


@router.get("/sessions/{identity_id}/access/{role}")
async def persona_area_access(
    identity_id: str,
    role: Persona,
    registry: PersonaRegistry = Depends(get_persona_registry),
    store: SqlSessionStore = Depends(get_session_store),
):
    """Guard for persona areas (seller, landlord, agent dashboards)."""
    session = await registry.get(identity_id, store)
    denial = check_role_unlocked(session, role)
    if denial is not None:
        code = (
            status.HTTP_401_UNAUTHORIZED if denial["error_code"] == "GUEST_SESSION"
            else status.HTTP_403_FORBIDDEN
        )
        return JSONResponse(status_code=code, content=denial)
    return {
        "status": "ok",
        "required_role": role.value,
        "active_role": session.active_role.value,
    }
