"""Persona Schemas — Pydantic models for persona/session API boundaries.

Invariants:
    - identity_id: 1-100 chars, stripped, non-empty
    - Verification facts are optional strings; empty means "not provided"
    - Persona values validated by the Persona enum (guest rejected where it cannot apply)
"""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from trustgate.core.domain_types import Persona
from trustgate.core.persona_state import Session
from trustgate.core.role_events import RoleChanged


class IdentityFacts(BaseModel):
    """Verification facts forwarded from the identity/profile store."""
    identity_id: str = Field(min_length=1, max_length=100)
    institution: str = Field("", max_length=200)
    matric_number: str = Field("", max_length=100)

    @field_validator("identity_id")
    @classmethod
    def strip_identity_id(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("identity_id cannot be empty or whitespace")
        return v


class RoleRequest(BaseModel):
    role: str = Field(min_length=1, max_length=20)


class SessionResponse(BaseModel):
    identity_id: str | None
    authenticated: bool
    active_role: Persona
    unlocked_roles: list[Persona]
    is_verified_student: bool

    @classmethod
    def from_session(cls, session: Session) -> "SessionResponse":
        return cls(
            identity_id=session.identity_id,
            authenticated=session.is_authenticated,
            active_role=session.active_role,
            unlocked_roles=session.ordered_unlocked_roles,
            is_verified_student=bool(
                session.identity and session.identity.is_verified_student,
            ),
        )


class RoleChangedResponse(BaseModel):
    new_role: Persona
    from_role: Persona
    switched_at: datetime

    @classmethod
    def from_event(cls, event: RoleChanged) -> "RoleChangedResponse":
        return cls(
            new_role=event.new_role,
            from_role=event.switch.from_role,
            switched_at=event.switch.switched_at,
        )


class SwitchResponse(BaseModel):
    session: SessionResponse
    event: RoleChangedResponse | None = None
