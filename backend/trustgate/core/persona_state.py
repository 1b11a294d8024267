"""Persona State — explicit session object for authentication state and personas.

Invariants:
    - Authenticated session: unlocked_roles contains CONSUMER
    - active_role in unlocked_roles or active_role == GUEST, at every point in time
    - Guest session: identity is None, active_role == GUEST, unlocked_roles empty
    - Sessions are immutable: every operation returns a new Session (copy-on-write)
    - An invalid switch raises InvalidRoleSwitchError — never falls back to a default

Design Decisions:
    - Explicit session threaded through calls instead of an ambient global store
    - Role-change side effects go through RoleChangeListener (presentation lives outside)
    - frozenset for unlocked_roles: duplicates are impossible, order irrelevant
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone

from trustgate.core.domain_types import Persona, PERSONA_CATALOG
from trustgate.core.errors import (
    ErrorContext, GuestSessionError, InvalidRoleSwitchError,
)
from trustgate.core.identity import Identity
from trustgate.core.role_events import (
    NullRoleChangeListener, PersonaSwitch, RoleChanged, RoleChangeListener,
)


@dataclass(frozen=True)
class Session:
    """Per-actor persona state — pure value object, no IO."""

    identity: Identity | None = None
    active_role: Persona = Persona.GUEST
    unlocked_roles: frozenset[Persona] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        if Persona.GUEST in self.unlocked_roles:
            raise ValueError("guest is virtual and cannot be unlocked")
        if self.identity is None:
            if self.active_role is not Persona.GUEST or self.unlocked_roles:
                raise ValueError("unauthenticated session must be a plain guest")
            return
        if Persona.CONSUMER not in self.unlocked_roles:
            raise ValueError("authenticated session must unlock consumer")
        if self.active_role is not Persona.GUEST and self.active_role not in self.unlocked_roles:
            raise ValueError(f"active role '{self.active_role.value}' is not unlocked")

    @property
    def is_authenticated(self) -> bool:
        return self.identity is not None

    @property
    def identity_id(self) -> str | None:
        return self.identity.identity_id if self.identity else None

    @property
    def ordered_unlocked_roles(self) -> list[Persona]:
        """Unlocked personas in catalog order (stable for serialization)."""
        return [p for p in PERSONA_CATALOG if p in self.unlocked_roles]


def guest_session() -> Session:
    return Session()


def authenticate(identity: Identity) -> Session:
    """Start an authenticated session: consumer active, consumer unlocked."""
    return Session(
        identity=identity,
        active_role=Persona.CONSUMER,
        unlocked_roles=frozenset({Persona.CONSUMER}),
    )


def switch_role(
    session: Session,
    target: Persona | str,
    listener: RoleChangeListener | None = None,
    now: datetime | None = None,
) -> Session:
    """Activate an unlocked persona and emit exactly one RoleChanged.

    Raises InvalidRoleSwitchError when target is unknown or not unlocked;
    the given session is left as it was.
    """
    persona = _coerce_persona(target)
    if persona is None or persona not in session.unlocked_roles:
        raise InvalidRoleSwitchError(
            str(getattr(target, "value", target)),
            [p.value for p in session.ordered_unlocked_roles],
            ErrorContext(
                identity_id=session.identity_id,
                active_role=session.active_role.value,
            ),
        )

    switched = replace(session, active_role=persona)
    record = PersonaSwitch(
        from_role=session.active_role,
        to_role=persona,
        switched_at=now or datetime.now(timezone.utc),
    )
    (listener if listener is not None else NullRoleChangeListener()).emit(RoleChanged(
        identity_id=session.identity_id,
        new_role=persona,
        switch=record,
        timestamp=record.switched_at,
    ))
    return switched


def unlock_role(session: Session, role: Persona | str) -> Session:
    """Add a persona to the unlocked set. Idempotent; guests cannot unlock."""
    if not session.is_authenticated:
        raise GuestSessionError("unlock a persona")
    persona = _coerce_persona(role)
    if persona is None or persona is Persona.GUEST:
        raise InvalidRoleSwitchError(
            str(getattr(role, "value", role)),
            [p.value for p in session.ordered_unlocked_roles],
            ErrorContext(identity_id=session.identity_id),
        )
    if persona in session.unlocked_roles:
        return session
    return replace(session, unlocked_roles=session.unlocked_roles | {persona})


def reset(session: Session) -> Session:
    """Logout / reset: drop identity and personas."""
    return guest_session()


def _coerce_persona(value: Persona | str) -> Persona | None:
    if isinstance(value, Persona):
        return value
    try:
        return Persona(value)
    except ValueError:
        return None
