"""Visibility Gate — pure policy predicates for feature and data exposure.

Invariants:
    - All functions are PURE: no IO, no async, no DB, no side effects
    - A missing escrow evaluates has_escrow_payment to False, never raises
    - Escrow status is read through the lazy deadline (effective status at now)
    - Guests never see precise locations or contact details, whatever the escrow state

Design Decisions:
    - show_precise_location and can_contact_counterparty delegate to one shared
      helper so their policies can diverge later by editing one entry point
    - identity defaults to session.identity; callers may pass fresher profile facts
    - check_role_unlocked returns an error dict (not an exception), matching the
      other gate checks consumed by route guards
"""

from dataclasses import dataclass
from datetime import datetime, timezone

from trustgate.core.domain_types import PAID_ESCROW_STATUSES, Persona
from trustgate.core.escrow_ledger import EscrowTransaction, effective_status
from trustgate.core.identity import Identity
from trustgate.core.persona_state import Session


ROLE_ONBOARDING_PATHS: dict[Persona, str] = {
    Persona.SELLER: "/onboarding/seller",
    Persona.LANDLORD: "/onboarding/landlord",
    Persona.AGENT: "/onboarding/agent",
    Persona.AMBASSADOR: "/onboarding/ambassador",
}


def is_guest(session: Session) -> bool:
    return session.active_role is Persona.GUEST


def is_consumer_active(session: Session) -> bool:
    return not is_guest(session) and session.active_role is Persona.CONSUMER


def is_verified_student(identity: Identity | None) -> bool:
    return identity is not None and identity.is_verified_student


def can_access_roommate_matching(
    session: Session, identity: Identity | None = None,
) -> bool:
    """Roommate matching is for verified students browsing as consumer."""
    return is_consumer_active(session) and is_verified_student(
        _identity_of(session, identity),
    )


def needs_identity_verification(
    session: Session, identity: Identity | None = None,
) -> bool:
    return not is_guest(session) and not is_verified_student(
        _identity_of(session, identity),
    )


def has_escrow_payment(
    escrow: EscrowTransaction | None, now: datetime | None = None,
) -> bool:
    if escrow is None:
        return False
    status = effective_status(
        escrow.status, escrow.release_deadline, now or datetime.now(timezone.utc),
    )
    return status in PAID_ESCROW_STATUSES


def _escrow_gated_action_allowed(
    session: Session, escrow: EscrowTransaction | None, now: datetime | None,
) -> bool:
    if is_guest(session):
        return False
    return is_consumer_active(session) and has_escrow_payment(escrow, now)


def show_precise_location(
    session: Session, escrow: EscrowTransaction | None = None,
    now: datetime | None = None,
) -> bool:
    """Precise coordinates only after the consumer paid into escrow."""
    return _escrow_gated_action_allowed(session, escrow, now)


def can_contact_counterparty(
    session: Session, escrow: EscrowTransaction | None = None,
    now: datetime | None = None,
) -> bool:
    """Seller / landlord contact details only after escrow payment."""
    return _escrow_gated_action_allowed(session, escrow, now)


@dataclass(frozen=True)
class VisibilityDecision:
    """Every gate flag for one (session, identity, escrow) at one instant."""
    is_guest: bool
    is_consumer_active: bool
    is_verified_student: bool
    can_access_roommate_matching: bool
    needs_identity_verification: bool
    has_escrow_payment: bool
    show_precise_location: bool
    can_contact_counterparty: bool

    def as_dict(self) -> dict:
        return dict(self.__dict__)


def evaluate_visibility(
    session: Session,
    escrow: EscrowTransaction | None = None,
    identity: Identity | None = None,
    now: datetime | None = None,
) -> VisibilityDecision:
    """Evaluate all predicates against a single clock reading."""
    now = now or datetime.now(timezone.utc)
    ident = _identity_of(session, identity)
    return VisibilityDecision(
        is_guest=is_guest(session),
        is_consumer_active=is_consumer_active(session),
        is_verified_student=is_verified_student(ident),
        can_access_roommate_matching=can_access_roommate_matching(session, ident),
        needs_identity_verification=needs_identity_verification(session, ident),
        has_escrow_payment=has_escrow_payment(escrow, now),
        show_precise_location=show_precise_location(session, escrow, now),
        can_contact_counterparty=can_contact_counterparty(session, escrow, now),
    )


def check_role_unlocked(session: Session, required_role: Persona) -> dict | None:
    """Route guard: a persona area requires that persona to be unlocked."""
    if not session.is_authenticated:
        return {
            "status": "error",
            "error_code": "GUEST_SESSION",
            "message": "Sign in to access this area.",
        }
    if required_role not in session.unlocked_roles:
        return {
            "status": "error",
            "error_code": "ROLE_NOT_UNLOCKED",
            "message": f"Persona '{required_role.value}' is not unlocked yet.",
            "required_role": required_role.value,
            "onboarding_path": ROLE_ONBOARDING_PATHS.get(required_role),
        }
    return None


def escrow_for_resource(
    escrow: EscrowTransaction | None, session: Session, resource_id: str,
) -> EscrowTransaction | None:
    """The escrow only counts when it protects this resource and this payer.

    An escrow bound to no resource or no payer never unlocks a resource.
    """
    escrow = escrow_for_payer(escrow, session)
    if escrow is None or escrow.resource_ref is None:
        return None
    return escrow if escrow.resource_ref == resource_id else None


def escrow_for_payer(
    escrow: EscrowTransaction | None, session: Session,
) -> EscrowTransaction | None:
    """The escrow only counts for the identity that paid into it."""
    if escrow is None or escrow.payer_ref is None:
        return None
    if session.identity_id is None or escrow.payer_ref != session.identity_id:
        return None
    return escrow


def _identity_of(session: Session, identity: Identity | None) -> Identity | None:
    return identity if identity is not None else session.identity
