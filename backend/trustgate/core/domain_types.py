"""Domain Types — rich types that replace bare primitives across the trust engine.

Invariants:
    - IdentityId, EscrowId, ResourceId wrap strings — never pass bare ids in domain logic
    - Money is always an int in minor currency units (kobo, cents) — never float
    - Fee rates are int basis points; 10_000 bps == 100%
    - All valid states encoded as Enums — no raw string matching

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders (persisted layouts are JSON)
    - PERSONA_CATALOG is a tuple: catalog order is part of the external contract
"""

from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

IdentityId = NewType("IdentityId", str)
EscrowId = NewType("EscrowId", str)
ResourceId = NewType("ResourceId", str)


# ─── Value Types ─────────────────────────────────────────────────

MinorUnits = NewType("MinorUnits", int)     # integer money, e.g. kobo
BasisPoints = NewType("BasisPoints", int)   # 0–10_000


# ─── Constants ───────────────────────────────────────────────────

BPS_DENOMINATOR: int = 10_000
DEFAULT_PLATFORM_FEE_BPS: int = 1200
DEFAULT_RELEASE_WINDOW_HOURS: int = 72

DEFAULT_MAX_OFFSET_DEG: float = 0.005
OBFUSCATED_ZOOM_CEILING: int = 14
PRECISE_ZOOM_CEILING: int = 20
DEFAULT_OBFUSCATION_TTL_SECONDS: int = 86_400


# ─── Enums ───────────────────────────────────────────────────────

class Persona(str, Enum):
    """Personas an actor can switch into. GUEST is virtual (unauthenticated)."""
    CONSUMER = "consumer"
    SELLER = "seller"
    LANDLORD = "landlord"
    AGENT = "agent"
    AMBASSADOR = "ambassador"
    ADMIN = "admin"
    GUEST = "guest"


# Ordered catalog of real personas (GUEST excluded)
PERSONA_CATALOG: tuple[Persona, ...] = (
    Persona.CONSUMER,
    Persona.SELLER,
    Persona.LANDLORD,
    Persona.AGENT,
    Persona.AMBASSADOR,
    Persona.ADMIN,
)


class EscrowStatus(str, Enum):
    """Escrow lifecycle states. RELEASED and REFUNDED are terminal."""
    NONE = "none"
    HELD = "held"
    RELEASE_WINDOW = "release_window"
    DISPUTED = "disputed"
    RELEASED = "released"
    REFUNDED = "refunded"


TERMINAL_ESCROW_STATUSES: frozenset[EscrowStatus] = frozenset({
    EscrowStatus.RELEASED,
    EscrowStatus.REFUNDED,
})

# Statuses that count as "the consumer has paid into escrow"
PAID_ESCROW_STATUSES: frozenset[EscrowStatus] = frozenset({
    EscrowStatus.HELD,
    EscrowStatus.RELEASE_WINDOW,
    EscrowStatus.RELEASED,
})


class EscrowEvent(str, Enum):
    """Trigger events accepted by the escrow state machine."""
    FUNDS_COMMITTED = "funds_committed"
    DELIVERY_OR_MOVE_IN_CONFIRMED = "delivery_or_move_in_confirmed"
    COUNTERPARTY_CONFIRMS_OR_DEADLINE_PASSES = "counterparty_confirms_or_deadline_passes"
    DISPUTE_RAISED = "dispute_raised"
    RESOLUTION_FAVORS_PAYEE = "resolution_favors_payee"
    RESOLUTION_FAVORS_PAYER = "resolution_favors_payer"
