"""Domain Types — verifies rich type definitions, constants and enum values.

Tests:
    - NewType wrappers exist and are callable
    - Persona catalog order is fixed and excludes GUEST
    - Escrow enums serialize to their wire strings
"""

from trustgate.core.domain_types import (
    BPS_DENOMINATOR, DEFAULT_PLATFORM_FEE_BPS, PAID_ESCROW_STATUSES,
    PERSONA_CATALOG, TERMINAL_ESCROW_STATUSES,
    EscrowEvent, EscrowId, EscrowStatus, IdentityId, Persona, ResourceId,
)


def test_identity_types_wrap_str():
    assert IdentityId("u-1") == "u-1"
    assert EscrowId("e-1") == "e-1"
    assert ResourceId("r-1") == "r-1"


def test_persona_catalog_order():
    assert [p.value for p in PERSONA_CATALOG] == [
        "consumer", "seller", "landlord", "agent", "ambassador", "admin",
    ]


def test_guest_is_not_in_catalog():
    assert Persona.GUEST not in PERSONA_CATALOG


def test_escrow_status_has_six_states():
    assert {s.value for s in EscrowStatus} == {
        "none", "held", "release_window", "disputed", "released", "refunded",
    }


def test_terminal_statuses():
    assert TERMINAL_ESCROW_STATUSES == {EscrowStatus.RELEASED, EscrowStatus.REFUNDED}


def test_paid_statuses_exclude_disputed_and_refunded():
    assert EscrowStatus.DISPUTED not in PAID_ESCROW_STATUSES
    assert EscrowStatus.REFUNDED not in PAID_ESCROW_STATUSES
    assert EscrowStatus.NONE not in PAID_ESCROW_STATUSES
    assert EscrowStatus.HELD in PAID_ESCROW_STATUSES


def test_event_wire_values():
    assert EscrowEvent("funds_committed") is EscrowEvent.FUNDS_COMMITTED
    assert EscrowEvent.DISPUTE_RAISED.value == "dispute_raised"


def test_fee_constants():
    assert BPS_DENOMINATOR == 10_000
    assert DEFAULT_PLATFORM_FEE_BPS == 1200
