"""Visibility Gate — tests for the pure policy predicates.

Tests cover:
    - Guests never see precise locations or contacts, whatever the escrow
    - Consumer + paid escrow unlocks precise location and contact
    - Missing escrow evaluates to "not paid" without raising
    - Roommate matching requires verified student facts
    - Route guard error dicts (GUEST_SESSION, ROLE_NOT_UNLOCKED)
    - Escrow binding to resource and payer (unbound escrows never unlock)
"""

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from trustgate.core.domain_types import EscrowId, EscrowStatus, IdentityId, Persona
from trustgate.core.escrow_ledger import open_escrow
from trustgate.core.identity import Identity
from trustgate.core.persona_state import (
    authenticate, guest_session, switch_role, unlock_role,
)
from trustgate.core.visibility_gate import (
    can_access_roommate_matching, can_contact_counterparty, check_role_unlocked,
    escrow_for_payer, escrow_for_resource, evaluate_visibility, has_escrow_payment,
    is_consumer_active, is_guest, needs_identity_verification, show_precise_location,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
STUDENT = Identity(
    identity_id=IdentityId("u-1"), institution="Unijos", matric_number="UJ/2021/001",
)


def _make_escrow(status: EscrowStatus, **kw):
    tx = open_escrow(EscrowId("e-1"), 45_000, "landlord-9", NOW - timedelta(days=1), **kw)
    return replace(tx, status=status)


def _consumer(identity: Identity = STUDENT):
    return authenticate(identity)


# ─── Guest ──────────────────────────────────────────────────────


@pytest.mark.parametrize("status", list(EscrowStatus))
def test_guest_never_sees_precise_location(status):
    escrow = _make_escrow(status)
    assert not show_precise_location(guest_session(), escrow, NOW)
    assert not can_contact_counterparty(guest_session(), escrow, NOW)


def test_guest_flags():
    session = guest_session()
    assert is_guest(session)
    assert not is_consumer_active(session)
    assert not needs_identity_verification(session)
    assert not can_access_roommate_matching(session)


# ─── Escrow payment ─────────────────────────────────────────────


def test_missing_escrow_is_not_paid():
    assert has_escrow_payment(None, NOW) is False
    assert not show_precise_location(_consumer(), None, NOW)


@pytest.mark.parametrize(("status", "paid"), [
    (EscrowStatus.NONE, False),
    (EscrowStatus.HELD, True),
    (EscrowStatus.RELEASE_WINDOW, True),
    (EscrowStatus.RELEASED, True),
    (EscrowStatus.DISPUTED, False),
    (EscrowStatus.REFUNDED, False),
])
def test_has_escrow_payment_by_status(status, paid):
    assert has_escrow_payment(_make_escrow(status), NOW) is paid


def test_expired_release_window_still_counts_as_paid():
    escrow = replace(
        _make_escrow(EscrowStatus.RELEASE_WINDOW),
        release_deadline=NOW - timedelta(hours=1),
    )
    assert has_escrow_payment(escrow, NOW)


def test_consumer_with_held_escrow_sees_everything():
    escrow = _make_escrow(EscrowStatus.HELD)
    assert show_precise_location(_consumer(), escrow, NOW)
    assert can_contact_counterparty(_consumer(), escrow, NOW)


def test_consumer_with_disputed_escrow_is_gated():
    escrow = _make_escrow(EscrowStatus.DISPUTED)
    assert not show_precise_location(_consumer(), escrow, NOW)
    assert not can_contact_counterparty(_consumer(), escrow, NOW)


def test_other_persona_with_paid_escrow_is_gated():
    session = switch_role(unlock_role(_consumer(), Persona.LANDLORD), Persona.LANDLORD)
    assert not show_precise_location(session, _make_escrow(EscrowStatus.HELD), NOW)


# ─── Identity verification ──────────────────────────────────────


def test_verified_student_consumer_can_access_roommate_matching():
    assert can_access_roommate_matching(_consumer())
    assert not needs_identity_verification(_consumer())


def test_unverified_consumer_needs_verification():
    session = _consumer(Identity(identity_id=IdentityId("u-2"), institution="Unijos"))
    assert not can_access_roommate_matching(session)
    assert needs_identity_verification(session)


def test_whitespace_facts_are_not_verified():
    session = _consumer(Identity(
        identity_id=IdentityId("u-3"), institution="  ", matric_number="UJ/1",
    ))
    assert needs_identity_verification(session)


def test_fresh_identity_overrides_session_facts():
    session = _consumer(Identity(identity_id=IdentityId("u-1")))
    assert not can_access_roommate_matching(session)
    assert can_access_roommate_matching(session, STUDENT)


def test_roommate_matching_requires_consumer_persona():
    session = switch_role(unlock_role(_consumer(), Persona.SELLER), Persona.SELLER)
    assert not can_access_roommate_matching(session)


# ─── evaluate_visibility ────────────────────────────────────────


def test_evaluate_visibility_combines_flags():
    decision = evaluate_visibility(_consumer(), _make_escrow(EscrowStatus.HELD), now=NOW)
    assert decision.as_dict() == {
        "is_guest": False,
        "is_consumer_active": True,
        "is_verified_student": True,
        "can_access_roommate_matching": True,
        "needs_identity_verification": False,
        "has_escrow_payment": True,
        "show_precise_location": True,
        "can_contact_counterparty": True,
    }


def test_evaluate_visibility_for_guest():
    decision = evaluate_visibility(guest_session(), now=NOW)
    assert decision.is_guest
    assert not any([
        decision.show_precise_location, decision.can_contact_counterparty,
        decision.has_escrow_payment,
    ])


# ─── check_role_unlocked ────────────────────────────────────────


def test_guard_rejects_guest():
    error = check_role_unlocked(guest_session(), Persona.LANDLORD)
    assert error["error_code"] == "GUEST_SESSION"


def test_guard_rejects_locked_role_with_onboarding_path():
    error = check_role_unlocked(_consumer(), Persona.LANDLORD)
    assert error["error_code"] == "ROLE_NOT_UNLOCKED"
    assert error["required_role"] == "landlord"
    assert error["onboarding_path"] == "/onboarding/landlord"


def test_guard_passes_unlocked_role():
    session = unlock_role(_consumer(), Persona.AGENT)
    assert check_role_unlocked(session, Persona.AGENT) is None


# ─── escrow_for_resource ────────────────────────────────────────


def test_escrow_for_other_resource_is_ignored():
    escrow = _make_escrow(EscrowStatus.HELD, resource_ref="flat-2", payer_ref="u-1")
    assert escrow_for_resource(escrow, _consumer(), "flat-1") is None


def test_escrow_of_other_payer_is_ignored():
    escrow = _make_escrow(EscrowStatus.HELD, resource_ref="flat-1", payer_ref="u-9")
    assert escrow_for_resource(escrow, _consumer(), "flat-1") is None


def test_matching_escrow_is_kept():
    escrow = _make_escrow(EscrowStatus.HELD, resource_ref="flat-1", payer_ref="u-1")
    assert escrow_for_resource(escrow, _consumer(), "flat-1") is escrow


def test_escrow_without_resource_never_unlocks():
    escrow = _make_escrow(EscrowStatus.HELD, payer_ref="u-1")
    assert escrow_for_resource(escrow, _consumer(), "flat-1") is None
    assert escrow_for_resource(None, _consumer(), "flat-1") is None


def test_escrow_without_payer_never_unlocks():
    escrow = _make_escrow(EscrowStatus.HELD, resource_ref="flat-1")
    assert escrow_for_resource(escrow, _consumer(), "flat-1") is None


def test_guest_never_matches_an_escrow():
    escrow = _make_escrow(EscrowStatus.HELD, resource_ref="flat-1", payer_ref="u-1")
    assert escrow_for_resource(escrow, guest_session(), "flat-1") is None
    assert escrow_for_payer(escrow, guest_session()) is None


def test_escrow_for_payer():
    escrow = _make_escrow(EscrowStatus.HELD, payer_ref="u-1")
    assert escrow_for_payer(escrow, _consumer()) is escrow
    assert escrow_for_payer(_make_escrow(EscrowStatus.HELD), _consumer()) is None
