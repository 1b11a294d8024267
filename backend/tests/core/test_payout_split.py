"""Payout Split — tests for settlement of released and refunded escrows."""

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from trustgate.core.domain_types import EscrowId, EscrowStatus
from trustgate.core.errors import PayoutNotReleasedError
from trustgate.core.escrow_ledger import open_escrow
from trustgate.core.payout_split import compute_payout_split

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _make_tx(status: EscrowStatus, amount: int = 75_000, **kw):
    return replace(open_escrow(EscrowId("e-1"), amount, "landlord-9", NOW), status=status, **kw)


def test_released_split_pays_provider_net():
    split = compute_payout_split(_make_tx(EscrowStatus.RELEASED), NOW)
    assert split.gross == 75_000
    assert split.platform_fee == 9_000
    assert split.provider_share == 66_000
    assert split.payer_refund == 0
    assert split.fee_bps == 1200


def test_refunded_split_returns_everything_to_payer():
    split = compute_payout_split(_make_tx(EscrowStatus.REFUNDED), NOW)
    assert split.platform_fee == 0
    assert split.provider_share == 0
    assert split.payer_refund == 75_000


@pytest.mark.parametrize("amount", [1, 999, 45_000, 150_000])
def test_split_loses_no_minor_unit(amount):
    split = compute_payout_split(_make_tx(EscrowStatus.RELEASED, amount), NOW)
    assert split.platform_fee + split.provider_share + split.payer_refund == amount


@pytest.mark.parametrize("status", [
    EscrowStatus.NONE, EscrowStatus.HELD, EscrowStatus.RELEASE_WINDOW, EscrowStatus.DISPUTED,
])
def test_open_escrow_has_no_split(status):
    with pytest.raises(PayoutNotReleasedError) as exc_info:
        compute_payout_split(_make_tx(status), NOW)
    assert exc_info.value.code == "PAYOUT_NOT_RELEASED"


def test_expired_release_window_settles():
    tx = _make_tx(EscrowStatus.RELEASE_WINDOW, release_deadline=NOW - timedelta(minutes=1))
    assert compute_payout_split(tx, NOW).provider_share == 66_000
