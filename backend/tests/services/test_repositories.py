"""SQL Repositories — tests for row <-> core translation.

Tests cover:
    - Escrows read back through the snapshot layout with aware datetimes
    - list_for_party matches payer or counterparty
    - Locations upsert in place
"""

from dataclasses import replace
from datetime import datetime, timedelta, timezone

from trustgate.core.domain_types import EscrowId, EscrowStatus, ResourceId
from trustgate.core.escrow_ledger import open_escrow
from trustgate.core.geo_privacy import GeoCoordinate
from trustgate.infrastructure.repositories import (
    SqlEscrowRepository, SqlResourceLocationRepository,
)
from trustgate.models.escrow_transaction import EscrowTransactionRecord

T0 = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


def _make_escrow(escrow_id: str, **kw):
    kw.setdefault("counterparty_ref", "landlord-9")
    return open_escrow(EscrowId(escrow_id), 45_000, now=T0, **kw)


async def test_escrow_reads_back_with_aware_datetimes(test_db):
    repo = SqlEscrowRepository(test_db)
    tx = _make_escrow("e-1", payer_ref="u-1", resource_ref="flat-1")
    await repo.save(tx)
    test_db.expire_all()

    loaded = await repo.get(EscrowId("e-1"))
    assert loaded == tx
    assert loaded.created_at.tzinfo is not None
    assert loaded.status is EscrowStatus.NONE


def test_naive_row_datetimes_read_as_utc():
    row = EscrowTransactionRecord(
        id="e-1", amount=1_000, platform_fee_bps=1200, status="release_window",
        counterparty_ref="seller-1", created_at=datetime(2026, 3, 1, 9, 0),
        release_deadline=datetime(2026, 3, 4, 9, 0),
    )
    snapshot = row.to_snapshot()
    assert snapshot["createdAt"] == "2026-03-01T09:00:00+00:00"
    assert snapshot["releaseDeadline"] == "2026-03-04T09:00:00+00:00"
    assert snapshot["payerRef"] is None


async def test_list_for_party(test_db):
    repo = SqlEscrowRepository(test_db)
    await repo.save(_make_escrow("e-1", payer_ref="u-1"))
    await repo.save(_make_escrow("e-2", payer_ref="u-2", counterparty_ref="u-1"))
    await repo.save(_make_escrow("e-3", payer_ref="u-3"))

    found = await repo.list_for_party("u-1")
    assert {tx.id for tx in found} == {"e-1", "e-2"}
    assert await repo.list_for_party("nobody") == []


async def test_release_deadline_round_trips(test_db):
    repo = SqlEscrowRepository(test_db)
    deadline = T0 + timedelta(hours=72)
    await repo.save(_make_escrow("e-1"))
    stored = await repo.get(EscrowId("e-1"))
    await repo.save(replace(stored, status=EscrowStatus.RELEASE_WINDOW, release_deadline=deadline))
    test_db.expire_all()

    loaded = await repo.get(EscrowId("e-1"))
    assert loaded.status is EscrowStatus.RELEASE_WINDOW
    assert loaded.release_deadline == deadline


async def test_location_upsert(test_db):
    repo = SqlResourceLocationRepository(test_db)
    await repo.put(ResourceId("flat-1"), GeoCoordinate(lat=9.8862, lng=8.8884))
    await repo.put(ResourceId("flat-1"), GeoCoordinate(lat=9.9, lng=8.9))
    assert await repo.get(ResourceId("flat-1")) == GeoCoordinate(lat=9.9, lng=8.9)
    assert await repo.get(ResourceId("flat-2")) is None
