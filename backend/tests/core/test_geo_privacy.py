"""Geo Privacy — tests for coordinate obfuscation and its cache.

Tests cover:
    - Guest view: offset within ±0.005 degrees, zoom capped at 14, marker hidden
    - Paid consumer view: exact coordinate, zoom 20, marker visible
    - Stability: repeated views reuse one draw (no averaging attack)
    - TTL expiry regenerates exactly once, then stays stable
    - Invalidation by key, viewer and resource
    - Missing coordinate raises and caches nothing
"""

import random
from datetime import datetime, timedelta, timezone

import pytest

from trustgate.core.errors import LocationUnavailableError, StaleObfuscationCacheError
from trustgate.core.geo_privacy import (
    GeoCoordinate, GeoPrivacyObfuscator, ObfuscationCache,
)

JOS = GeoCoordinate(lat=9.8862, lng=8.8884)
T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class _FakeClock:
    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kw) -> None:
        self.now += timedelta(**kw)


def _make_obfuscator(clock=None, ttl=timedelta(hours=24), seed=7) -> GeoPrivacyObfuscator:
    cache = ObfuscationCache(ttl=ttl, clock=clock or _FakeClock())
    return GeoPrivacyObfuscator(cache=cache, rng=random.Random(seed))


# ─── Views ──────────────────────────────────────────────────────


def test_obfuscated_view_stays_within_offset_box():
    view = _make_obfuscator().obfuscate("guest", "flat-1", JOS, precise=False)
    assert abs(view.coordinate.lat - JOS.lat) <= 0.005
    assert abs(view.coordinate.lng - JOS.lng) <= 0.005
    assert view.zoom_ceiling == 14
    assert view.marker_visible is False
    assert view.approximate is True
    assert view.approximate_radius_m == 557


def test_obfuscated_view_differs_from_true_point():
    view = _make_obfuscator().obfuscate("guest", "flat-1", JOS, precise=False)
    assert view.coordinate != JOS


def test_precise_view_returns_true_point():
    view = _make_obfuscator().obfuscate("u-1", "flat-1", JOS, precise=True)
    assert view.coordinate == JOS
    assert view.zoom_ceiling == 20
    assert view.marker_visible is True
    assert view.approximate is False
    assert view.approximate_radius_m == 0


def test_precise_view_does_not_touch_cache():
    obfuscator = _make_obfuscator()
    obfuscator.obfuscate("u-1", "flat-1", JOS, precise=True)
    assert len(obfuscator.cache) == 0


def test_repeated_views_reuse_the_same_draw():
    obfuscator = _make_obfuscator()
    views = [obfuscator.obfuscate("guest", "flat-1", JOS, precise=False) for _ in range(20)]
    assert len({(v.coordinate.lat, v.coordinate.lng) for v in views}) == 1


def test_different_viewers_get_independent_draws():
    obfuscator = _make_obfuscator()
    a = obfuscator.obfuscate("u-1", "flat-1", JOS, precise=False)
    b = obfuscator.obfuscate("u-2", "flat-1", JOS, precise=False)
    assert a.coordinate != b.coordinate
    assert len(obfuscator.cache) == 2


def test_seeded_rng_is_deterministic():
    a = _make_obfuscator(seed=42).obfuscate("guest", "flat-1", JOS, precise=False)
    b = _make_obfuscator(seed=42).obfuscate("guest", "flat-1", JOS, precise=False)
    assert a.coordinate == b.coordinate


def test_missing_coordinate_raises_and_caches_nothing():
    obfuscator = _make_obfuscator()
    with pytest.raises(LocationUnavailableError) as exc_info:
        obfuscator.obfuscate("guest", "flat-1", None, precise=False)
    assert exc_info.value.http_status == 404
    assert exc_info.value.context.resource_id == "flat-1"
    assert len(obfuscator.cache) == 0


def test_missing_coordinate_raises_for_precise_view_too():
    with pytest.raises(LocationUnavailableError):
        _make_obfuscator().obfuscate("u-1", "flat-1", None, precise=True)


@pytest.mark.parametrize(("requested", "precise", "expected"), [
    (18, False, 14),
    (10, False, 10),
    (22, True, 20),
    (16, True, 16),
    (-3, False, 0),
])
def test_requested_zoom_is_clamped(requested, precise, expected):
    view = _make_obfuscator().obfuscate(
        "u-1", "flat-1", JOS, precise=precise, requested_zoom=requested,
    )
    assert view.zoom_ceiling == expected


def test_draw_near_pole_stays_in_range():
    pole = GeoCoordinate(lat=90.0, lng=180.0)
    for seed in range(25):
        view = _make_obfuscator(seed=seed).obfuscate("guest", "pole", pole, precise=False)
        assert -90.0 <= view.coordinate.lat <= 90.0
        assert -180.0 <= view.coordinate.lng <= 180.0


def test_non_positive_offset_rejected():
    with pytest.raises(ValueError):
        GeoPrivacyObfuscator(max_offset_deg=0)


# ─── Cache TTL ──────────────────────────────────────────────────


def test_expired_entry_regenerates_once_then_stays_stable():
    clock = _FakeClock()
    obfuscator = _make_obfuscator(clock=clock, ttl=timedelta(hours=1))
    first = obfuscator.obfuscate("guest", "flat-1", JOS, precise=False)

    clock.advance(hours=2)
    second = obfuscator.obfuscate("guest", "flat-1", JOS, precise=False)
    third = obfuscator.obfuscate("guest", "flat-1", JOS, precise=False)

    assert second.coordinate != first.coordinate
    assert third.coordinate == second.coordinate
    assert len(obfuscator.cache) == 1


def test_lookup_signals_stale_entry():
    clock = _FakeClock()
    cache = ObfuscationCache(ttl=timedelta(minutes=5), clock=clock)
    cache.get_or_create("u-1", "flat-1", lambda: JOS)
    clock.advance(minutes=5)
    with pytest.raises(StaleObfuscationCacheError):
        cache.lookup("u-1", "flat-1")


def test_lookup_absent_returns_none():
    assert ObfuscationCache().lookup("u-1", "flat-1") is None


def test_factory_called_once_per_live_entry():
    calls = []

    def factory():
        calls.append(1)
        return JOS

    cache = ObfuscationCache(clock=_FakeClock())
    for _ in range(5):
        cache.get_or_create("u-1", "flat-1", factory)
    assert len(calls) == 1


# ─── Invalidation ───────────────────────────────────────────────


def _seeded_cache() -> ObfuscationCache:
    cache = ObfuscationCache(clock=_FakeClock())
    for viewer in ("u-1", "u-2"):
        for resource in ("flat-1", "flat-2"):
            cache.get_or_create(viewer, resource, lambda: JOS)
    return cache


def test_invalidate_single_key():
    cache = _seeded_cache()
    assert cache.invalidate("u-1", "flat-1") is True
    assert cache.invalidate("u-1", "flat-1") is False
    assert len(cache) == 3


def test_invalidate_viewer():
    cache = _seeded_cache()
    assert cache.invalidate_viewer("u-1") == 2
    assert all(viewer == "u-2" for viewer, _ in cache.entries())


def test_invalidate_resource():
    cache = _seeded_cache()
    assert cache.invalidate_resource("flat-2") == 2
    assert all(resource == "flat-1" for _, resource in cache.entries())


def test_entries_layout():
    cache = ObfuscationCache(clock=_FakeClock())
    cache.get_or_create("u-1", "flat-1", lambda: JOS)
    assert cache.entries() == {
        ("u-1", "flat-1"): {
            "lat": JOS.lat, "lng": JOS.lng, "createdAt": T0.isoformat(),
        },
    }


# ─── GeoCoordinate ──────────────────────────────────────────────


@pytest.mark.parametrize(("lat", "lng"), [
    (91.0, 0.0), (0.0, -181.0), (float("nan"), 0.0), (0.0, float("inf")),
])
def test_invalid_coordinates_rejected(lat, lng):
    with pytest.raises(ValueError):
        GeoCoordinate(lat=lat, lng=lng)


def test_injected_empty_cache_is_kept():
    cache = ObfuscationCache(ttl=timedelta(minutes=1), clock=_FakeClock())
    obfuscator = GeoPrivacyObfuscator(cache=cache)
    assert len(cache) == 0
    assert obfuscator.cache is cache
    assert obfuscator.cache.ttl == timedelta(minutes=1)
