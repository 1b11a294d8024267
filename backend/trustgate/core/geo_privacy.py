"""Geo Privacy — exact or deliberately imprecise coordinates behind the visibility gate.

Invariants:
    - Precise grant: true coordinate, zoom ceiling 20, marker visible
    - No grant: cached obfuscated coordinate, zoom ceiling <= cap, marker hidden
    - One random draw per (viewer, resource) cache entry, reused until expiry or
      invalidation (never re-drawn per access)
    - Every obfuscated point lies within ±max_offset degrees of the true point on each axis
    - No true coordinate -> LocationUnavailableError; nothing fabricated, nothing cached
    - The returned MapView never carries the true coordinate when marker_visible is False

Design Decisions:
    - get_or_create is one synchronous call: concurrent requesters on the event loop
      observe the first seeded value (no suspension point between lookup and store)
    - random.Random and the clock are injected: deterministic tests, no global RNG state
    - Expiry is signalled with StaleObfuscationCacheError inside the cache and
      handled by regenerating once — never by drawing on every read
    - Offsets are degrees, not meters; metres-per-degree shrinks with latitude and
      that approximation is accepted
"""

import math
import random
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

from trustgate.core.domain_types import (
    DEFAULT_MAX_OFFSET_DEG, DEFAULT_OBFUSCATION_TTL_SECONDS,
    OBFUSCATED_ZOOM_CEILING, PRECISE_ZOOM_CEILING,
)
from trustgate.core.errors import LocationUnavailableError, StaleObfuscationCacheError

METERS_PER_DEGREE: float = 111_320.0

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class GeoCoordinate:
    """WGS-84 point in degrees."""
    lat: float
    lng: float

    def __post_init__(self) -> None:
        if not (math.isfinite(self.lat) and math.isfinite(self.lng)):
            raise ValueError("coordinate components must be finite")
        if not -90.0 <= self.lat <= 90.0:
            raise ValueError(f"latitude out of range: {self.lat}")
        if not -180.0 <= self.lng <= 180.0:
            raise ValueError(f"longitude out of range: {self.lng}")


@dataclass(frozen=True)
class MapView:
    """What the map-rendering collaborator is allowed to draw."""
    coordinate: GeoCoordinate
    zoom_ceiling: int
    marker_visible: bool
    approximate: bool
    approximate_radius_m: int = 0

    def as_dict(self) -> dict:
        return {
            "coordinate": {"lat": self.coordinate.lat, "lng": self.coordinate.lng},
            "zoom_ceiling": self.zoom_ceiling,
            "marker_visible": self.marker_visible,
            "approximate": self.approximate,
            "approximate_radius_m": self.approximate_radius_m,
        }


@dataclass(frozen=True)
class ObfuscationEntry:
    lat: float
    lng: float
    created_at: datetime
    expires_at: datetime

    @property
    def coordinate(self) -> GeoCoordinate:
        return GeoCoordinate(self.lat, self.lng)


CacheKey = tuple[str, str]


class ObfuscationCache:
    """In-memory arena of obfuscated coordinates keyed by (viewer_id, resource_id)."""

    def __init__(
        self,
        ttl: timedelta = timedelta(seconds=DEFAULT_OBFUSCATION_TTL_SECONDS),
        clock: Clock = _utcnow,
    ) -> None:
        self._ttl = ttl
        self._clock = clock
        self._entries: dict[CacheKey, ObfuscationEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def lookup(self, viewer_id: str, resource_id: str) -> ObfuscationEntry | None:
        """Live entry, None if absent. Raises StaleObfuscationCacheError if expired."""
        entry = self._entries.get((viewer_id, resource_id))
        if entry is None:
            return None
        if self._clock() >= entry.expires_at:
            raise StaleObfuscationCacheError(viewer_id, resource_id)
        return entry

    def get_or_create(
        self,
        viewer_id: str,
        resource_id: str,
        factory: Callable[[], GeoCoordinate],
    ) -> ObfuscationEntry:
        """Return the live entry or seed it from factory exactly once."""
        try:
            entry = self.lookup(viewer_id, resource_id)
        except StaleObfuscationCacheError:
            entry = None
            self._entries.pop((viewer_id, resource_id), None)
        if entry is not None:
            return entry

        point = factory()
        now = self._clock()
        entry = ObfuscationEntry(
            lat=point.lat, lng=point.lng,
            created_at=now, expires_at=now + self._ttl,
        )
        self._entries[(viewer_id, resource_id)] = entry
        return entry

    def invalidate(self, viewer_id: str, resource_id: str) -> bool:
        return self._entries.pop((viewer_id, resource_id), None) is not None

    def invalidate_viewer(self, viewer_id: str) -> int:
        """Drop every entry of one viewer (logout). Returns the count removed."""
        keys = [k for k in self._entries if k[0] == viewer_id]
        for key in keys:
            del self._entries[key]
        return len(keys)

    def invalidate_resource(self, resource_id: str) -> int:
        """Drop every entry of one resource (its true coordinate moved)."""
        keys = [k for k in self._entries if k[1] == resource_id]
        for key in keys:
            del self._entries[key]
        return len(keys)

    def entries(self) -> dict[CacheKey, dict]:
        """Persisted layout: (viewerId, resourceId) -> {lat, lng, createdAt}."""
        return {
            key: {
                "lat": e.lat, "lng": e.lng,
                "createdAt": e.created_at.isoformat(),
            }
            for key, e in self._entries.items()
        }


class GeoPrivacyObfuscator:
    """Turns a visibility decision plus a true coordinate into a MapView."""

    def __init__(
        self,
        cache: ObfuscationCache | None = None,
        max_offset_deg: float = DEFAULT_MAX_OFFSET_DEG,
        obfuscated_zoom_cap: int = OBFUSCATED_ZOOM_CEILING,
        precise_zoom: int = PRECISE_ZOOM_CEILING,
        rng: random.Random | None = None,
    ) -> None:
        if max_offset_deg <= 0:
            raise ValueError("max_offset_deg must be positive")
        self.cache = cache if cache is not None else ObfuscationCache()
        self.max_offset_deg = max_offset_deg
        self.obfuscated_zoom_cap = obfuscated_zoom_cap
        self.precise_zoom = precise_zoom
        self._rng = rng if rng is not None else random.Random()

    def obfuscate(
        self,
        viewer_id: str,
        resource_id: str,
        true_coordinate: GeoCoordinate | None,
        precise: bool,
        requested_zoom: int | None = None,
    ) -> MapView:
        if true_coordinate is None:
            raise LocationUnavailableError(resource_id)

        if precise:
            return MapView(
                coordinate=true_coordinate,
                zoom_ceiling=_clamp_zoom(requested_zoom, self.precise_zoom),
                marker_visible=True,
                approximate=False,
            )

        entry = self.cache.get_or_create(
            viewer_id, resource_id, lambda: self._draw(true_coordinate),
        )
        return MapView(
            coordinate=entry.coordinate,
            zoom_ceiling=_clamp_zoom(requested_zoom, self.obfuscated_zoom_cap),
            marker_visible=False,
            approximate=True,
            approximate_radius_m=round(self.max_offset_deg * METERS_PER_DEGREE),
        )

    def _draw(self, origin: GeoCoordinate) -> GeoCoordinate:
        d = self.max_offset_deg
        lat = origin.lat + self._rng.uniform(-d, d)
        lng = origin.lng + self._rng.uniform(-d, d)
        # Clamp near the poles / antimeridian; stays inside the offset box
        return GeoCoordinate(
            lat=min(90.0, max(-90.0, lat)),
            lng=min(180.0, max(-180.0, lng)),
        )


def _clamp_zoom(requested: int | None, ceiling: int) -> int:
    if requested is None:
        return ceiling
    return max(0, min(requested, ceiling))
