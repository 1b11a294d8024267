"""Route Dependencies — process-wide singletons and per-request services.

Invariants:
    - One PersonaRegistry and one GeoPrivacyObfuscator per process (shared cache)
    - Per-request services bind to the request's AsyncSession

Design Decisions:
    - lru_cache singletons over module globals: tests reset with cache_clear() or
      app.dependency_overrides
"""

from datetime import timedelta
from functools import lru_cache

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from trustgate.config import get_settings
from trustgate.core.geo_privacy import GeoPrivacyObfuscator, ObfuscationCache
from trustgate.infrastructure.database import get_db
from trustgate.infrastructure.repositories import (
    SqlEscrowRepository, SqlResourceLocationRepository, SqlSessionStore,
)
from trustgate.services.escrow_service import EscrowService
from trustgate.services.location_service import LocationService
from trustgate.services.persona_registry import (
    LoggingRoleChangeListener, PersonaRegistry,
)


@lru_cache
def get_obfuscator() -> GeoPrivacyObfuscator:
    settings = get_settings()
    return GeoPrivacyObfuscator(
        cache=ObfuscationCache(ttl=timedelta(seconds=settings.obfuscation_ttl_seconds)),
        max_offset_deg=settings.geo_max_offset_deg,
        obfuscated_zoom_cap=settings.geo_obfuscated_zoom_cap,
        precise_zoom=settings.geo_precise_zoom,
    )


@lru_cache
def get_persona_registry() -> PersonaRegistry:
    settings = get_settings()
    return PersonaRegistry(
        key_prefix=settings.session_storage_key,
        listener=LoggingRoleChangeListener(max_events=settings.role_event_history),
        obfuscation_cache=get_obfuscator().cache,
    )


def get_session_store(db: AsyncSession = Depends(get_db)) -> SqlSessionStore:
    return SqlSessionStore(db)


def get_escrow_service(db: AsyncSession = Depends(get_db)) -> EscrowService:
    settings = get_settings()
    return EscrowService(
        SqlEscrowRepository(db),
        platform_fee_bps=settings.platform_fee_bps,
        release_window=timedelta(hours=settings.release_window_hours),
    )


def get_location_service(
    db: AsyncSession = Depends(get_db),
    obfuscator: GeoPrivacyObfuscator = Depends(get_obfuscator),
) -> LocationService:
    return LocationService(SqlResourceLocationRepository(db), obfuscator)
