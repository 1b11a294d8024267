"""Location Service — resolves what a viewer may see of a resource's location.

Invariants:
    - The visibility decision is taken by core/visibility_gate at one clock reading
    - Only the MapView leaves this service; the true coordinate never does when
      the marker is hidden
    - Moving a resource's true coordinate invalidates its cached obfuscations
    - Guests share one viewer key, so anonymous visitors never get fresh draws;
      identity keys are prefixed and can never collide with it

Design Decisions:
    - An escrow only counts when it protects this resource and this payer
      (escrow_for_resource), otherwise it is ignored rather than rejected
"""

import logging
from datetime import datetime, timezone
from typing import Callable

from trustgate.core.domain_types import ResourceId
from trustgate.core.geo_privacy import GeoCoordinate, GeoPrivacyObfuscator, MapView
from trustgate.core.persona_state import Session
from trustgate.core.repository_protocols import ResourceLocationRepository
from trustgate.core.escrow_ledger import EscrowTransaction
from trustgate.core.visibility_gate import escrow_for_resource, show_precise_location

logger = logging.getLogger(__name__)

GUEST_VIEWER_ID = "guest"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def identity_viewer_key(identity_id: str) -> str:
    return f"id:{identity_id}"


def viewer_key(session: Session) -> str:
    """Obfuscation cache key; identities are namespaced apart from anonymous guests."""
    if session.identity_id is None:
        return GUEST_VIEWER_ID
    return identity_viewer_key(session.identity_id)


class LocationService:
    def __init__(
        self,
        locations: ResourceLocationRepository,
        obfuscator: GeoPrivacyObfuscator,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.locations = locations
        self.obfuscator = obfuscator
        self.clock = clock

    async def register(self, resource_id: str, coordinate: GeoCoordinate) -> None:
        previous = await self.locations.get(ResourceId(resource_id))
        await self.locations.put(ResourceId(resource_id), coordinate)
        if previous is not None and previous != coordinate:
            dropped = self.obfuscator.cache.invalidate_resource(resource_id)
            logger.info(
                "Resource moved, dropped %d obfuscation entries", dropped,
                extra={"resource_id": resource_id},
            )

    async def view(
        self,
        session: Session,
        resource_id: str,
        escrow: EscrowTransaction | None = None,
        requested_zoom: int | None = None,
    ) -> MapView:
        """Raises LocationUnavailableError when the resource has no coordinate."""
        coordinate = await self.locations.get(ResourceId(resource_id))
        escrow = escrow_for_resource(escrow, session, resource_id)
        precise = show_precise_location(session, escrow, self.clock())
        return self.obfuscator.obfuscate(
            viewer_key(session), resource_id, coordinate, precise, requested_zoom,
        )
