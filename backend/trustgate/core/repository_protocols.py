"""Boundary Protocols — contracts between core and shell.

Invariants:
    - Core NEVER imports from shell — dependency arrows point inward only
    - All IO operations accessed through Protocol types
    - Implementations provided by shell via dependency injection

Design Decisions:
    - Protocol over ABC: structural subtyping, no inheritance hierarchy
    - Async in Protocol: boundary methods are async because implementations do IO,
      but the pure functions deciding visibility are never async themselves
"""

from typing import Protocol

from trustgate.core.domain_types import EscrowId, ResourceId
from trustgate.core.escrow_ledger import EscrowTransaction
from trustgate.core.geo_privacy import GeoCoordinate


class SessionStore(Protocol):
    """Persisted session layouts keyed by namespaced storage key."""
    async def load(self, storage_key: str) -> dict | None: ...
    async def save(self, storage_key: str, snapshot: dict) -> None: ...
    async def delete(self, storage_key: str) -> None: ...


class EscrowRepository(Protocol):
    """Escrow transactions persisted by id."""
    async def get(self, escrow_id: EscrowId) -> EscrowTransaction | None: ...
    async def list_for_party(self, party_ref: str) -> list[EscrowTransaction]: ...
    async def save(self, tx: EscrowTransaction) -> None: ...


class ResourceLocationRepository(Protocol):
    """The single true coordinate owned by each resource."""
    async def get(self, resource_id: ResourceId) -> GeoCoordinate | None: ...
    async def put(self, resource_id: ResourceId, coordinate: GeoCoordinate) -> None: ...
