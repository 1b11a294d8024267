"""SQLAlchemy Repositories — shell implementations of core/repository_protocols.

Invariants:
    - Repositories translate rows <-> core objects; they make no policy decisions
    - save() commits; callers wanting best-effort semantics wrap the call
    - A failed statement rolls the request's AsyncSession back before DatabaseError
      propagates, so later queries in the same request still run
    - Escrow rows are read and written through the core snapshot layout (core/snapshots)

Design Decisions:
    - One AsyncSession per request, injected by the route via get_db
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import delete, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from trustgate.core.domain_types import EscrowId, ResourceId
from trustgate.core.errors import DatabaseError
from trustgate.core.escrow_ledger import EscrowTransaction
from trustgate.core.geo_privacy import GeoCoordinate
from trustgate.core.snapshots import escrow_from_snapshot, escrow_to_snapshot
from trustgate.models.escrow_transaction import EscrowTransactionRecord
from trustgate.models.persona_session import PersonaSessionRecord
from trustgate.models.resource_location import ResourceLocationRecord

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _rollback_on_error(db: AsyncSession, operation: str) -> AsyncGenerator[None, None]:
    """Leave the session usable after a failed statement."""
    try:
        yield
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("Repository %s failed: %s", operation, e)
        raise DatabaseError(type(e).__name__, operation) from e


class SqlSessionStore:
    """Persona sessions under their namespaced storage key."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def load(self, storage_key: str) -> dict | None:
        async with _rollback_on_error(self.db, "load session"):
            row = await self.db.get(PersonaSessionRecord, storage_key)
            return row.to_snapshot() if row else None

    async def save(self, storage_key: str, snapshot: dict) -> None:
        async with _rollback_on_error(self.db, "save session"):
            row = await self.db.get(PersonaSessionRecord, storage_key)
            if row is None:
                row = PersonaSessionRecord(storage_key=storage_key)
                self.db.add(row)
            row.identity_id = snapshot["identityId"]
            row.active_role = snapshot["activeRole"]
            row.unlocked_roles = list(snapshot["unlockedRoles"])
            await self.db.commit()

    async def delete(self, storage_key: str) -> None:
        async with _rollback_on_error(self.db, "delete session"):
            await self.db.execute(
                delete(PersonaSessionRecord).where(
                    PersonaSessionRecord.storage_key == storage_key,
                ),
            )
            await self.db.commit()


class SqlEscrowRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, escrow_id: EscrowId) -> EscrowTransaction | None:
        async with _rollback_on_error(self.db, "load escrow"):
            row = await self.db.get(EscrowTransactionRecord, escrow_id)
            return escrow_from_snapshot(row.to_snapshot()) if row else None

    async def list_for_party(self, party_ref: str) -> list[EscrowTransaction]:
        """Escrows where party_ref pays or receives, newest first."""
        async with _rollback_on_error(self.db, "list escrows"):
            result = await self.db.execute(
                select(EscrowTransactionRecord)
                .where(or_(
                    EscrowTransactionRecord.payer_ref == party_ref,
                    EscrowTransactionRecord.counterparty_ref == party_ref,
                ))
                .order_by(EscrowTransactionRecord.created_at.desc()),
            )
            return [
                escrow_from_snapshot(r.to_snapshot()) for r in result.scalars().all()
            ]

    async def save(self, tx: EscrowTransaction) -> None:
        async with _rollback_on_error(self.db, "save escrow"):
            row = await self.db.get(EscrowTransactionRecord, tx.id)
            if row is None:
                row = EscrowTransactionRecord(id=tx.id)
                self.db.add(row)
            row.update_from_snapshot(escrow_to_snapshot(tx))
            await self.db.commit()


class SqlResourceLocationRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, resource_id: ResourceId) -> GeoCoordinate | None:
        async with _rollback_on_error(self.db, "load location"):
            row = await self.db.get(ResourceLocationRecord, resource_id)
            return GeoCoordinate(lat=row.lat, lng=row.lng) if row else None

    async def put(self, resource_id: ResourceId, coordinate: GeoCoordinate) -> None:
        async with _rollback_on_error(self.db, "save location"):
            row = await self.db.get(ResourceLocationRecord, resource_id)
            if row is None:
                row = ResourceLocationRecord(resource_id=resource_id)
                self.db.add(row)
            row.lat = coordinate.lat
            row.lng = coordinate.lng
            await self.db.commit()
