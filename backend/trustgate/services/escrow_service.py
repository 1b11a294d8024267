"""Escrow Service — load -> pure ledger transition -> save.

Invariants:
    - Every transition decision is made by core/escrow_ledger; this layer only does IO
    - Reads resolve the lazy deadline; the resolved status is written through best-effort
    - New escrows take the CURRENT configured fee rate, frozen on the record
    - A rejected transition never reaches storage

Design Decisions:
    - Clock injected (callable) so deadline behaviour is testable without sleeping
    - Explicit writes (create / apply_event) propagate storage errors: the caller
      asked for a state change and must know it did not stick
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable
from uuid import uuid4

from trustgate.core.domain_types import EscrowEvent, EscrowId, EscrowStatus
from trustgate.core.errors import ResourceNotFoundError
from trustgate.core.escrow_ledger import (
    EscrowTransaction, apply_event, held_total, open_escrow, resolve_deadline,
)
from trustgate.core.payout_split import PayoutSplit, compute_payout_split
from trustgate.core.repository_protocols import EscrowRepository

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_transaction_ref(now: datetime) -> str:
    return f"ESC-{now.year}-{uuid4().hex[:8].upper()}"


class EscrowService:
    def __init__(
        self,
        repo: EscrowRepository,
        platform_fee_bps: int,
        release_window: timedelta,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.repo = repo
        self.platform_fee_bps = platform_fee_bps
        self.release_window = release_window
        self.clock = clock

    async def create(
        self,
        amount: int,
        counterparty_ref: str,
        payer_ref: str | None = None,
        resource_ref: str | None = None,
    ) -> EscrowTransaction:
        now = self.clock()
        tx = open_escrow(
            EscrowId(uuid4().hex),
            amount=amount,
            counterparty_ref=counterparty_ref,
            now=now,
            platform_fee_bps=self.platform_fee_bps,
            payer_ref=payer_ref,
            resource_ref=resource_ref,
            transaction_ref=new_transaction_ref(now),
        )
        await self.repo.save(tx)
        logger.info(
            "Escrow opened", extra={"escrow_id": tx.id, "status": tx.status.value},
        )
        return tx

    async def get(self, escrow_id: str) -> EscrowTransaction:
        """Escrow with its effective status; raises ResourceNotFoundError."""
        tx = await self.find(escrow_id)
        if tx is None:
            raise ResourceNotFoundError("Escrow", escrow_id)
        return tx

    async def find(self, escrow_id: str | None) -> EscrowTransaction | None:
        if not escrow_id:
            return None
        stored = await self.repo.get(EscrowId(escrow_id))
        if stored is None:
            return None
        resolved = resolve_deadline(stored, self.clock())
        if resolved is not stored:
            await self._write_through(resolved)
        return resolved

    async def list_for_party(
        self, party_ref: str, status: EscrowStatus | None = None,
    ) -> tuple[list[EscrowTransaction], int]:
        """A party's escrows at their effective status, plus the held total.

        The held total covers every escrow of the party, whatever the filter.
        """
        now = self.clock()
        resolved = []
        for stored in await self.repo.list_for_party(party_ref):
            tx = resolve_deadline(stored, now)
            if tx is not stored:
                await self._write_through(tx)
            resolved.append(tx)
        total = held_total(resolved)
        if status is not None:
            resolved = [tx for tx in resolved if tx.status is status]
        return resolved, total

    async def apply(
        self,
        escrow_id: str,
        event: EscrowEvent | str,
        release_deadline: datetime | None = None,
    ) -> EscrowTransaction:
        stored = await self.repo.get(EscrowId(escrow_id))
        if stored is None:
            raise ResourceNotFoundError("Escrow", escrow_id)
        updated = apply_event(
            stored, event, self.clock(),
            release_window=self.release_window,
            release_deadline=release_deadline,
        )
        if updated is not stored:
            await self.repo.save(updated)
            logger.info(
                "Escrow %s -> %s", stored.status.value, updated.status.value,
                extra={"escrow_id": escrow_id, "event": str(getattr(event, "value", event))},
            )
        return updated

    async def payout(self, escrow_id: str) -> PayoutSplit:
        tx = await self.get(escrow_id)
        return compute_payout_split(tx, self.clock())

    async def _write_through(self, tx: EscrowTransaction) -> None:
        """Persist a lazily resolved status. Never crashes."""
        try:
            await self.repo.save(tx)
        except Exception as e:
            logger.error(
                "Failed to write through escrow status: %s", e,
                extra={"escrow_id": tx.id},
            )
