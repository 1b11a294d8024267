"""Escrow Transaction ORM — one row per escrow, keyed by id.

Invariants:
    - amount and platform_fee_bps are integers (BigInteger / Integer), never floats
    - net amount and fee are not stored; they are recomputed from amount + bps
    - status holds the last persisted status; readers resolve the lazy deadline
    - Rows map to and from the core escrow snapshot layout; naive datetimes (SQLite) read as UTC

Design Decisions:
    - Denormalized counterparty / payer / resource refs: no FK to external stores
"""

from datetime import datetime, timezone

from sqlalchemy import BigInteger, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from trustgate.db.base import Base


class EscrowTransactionRecord(Base):
    __tablename__ = "escrow_transactions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    transaction_ref: Mapped[str | None] = mapped_column(String(64), nullable=True)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    platform_fee_bps: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="none")
    payer_ref: Mapped[str | None] = mapped_column(String(100), nullable=True)
    counterparty_ref: Mapped[str] = mapped_column(String(100), nullable=False)
    resource_ref: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    release_deadline: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def to_snapshot(self) -> dict:
        return {
            "id": self.id,
            "transactionRef": self.transaction_ref,
            "amount": int(self.amount),
            "platformFeeBps": int(self.platform_fee_bps),
            "status": self.status,
            "payerRef": self.payer_ref,
            "counterpartyRef": self.counterparty_ref,
            "resourceRef": self.resource_ref,
            "createdAt": _iso_utc(self.created_at),
            "releaseDeadline": _iso_utc(self.release_deadline),
        }

    def update_from_snapshot(self, snapshot: dict) -> None:
        self.transaction_ref = snapshot["transactionRef"]
        self.amount = snapshot["amount"]
        self.platform_fee_bps = snapshot["platformFeeBps"]
        self.status = snapshot["status"]
        self.payer_ref = snapshot["payerRef"]
        self.counterparty_ref = snapshot["counterpartyRef"]
        self.resource_ref = snapshot["resourceRef"]
        self.created_at = datetime.fromisoformat(snapshot["createdAt"])
        deadline = snapshot["releaseDeadline"]
        self.release_deadline = datetime.fromisoformat(deadline) if deadline else None


def _iso_utc(moment: datetime | None) -> str | None:
    if moment is None:
        return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.isoformat()
