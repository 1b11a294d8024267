"""Persona Session ORM — persisted {identityId, activeRole, unlockedRoles} layout.

Invariants:
    - storage_key is the namespaced key ("<prefix>:<identityId>")
    - unlocked_roles stored as a JSON list in catalog order
    - Verification facts are NOT stored here (the profile store owns them)
"""

from datetime import datetime, timezone

from sqlalchemy import JSON, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from trustgate.db.base import Base


class PersonaSessionRecord(Base):
    __tablename__ = "persona_sessions"

    storage_key: Mapped[str] = mapped_column(String(200), primary_key=True)
    identity_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    active_role: Mapped[str] = mapped_column(String(20), nullable=False)
    unlocked_roles: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def to_snapshot(self) -> dict:
        return {
            "identityId": self.identity_id,
            "activeRole": self.active_role,
            "unlockedRoles": list(self.unlocked_roles or []),
        }
