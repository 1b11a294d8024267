"""Role Events — notification contract between persona switching and presentation.

Invariants:
    - Exactly one RoleChanged is emitted per successful switch_role
    - Events are immutable observations: the core never reads them back
    - Listeners are observational only; theme or navigation changes happen there

Design Decisions:
    - Protocol over ABC: the host layer subscribes with any object that has emit()
    - Synchronous emit: the core has no suspension points
    - NullRoleChangeListener for callers that do not care about presentation
"""

from __future__ import annotations

from collections import deque
from datetime import datetime, timezone
from typing import Protocol
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from trustgate.core.domain_types import Persona


class PersonaSwitch(BaseModel):
    """Activity-log record of a single persona switch."""

    from_role: Persona
    to_role: Persona
    switched_at: datetime

    model_config = ConfigDict(frozen=True, extra="forbid")


class RoleChanged(BaseModel):
    """Notification delivered to the presentation collaborator."""

    event_id: UUID = Field(default_factory=uuid4)
    identity_id: str
    new_role: Persona
    switch: PersonaSwitch
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )

    model_config = ConfigDict(frozen=True, extra="forbid")


class RoleChangeListener(Protocol):
    """Receives role-changed notifications. Must not raise back into the core."""

    def emit(self, event: RoleChanged) -> None:
        ...


class NullRoleChangeListener:
    """A safe no-op listener."""

    def emit(self, event: RoleChanged) -> None:
        return


class RecordingRoleChangeListener:
    """Keeps the most recent events in order, bounded by max_events."""

    def __init__(self, max_events: int = 100) -> None:
        self._events: deque[RoleChanged] = deque(maxlen=max_events)

    def emit(self, event: RoleChanged) -> None:
        self._events.append(event)

    @property
    def events(self) -> list[RoleChanged]:
        return list(self._events)

    def for_identity(self, identity_id: str) -> list[RoleChanged]:
        return [e for e in self._events if e.identity_id == identity_id]
