"""Persona Registry — owns live Session objects and persists them best-effort.

Invariants:
    - The in-memory session is authoritative for every decision made in this process
    - Storage is written AFTER the in-memory swap; a storage failure is logged and
      never rolls back or corrupts the in-memory session
    - Sessions are swapped as whole objects (copy-on-write)
    - Logout also drops the viewer's obfuscation cache entries

Design Decisions:
    - Module-level singleton via api/dependencies: single-process uvicorn, state rebuilt
      from the session store on first access after restart
    - Restored sessions carry empty verification facts until the profile store
      supplies fresh ones (refresh_identity), so nothing is over-granted
"""

import logging

from trustgate.core.domain_types import IdentityId, Persona
from trustgate.core.geo_privacy import ObfuscationCache
from trustgate.core.identity import Identity
from trustgate.core.persona_state import (
    Session, authenticate, guest_session, reset, switch_role, unlock_role,
)
from trustgate.core.repository_protocols import SessionStore
from trustgate.core.role_events import RecordingRoleChangeListener, RoleChanged
from trustgate.core.snapshots import (
    session_from_snapshot, session_storage_key, session_to_snapshot,
)
from trustgate.services.location_service import identity_viewer_key

logger = logging.getLogger(__name__)


class LoggingRoleChangeListener(RecordingRoleChangeListener):
    """Presentation hook used by the HTTP shell: logs and keeps recent events."""

    def emit(self, event: RoleChanged) -> None:
        super().emit(event)
        logger.info(
            "Persona switched %s -> %s",
            event.switch.from_role.value, event.new_role.value,
            extra={"identity_id": event.identity_id, "active_role": event.new_role.value,
                   "event": "role_changed"},
        )


class PersonaRegistry:
    """Live sessions keyed by identity id."""

    def __init__(
        self,
        key_prefix: str,
        listener: RecordingRoleChangeListener | None = None,
        obfuscation_cache: ObfuscationCache | None = None,
    ):
        self.key_prefix = key_prefix
        self.listener = listener if listener is not None else LoggingRoleChangeListener()
        self._obfuscation_cache = obfuscation_cache
        self._sessions: dict[str, Session] = {}

    def storage_key(self, identity_id: str) -> str:
        return session_storage_key(self.key_prefix, identity_id)

    async def get(self, identity_id: str | None, store: SessionStore | None = None) -> Session:
        """Live session, else restored snapshot, else guest."""
        if not identity_id:
            return guest_session()
        session = self._sessions.get(identity_id)
        if session is not None:
            return session
        if store is None:
            return guest_session()
        snapshot = await _load_best_effort(store, self.storage_key(identity_id))
        if not snapshot:
            return guest_session()
        try:
            session = session_from_snapshot(snapshot)
        except ValueError as e:
            logger.warning(
                "Discarding invalid session snapshot: %s", e,
                extra={"identity_id": identity_id},
            )
            return guest_session()
        self._sessions[identity_id] = session
        return session

    async def authenticate(self, identity: Identity, store: SessionStore) -> Session:
        session = authenticate(identity)
        return await self._commit(session, store)

    async def refresh_identity(self, identity: Identity, store: SessionStore) -> Session:
        """Attach fresh verification facts from the profile store."""
        current = await self.get(identity.identity_id, store)
        if not current.is_authenticated:
            return current
        refreshed = Session(
            identity=identity,
            active_role=current.active_role,
            unlocked_roles=current.unlocked_roles,
        )
        self._sessions[identity.identity_id] = refreshed
        return refreshed

    async def switch(
        self, identity_id: str, target: Persona | str, store: SessionStore,
    ) -> Session:
        current = await self.get(identity_id, store)
        session = switch_role(current, target, self.listener)
        return await self._commit(session, store)

    async def unlock(
        self, identity_id: str, role: Persona | str, store: SessionStore,
    ) -> Session:
        current = await self.get(identity_id, store)
        session = unlock_role(current, role)
        if session is current:
            return current
        return await self._commit(session, store)

    async def logout(self, identity_id: str, store: SessionStore) -> Session:
        current = self._sessions.pop(identity_id, None)
        if self._obfuscation_cache is not None:
            self._obfuscation_cache.invalidate_viewer(identity_viewer_key(identity_id))
        await _delete_best_effort(store, self.storage_key(identity_id))
        return reset(current or guest_session())

    def role_history(self, identity_id: str) -> list[RoleChanged]:
        return self.listener.for_identity(identity_id)

    async def _commit(self, session: Session, store: SessionStore) -> Session:
        identity_id = IdentityId(session.identity_id)
        self._sessions[identity_id] = session
        await _save_best_effort(
            store, self.storage_key(identity_id), session_to_snapshot(session),
        )
        return session


async def _save_best_effort(store: SessionStore, key: str, snapshot: dict) -> None:
    """Persist a session snapshot. Never crashes."""
    try:
        await store.save(key, snapshot)
    except Exception as e:
        logger.error("Failed to persist session %s: %s", key, e)


async def _delete_best_effort(store: SessionStore, key: str) -> None:
    try:
        await store.delete(key)
    except Exception as e:
        logger.error("Failed to delete session %s: %s", key, e)


async def _load_best_effort(store: SessionStore, key: str) -> dict | None:
    try:
        return await store.load(key)
    except Exception as e:
        logger.error("Failed to load session %s: %s", key, e)
        return None
