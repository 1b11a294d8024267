"""Snapshots — persisted layouts for Session and EscrowTransaction.

Invariants:
    - *_to_snapshot produces a JSON-safe dict (no sets, no Enums, ISO datetimes)
    - *_from_snapshot reconstructs an equivalent object or raises ValueError
    - Session layout: {identityId, activeRole, unlockedRoles: [...]}; verification
      facts are NOT persisted here (the profile store owns them)
    - Missing / empty session snapshot falls back to a guest session

Design Decisions:
    - unlockedRoles written in catalog order: stable diffs, deterministic storage
    - A snapshot whose activeRole is not unlocked is rejected, not repaired
"""

from datetime import datetime

from trustgate.core.domain_types import EscrowId, EscrowStatus, IdentityId, Persona
from trustgate.core.escrow_ledger import EscrowTransaction
from trustgate.core.identity import Identity
from trustgate.core.persona_state import Session, guest_session


def session_storage_key(prefix: str, identity_id: str) -> str:
    """Namespaced key a session is persisted under."""
    return f"{prefix}:{identity_id}"


def session_to_snapshot(session: Session) -> dict:
    return {
        "identityId": session.identity_id,
        "activeRole": session.active_role.value,
        "unlockedRoles": [p.value for p in session.ordered_unlocked_roles],
    }


def session_from_snapshot(data: dict | None, identity: Identity | None = None) -> Session:
    """Rebuild a session. identity supplies fresh verification facts if known."""
    if not data or not data.get("identityId"):
        return guest_session()
    if identity is None:
        identity = Identity(identity_id=IdentityId(data["identityId"]))
    elif identity.identity_id != data["identityId"]:
        raise ValueError("snapshot belongs to a different identity")
    return Session(
        identity=identity,
        active_role=Persona(data.get("activeRole", Persona.CONSUMER.value)),
        unlocked_roles=frozenset(
            Persona(r) for r in data.get("unlockedRoles", [Persona.CONSUMER.value])
        ),
    )


def escrow_to_snapshot(tx: EscrowTransaction) -> dict:
    return {
        "id": tx.id,
        "transactionRef": tx.transaction_ref,
        "amount": tx.amount,
        "platformFeeBps": tx.platform_fee_bps,
        "status": tx.status.value,
        "payerRef": tx.payer_ref,
        "counterpartyRef": tx.counterparty_ref,
        "resourceRef": tx.resource_ref,
        "createdAt": tx.created_at.isoformat(),
        "releaseDeadline": (
            tx.release_deadline.isoformat() if tx.release_deadline else None
        ),
    }


def escrow_from_snapshot(data: dict) -> EscrowTransaction:
    deadline = data.get("releaseDeadline")
    return EscrowTransaction(
        id=EscrowId(data["id"]),
        amount=data["amount"],
        counterparty_ref=data["counterpartyRef"],
        created_at=datetime.fromisoformat(data["createdAt"]),
        platform_fee_bps=data["platformFeeBps"],
        status=EscrowStatus(data["status"]),
        release_deadline=datetime.fromisoformat(deadline) if deadline else None,
        payer_ref=data.get("payerRef"),
        resource_ref=data.get("resourceRef"),
        transaction_ref=data.get("transactionRef"),
    )
