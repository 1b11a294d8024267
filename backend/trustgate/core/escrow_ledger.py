"""Escrow Ledger — per-transaction state machine and integer fee arithmetic.

Invariants:
    - All functions are PURE: no IO, no async, no DB; now is always passed in
    - Money is int minor units; platform_fee = floor(amount * bps / 10_000)
    - platform_fee_bps is fixed at creation and never changed afterwards
    - net_amount / platform_fee are computed, never stored
    - RELEASED and REFUNDED are terminal: no outgoing transitions
    - A rejected transition raises InvalidEscrowTransitionError; the input is untouched
    - Re-applying the event that led into the current status is a no-op
    - release_window -> released on deadline is evaluated lazily on read

Design Decisions:
    - Transition table as data (dict) over if/else chains: the table IS the contract
    - Frozen dataclass + dataclasses.replace: callers never see a half-updated record
    - Deadline resolution is a pure function of (status, deadline, now): no scheduler
"""

from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Iterable

from trustgate.core.domain_types import (
    BPS_DENOMINATOR, DEFAULT_PLATFORM_FEE_BPS, DEFAULT_RELEASE_WINDOW_HOURS,
    EscrowEvent, EscrowId, EscrowStatus, TERMINAL_ESCROW_STATUSES,
)
from trustgate.core.errors import (
    ErrorContext, EscrowValidationError, InvalidEscrowTransitionError,
)


TRANSITIONS: dict[tuple[EscrowStatus, EscrowEvent], EscrowStatus] = {
    (EscrowStatus.NONE, EscrowEvent.FUNDS_COMMITTED): EscrowStatus.HELD,
    (EscrowStatus.HELD, EscrowEvent.DELIVERY_OR_MOVE_IN_CONFIRMED): EscrowStatus.RELEASE_WINDOW,
    (EscrowStatus.RELEASE_WINDOW, EscrowEvent.COUNTERPARTY_CONFIRMS_OR_DEADLINE_PASSES): EscrowStatus.RELEASED,
    (EscrowStatus.HELD, EscrowEvent.DISPUTE_RAISED): EscrowStatus.DISPUTED,
    (EscrowStatus.RELEASE_WINDOW, EscrowEvent.DISPUTE_RAISED): EscrowStatus.DISPUTED,
    (EscrowStatus.DISPUTED, EscrowEvent.RESOLUTION_FAVORS_PAYEE): EscrowStatus.RELEASED,
    (EscrowStatus.DISPUTED, EscrowEvent.RESOLUTION_FAVORS_PAYER): EscrowStatus.REFUNDED,
}


# --- Fee arithmetic -----------------------------------------------------------

def compute_platform_fee(amount: int, fee_bps: int = DEFAULT_PLATFORM_FEE_BPS) -> int:
    """floor(amount * fee_bps / 10_000) in integer arithmetic."""
    _validate_money(amount, fee_bps)
    return amount * fee_bps // BPS_DENOMINATOR


def compute_net_amount(amount: int, fee_bps: int = DEFAULT_PLATFORM_FEE_BPS) -> int:
    """amount - platform fee. e.g. 75000 @ 1200 bps -> 66000."""
    return amount - compute_platform_fee(amount, fee_bps)


def _validate_money(amount: object, fee_bps: object) -> None:
    # bool is an int subclass; reject it along with floats and Decimals
    if type(amount) is not int:
        raise EscrowValidationError(
            f"amount must be an integer in minor units, got {type(amount).__name__}",
            "amount",
        )
    if amount < 0:
        raise EscrowValidationError(f"amount must be >= 0, got {amount}", "amount")
    if type(fee_bps) is not int:
        raise EscrowValidationError(
            f"platform_fee_bps must be an integer, got {type(fee_bps).__name__}",
            "platform_fee_bps",
        )
    if not 0 <= fee_bps <= BPS_DENOMINATOR:
        raise EscrowValidationError(
            f"platform_fee_bps must be within 0..{BPS_DENOMINATOR}, got {fee_bps}",
            "platform_fee_bps",
        )


# --- Transaction record -------------------------------------------------------

@dataclass(frozen=True)
class EscrowTransaction:
    """Escrow-protected payment. Immutable; transitions return a new record."""

    id: EscrowId
    amount: int
    counterparty_ref: str
    created_at: datetime
    platform_fee_bps: int = DEFAULT_PLATFORM_FEE_BPS
    status: EscrowStatus = EscrowStatus.NONE
    release_deadline: datetime | None = None
    payer_ref: str | None = None
    resource_ref: str | None = None
    transaction_ref: str | None = None

    def __post_init__(self) -> None:
        _validate_money(self.amount, self.platform_fee_bps)

    @property
    def platform_fee(self) -> int:
        return compute_platform_fee(self.amount, self.platform_fee_bps)

    @property
    def net_amount(self) -> int:
        return compute_net_amount(self.amount, self.platform_fee_bps)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_ESCROW_STATUSES


def open_escrow(
    escrow_id: EscrowId,
    amount: int,
    counterparty_ref: str,
    now: datetime,
    platform_fee_bps: int = DEFAULT_PLATFORM_FEE_BPS,
    payer_ref: str | None = None,
    resource_ref: str | None = None,
    transaction_ref: str | None = None,
) -> EscrowTransaction:
    """Create a transaction in status NONE with its fee rate frozen."""
    return EscrowTransaction(
        id=escrow_id,
        amount=amount,
        counterparty_ref=counterparty_ref,
        created_at=now,
        platform_fee_bps=platform_fee_bps,
        payer_ref=payer_ref,
        resource_ref=resource_ref,
        transaction_ref=transaction_ref,
    )


# --- Lazy deadline ------------------------------------------------------------

def effective_status(
    status: EscrowStatus, release_deadline: datetime | None, now: datetime,
) -> EscrowStatus:
    """Status as of now: an expired release window reads as RELEASED."""
    if (
        status is EscrowStatus.RELEASE_WINDOW
        and release_deadline is not None
        and _aware(now) > _aware(release_deadline)
    ):
        return EscrowStatus.RELEASED
    return status


def resolve_deadline(tx: EscrowTransaction, now: datetime) -> EscrowTransaction:
    """Write-through copy of tx with the lazily computed status applied."""
    status = effective_status(tx.status, tx.release_deadline, now)
    if status is tx.status:
        return tx
    return replace(tx, status=status)


def held_total(transactions: Iterable[EscrowTransaction]) -> int:
    """Sum of amounts whose status is HELD (release windows and settled excluded)."""
    return sum(tx.amount for tx in transactions if tx.status is EscrowStatus.HELD)


# --- Transitions --------------------------------------------------------------

def is_valid_transition(status: EscrowStatus, event: EscrowEvent) -> bool:
    return (status, event) in TRANSITIONS


def _leads_into(event: EscrowEvent, status: EscrowStatus) -> bool:
    return any(e is event and to is status for (_, e), to in TRANSITIONS.items())


def apply_event(
    tx: EscrowTransaction,
    event: EscrowEvent | str,
    now: datetime,
    release_window: timedelta = timedelta(hours=DEFAULT_RELEASE_WINDOW_HOURS),
    release_deadline: datetime | None = None,
) -> EscrowTransaction:
    """Apply a trigger event. Returns the new record (or tx itself for a retry).

    The lazy deadline is resolved first, so an event arriving after the
    release window closed is judged against RELEASED.
    """
    current = resolve_deadline(tx, now)
    ev = _coerce_event(event, current)

    if _leads_into(ev, current.status):
        return current

    target = TRANSITIONS.get((current.status, ev))
    if target is None:
        raise InvalidEscrowTransitionError(
            current.status.value, ev.value,
            ErrorContext(escrow_id=tx.id),
        )

    if target is EscrowStatus.RELEASE_WINDOW:
        deadline = release_deadline or (_aware(now) + release_window)
        return replace(current, status=target, release_deadline=deadline)
    return replace(current, status=target)


def _coerce_event(event: EscrowEvent | str, tx: EscrowTransaction) -> EscrowEvent:
    if isinstance(event, EscrowEvent):
        return event
    try:
        return EscrowEvent(event)
    except ValueError:
        raise InvalidEscrowTransitionError(
            tx.status.value, str(event), ErrorContext(escrow_id=tx.id),
        ) from None


def _aware(moment: datetime) -> datetime:
    """Treat naive datetimes as UTC so comparisons never raise."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment
