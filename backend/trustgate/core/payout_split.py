"""Payout Split — how a settled escrow's gross amount is distributed.

Invariants:
    - Only terminal escrows settle: RELEASED pays the provider, REFUNDED repays the payer
    - gross == platform_fee + provider_share + payer_refund (no minor unit lost)
    - A refund carries no platform fee
"""

from dataclasses import dataclass
from datetime import datetime

from trustgate.core.domain_types import EscrowStatus
from trustgate.core.errors import ErrorContext, PayoutNotReleasedError
from trustgate.core.escrow_ledger import EscrowTransaction, resolve_deadline


@dataclass(frozen=True)
class PayoutSplit:
    gross: int
    platform_fee: int
    provider_share: int
    payer_refund: int
    fee_bps: int


def compute_payout_split(tx: EscrowTransaction, now: datetime) -> PayoutSplit:
    """Split a settled escrow. Raises PayoutNotReleasedError while funds are open."""
    settled = resolve_deadline(tx, now)
    if settled.status is EscrowStatus.RELEASED:
        return PayoutSplit(
            gross=settled.amount,
            platform_fee=settled.platform_fee,
            provider_share=settled.net_amount,
            payer_refund=0,
            fee_bps=settled.platform_fee_bps,
        )
    if settled.status is EscrowStatus.REFUNDED:
        return PayoutSplit(
            gross=settled.amount,
            platform_fee=0,
            provider_share=0,
            payer_refund=settled.amount,
            fee_bps=settled.platform_fee_bps,
        )
    raise PayoutNotReleasedError(
        settled.status.value, ErrorContext(escrow_id=settled.id),
    )
