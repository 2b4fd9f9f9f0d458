"""
Claim Amount Split.

Splits a requested claim amount into the patient co-pay and the net amount
payable to the provider, using the resolved coverage percent and the
remaining amount limit.

Invariant: requested = patient_copay + net_provider_amount.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional

CENTS = Decimal("0.01")


@dataclass(frozen=True)
class ClaimAmounts:
    """Cost split for one claim."""

    requested_amount: Decimal
    patient_copay: Decimal
    net_provider_amount: Decimal
    coverage_percent: int
    limit_applied: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "requested_amount": str(self.requested_amount),
            "patient_copay": str(self.patient_copay),
            "net_provider_amount": str(self.net_provider_amount),
            "coverage_percent": self.coverage_percent,
            "limit_applied": self.limit_applied,
        }


def split_claim_amount(
    requested: Decimal,
    coverage_percent: int,
    amount_limit: Optional[Decimal] = None,
) -> ClaimAmounts:
    """
    Split a requested amount into co-pay and net provider amount.

    Args:
        requested: Amount claimed
        coverage_percent: Effective coverage percent (0-100)
        amount_limit: Remaining benefit limit, if any

    Returns:
        ClaimAmounts with both parts rounded half-up to cents
    """
    if requested < 0:
        raise ValueError("Requested amount cannot be negative")
    if not 0 <= coverage_percent <= 100:
        raise ValueError(f"Coverage percent must be between 0 and 100, got {coverage_percent}")

    requested = requested.quantize(CENTS, rounding=ROUND_HALF_UP)
    copay_rate = Decimal(100 - coverage_percent) / Decimal(100)
    copay = (requested * copay_rate).quantize(CENTS, rounding=ROUND_HALF_UP)
    net = requested - copay

    limit_applied = False
    if amount_limit is not None:
        cap = max(amount_limit, Decimal("0")).quantize(CENTS, rounding=ROUND_HALF_UP)
        if net > cap:
            net = cap
            copay = requested - net
            limit_applied = True

    return ClaimAmounts(
        requested_amount=requested,
        patient_copay=copay,
        net_provider_amount=net,
        coverage_percent=coverage_percent,
        limit_applied=limit_applied,
    )
