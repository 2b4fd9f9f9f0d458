"""
Point-in-time snapshots of the entities an eligibility decision reads.

Snapshots are flat, frozen copies taken from storage before evaluation.
Services never walk live ORM relationships; they only see these values.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Optional

from src.core.enums import (
    CardStatus,
    MemberStatus,
    PolicyStatus,
    ProviderNetworkStatus,
)
from src.services.coverage_resolver import BenefitConfiguration


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass(frozen=True)
class PolicySnapshot:
    """Policy state at decision time."""

    policy_id: str
    policy_number: str
    status: PolicyStatus
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    active: bool = True
    benefit_configuration: Optional[BenefitConfiguration] = None
    product_name: Optional[str] = None
    employer_id: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        config = self.benefit_configuration
        return {
            "policy_id": self.policy_id,
            "policy_number": self.policy_number,
            "status": self.status.value,
            "start_date": _iso(self.start_date),
            "end_date": _iso(self.end_date),
            "active": self.active,
            "benefit_configuration_id": config.configuration_id if config else None,
            "product_name": self.product_name,
        }


@dataclass(frozen=True)
class MemberSnapshot:
    """Member state at decision time."""

    member_id: str
    full_name: str
    status: MemberStatus
    civil_id: Optional[str] = None
    card_number: Optional[str] = None
    card_status: Optional[CardStatus] = None
    card_expiry_date: Optional[date] = None
    enrollment_date: Optional[date] = None
    policy_id: Optional[str] = None
    employer_id: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "member_id": self.member_id,
            "full_name": self.full_name,
            "status": self.status.value,
            "civil_id": self.civil_id,
            "card_number": self.card_number,
            "card_status": self.card_status.value if self.card_status else None,
            "enrollment_date": _iso(self.enrollment_date),
        }


@dataclass(frozen=True)
class EmployerSnapshot:
    """Employer (policy holder) state at decision time."""

    employer_id: str
    name: str
    active: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {"employer_id": self.employer_id, "name": self.name, "active": self.active}


@dataclass(frozen=True)
class ProviderSnapshot:
    """Provider state at decision time."""

    provider_id: str
    name: str
    active: bool = True
    network_status: ProviderNetworkStatus = ProviderNetworkStatus.IN_NETWORK

    def to_dict(self) -> dict[str, Any]:
        return {
            "provider_id": self.provider_id,
            "name": self.name,
            "active": self.active,
            "network_status": self.network_status.value,
        }


@dataclass(frozen=True)
class BenefitUsage:
    """Benefit consumed so far in the current period for the resolved rule."""

    amount_used: Decimal = Decimal("0")
    times_used: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"amount_used": str(self.amount_used), "times_used": self.times_used}
