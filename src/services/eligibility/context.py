"""
Eligibility evaluation context.

Built fresh for each check from snapshots, evaluated once, then discarded.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Optional

from src.services.preauth_state_machine import PreAuthorizationSnapshot
from src.services.snapshots import (
    BenefitUsage,
    EmployerSnapshot,
    MemberSnapshot,
    PolicySnapshot,
    ProviderSnapshot,
)


@dataclass(frozen=True)
class EligibilityContext:
    """Immutable inputs for one eligibility check."""

    member_id: str
    service_code: str
    service_date: date
    # Reference "today" for date sanity rules; rules never read the clock.
    as_of: date
    member: Optional[MemberSnapshot] = None
    policy: Optional[PolicySnapshot] = None
    employer: Optional[EmployerSnapshot] = None
    provider: Optional[ProviderSnapshot] = None
    provider_id: Optional[str] = None
    service_category: Optional[str] = None
    requested_amount: Optional[Decimal] = None
    usage: BenefitUsage = field(default_factory=BenefitUsage)
    pre_authorization_id: Optional[str] = None
    pre_authorization: Optional[PreAuthorizationSnapshot] = None

    @property
    def has_member(self) -> bool:
        return self.member is not None

    @property
    def has_policy(self) -> bool:
        return self.policy is not None

    @property
    def benefit_configuration(self):
        return self.policy.benefit_configuration if self.policy else None

    def snapshot(self) -> dict[str, Any]:
        """Serializable copy of the context as seen at decision time."""
        return {
            "member_id": self.member_id,
            "member": self.member.to_dict() if self.member else None,
            "policy": self.policy.to_dict() if self.policy else None,
            "employer": self.employer.to_dict() if self.employer else None,
            "provider": self.provider.to_dict() if self.provider else None,
            "provider_id": self.provider_id,
            "service_code": self.service_code,
            "service_category": self.service_category,
            "service_date": self.service_date.isoformat(),
            "requested_amount": str(self.requested_amount) if self.requested_amount is not None else None,
            "usage": self.usage.to_dict(),
            "pre_authorization_id": self.pre_authorization_id,
            "pre_authorization": self.pre_authorization.to_dict() if self.pre_authorization else None,
        }
