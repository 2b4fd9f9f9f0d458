"""
Policy Activity Validator.

Decides whether a policy is usable for a service date. Checks run in a fixed
order and the first failure wins:
1. Status is ACTIVE (each other status has its own reason)
2. Active flag is set
3. Service date is on or after the start date
4. Service date is on or before the end date
5. A linked, active benefit configuration exists

Failures are returned as typed errors, never raised from validate().
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional

from src.core.enums import MemberStatus, PolicyStatus
from src.services.snapshots import MemberSnapshot, PolicySnapshot
from src.utils.errors import (
    BusinessRuleError,
    ErrorCode,
    PolicyFailureReason,
    PolicyNotActiveError,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Status Messages
# =============================================================================

# Every non-ACTIVE status must have an entry; checked at import time below.
STATUS_FAILURES: dict[PolicyStatus, tuple[PolicyFailureReason, str]] = {
    PolicyStatus.PENDING: (PolicyFailureReason.PENDING, "Policy {number} is pending activation"),
    PolicyStatus.SUSPENDED: (PolicyFailureReason.SUSPENDED, "Policy {number} is suspended"),
    PolicyStatus.EXPIRED: (PolicyFailureReason.EXPIRED, "Policy {number} has expired"),
    PolicyStatus.CANCELLED: (PolicyFailureReason.CANCELLED, "Policy {number} has been cancelled"),
    PolicyStatus.RENEWAL_PENDING: (
        PolicyFailureReason.RENEWAL_PENDING,
        "Policy {number} is pending renewal",
    ),
}

_unmapped = set(PolicyStatus) - {PolicyStatus.ACTIVE} - set(STATUS_FAILURES)
if _unmapped:
    raise RuntimeError(f"Policy statuses without a failure message: {sorted(s.value for s in _unmapped)}")


@dataclass(frozen=True)
class PolicyValidationResult:
    """Outcome of a policy or member validation."""

    valid: bool
    error: Optional[BusinessRuleError] = None

    @property
    def error_code(self) -> Optional[ErrorCode]:
        return self.error.error_code if self.error else None

    @property
    def message(self) -> Optional[str]:
        return self.error.message if self.error else None

    def raise_if_failed(self) -> None:
        """Raise the carried error when validation failed."""
        if self.error is not None:
            raise self.error


_OK = PolicyValidationResult(valid=True)


def _fail(error: BusinessRuleError) -> PolicyValidationResult:
    return PolicyValidationResult(valid=False, error=error)


class PolicyActivityValidator:
    """Stateless validator for policy usability on a service date."""

    def validate(self, policy: PolicySnapshot, service_date: date) -> PolicyValidationResult:
        """
        Validate that a policy can be used on a service date.

        Args:
            policy: Policy snapshot
            service_date: Date of the requested service

        Returns:
            PolicyValidationResult with the first failing check, if any
        """
        number = policy.policy_number

        if policy.status != PolicyStatus.ACTIVE:
            reason, template = STATUS_FAILURES[policy.status]
            return _fail(
                PolicyNotActiveError(
                    template.format(number=number),
                    reason=reason,
                    policy_id=policy.policy_id,
                    policy_number=number,
                    requested_date=service_date,
                )
            )

        if not policy.active:
            return _fail(
                PolicyNotActiveError(
                    f"Policy {number} is inactive",
                    reason=PolicyFailureReason.INACTIVE,
                    policy_id=policy.policy_id,
                    policy_number=number,
                    requested_date=service_date,
                )
            )

        if policy.start_date is not None and service_date < policy.start_date:
            return _fail(
                PolicyNotActiveError(
                    f"Policy {number} is not yet active on {service_date.isoformat()}: "
                    f"coverage starts {policy.start_date.isoformat()}",
                    reason=PolicyFailureReason.NOT_YET_STARTED,
                    policy_id=policy.policy_id,
                    policy_number=number,
                    requested_date=service_date,
                )
            )

        if policy.end_date is not None and service_date > policy.end_date:
            return _fail(
                PolicyNotActiveError(
                    f"Policy {number} expired on {policy.end_date.isoformat()} "
                    f"and is not active on {service_date.isoformat()}",
                    reason=PolicyFailureReason.COVERAGE_EXPIRED,
                    policy_id=policy.policy_id,
                    policy_number=number,
                    requested_date=service_date,
                )
            )

        config = policy.benefit_configuration
        if config is None or not config.active:
            return _fail(
                BusinessRuleError(
                    f"Policy {number} has no active benefit package",
                    ErrorCode.POLICY_NO_BENEFIT_PACKAGE,
                )
            )

        return _OK

    def validate_for_member(
        self,
        member: Optional[MemberSnapshot],
        policy: Optional[PolicySnapshot],
        service_date: date,
    ) -> PolicyValidationResult:
        """
        Validate a member and their assigned policy for a service date.

        A member without a policy fails with CLAIM_REQUIRES_ACTIVE_POLICY,
        which is distinct from every policy-status failure.
        """
        if member is None:
            return _fail(BusinessRuleError("Member not found", ErrorCode.MEMBER_NOT_FOUND))

        if member.policy_id is None:
            return _fail(
                BusinessRuleError(
                    f"Member {member.member_id} has no active policy assigned",
                    ErrorCode.CLAIM_REQUIRES_ACTIVE_POLICY,
                )
            )

        if member.status != MemberStatus.ACTIVE:
            return _fail(
                BusinessRuleError(
                    f"Member {member.member_id} is not active (status: {member.status.value})",
                    ErrorCode.MEMBER_NOT_ACTIVE,
                )
            )

        if policy is None:
            return _fail(
                BusinessRuleError(
                    f"Policy {member.policy_id} not found",
                    ErrorCode.POLICY_NOT_FOUND,
                )
            )

        result = self.validate(policy, service_date)
        if not result.valid:
            logger.info(
                f"Member {member.member_id} failed policy validation: {result.message}"
            )
        return result


# =============================================================================
# Singleton Instance
# =============================================================================


_validator: Optional[PolicyActivityValidator] = None


def get_policy_validator() -> PolicyActivityValidator:
    """Get singleton policy validator instance."""
    global _validator
    if _validator is None:
        _validator = PolicyActivityValidator()
    return _validator
