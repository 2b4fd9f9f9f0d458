"""
Eligibility rules.

Each rule is one independent check with a stable code and a priority (lower
runs first). A failing hard rule stops evaluation; a failing soft rule is
recorded as a warning. A failure only blocks when both the rule and the
reason it reports are hard.

Default rule order:
    5   service-date-valid
    10  member-exists
    20  member-active
    25  member-card-valid
    30  policy-exists
    35  member-enrolled
    40  policy-active
    50  policy-coverage-period
    55  benefit-package-linked
    58  employer-active
    60  provider-active
    62  provider-in-network      (soft)
    70  service-covered
    80  waiting-period
    90  amount-limit             (hardness configurable)
    92  count-limit              (hardness configurable)
    95  pre-approval-required    (soft)
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Optional

from src.core.enums import (
    CardStatus,
    MemberStatus,
    PolicyStatus,
    ProviderNetworkStatus,
    WaitingPeriodReference,
)
from src.services.coverage_resolver import ResolvedCoverage, resolve_coverage
from src.services.eligibility.context import EligibilityContext
from src.services.eligibility.options import EngineOptions
from src.services.eligibility.reasons import ReasonCode
from src.services.policy_validator import STATUS_FAILURES
from src.services.preauth_state_machine import is_usable_on


@dataclass(frozen=True)
class RuleResult:
    """Outcome of a single rule evaluation."""

    passed: bool
    reason: Optional[ReasonCode] = None
    detail: Optional[str] = None
    data: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, detail: Optional[str] = None) -> "RuleResult":
        return cls(passed=True, detail=detail)

    @classmethod
    def fail(cls, reason: ReasonCode, detail: Optional[str] = None, **data: Any) -> "RuleResult":
        return cls(passed=False, reason=reason, detail=detail, data=data)


class EligibilityRule(ABC):
    """Contract every eligibility rule implements."""

    rule_code: str = ""
    priority: int = 100
    hard: bool = True

    @property
    def is_hard_rule(self) -> bool:
        return self.hard

    def is_applicable(self, context: EligibilityContext) -> bool:
        return True

    @abstractmethod
    def evaluate(self, context: EligibilityContext) -> RuleResult:
        """Evaluate the rule against a context."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.rule_code} p={self.priority} hard={self.is_hard_rule}>"


def _years_before(day: date, years: int) -> date:
    try:
        return day.replace(year=day.year - years)
    except ValueError:
        # Feb 29 in a non-leap target year
        return day.replace(year=day.year - years, day=28)


def _resolved(context: EligibilityContext, options: EngineOptions) -> Optional[ResolvedCoverage]:
    resolution = resolve_coverage(
        context.benefit_configuration,
        context.service_category,
        context.service_code,
        options.default_coverage_percent,
    )
    return resolution if isinstance(resolution, ResolvedCoverage) else None


# =============================================================================
# Request Rules
# =============================================================================


class ServiceDateValidRule(EligibilityRule):
    """Service date must be neither too old nor too far ahead."""

    rule_code = "service-date-valid"
    priority = 5

    def __init__(self, options: EngineOptions):
        self.max_future_days = options.service_date_max_future_days
        self.max_past_years = options.service_date_max_past_years

    def evaluate(self, context: EligibilityContext) -> RuleResult:
        earliest = _years_before(context.as_of, self.max_past_years)
        if context.service_date < earliest:
            return RuleResult.fail(
                ReasonCode.SERVICE_DATE_INVALID,
                f"Service date {context.service_date.isoformat()} is more than "
                f"{self.max_past_years} years in the past",
            )

        latest = context.as_of + timedelta(days=self.max_future_days)
        if context.service_date > latest:
            return RuleResult.fail(
                ReasonCode.SERVICE_DATE_IN_FUTURE,
                f"Service date {context.service_date.isoformat()} is more than "
                f"{self.max_future_days} days ahead",
            )

        return RuleResult.ok()


# =============================================================================
# Member Rules
# =============================================================================


MEMBER_STATUS_REASONS: dict[MemberStatus, ReasonCode] = {
    MemberStatus.PENDING: ReasonCode.MEMBER_INACTIVE,
    MemberStatus.SUSPENDED: ReasonCode.MEMBER_SUSPENDED,
    MemberStatus.TERMINATED: ReasonCode.MEMBER_TERMINATED,
}

CARD_STATUS_REASONS: dict[CardStatus, ReasonCode] = {
    CardStatus.INACTIVE: ReasonCode.MEMBER_INACTIVE,
    CardStatus.BLOCKED: ReasonCode.MEMBER_CARD_BLOCKED,
    CardStatus.EXPIRED: ReasonCode.MEMBER_CARD_EXPIRED,
}

if set(MemberStatus) - {MemberStatus.ACTIVE} != set(MEMBER_STATUS_REASONS):
    raise RuntimeError("Every non-active member status needs a reason code")
if set(CardStatus) - {CardStatus.ACTIVE} != set(CARD_STATUS_REASONS):
    raise RuntimeError("Every non-active card status needs a reason code")


class MemberExistsRule(EligibilityRule):
    rule_code = "member-exists"
    priority = 10

    def evaluate(self, context: EligibilityContext) -> RuleResult:
        if context.member is None:
            return RuleResult.fail(
                ReasonCode.MEMBER_NOT_FOUND,
                f"Member {context.member_id} not found",
                member_id=context.member_id,
            )
        return RuleResult.ok()


class MemberActiveRule(EligibilityRule):
    rule_code = "member-active"
    priority = 20

    def is_applicable(self, context: EligibilityContext) -> bool:
        return context.has_member

    def evaluate(self, context: EligibilityContext) -> RuleResult:
        member = context.member
        if member.status == MemberStatus.ACTIVE:
            return RuleResult.ok()
        return RuleResult.fail(
            MEMBER_STATUS_REASONS[member.status],
            f"Member {member.member_id} status is {member.status.value}",
            member_status=member.status.value,
        )


class MemberCardValidRule(EligibilityRule):
    rule_code = "member-card-valid"
    priority = 25

    def is_applicable(self, context: EligibilityContext) -> bool:
        return context.has_member and context.member.card_status is not None

    def evaluate(self, context: EligibilityContext) -> RuleResult:
        member = context.member
        if member.card_status != CardStatus.ACTIVE:
            return RuleResult.fail(
                CARD_STATUS_REASONS[member.card_status],
                f"Card {member.card_number} status is {member.card_status.value}",
                card_number=member.card_number,
            )
        if member.card_expiry_date is not None and member.card_expiry_date < context.service_date:
            return RuleResult.fail(
                ReasonCode.MEMBER_CARD_EXPIRED,
                f"Card {member.card_number} expired on {member.card_expiry_date.isoformat()}",
                card_number=member.card_number,
            )
        return RuleResult.ok()


# =============================================================================
# Policy Rules
# =============================================================================


POLICY_STATUS_REASONS: dict[PolicyStatus, ReasonCode] = {
    PolicyStatus.PENDING: ReasonCode.POLICY_PENDING,
    PolicyStatus.SUSPENDED: ReasonCode.POLICY_SUSPENDED,
    PolicyStatus.EXPIRED: ReasonCode.POLICY_EXPIRED,
    PolicyStatus.CANCELLED: ReasonCode.POLICY_CANCELLED,
    PolicyStatus.RENEWAL_PENDING: ReasonCode.POLICY_RENEWAL_PENDING,
}

if set(PolicyStatus) - {PolicyStatus.ACTIVE} != set(POLICY_STATUS_REASONS):
    raise RuntimeError("Every non-active policy status needs a reason code")


class PolicyExistsRule(EligibilityRule):
    rule_code = "policy-exists"
    priority = 30

    def is_applicable(self, context: EligibilityContext) -> bool:
        return context.has_member

    def evaluate(self, context: EligibilityContext) -> RuleResult:
        if context.policy is not None:
            return RuleResult.ok()
        if context.member.policy_id is None:
            detail = f"Member {context.member.member_id} has no active policy assigned"
        else:
            detail = f"Policy {context.member.policy_id} not found"
        return RuleResult.fail(ReasonCode.POLICY_NOT_FOUND, detail)


class MemberEnrolledRule(EligibilityRule):
    """Explicitly requested policy must be the member's own."""

    rule_code = "member-enrolled"
    priority = 35

    def is_applicable(self, context: EligibilityContext) -> bool:
        return context.has_member and context.has_policy

    def evaluate(self, context: EligibilityContext) -> RuleResult:
        if context.member.policy_id != context.policy.policy_id:
            return RuleResult.fail(
                ReasonCode.MEMBER_NOT_ENROLLED,
                f"Member {context.member.member_id} is not enrolled in policy "
                f"{context.policy.policy_number}",
            )
        return RuleResult.ok()


class PolicyActiveRule(EligibilityRule):
    rule_code = "policy-active"
    priority = 40

    def is_applicable(self, context: EligibilityContext) -> bool:
        return context.has_policy

    def evaluate(self, context: EligibilityContext) -> RuleResult:
        policy = context.policy
        if policy.status != PolicyStatus.ACTIVE:
            _, template = STATUS_FAILURES[policy.status]
            return RuleResult.fail(
                POLICY_STATUS_REASONS[policy.status],
                template.format(number=policy.policy_number),
                policy_number=policy.policy_number,
                policy_status=policy.status.value,
            )
        if not policy.active:
            return RuleResult.fail(
                ReasonCode.POLICY_INACTIVE,
                f"Policy {policy.policy_number} is inactive",
                policy_number=policy.policy_number,
            )
        return RuleResult.ok()


class PolicyCoveragePeriodRule(EligibilityRule):
    """Service date must fall within [start date, end date] inclusive."""

    rule_code = "policy-coverage-period"
    priority = 50

    def is_applicable(self, context: EligibilityContext) -> bool:
        return context.has_policy

    def evaluate(self, context: EligibilityContext) -> RuleResult:
        policy = context.policy
        service_date = context.service_date
        if policy.start_date is not None and service_date < policy.start_date:
            return RuleResult.fail(
                ReasonCode.POLICY_NOT_YET_EFFECTIVE,
                f"Policy {policy.policy_number} starts {policy.start_date.isoformat()}, "
                f"service date {service_date.isoformat()}",
                policy_number=policy.policy_number,
            )
        if policy.end_date is not None and service_date > policy.end_date:
            return RuleResult.fail(
                ReasonCode.SERVICE_DATE_AFTER_COVERAGE,
                f"Policy {policy.policy_number} ended {policy.end_date.isoformat()}, "
                f"service date {service_date.isoformat()}",
                policy_number=policy.policy_number,
            )
        return RuleResult.ok()


class BenefitPackageLinkedRule(EligibilityRule):
    rule_code = "benefit-package-linked"
    priority = 55

    def is_applicable(self, context: EligibilityContext) -> bool:
        return context.has_policy

    def evaluate(self, context: EligibilityContext) -> RuleResult:
        config = context.benefit_configuration
        if config is None or not config.active:
            return RuleResult.fail(
                ReasonCode.POLICY_NO_BENEFIT_PACKAGE,
                f"Policy {context.policy.policy_number} has no active benefit package",
            )
        return RuleResult.ok()


# =============================================================================
# Employer / Provider Rules
# =============================================================================


class EmployerActiveRule(EligibilityRule):
    rule_code = "employer-active"
    priority = 58

    def is_applicable(self, context: EligibilityContext) -> bool:
        return context.employer is not None

    def evaluate(self, context: EligibilityContext) -> RuleResult:
        if not context.employer.active:
            return RuleResult.fail(
                ReasonCode.EMPLOYER_INACTIVE,
                f"Employer {context.employer.name} is not active",
            )
        return RuleResult.ok()


class ProviderActiveRule(EligibilityRule):
    rule_code = "provider-active"
    priority = 60

    def is_applicable(self, context: EligibilityContext) -> bool:
        return context.provider_id is not None or context.provider is not None

    def evaluate(self, context: EligibilityContext) -> RuleResult:
        provider = context.provider
        if provider is None:
            return RuleResult.fail(
                ReasonCode.PROVIDER_NOT_FOUND,
                f"Provider {context.provider_id} not found",
            )
        if not provider.active:
            return RuleResult.fail(
                ReasonCode.PROVIDER_INACTIVE,
                f"Provider {provider.name} is not active",
            )
        return RuleResult.ok()


class ProviderInNetworkRule(EligibilityRule):
    rule_code = "provider-in-network"
    priority = 62
    hard = False

    def is_applicable(self, context: EligibilityContext) -> bool:
        return context.provider is not None

    def evaluate(self, context: EligibilityContext) -> RuleResult:
        if context.provider.network_status != ProviderNetworkStatus.IN_NETWORK:
            return RuleResult.fail(
                ReasonCode.PROVIDER_NOT_IN_NETWORK,
                f"Provider {context.provider.name} is out of network",
            )
        return RuleResult.ok()


# =============================================================================
# Coverage Rules
# =============================================================================


class ServiceCoveredRule(EligibilityRule):
    rule_code = "service-covered"
    priority = 70

    def __init__(self, options: EngineOptions):
        self.options = options

    def is_applicable(self, context: EligibilityContext) -> bool:
        config = context.benefit_configuration
        return config is not None and config.active

    def evaluate(self, context: EligibilityContext) -> RuleResult:
        coverage = _resolved(context, self.options)
        if coverage is None:
            return RuleResult.fail(
                ReasonCode.SERVICE_NOT_COVERED,
                f"Service {context.service_code} is not covered",
                service_code=context.service_code,
            )
        return RuleResult.ok(f"Covered at {coverage.coverage_percent}% by rule {coverage.rule_id}")


class WaitingPeriodRule(EligibilityRule):
    """Waiting period counted from policy start or member enrollment."""

    rule_code = "waiting-period"
    priority = 80

    def __init__(self, options: EngineOptions):
        self.options = options

    def _reference_date(self, context: EligibilityContext) -> Optional[date]:
        if self.options.waiting_period_reference == WaitingPeriodReference.MEMBER_ENROLLMENT:
            return context.member.enrollment_date if context.member else None
        return context.policy.start_date if context.policy else None

    def is_applicable(self, context: EligibilityContext) -> bool:
        coverage = _resolved(context, self.options)
        return coverage is not None and bool(coverage.waiting_period_days)

    def evaluate(self, context: EligibilityContext) -> RuleResult:
        waiting_days = _resolved(context, self.options).waiting_period_days
        reference = self._reference_date(context)
        if reference is None:
            return RuleResult.ok("No reference date for waiting period")

        elapsed = (context.service_date - reference).days
        if elapsed < 0:
            return RuleResult.fail(
                ReasonCode.SERVICE_DATE_BEFORE_COVERAGE,
                f"Service date {context.service_date.isoformat()} is before "
                f"{self.options.waiting_period_reference.value} {reference.isoformat()}",
                service_code=context.service_code,
            )
        if elapsed < waiting_days:
            return RuleResult.fail(
                ReasonCode.WAITING_PERIOD_NOT_SATISFIED,
                f"Required {waiting_days} days from {reference.isoformat()}, elapsed {elapsed}",
                service_code=context.service_code,
                waiting_period_days=waiting_days,
                days_elapsed=elapsed,
            )
        return RuleResult.ok()


class AmountLimitRule(EligibilityRule):
    rule_code = "amount-limit"
    priority = 90

    def __init__(self, options: EngineOptions):
        self.options = options
        self.hard = options.amount_limit_hard

    def is_applicable(self, context: EligibilityContext) -> bool:
        coverage = _resolved(context, self.options)
        return coverage is not None and coverage.amount_limit is not None

    def evaluate(self, context: EligibilityContext) -> RuleResult:
        limit = _resolved(context, self.options).amount_limit
        used = context.usage.amount_used
        available = max(limit - used, Decimal("0"))
        requested = context.requested_amount or Decimal("0")

        if available <= 0:
            return RuleResult.fail(
                ReasonCode.COVERAGE_LIMIT_EXHAUSTED,
                f"Limit {limit} fully used for {context.service_code}",
                service_code=context.service_code,
                requested_amount=str(requested),
                available_limit=str(available),
            )
        if requested > available:
            return RuleResult.fail(
                ReasonCode.AMOUNT_LIMIT_EXCEEDED,
                f"Requested {requested} exceeds remaining {available} of {limit}",
                service_code=context.service_code,
                requested_amount=str(requested),
                available_limit=str(available),
            )
        return RuleResult.ok()


class CountLimitRule(EligibilityRule):
    rule_code = "count-limit"
    priority = 92

    def __init__(self, options: EngineOptions):
        self.options = options
        self.hard = options.count_limit_hard

    def is_applicable(self, context: EligibilityContext) -> bool:
        coverage = _resolved(context, self.options)
        return coverage is not None and coverage.count_limit is not None

    def evaluate(self, context: EligibilityContext) -> RuleResult:
        limit = _resolved(context, self.options).count_limit
        if context.usage.times_used >= limit:
            return RuleResult.fail(
                ReasonCode.COUNT_LIMIT_EXCEEDED,
                f"Service {context.service_code} used {context.usage.times_used} of {limit} times",
                service_code=context.service_code,
                times_used=context.usage.times_used,
                count_limit=limit,
            )
        return RuleResult.ok()


class PreApprovalRequiredRule(EligibilityRule):
    rule_code = "pre-approval-required"
    priority = 95
    hard = False

    def __init__(self, options: EngineOptions):
        self.options = options

    def is_applicable(self, context: EligibilityContext) -> bool:
        coverage = _resolved(context, self.options)
        return coverage is not None and coverage.requires_pre_approval

    def evaluate(self, context: EligibilityContext) -> RuleResult:
        if context.pre_authorization_id is None:
            return RuleResult.fail(
                ReasonCode.PRE_APPROVAL_REQUIRED,
                f"Service {context.service_code} requires an approved pre-authorization",
                service_code=context.service_code,
            )

        preauth = context.pre_authorization
        if preauth is None:
            return RuleResult.fail(
                ReasonCode.PRE_APPROVAL_REQUIRED,
                f"Pre-authorization {context.pre_authorization_id} not found",
                service_code=context.service_code,
                pre_authorization_id=context.pre_authorization_id,
            )
        if preauth.service_code is not None and preauth.service_code != context.service_code:
            return RuleResult.fail(
                ReasonCode.PRE_APPROVAL_REQUIRED,
                f"Pre-authorization {preauth.preauth_id} was issued for {preauth.service_code}",
                service_code=context.service_code,
                pre_authorization_id=preauth.preauth_id,
            )
        if not is_usable_on(preauth, context.service_date):
            return RuleResult.fail(
                ReasonCode.PRE_APPROVAL_REQUIRED,
                f"Pre-authorization {preauth.preauth_id} is {preauth.status.value} "
                f"or not valid on {context.service_date.isoformat()}",
                service_code=context.service_code,
                pre_authorization_id=preauth.preauth_id,
                pre_authorization_status=preauth.status.value,
            )
        return RuleResult.ok(f"Pre-authorization {preauth.preauth_id} approved")


def build_default_rules(options: EngineOptions) -> list[EligibilityRule]:
    """Default rule set in registration order."""
    return [
        ServiceDateValidRule(options),
        MemberExistsRule(),
        MemberActiveRule(),
        MemberCardValidRule(),
        PolicyExistsRule(),
        MemberEnrolledRule(),
        PolicyActiveRule(),
        PolicyCoveragePeriodRule(),
        BenefitPackageLinkedRule(),
        EmployerActiveRule(),
        ProviderActiveRule(),
        ProviderInNetworkRule(),
        ServiceCoveredRule(options),
        WaitingPeriodRule(options),
        AmountLimitRule(options),
        CountLimitRule(options),
        PreApprovalRequiredRule(options),
    ]
