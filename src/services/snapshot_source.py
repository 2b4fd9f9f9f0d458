"""
Snapshot Source.

Read-only access to the member, policy, employer and provider state an
eligibility check needs. The adjudication core never loads data itself;
the surrounding application supplies a SnapshotSource and the core builds
an EligibilityContext from it.

Benefit usage is tracked per coverage rule, so every service that resolves
to the same rule draws on one shared limit.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Protocol

from src.services.coverage_resolver import resolve_coverage
from src.services.eligibility.context import EligibilityContext
from src.services.preauth_state_machine import PreAuthorizationSnapshot
from src.services.snapshots import (
    BenefitUsage,
    EmployerSnapshot,
    MemberSnapshot,
    PolicySnapshot,
    ProviderSnapshot,
)

logger = logging.getLogger(__name__)


class SnapshotSource(Protocol):
    """Loader for decision-time snapshots."""

    async def get_member(self, member_id: str) -> Optional[MemberSnapshot]: ...

    async def get_policy(self, policy_id: str) -> Optional[PolicySnapshot]: ...

    async def get_employer(self, employer_id: str) -> Optional[EmployerSnapshot]: ...

    async def get_provider(self, provider_id: str) -> Optional[ProviderSnapshot]: ...

    async def get_service_category(self, service_code: str) -> Optional[str]: ...

    async def get_usage(self, member_id: str, rule_id: str) -> BenefitUsage: ...

    async def get_pre_authorization(self, preauth_id: str) -> Optional[PreAuthorizationSnapshot]: ...


class InMemorySnapshotSource:
    """Dictionary-backed SnapshotSource for tests and local runs."""

    def __init__(
        self,
        members: Iterable[MemberSnapshot] = (),
        policies: Iterable[PolicySnapshot] = (),
        employers: Iterable[EmployerSnapshot] = (),
        providers: Iterable[ProviderSnapshot] = (),
        service_categories: Optional[dict[str, str]] = None,
    ):
        self.members = {m.member_id: m for m in members}
        self.policies = {p.policy_id: p for p in policies}
        self.employers = {e.employer_id: e for e in employers}
        self.providers = {p.provider_id: p for p in providers}
        self.service_categories = dict(service_categories or {})
        self.usage: dict[tuple[str, str], BenefitUsage] = {}
        self.pre_authorizations: dict[str, PreAuthorizationSnapshot] = {}

    def add_member(self, member: MemberSnapshot) -> None:
        self.members[member.member_id] = member

    def add_policy(self, policy: PolicySnapshot) -> None:
        self.policies[policy.policy_id] = policy

    def add_employer(self, employer: EmployerSnapshot) -> None:
        self.employers[employer.employer_id] = employer

    def add_provider(self, provider: ProviderSnapshot) -> None:
        self.providers[provider.provider_id] = provider

    def set_usage(self, member_id: str, rule_id: str, usage: BenefitUsage) -> None:
        self.usage[(member_id, rule_id)] = usage

    def add_pre_authorization(self, preauth: PreAuthorizationSnapshot) -> None:
        self.pre_authorizations[preauth.preauth_id] = preauth

    async def get_member(self, member_id: str) -> Optional[MemberSnapshot]:
        return self.members.get(member_id)

    async def get_policy(self, policy_id: str) -> Optional[PolicySnapshot]:
        return self.policies.get(policy_id)

    async def get_employer(self, employer_id: str) -> Optional[EmployerSnapshot]:
        return self.employers.get(employer_id)

    async def get_provider(self, provider_id: str) -> Optional[ProviderSnapshot]:
        return self.providers.get(provider_id)

    async def get_service_category(self, service_code: str) -> Optional[str]:
        return self.service_categories.get(service_code)

    async def get_usage(self, member_id: str, rule_id: str) -> BenefitUsage:
        return self.usage.get((member_id, rule_id), BenefitUsage())

    async def get_pre_authorization(self, preauth_id: str) -> Optional[PreAuthorizationSnapshot]:
        return self.pre_authorizations.get(preauth_id)


async def build_context(
    source: SnapshotSource,
    member_id: str,
    service_code: str,
    service_date: date,
    provider_id: Optional[str] = None,
    requested_amount: Optional[Decimal] = None,
    pre_authorization_id: Optional[str] = None,
    policy_id: Optional[str] = None,
    as_of: Optional[date] = None,
) -> EligibilityContext:
    """
    Load snapshots and assemble the context for one eligibility check.

    Args:
        source: Snapshot loader
        member_id: Member requesting the service
        service_code: Requested medical service code
        service_date: Date of service
        provider_id: Treating provider, checked when given
        requested_amount: Amount to be claimed
        pre_authorization_id: Pre-authorization presented with the request
        policy_id: Policy the request is made under; the member's own
            policy when omitted
        as_of: Reference date for date sanity rules; today when omitted

    Missing entities are left as None; the rule chain reports them.
    """
    member = await source.get_member(member_id)
    policy = None
    if policy_id is None and member is not None:
        policy_id = member.policy_id
    if policy_id is not None:
        policy = await source.get_policy(policy_id)

    employer = None
    employer_id = (member.employer_id if member else None) or (policy.employer_id if policy else None)
    if employer_id is not None:
        employer = await source.get_employer(employer_id)

    provider = await source.get_provider(provider_id) if provider_id else None
    service_category = await source.get_service_category(service_code)

    usage = BenefitUsage()
    coverage = resolve_coverage(
        policy.benefit_configuration if policy else None,
        service_category,
        service_code,
    )
    if coverage.covered:
        usage = await source.get_usage(member_id, coverage.rule_id)

    pre_authorization = None
    if pre_authorization_id is not None:
        pre_authorization = await source.get_pre_authorization(pre_authorization_id)

    logger.debug(
        f"Context for member {member_id}: policy={policy.policy_id if policy else None} "
        f"category={service_category}"
    )
    return EligibilityContext(
        member_id=member_id,
        service_code=service_code,
        service_date=service_date,
        as_of=as_of or date.today(),
        member=member,
        policy=policy,
        employer=employer,
        provider=provider,
        provider_id=provider_id,
        service_category=service_category,
        requested_amount=requested_amount,
        usage=usage,
        pre_authorization_id=pre_authorization_id,
        pre_authorization=pre_authorization,
    )
