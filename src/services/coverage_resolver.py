"""
Coverage Configuration Resolver.

Resolves the coverage terms a benefit configuration grants for a requested
(category, service) pair:
- Active service-level rule is authoritative
- Otherwise the active category-level rule applies
- Otherwise the service is not covered

Pure functions over immutable inputs; safe to share across requests.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Union

from src.core.enums import CoverageTarget

logger = logging.getLogger(__name__)

SYSTEM_DEFAULT_COVERAGE_PERCENT = 80


@dataclass(frozen=True)
class CoverageRule:
    """A single coverage rule attached to a medical category or a medical service."""

    rule_id: str
    target: CoverageTarget
    target_id: str
    coverage_percent: Optional[int] = None
    amount_limit: Optional[Decimal] = None
    count_limit: Optional[int] = None
    waiting_period_days: Optional[int] = None
    requires_pre_approval: bool = False
    active: bool = True

    def __post_init__(self):
        if self.coverage_percent is not None and not 0 <= self.coverage_percent <= 100:
            raise ValueError(
                f"Coverage percent must be between 0 and 100, got {self.coverage_percent}"
            )
        if self.amount_limit is not None and self.amount_limit < 0:
            raise ValueError("Amount limit cannot be negative")
        if self.count_limit is not None and self.count_limit < 0:
            raise ValueError("Count limit cannot be negative")
        if self.waiting_period_days is not None and self.waiting_period_days < 0:
            raise ValueError("Waiting period cannot be negative")

    def matches(self, target: CoverageTarget, target_id: Optional[str]) -> bool:
        return self.active and self.target == target and target_id is not None and self.target_id == target_id


@dataclass(frozen=True)
class BenefitConfiguration:
    """Ordered set of coverage rules linked to a policy."""

    configuration_id: str
    name: str = ""
    rules: tuple[CoverageRule, ...] = ()
    default_coverage_percent: Optional[int] = None
    active: bool = True

    def find_rule(self, target: CoverageTarget, target_id: Optional[str]) -> Optional[CoverageRule]:
        """First active rule for the target, in configuration order."""
        for rule in self.rules:
            if rule.matches(target, target_id):
                return rule
        return None


@dataclass(frozen=True)
class ResolvedCoverage:
    """Effective coverage terms for one service."""

    coverage_percent: int
    amount_limit: Optional[Decimal]
    count_limit: Optional[int]
    waiting_period_days: Optional[int]
    requires_pre_approval: bool
    rule_id: str
    resolved_from: CoverageTarget

    @property
    def covered(self) -> bool:
        return True


@dataclass(frozen=True)
class NotCovered:
    """No active rule grants coverage for the service."""

    service_id: Optional[str]
    category_id: Optional[str]
    reason: str = "No active coverage rule for service or category"

    @property
    def covered(self) -> bool:
        return False


CoverageResolution = Union[ResolvedCoverage, NotCovered]


def effective_coverage_percent(
    rule: CoverageRule,
    configuration: BenefitConfiguration,
    default_percent: int = SYSTEM_DEFAULT_COVERAGE_PERCENT,
) -> int:
    """
    Coverage percent granted by a rule.

    Falls back to the configuration default, then the system default. An
    explicit 0 on the rule is honored.
    """
    if rule.coverage_percent is not None:
        return rule.coverage_percent
    if configuration.default_coverage_percent is not None:
        return configuration.default_coverage_percent
    return default_percent


def resolve_coverage(
    configuration: Optional[BenefitConfiguration],
    category_id: Optional[str],
    service_id: Optional[str],
    default_percent: int = SYSTEM_DEFAULT_COVERAGE_PERCENT,
) -> CoverageResolution:
    """
    Resolve coverage for a (category, service) pair.

    Args:
        configuration: Benefit configuration linked to the policy
        category_id: Medical category of the requested service
        service_id: Requested medical service code
        default_percent: Percent used when neither rule nor configuration sets one

    Returns:
        ResolvedCoverage, or NotCovered when no active rule applies
    """
    if configuration is None or not configuration.active:
        return NotCovered(
            service_id=service_id,
            category_id=category_id,
            reason="No active benefit configuration",
        )

    rule = configuration.find_rule(CoverageTarget.SERVICE, service_id)
    if rule is None:
        rule = configuration.find_rule(CoverageTarget.CATEGORY, category_id)

    if rule is None:
        logger.debug(
            f"No coverage rule in {configuration.configuration_id} "
            f"for service={service_id} category={category_id}"
        )
        return NotCovered(service_id=service_id, category_id=category_id)

    return ResolvedCoverage(
        coverage_percent=effective_coverage_percent(rule, configuration, default_percent),
        amount_limit=rule.amount_limit,
        count_limit=rule.count_limit,
        waiting_period_days=rule.waiting_period_days,
        requires_pre_approval=rule.requires_pre_approval,
        rule_id=rule.rule_id,
        resolved_from=rule.target,
    )
