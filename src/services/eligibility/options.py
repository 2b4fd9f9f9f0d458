"""
Eligibility engine options.
"""

from dataclasses import dataclass
from typing import Optional

from src.core.config import AdjudicationSettings, get_settings
from src.core.enums import WaitingPeriodReference
from src.services.coverage_resolver import SYSTEM_DEFAULT_COVERAGE_PERCENT


@dataclass(frozen=True)
class EngineOptions:
    """Per-deployment switches the rule set is built with."""

    amount_limit_hard: bool = True
    count_limit_hard: bool = True
    waiting_period_reference: WaitingPeriodReference = WaitingPeriodReference.POLICY_START
    default_coverage_percent: int = SYSTEM_DEFAULT_COVERAGE_PERCENT
    service_date_max_future_days: int = 90
    service_date_max_past_years: int = 2

    @classmethod
    def from_settings(cls, settings: Optional[AdjudicationSettings] = None) -> "EngineOptions":
        settings = settings or get_settings()
        return cls(
            amount_limit_hard=settings.AMOUNT_LIMIT_HARD,
            count_limit_hard=settings.COUNT_LIMIT_HARD,
            waiting_period_reference=settings.WAITING_PERIOD_REFERENCE,
            default_coverage_percent=settings.DEFAULT_COVERAGE_PERCENT,
            service_date_max_future_days=settings.SERVICE_DATE_MAX_FUTURE_DAYS,
            service_date_max_past_years=settings.SERVICE_DATE_MAX_PAST_YEARS,
        )
