"""
Eligibility Rule Engine.

Ordered, prioritized eligibility rules evaluated against a flat snapshot
context, producing an immutable decision.
"""

from src.services.eligibility.context import EligibilityContext
from src.services.eligibility.engine import (
    EligibilityEngine,
    EligibilityResult,
    ReasonDetail,
    get_eligibility_engine,
    reset_eligibility_engine,
)
from src.services.eligibility.options import EngineOptions
from src.services.eligibility.reasons import (
    REASON_CATALOGUE,
    ReasonCode,
    ReasonDefinition,
)
from src.services.eligibility.rules import (
    EligibilityRule,
    RuleResult,
    build_default_rules,
)

__all__ = [
    "EligibilityContext",
    "EligibilityEngine",
    "EligibilityResult",
    "EligibilityRule",
    "EngineOptions",
    "REASON_CATALOGUE",
    "ReasonCode",
    "ReasonDefinition",
    "ReasonDetail",
    "RuleResult",
    "build_default_rules",
    "get_eligibility_engine",
    "reset_eligibility_engine",
]
