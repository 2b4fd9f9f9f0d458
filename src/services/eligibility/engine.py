"""
Eligibility Rule Engine.

Evaluates the ordered rule set against an EligibilityContext:
- Rules run in ascending priority, ties in registration order
- Rules that are not applicable are skipped
- A hard failure stops evaluation
- Soft failures are kept as warnings
- A rule that raises becomes a hard SYSTEM_ERROR failure

The engine holds no per-request state; one instance serves all requests.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Sequence

from src.core.enums import EligibilityStatus
from src.services.eligibility.context import EligibilityContext
from src.services.eligibility.options import EngineOptions
from src.services.eligibility.reasons import (
    ReasonCode,
    coverage_issue_for,
    get_reason,
)
from src.services.eligibility.rules import (
    EligibilityRule,
    RuleResult,
    build_default_rules,
)
from src.utils.errors import (
    BusinessRuleError,
    CoverageValidationError,
    EligibilityDeniedError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReasonDetail:
    """One reason attached to an eligibility decision."""

    code: str
    message: str
    message_ar: str
    hard: bool
    rule_code: str
    detail: Optional[str] = None
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "message_ar": self.message_ar,
            "detail": self.detail,
            "hard": self.hard,
            "rule_code": self.rule_code,
            "data": dict(self.data),
        }


@dataclass(frozen=True)
class EligibilityResult:
    """Immutable outcome of one eligibility check."""

    request_id: str
    eligible: bool
    status: EligibilityStatus
    reasons: tuple[ReasonDetail, ...]
    snapshot: dict[str, Any]
    rules_evaluated: int
    elapsed_ms: float
    checked_at: datetime

    @property
    def hard_failures(self) -> list[ReasonDetail]:
        return [r for r in self.reasons if r.hard]

    @property
    def warnings(self) -> list[ReasonDetail]:
        return [r for r in self.reasons if not r.hard]

    @property
    def reason_codes(self) -> list[str]:
        return [r.code for r in self.reasons]

    def to_dict(self) -> dict[str, Any]:
        return {
            "request_id": self.request_id,
            "eligible": self.eligible,
            "status": self.status.value,
            "reasons": [r.to_dict() for r in self.reasons],
            "snapshot": self.snapshot,
            "metrics": {
                "elapsed_ms": self.elapsed_ms,
                "rules_evaluated": self.rules_evaluated,
            },
            "checked_at": self.checked_at.isoformat(),
        }

    def to_error(self) -> Optional[BusinessRuleError]:
        """
        Typed error for an ineligible result.

        Coverage-class failures map to CoverageValidationError; everything
        else to EligibilityDeniedError. Both carry this result.
        """
        if self.eligible:
            return None

        failure = self.hard_failures[0]
        issue = coverage_issue_for(ReasonCode(failure.code))
        if issue is None:
            return EligibilityDeniedError(self)

        return CoverageValidationError(
            issue,
            failure.detail or failure.message,
            service_code=failure.data.get("service_code"),
            requested_amount=_decimal_or_none(failure.data.get("requested_amount")),
            available_limit=_decimal_or_none(failure.data.get("available_limit")),
            result=self,
        )

    def raise_if_not_eligible(self) -> None:
        error = self.to_error()
        if error is not None:
            raise error


def _decimal_or_none(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


def _reason_detail(rule: EligibilityRule, result: RuleResult, hard: bool) -> ReasonDetail:
    definition = get_reason(result.reason)
    return ReasonDetail(
        code=definition.code.value,
        message=definition.message_en,
        message_ar=definition.message_ar,
        hard=hard,
        rule_code=rule.rule_code,
        detail=result.detail,
        data=dict(result.data),
    )


class EligibilityEngine:
    """
    Ordered rule evaluation for eligibility checks.

    The rule list is sorted once at construction and reused.
    """

    def __init__(
        self,
        rules: Optional[Sequence[EligibilityRule]] = None,
        options: Optional[EngineOptions] = None,
    ):
        self.options = options or EngineOptions()
        if rules is None:
            rules = build_default_rules(self.options)
        # sorted() is stable: equal priorities keep registration order
        self._rules: tuple[EligibilityRule, ...] = tuple(sorted(rules, key=lambda r: r.priority))
        logger.info(f"Eligibility engine initialized with {len(self._rules)} rules")

    @property
    def rules(self) -> tuple[EligibilityRule, ...]:
        return self._rules

    def rule_codes(self) -> list[str]:
        return [rule.rule_code for rule in self._rules]

    def evaluate(
        self,
        context: EligibilityContext,
        request_id: Optional[str] = None,
    ) -> EligibilityResult:
        """
        Run the rule chain against a context.

        Args:
            context: Eligibility context built from snapshots
            request_id: Correlation id; generated when omitted

        Returns:
            EligibilityResult
        """
        request_id = request_id or str(uuid.uuid4())
        started = time.perf_counter()
        warnings: list[ReasonDetail] = []
        rules_evaluated = 0

        for rule in self._rules:
            if not rule.is_applicable(context):
                logger.debug(f"[{request_id}] Rule {rule.rule_code} skipped - not applicable")
                continue

            rules_evaluated += 1
            try:
                outcome = rule.evaluate(context)
            except Exception as e:
                logger.error(f"[{request_id}] Rule {rule.rule_code} raised: {e}")
                failure = ReasonDetail(
                    code=ReasonCode.SYSTEM_ERROR.value,
                    message=get_reason(ReasonCode.SYSTEM_ERROR).message_en,
                    message_ar=get_reason(ReasonCode.SYSTEM_ERROR).message_ar,
                    hard=True,
                    rule_code=rule.rule_code,
                    detail=f"Rule {rule.rule_code} error: {e}",
                )
                return self._build_result(
                    request_id, context, False, [*warnings, failure], started, rules_evaluated
                )

            if outcome.passed:
                logger.debug(f"[{request_id}] Rule {rule.rule_code} passed")
                continue

            hard = rule.is_hard_rule and get_reason(outcome.reason).hard
            detail = _reason_detail(rule, outcome, hard)
            if hard:
                logger.info(
                    f"[{request_id}] Hard failure {outcome.reason.value} from {rule.rule_code}"
                )
                return self._build_result(
                    request_id, context, False, [*warnings, detail], started, rules_evaluated
                )

            logger.debug(f"[{request_id}] Warning {outcome.reason.value} from {rule.rule_code}")
            warnings.append(detail)

        return self._build_result(request_id, context, True, warnings, started, rules_evaluated)

    def check(
        self,
        context: EligibilityContext,
        request_id: Optional[str] = None,
    ) -> EligibilityResult:
        """Evaluate and raise the typed error when the subject is not eligible."""
        result = self.evaluate(context, request_id)
        result.raise_if_not_eligible()
        return result

    def _build_result(
        self,
        request_id: str,
        context: EligibilityContext,
        eligible: bool,
        reasons: list[ReasonDetail],
        started: float,
        rules_evaluated: int,
    ) -> EligibilityResult:
        if not eligible:
            status = EligibilityStatus.NOT_ELIGIBLE
        elif reasons:
            status = EligibilityStatus.WARNING
        else:
            status = EligibilityStatus.ELIGIBLE

        elapsed_ms = round((time.perf_counter() - started) * 1000, 3)
        logger.info(
            f"Eligibility {request_id} for member {context.member_id}: {status.value} "
            f"({rules_evaluated} rules, {elapsed_ms}ms)"
        )
        return EligibilityResult(
            request_id=request_id,
            eligible=eligible,
            status=status,
            reasons=tuple(reasons),
            snapshot=context.snapshot(),
            rules_evaluated=rules_evaluated,
            elapsed_ms=elapsed_ms,
            checked_at=datetime.now(timezone.utc),
        )


# =============================================================================
# Singleton Instance
# =============================================================================


_engine: Optional[EligibilityEngine] = None


def get_eligibility_engine() -> EligibilityEngine:
    """Get singleton engine built from application settings."""
    global _engine
    if _engine is None:
        _engine = EligibilityEngine(options=EngineOptions.from_settings())
    return _engine


def reset_eligibility_engine() -> None:
    global _engine
    _engine = None
