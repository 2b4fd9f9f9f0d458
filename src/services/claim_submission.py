"""
Claim Submission and Transition Service.

Coordinates the pieces that gate a claim status change:
1. The role gate, before any costlier check
2. Policy activity validation for the member and service date
3. The eligibility rule chain
4. The claim state machine (role and requirement checks)
5. The decision recorder, which sees every attempt, applied or blocked

DRAFT -> SUBMITTED is only offered to the state machine after both checks
pass. A blocked submission raises the validator's or engine's typed error,
never a generic transition error.

Callers persisting the new status pass a write_status callback. It runs
before the attempt is recorded as applied; if the version-checked write
loses a race, the attempt is recorded as blocked instead.
"""

import logging
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Any, Awaitable, Callable, Iterable, Optional

from src.core.enums import AuditEntityType, ClaimStatus, Role
from src.services.authorization import TransitionAuthorizer
from src.services.claim_amounts import ClaimAmounts, split_claim_amount
from src.services.claim_state_machine import get_claim_state_machine
from src.services.coverage_resolver import SYSTEM_DEFAULT_COVERAGE_PERCENT, resolve_coverage
from src.services.decision_recorder import DecisionRecorder, InMemoryDecisionRecorder
from src.services.eligibility.context import EligibilityContext
from src.services.eligibility.engine import (
    EligibilityEngine,
    EligibilityResult,
    get_eligibility_engine,
)
from src.services.lifecycle import TransitionDetails, TransitionResult
from src.services.policy_validator import PolicyActivityValidator, get_policy_validator
from src.utils.errors import BusinessRuleError, ConcurrentModificationError

logger = logging.getLogger(__name__)

SubmissionWriter = Callable[[TransitionResult[ClaimStatus], Optional[ClaimAmounts]], Awaitable[Any]]
TransitionWriter = Callable[[TransitionResult[ClaimStatus]], Awaitable[Any]]


@dataclass(frozen=True)
class SubmissionOutcome:
    """Result of a successful claim submission."""

    transition: TransitionResult[ClaimStatus]
    eligibility: EligibilityResult
    amounts: Optional[ClaimAmounts] = None


class ClaimSubmissionService:
    """Gatekeeper for claim status changes."""

    def __init__(
        self,
        recorder: Optional[DecisionRecorder] = None,
        engine: Optional[EligibilityEngine] = None,
        validator: Optional[PolicyActivityValidator] = None,
        authorizer: Optional[TransitionAuthorizer] = None,
    ):
        self.recorder = recorder or InMemoryDecisionRecorder()
        self.engine = engine or get_eligibility_engine()
        self.validator = validator or get_policy_validator()
        self.authorizer = authorizer or TransitionAuthorizer(get_claim_state_machine())

    async def submit(
        self,
        claim_id: str,
        context: EligibilityContext,
        user_roles: Iterable[Role],
        actor_id: Optional[str] = None,
        request_id: Optional[str] = None,
        write_status: Optional[SubmissionWriter] = None,
    ) -> SubmissionOutcome:
        """
        Move a DRAFT claim to SUBMITTED.

        Args:
            claim_id: Claim being submitted
            context: Eligibility context for the claim's member and service
            user_roles: Roles held by the submitting user
            actor_id: Submitting user, for the audit trail
            request_id: Correlation id for the eligibility check
            write_status: Persists the new status and cost split

        Returns:
            SubmissionOutcome with the applied transition and the cost split

        Raises:
            InvalidTransitionError: The user may not submit claims
            BusinessRuleError: Policy validation failed
            EligibilityDeniedError: A hard eligibility rule failed
            CoverageValidationError: A coverage rule failed
            ConcurrentModificationError: The claim changed before the write
        """
        user_roles = list(user_roles)
        acting = self.authorizer.resolve_role(user_roles, ClaimStatus.DRAFT, ClaimStatus.SUBMITTED)

        role_error = self.authorizer.check_role(user_roles, ClaimStatus.DRAFT, ClaimStatus.SUBMITTED)
        if role_error is not None:
            await self._record_blocked(claim_id, acting, role_error, actor_id)
            raise role_error

        validation = self.validator.validate_for_member(
            context.member, context.policy, context.service_date
        )
        if not validation.valid:
            await self._record_blocked(claim_id, acting, validation.error, actor_id)
            raise validation.error

        eligibility = self.engine.evaluate(context, request_id)
        await self.recorder.record_eligibility(eligibility, checked_by=actor_id)
        if not eligibility.eligible:
            error = eligibility.to_error()
            await self._record_blocked(claim_id, acting, error, actor_id, eligibility.request_id)
            raise error

        result = self.authorizer.transition(
            claim_id,
            ClaimStatus.DRAFT,
            ClaimStatus.SUBMITTED,
            user_roles,
            TransitionDetails(
                requested_amount=context.requested_amount,
                eligibility_confirmed=True,
            ),
        )
        if not result.success:
            await self.recorder.record_transition(
                AuditEntityType.CLAIM,
                result,
                actor_id=actor_id,
                eligibility_request_id=eligibility.request_id,
            )
            result.raise_if_failed()

        amounts = None
        if context.requested_amount is not None:
            amounts = compute_claim_amounts(context, self.engine.options.default_coverage_percent)

        if write_status is not None:
            await self._write(
                result, write_status(result, amounts), actor_id, eligibility.request_id
            )
        await self.recorder.record_transition(
            AuditEntityType.CLAIM,
            result,
            actor_id=actor_id,
            eligibility_request_id=eligibility.request_id,
        )

        logger.info(f"Claim {claim_id} submitted (eligibility {eligibility.request_id})")
        return SubmissionOutcome(transition=result, eligibility=eligibility, amounts=amounts)

    async def transition(
        self,
        claim_id: str,
        from_status: ClaimStatus,
        to_status: ClaimStatus,
        user_roles: Iterable[Role],
        details: Optional[TransitionDetails] = None,
        actor_id: Optional[str] = None,
        write_status: Optional[TransitionWriter] = None,
    ) -> TransitionResult[ClaimStatus]:
        """
        Validate and record any claim transition other than submission.

        Raises:
            InvalidTransitionError: Pair not in the table or role not allowed
            TransitionRequirementError: Comment or amount missing
            ConcurrentModificationError: The claim changed before the write
        """
        if from_status == ClaimStatus.DRAFT and to_status == ClaimStatus.SUBMITTED:
            raise ValueError("Use submit() to move a claim out of draft")

        result = self.authorizer.transition(claim_id, from_status, to_status, user_roles, details)
        if result.success and write_status is not None:
            await self._write(result, write_status(result), actor_id)
        await self.recorder.record_transition(AuditEntityType.CLAIM, result, actor_id=actor_id)
        result.raise_if_failed()
        return result

    async def _write(
        self,
        result: TransitionResult[ClaimStatus],
        pending: Awaitable[Any],
        actor_id: Optional[str],
        eligibility_request_id: Optional[str] = None,
    ) -> None:
        try:
            await pending
        except ConcurrentModificationError as e:
            logger.warning(f"Claim {result.entity_id} lost a concurrent update: {e.message}")
            await self.recorder.record_transition(
                AuditEntityType.CLAIM,
                replace(result, success=False, error=e),
                actor_id=actor_id,
                eligibility_request_id=eligibility_request_id,
            )
            raise

    async def _record_blocked(
        self,
        claim_id: str,
        acting: Role,
        error: BusinessRuleError,
        actor_id: Optional[str],
        eligibility_request_id: Optional[str] = None,
    ) -> None:
        logger.info(f"Claim {claim_id} submission blocked: {error.message}")
        blocked = TransitionResult(
            success=False,
            entity_id=claim_id,
            from_status=ClaimStatus.DRAFT,
            to_status=ClaimStatus.SUBMITTED,
            actor_role=acting,
            error=error,
        )
        await self.recorder.record_transition(
            AuditEntityType.CLAIM,
            blocked,
            actor_id=actor_id,
            eligibility_request_id=eligibility_request_id,
        )


def compute_claim_amounts(
    context: EligibilityContext,
    default_percent: int = SYSTEM_DEFAULT_COVERAGE_PERCENT,
) -> Optional[ClaimAmounts]:
    """
    Cost split for the context's requested amount, or None when not covered.

    default_percent applies when neither the coverage rule nor the benefit
    configuration sets a percent; pass the engine's configured value so the
    split matches the decision.
    """
    coverage = resolve_coverage(
        context.benefit_configuration,
        context.service_category,
        context.service_code,
        default_percent,
    )
    if not coverage.covered:
        return None

    remaining = None
    if coverage.amount_limit is not None:
        remaining = coverage.amount_limit - context.usage.amount_used
    return split_claim_amount(
        context.requested_amount or Decimal("0"),
        coverage.coverage_percent,
        remaining,
    )
