"""
Claim Submission Service Tests.

Tests for:
- Submission gated by policy validation and eligibility
- Typed business errors (never a generic transition error) on blocked submission
- Every attempt recorded, applied or blocked
- Cost split computed at submission
"""

from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest

from src.core.enums import ClaimStatus, CoverageTarget, MemberStatus, Role, TransitionOutcome
from src.services.authorization import TransitionAuthorizer
from src.services.claim_state_machine import ClaimStateMachine
from src.services.claim_submission import ClaimSubmissionService, compute_claim_amounts
from src.services.coverage_resolver import BenefitConfiguration, CoverageRule
from src.services.decision_recorder import InMemoryDecisionRecorder
from src.services.eligibility import EligibilityEngine, EngineOptions
from src.services.lifecycle import TransitionDetails
from src.services.snapshots import BenefitUsage, MemberSnapshot
from src.utils.errors import (
    BusinessRuleError,
    ConcurrentModificationError,
    CoverageValidationError,
    EligibilityDeniedError,
    ErrorCode,
    InvalidTransitionError,
    PolicyNotActiveError,
)


@pytest.fixture
def recorder():
    return InMemoryDecisionRecorder()


@pytest.fixture
def service(recorder):
    return ClaimSubmissionService(
        recorder=recorder,
        engine=EligibilityEngine(),
        authorizer=TransitionAuthorizer(ClaimStateMachine(), super_admin_bypass=True),
    )


@pytest.mark.unit
class TestSubmit:
    """DRAFT -> SUBMITTED."""

    @pytest.mark.asyncio
    async def test_successful_submission(self, service, recorder, make_context):
        outcome = await service.submit(
            "C1", make_context(), [Role.EMPLOYER_ADMIN], actor_id="u-1", request_id="req-1"
        )

        assert outcome.transition.success is True
        assert outcome.transition.to_status == ClaimStatus.SUBMITTED
        assert outcome.eligibility.request_id == "req-1"
        assert outcome.amounts.net_provider_amount == Decimal("160.00")
        assert outcome.amounts.patient_copay == Decimal("40.00")

        assert [e.request_id for e in recorder.eligibility_entries] == ["req-1"]
        entry = recorder.transition_entries[0]
        assert entry.outcome == TransitionOutcome.APPLIED
        assert entry.eligibility_request_id == "req-1"
        assert entry.actor_id == "u-1"

    @pytest.mark.asyncio
    async def test_policy_failure_raises_policy_error(self, service, recorder, make_context):
        with pytest.raises(PolicyNotActiveError) as exc_info:
            await service.submit("C1", make_context(service_date=date(2025, 1, 15)), [Role.EMPLOYER_ADMIN])

        assert not isinstance(exc_info.value, InvalidTransitionError)
        assert "P001" in exc_info.value.message
        entry = recorder.transition_entries[0]
        assert entry.outcome == TransitionOutcome.BLOCKED
        assert entry.error_code == ErrorCode.POLICY_NOT_ACTIVE.value
        # Validation failed before the engine ran
        assert recorder.eligibility_entries == ()

    @pytest.mark.asyncio
    async def test_member_without_policy(self, service, recorder, make_context):
        member = MemberSnapshot(member_id="M001", full_name="No Policy", status=MemberStatus.ACTIVE)

        with pytest.raises(BusinessRuleError) as exc_info:
            await service.submit(
                "C1", make_context(member_id="M001", member=member, policy=None), [Role.EMPLOYER_ADMIN]
            )

        assert exc_info.value.error_code == ErrorCode.CLAIM_REQUIRES_ACTIVE_POLICY
        assert recorder.transition_entries[0].error_code == "CLAIM_REQUIRES_ACTIVE_POLICY"

    @pytest.mark.asyncio
    async def test_eligibility_failure_raises_engine_error(self, service, recorder, make_context):
        context = make_context(service_code="OPT-001", service_category="OPT")

        with pytest.raises(CoverageValidationError) as exc_info:
            await service.submit("C1", context, [Role.EMPLOYER_ADMIN])

        assert exc_info.value.service_code == "OPT-001"
        assert len(recorder.eligibility_entries) == 1
        assert recorder.eligibility_entries[0].eligible is False
        blocked = recorder.transition_entries[0]
        assert blocked.outcome == TransitionOutcome.BLOCKED
        assert blocked.eligibility_request_id == recorder.eligibility_entries[0].request_id

    @pytest.mark.asyncio
    async def test_count_limit_denial(self, service, make_context):
        with pytest.raises(CoverageValidationError):
            await service.submit("C1", make_context(usage=BenefitUsage(times_used=5)), [Role.INSURANCE_ADMIN])

    @pytest.mark.asyncio
    async def test_non_coverage_denial(self, service, make_context, provider):
        context = make_context(provider=replace(provider, active=False), provider_id="PR1")

        with pytest.raises(EligibilityDeniedError) as exc_info:
            await service.submit("C1", context, [Role.EMPLOYER_ADMIN])

        assert exc_info.value.reason_codes == ["PROVIDER_INACTIVE"]

    @pytest.mark.asyncio
    async def test_wrong_role_is_invalid_transition(self, service, recorder, make_context):
        with pytest.raises(InvalidTransitionError) as exc_info:
            await service.submit("C1", make_context(), [Role.PROVIDER])

        assert exc_info.value.required_role == "employer_admin or insurance_admin"
        assert len(recorder.transition_entries) == 1
        assert recorder.transition_entries[0].outcome == TransitionOutcome.BLOCKED
        assert recorder.transition_entries[0].error_code == "INVALID_TRANSITION"
        # Refused before the engine ran
        assert recorder.eligibility_entries == ()

    @pytest.mark.asyncio
    async def test_wrong_role_refused_before_policy_validation(self, service, recorder, make_context):
        expired = make_context(service_date=date(2025, 1, 15))

        with pytest.raises(InvalidTransitionError):
            await service.submit("C1", expired, [Role.REVIEWER])

        assert recorder.transition_entries[0].error_code == "INVALID_TRANSITION"
        assert recorder.eligibility_entries == ()

    @pytest.mark.asyncio
    async def test_status_written_before_applied_entry(self, service, recorder, make_context):
        written = []

        async def write_status(result, amounts):
            assert recorder.transition_entries == ()
            written.append((result.to_status, amounts.net_provider_amount))

        await service.submit("C1", make_context(), [Role.EMPLOYER_ADMIN], write_status=write_status)

        assert written == [(ClaimStatus.SUBMITTED, Decimal("160.00"))]
        assert [e.outcome for e in recorder.transition_entries] == [TransitionOutcome.APPLIED]

    @pytest.mark.asyncio
    async def test_lost_write_recorded_as_blocked(self, service, recorder, make_context):
        async def write_status(result, amounts):
            raise ConcurrentModificationError("C1", "draft")

        with pytest.raises(ConcurrentModificationError):
            await service.submit(
                "C1", make_context(), [Role.EMPLOYER_ADMIN], write_status=write_status
            )

        entries = recorder.transition_entries
        assert [e.outcome for e in entries] == [TransitionOutcome.BLOCKED]
        assert entries[0].error_code == "CONCURRENT_MODIFICATION"
        assert entries[0].eligibility_request_id == recorder.eligibility_entries[0].request_id

    @pytest.mark.asyncio
    async def test_no_requested_amount_skips_split(self, service, make_context):
        outcome = await service.submit("C1", make_context(requested_amount=None), [Role.EMPLOYER_ADMIN])

        assert outcome.amounts is None


@pytest.mark.unit
class TestTransition:
    """Post-submission transitions."""

    @pytest.mark.asyncio
    async def test_review_transition_recorded(self, service, recorder):
        result = await service.transition(
            "C1", ClaimStatus.SUBMITTED, ClaimStatus.UNDER_REVIEW, [Role.REVIEWER], actor_id="rev-1"
        )

        assert result.success is True
        assert recorder.transition_entries[0].actor_role == "reviewer"

    @pytest.mark.asyncio
    async def test_blocked_transition_recorded_then_raised(self, service, recorder):
        with pytest.raises(InvalidTransitionError):
            await service.transition("C1", ClaimStatus.SETTLED, ClaimStatus.UNDER_REVIEW, [Role.REVIEWER])

        entry = recorder.transition_entries[0]
        assert entry.outcome == TransitionOutcome.BLOCKED
        assert entry.error_code == "INVALID_TRANSITION"
        assert entry.details["from_status"] == "settled"

    @pytest.mark.asyncio
    async def test_lost_write_is_not_recorded_as_applied(self, service, recorder):
        async def write_status(result):
            raise ConcurrentModificationError("C1", "submitted")

        with pytest.raises(ConcurrentModificationError):
            await service.transition(
                "C1",
                ClaimStatus.SUBMITTED,
                ClaimStatus.UNDER_REVIEW,
                [Role.REVIEWER],
                write_status=write_status,
            )

        entries = recorder.transition_entries
        assert len(entries) == 1
        assert entries[0].outcome == TransitionOutcome.BLOCKED
        assert entries[0].error_code == "CONCURRENT_MODIFICATION"

    @pytest.mark.asyncio
    async def test_blocked_transition_never_written(self, service):
        written = []

        async def write_status(result):
            written.append(result)

        with pytest.raises(InvalidTransitionError):
            await service.transition(
                "C1",
                ClaimStatus.SETTLED,
                ClaimStatus.UNDER_REVIEW,
                [Role.REVIEWER],
                write_status=write_status,
            )

        assert written == []

    @pytest.mark.asyncio
    async def test_submission_must_use_submit(self, service):
        with pytest.raises(ValueError):
            await service.transition(
                "C1",
                ClaimStatus.DRAFT,
                ClaimStatus.SUBMITTED,
                [Role.EMPLOYER_ADMIN],
                TransitionDetails(eligibility_confirmed=True),
            )


@pytest.mark.unit
class TestComputeClaimAmounts:
    """Cost split from the resolved coverage."""

    def test_category_percent_used(self, make_context):
        amounts = compute_claim_amounts(
            make_context(service_code="DEN-001", service_category="DEN", requested_amount=Decimal("300"))
        )

        assert amounts.coverage_percent == 50
        assert amounts.net_provider_amount == Decimal("150.00")

    def test_remaining_limit_caps_net(self, make_context):
        amounts = compute_claim_amounts(
            make_context(
                requested_amount=Decimal("500.00"),
                usage=BenefitUsage(amount_used=Decimal("900.00")),
            )
        )

        assert amounts.net_provider_amount == Decimal("100.00")
        assert amounts.patient_copay == Decimal("400.00")
        assert amounts.limit_applied is True

    def test_not_covered_returns_none(self, make_context):
        assert compute_claim_amounts(make_context(service_code="X", service_category="X")) is None

    def test_configured_default_percent_applies(self, make_context, active_policy):
        config = BenefitConfiguration(
            configuration_id="BC-BASIC",
            name="Basic",
            rules=(CoverageRule("R-LAB", CoverageTarget.CATEGORY, "LAB"),),
        )
        policy = replace(active_policy, benefit_configuration=config)
        context = make_context(
            policy=policy,
            service_code="LAB-001",
            service_category="LAB",
            requested_amount=Decimal("100.00"),
        )

        assert compute_claim_amounts(context, 60).coverage_percent == 60
        assert compute_claim_amounts(context).coverage_percent == 80

    @pytest.mark.asyncio
    async def test_submission_split_uses_engine_default(self, recorder, make_context, active_policy):
        config = BenefitConfiguration(
            configuration_id="BC-BASIC",
            name="Basic",
            rules=(CoverageRule("R-LAB", CoverageTarget.CATEGORY, "LAB"),),
        )
        service = ClaimSubmissionService(
            recorder=recorder,
            engine=EligibilityEngine(options=EngineOptions(default_coverage_percent=60)),
            authorizer=TransitionAuthorizer(ClaimStateMachine(), super_admin_bypass=True),
        )
        context = make_context(
            policy=replace(active_policy, benefit_configuration=config),
            service_code="LAB-001",
            service_category="LAB",
            requested_amount=Decimal("100.00"),
        )

        outcome = await service.submit("C1", context, [Role.EMPLOYER_ADMIN])

        assert outcome.amounts.coverage_percent == 60
        assert outcome.amounts.net_provider_amount == Decimal("60.00")
        assert outcome.amounts.patient_copay == Decimal("40.00")
