"""
Policy Activity Validator Tests.

Tests for:
- One distinct reason per non-active policy status
- Inclusive coverage period boundaries
- Benefit package linkage
- Member-level validation (no policy assigned, inactive member)
"""

from dataclasses import replace
from datetime import date, timedelta

import pytest

from src.core.enums import MemberStatus, PolicyStatus
from src.services.coverage_resolver import BenefitConfiguration
from src.services.policy_validator import PolicyActivityValidator, get_policy_validator
from src.services.snapshots import MemberSnapshot
from src.utils.errors import (
    BusinessRuleError,
    ErrorCode,
    PolicyFailureReason,
    PolicyNotActiveError,
)


@pytest.fixture
def validator():
    return PolicyActivityValidator()


@pytest.mark.unit
class TestPolicyStatus:
    """Status and active-flag checks."""

    @pytest.mark.parametrize(
        "status,reason,phrase",
        [
            (PolicyStatus.PENDING, PolicyFailureReason.PENDING, "pending activation"),
            (PolicyStatus.SUSPENDED, PolicyFailureReason.SUSPENDED, "suspended"),
            (PolicyStatus.EXPIRED, PolicyFailureReason.EXPIRED, "has expired"),
            (PolicyStatus.CANCELLED, PolicyFailureReason.CANCELLED, "cancelled"),
            (PolicyStatus.RENEWAL_PENDING, PolicyFailureReason.RENEWAL_PENDING, "pending renewal"),
        ],
    )
    def test_non_active_status_fails_with_named_reason(
        self, validator, active_policy, status, reason, phrase
    ):
        policy = replace(active_policy, status=status)

        result = validator.validate(policy, date(2024, 6, 1))

        assert result.valid is False
        assert isinstance(result.error, PolicyNotActiveError)
        assert result.error.reason == reason
        assert result.error_code == ErrorCode.POLICY_NOT_ACTIVE
        assert phrase in result.message
        assert "P001" in result.message

    def test_every_failure_message_is_distinct(self, validator, active_policy):
        """Five statuses plus the inactive flag give six different messages."""
        policies = [replace(active_policy, status=s) for s in PolicyStatus if s != PolicyStatus.ACTIVE]
        policies.append(replace(active_policy, active=False))

        messages = {validator.validate(p, date(2024, 6, 1)).message for p in policies}

        assert len(messages) == 6

    def test_inactive_flag_fails(self, validator, active_policy):
        result = validator.validate(replace(active_policy, active=False), date(2024, 6, 1))

        assert result.valid is False
        assert result.error.reason == PolicyFailureReason.INACTIVE
        assert result.message == "Policy P001 is inactive"

    def test_active_policy_passes(self, validator, active_policy):
        result = validator.validate(active_policy, date(2024, 6, 1))

        assert result.valid is True
        assert result.error is None
        result.raise_if_failed()


@pytest.mark.unit
class TestCoveragePeriod:
    """Inclusive [start_date, end_date] window."""

    def test_start_date_is_inclusive(self, validator, active_policy):
        assert validator.validate(active_policy, date(2024, 1, 1)).valid is True

    def test_end_date_is_inclusive(self, validator, active_policy):
        assert validator.validate(active_policy, date(2024, 12, 31)).valid is True

    def test_day_before_start_fails(self, validator, active_policy):
        result = validator.validate(active_policy, date(2023, 12, 31))

        assert result.valid is False
        assert result.error.reason == PolicyFailureReason.NOT_YET_STARTED
        assert "2023-12-31" in result.message
        assert "2024-01-01" in result.message

    def test_day_after_end_fails(self, validator, active_policy):
        result = validator.validate(active_policy, date(2025, 1, 1))

        assert result.valid is False
        assert result.error.reason == PolicyFailureReason.COVERAGE_EXPIRED

    def test_service_after_policy_end_names_policy_and_date(self, validator, active_policy):
        """P001 covers 2024-01-01..2024-12-31; a 2025-01-15 service is refused."""
        result = validator.validate(active_policy, date(2025, 1, 15))

        assert result.valid is False
        assert result.error.reason == PolicyFailureReason.COVERAGE_EXPIRED
        assert "P001" in result.message
        assert "2025-01-15" in result.message
        assert "expired" in result.message
        assert result.error.requested_date == date(2025, 1, 15)
        assert result.error.policy_number == "P001"

    def test_open_ended_policy(self, validator, active_policy):
        policy = replace(active_policy, start_date=None, end_date=None)

        assert validator.validate(policy, date(2030, 1, 1)).valid is True

    def test_raise_if_failed_raises_typed_error(self, validator, active_policy):
        result = validator.validate(active_policy, date(2025, 1, 15))

        with pytest.raises(PolicyNotActiveError) as exc_info:
            result.raise_if_failed()
        assert exc_info.value.to_dict()["reason"] == "coverage_expired"

    def test_status_checked_before_dates(self, validator, active_policy):
        policy = replace(active_policy, status=PolicyStatus.SUSPENDED)

        result = validator.validate(policy, date(2025, 1, 15))

        assert result.error.reason == PolicyFailureReason.SUSPENDED


@pytest.mark.unit
class TestBenefitPackage:
    """Linked benefit configuration check."""

    def test_missing_benefit_configuration(self, validator, active_policy):
        result = validator.validate(
            replace(active_policy, benefit_configuration=None), date(2024, 6, 1)
        )

        assert result.valid is False
        assert result.error_code == ErrorCode.POLICY_NO_BENEFIT_PACKAGE

    def test_inactive_benefit_configuration(self, validator, active_policy):
        config = BenefitConfiguration("BC-OFF", active=False)

        result = validator.validate(
            replace(active_policy, benefit_configuration=config), date(2024, 6, 1)
        )

        assert result.error_code == ErrorCode.POLICY_NO_BENEFIT_PACKAGE


@pytest.mark.unit
class TestValidateForMember:
    """Member-level validation."""

    def test_member_without_policy(self, validator):
        """M001 has no policy: the reason is distinct from every policy-status reason."""
        member = MemberSnapshot(member_id="M001", full_name="No Policy", status=MemberStatus.ACTIVE)

        for service_date in (date(2020, 1, 1), date(2024, 6, 1), date.today() + timedelta(days=30)):
            result = validator.validate_for_member(member, None, service_date)

            assert result.valid is False
            assert result.error_code == ErrorCode.CLAIM_REQUIRES_ACTIVE_POLICY
            assert not isinstance(result.error, PolicyNotActiveError)
            assert result.message == "Member M001 has no active policy assigned"

    def test_missing_member(self, validator, active_policy):
        result = validator.validate_for_member(None, active_policy, date(2024, 6, 1))

        assert result.error_code == ErrorCode.MEMBER_NOT_FOUND

    def test_inactive_member(self, validator, active_member, active_policy):
        member = replace(active_member, status=MemberStatus.SUSPENDED)

        result = validator.validate_for_member(member, active_policy, date(2024, 6, 1))

        assert result.error_code == ErrorCode.MEMBER_NOT_ACTIVE
        assert "suspended" in result.message

    def test_assigned_policy_not_found(self, validator, active_member):
        result = validator.validate_for_member(active_member, None, date(2024, 6, 1))

        assert result.error_code == ErrorCode.POLICY_NOT_FOUND

    def test_delegates_to_policy_validation(self, validator, active_member, active_policy):
        result = validator.validate_for_member(active_member, active_policy, date(2025, 1, 15))

        assert isinstance(result.error, PolicyNotActiveError)
        assert result.error.reason == PolicyFailureReason.COVERAGE_EXPIRED

    def test_valid_member_and_policy(self, validator, active_member, active_policy):
        assert validator.validate_for_member(active_member, active_policy, date(2024, 6, 1)).valid

    def test_errors_are_business_rule_errors(self, validator, active_policy):
        result = validator.validate(replace(active_policy, status=PolicyStatus.CANCELLED), date(2024, 6, 1))

        assert isinstance(result.error, BusinessRuleError)


@pytest.mark.unit
def test_singleton_validator():
    assert get_policy_validator() is get_policy_validator()
