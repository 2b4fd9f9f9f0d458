"""
Custom Exceptions
Business-rule failures raised by the adjudication core, and the HTTP errors
raised by the API layer.
Source: https://fastapi.tiangolo.com/tutorial/handling-errors/
Verified: 2026-10-17
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from fastapi import HTTPException, status


class ErrorCode(str, Enum):
    """Stable application error codes.

    Consumers match on these strings. Add new members freely; never rename or
    remove one.
    """

    # Member
    MEMBER_NOT_FOUND = "MEMBER_NOT_FOUND"
    MEMBER_NOT_ACTIVE = "MEMBER_NOT_ACTIVE"

    # Policy
    POLICY_NOT_FOUND = "POLICY_NOT_FOUND"
    POLICY_NOT_ACTIVE = "POLICY_NOT_ACTIVE"
    POLICY_NO_BENEFIT_PACKAGE = "POLICY_NO_BENEFIT_PACKAGE"

    # Coverage
    COVERAGE_VALIDATION_FAILED = "COVERAGE_VALIDATION_FAILED"

    # Eligibility
    ELIGIBILITY_DENIED = "ELIGIBILITY_DENIED"

    # Lifecycle
    INVALID_TRANSITION = "INVALID_TRANSITION"
    CLAIM_REQUIRES_ACTIVE_POLICY = "CLAIM_REQUIRES_ACTIVE_POLICY"
    TRANSITION_REQUIREMENT_NOT_MET = "TRANSITION_REQUIREMENT_NOT_MET"
    CONCURRENT_MODIFICATION = "CONCURRENT_MODIFICATION"

    # Audit
    AUDIT_IMMUTABLE = "AUDIT_IMMUTABLE"

    # General
    BUSINESS_RULE_VIOLATION = "BUSINESS_RULE_VIOLATION"
    VALIDATION_ERROR = "VALIDATION_ERROR"


class PolicyFailureReason(str, Enum):
    """Why a policy is not usable on a service date."""

    PENDING = "pending"
    SUSPENDED = "suspended"
    EXPIRED = "expired"
    CANCELLED = "cancelled"
    RENEWAL_PENDING = "renewal_pending"
    INACTIVE = "inactive"
    NOT_YET_STARTED = "not_yet_started"
    COVERAGE_EXPIRED = "coverage_expired"


class CoverageIssue(str, Enum):
    """Coverage validation failure kinds."""

    SERVICE_NOT_COVERED = "service_not_covered"
    AMOUNT_LIMIT_EXCEEDED = "amount_limit_exceeded"
    COUNT_LIMIT_EXCEEDED = "count_limit_exceeded"
    WAITING_PERIOD_NOT_MET = "waiting_period_not_met"
    BENEFIT_EXHAUSTED = "benefit_exhausted"


# =============================================================================
# Business Rule Errors
# =============================================================================


class BusinessRuleError(Exception):
    """Base class for recoverable business-rule failures."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.BUSINESS_RULE_VIOLATION,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code

    def to_dict(self) -> dict[str, Any]:
        """Structured form for API responses and audit details."""
        return {"code": self.error_code.value, "message": self.message}


class PolicyNotActiveError(BusinessRuleError):
    """Raised when a policy cannot be used on the requested date."""

    def __init__(
        self,
        message: str,
        reason: PolicyFailureReason,
        policy_id: Optional[str] = None,
        policy_number: Optional[str] = None,
        requested_date: Optional[date] = None,
    ):
        super().__init__(message, ErrorCode.POLICY_NOT_ACTIVE)
        self.reason = reason
        self.policy_id = policy_id
        self.policy_number = policy_number
        self.requested_date = requested_date

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update(
            {
                "reason": self.reason.value,
                "policy_id": self.policy_id,
                "policy_number": self.policy_number,
                "requested_date": self.requested_date.isoformat() if self.requested_date else None,
            }
        )
        return data


class CoverageValidationError(BusinessRuleError):
    """Raised when a service fails coverage validation."""

    def __init__(
        self,
        issue: CoverageIssue,
        message: str,
        service_code: Optional[str] = None,
        requested_amount: Optional[Decimal] = None,
        available_limit: Optional[Decimal] = None,
        result: Any = None,
    ):
        super().__init__(message, ErrorCode.COVERAGE_VALIDATION_FAILED)
        self.issue = issue
        self.service_code = service_code
        self.requested_amount = requested_amount
        self.available_limit = available_limit
        # Eligibility result the failure came from, when raised by the engine
        self.result = result

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update(
            {
                "issue": self.issue.value,
                "service_code": self.service_code,
                "requested_amount": str(self.requested_amount) if self.requested_amount is not None else None,
                "available_limit": str(self.available_limit) if self.available_limit is not None else None,
            }
        )
        return data


class InvalidTransitionError(BusinessRuleError):
    """Raised when a lifecycle transition is not allowed for the actor."""

    def __init__(
        self,
        from_status: str,
        to_status: str,
        required_roles: Optional[list[str]] = None,
        message: Optional[str] = None,
    ):
        self.from_status = from_status
        self.to_status = to_status
        self.required_roles = sorted(required_roles or [])
        super().__init__(
            message or self._build_message(),
            ErrorCode.INVALID_TRANSITION,
        )

    @property
    def required_role(self) -> Optional[str]:
        """Roles that may perform the transition, joined for display."""
        if not self.required_roles:
            return None
        return " or ".join(self.required_roles)

    def _build_message(self) -> str:
        message = f"Invalid state transition: {self.from_status} -> {self.to_status}."
        if self.required_role:
            message += f" Required role: {self.required_role}."
        return message

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update(
            {
                "from_status": self.from_status,
                "to_status": self.to_status,
                "required_role": self.required_role,
            }
        )
        return data


class TransitionRequirementError(BusinessRuleError):
    """Raised when a legal transition lacks its required data."""

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.TRANSITION_REQUIREMENT_NOT_MET)


class EligibilityDeniedError(BusinessRuleError):
    """Raised when the eligibility engine blocks an operation.

    Carries the full result so callers can render each reason.
    """

    def __init__(self, result: Any):
        self.result = result
        hard = result.hard_failures
        message = (hard[0].detail or hard[0].message) if hard else "Eligibility check failed"
        super().__init__(message, ErrorCode.ELIGIBILITY_DENIED)

    @property
    def reason_codes(self) -> list[str]:
        return [r.code for r in self.result.reasons]

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["request_id"] = self.result.request_id
        data["reasons"] = [r.to_dict() for r in self.result.reasons]
        return data


class ConcurrentModificationError(BusinessRuleError):
    """Raised when a version-checked write finds the row already changed."""

    def __init__(self, entity_id: str, expected_status: str):
        super().__init__(
            f"Record {entity_id} was modified concurrently (expected status {expected_status})",
            ErrorCode.CONCURRENT_MODIFICATION,
        )
        self.entity_id = entity_id
        self.expected_status = expected_status


class AuditImmutableError(BusinessRuleError):
    """Raised when code attempts to update or delete an audit record."""

    def __init__(self, record_type: str, operation: str):
        super().__init__(
            f"{record_type} records are append-only; {operation} is not permitted",
            ErrorCode.AUDIT_IMMUTABLE,
        )


# =============================================================================
# HTTP Errors (API layer)
# =============================================================================


class NotFoundError(HTTPException):
    """Raised when resource not found"""

    def __init__(self, detail: str = "Resource not found"):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
        )


class ValidationError(HTTPException):
    """Raised when validation fails"""

    def __init__(self, detail: str = "Validation error"):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=detail,
        )


class ConflictError(HTTPException):
    """Raised when resource conflict occurs"""

    def __init__(self, detail: Any = "Resource conflict"):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
        )
