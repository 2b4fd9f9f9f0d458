"""
Pydantic Schemas for Eligibility Checks.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, Field

from src.core.enums import EligibilityStatus


# =============================================================================
# Request Schemas
# =============================================================================


class EligibilityCheckRequest(BaseModel):
    """Request for an eligibility check."""

    member_id: str = Field(..., min_length=1, max_length=64, description="Member ID")
    service_code: str = Field(..., min_length=1, max_length=50, description="Medical service code")
    service_date: date = Field(..., description="Date of service")
    provider_id: Optional[str] = Field(None, max_length=64, description="Provider ID")
    requested_amount: Optional[Decimal] = Field(None, ge=0, description="Amount to be claimed")
    pre_authorization_id: Optional[str] = Field(None, max_length=64)
    policy_id: Optional[str] = Field(
        None, max_length=64, description="Policy the service is claimed under; defaults to the member's policy"
    )
    request_id: Optional[str] = Field(
        None, max_length=36, description="Correlation id; generated when omitted"
    )


# =============================================================================
# Response Schemas
# =============================================================================


class ReasonOut(BaseModel):
    """One reason attached to a decision."""

    code: str
    message: str
    message_ar: str
    detail: Optional[str] = None
    hard: bool
    rule_code: str
    data: dict[str, Any] = Field(default_factory=dict)


class EligibilityMetrics(BaseModel):
    """Evaluation metrics."""

    elapsed_ms: float
    rules_evaluated: int


class EligibilityCheckResponse(BaseModel):
    """Eligibility decision returned to the caller."""

    request_id: str
    eligible: bool
    status: EligibilityStatus
    reasons: list[ReasonOut]
    snapshot: dict[str, Any]
    metrics: EligibilityMetrics
    checked_at: datetime


class RuleListResponse(BaseModel):
    """Active rule codes in evaluation order."""

    rules: list[str]
    count: int
