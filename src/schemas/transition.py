"""
Pydantic Schemas for Lifecycle Transitions.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from src.core.enums import ClaimStatus, Role


class ClaimTransitionRequest(BaseModel):
    """Request to move a claim to a new status."""

    to_status: ClaimStatus = Field(..., description="Requested status")
    roles: list[Role] = Field(..., min_length=1, description="Roles held by the requesting user")
    actor_id: Optional[str] = Field(None, max_length=100)
    comment: Optional[str] = Field(None, max_length=2000, description="Reviewer comment")
    approved_amount: Optional[Decimal] = Field(None, ge=0)
    valid_until: Optional[date] = None

    # Submission only: eligibility inputs not stored on the claim
    provider_id: Optional[str] = Field(None, max_length=64)


class ClaimAmountsOut(BaseModel):
    """Cost split computed at submission."""

    requested_amount: Decimal
    patient_copay: Decimal
    net_provider_amount: Decimal
    coverage_percent: int
    limit_applied: bool


class ClaimTransitionResponse(BaseModel):
    """Outcome of an applied claim transition."""

    model_config = ConfigDict(use_enum_values=True)

    claim_id: str
    from_status: ClaimStatus
    to_status: ClaimStatus
    actor_role: Role
    version: int
    eligibility_request_id: Optional[str] = None
    amounts: Optional[ClaimAmountsOut] = None
    available_transitions: list[ClaimStatus] = Field(default_factory=list)
