"""
Pydantic Schemas for the Adjudication Core.

This module exports all request/response schemas for the API.
"""

from src.schemas.eligibility import (
    EligibilityCheckRequest,
    EligibilityCheckResponse,
    EligibilityMetrics,
    ReasonOut,
    RuleListResponse,
)
from src.schemas.transition import (
    ClaimAmountsOut,
    ClaimTransitionRequest,
    ClaimTransitionResponse,
)

__all__ = [
    # Eligibility
    "EligibilityCheckRequest",
    "EligibilityCheckResponse",
    "EligibilityMetrics",
    "ReasonOut",
    "RuleListResponse",
    # Transitions
    "ClaimAmountsOut",
    "ClaimTransitionRequest",
    "ClaimTransitionResponse",
]
