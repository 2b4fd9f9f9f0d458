"""
Eligibility Check API Endpoints.

Provides:
- Real-time eligibility check for a member, service and date
- Listing of the active rule chain
"""

import logging

from fastapi import APIRouter, Depends

from src.api.deps import get_decision_recorder, get_engine, get_snapshot_source
from src.schemas.eligibility import (
    EligibilityCheckRequest,
    EligibilityCheckResponse,
    RuleListResponse,
)
from src.services.decision_recorder import DecisionRecorder
from src.services.eligibility import EligibilityEngine
from src.services.snapshot_source import SnapshotSource, build_context

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/eligibility",
    tags=["eligibility"],
)


@router.post("/check", response_model=EligibilityCheckResponse)
async def check_eligibility(
    request: EligibilityCheckRequest,
    source: SnapshotSource = Depends(get_snapshot_source),
    engine: EligibilityEngine = Depends(get_engine),
    recorder: DecisionRecorder = Depends(get_decision_recorder),
) -> EligibilityCheckResponse:
    """
    Check eligibility for a service.

    An ineligible member is a normal response (eligible=false with reasons),
    not an error. Every decision is recorded.
    """
    context = await build_context(
        source,
        member_id=request.member_id,
        service_code=request.service_code,
        service_date=request.service_date,
        provider_id=request.provider_id,
        requested_amount=request.requested_amount,
        pre_authorization_id=request.pre_authorization_id,
        policy_id=request.policy_id,
    )
    result = engine.evaluate(context, request.request_id)
    await recorder.record_eligibility(result)

    return EligibilityCheckResponse.model_validate(result.to_dict())


@router.get("/rules", response_model=RuleListResponse)
async def list_rules(
    engine: EligibilityEngine = Depends(get_engine),
) -> RuleListResponse:
    """Active rule codes in evaluation order."""
    codes = engine.rule_codes()
    return RuleListResponse(rules=codes, count=len(codes))
