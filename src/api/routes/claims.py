"""
Claim Transition API Endpoints.

Moves a stored claim through its lifecycle. Submission runs policy and
eligibility checks first; every attempt is recorded whether it is applied
or blocked. The status write is version-checked so concurrent requests
cannot both move the same claim.
"""

import logging
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.deps import get_db_session, get_snapshot_source, get_submission_service
from src.core.enums import ClaimStatus
from src.db.repositories import ClaimRepository
from src.schemas.transition import (
    ClaimAmountsOut,
    ClaimTransitionRequest,
    ClaimTransitionResponse,
)
from src.services.claim_submission import ClaimSubmissionService
from src.services.lifecycle import TransitionDetails
from src.services.snapshot_source import SnapshotSource, build_context
from src.utils.errors import ConcurrentModificationError, NotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/claims",
    tags=["claims"],
)


@router.post("/{claim_id}/transitions", response_model=ClaimTransitionResponse)
async def transition_claim(
    claim_id: UUID,
    request: ClaimTransitionRequest,
    session: AsyncSession = Depends(get_db_session),
    source: SnapshotSource = Depends(get_snapshot_source),
    service: ClaimSubmissionService = Depends(get_submission_service),
) -> ClaimTransitionResponse:
    """
    Request a claim status change.

    Raises:
        NotFoundError: Claim does not exist
        InvalidTransitionError: 409, pair not allowed or role not permitted
        ConcurrentModificationError: 409, claim changed since it was read
        BusinessRuleError: 422, validation or eligibility failed
    """
    repo = ClaimRepository(session)
    claim = await repo.get(claim_id)
    if claim is None:
        raise NotFoundError(f"Claim {claim_id} not found")

    from_status = claim.status
    version = claim.version
    eligibility_request_id = None
    amounts = None

    async def write_status(result, split=None) -> None:
        nonlocal version
        values: dict[str, Any] = {}
        if split is not None:
            values["patient_copay"] = split.patient_copay
            values["net_provider_amount"] = split.net_provider_amount
        if request.approved_amount is not None and result.to_status != ClaimStatus.SUBMITTED:
            values["approved_amount"] = request.approved_amount
        if request.comment and result.to_status != ClaimStatus.SUBMITTED:
            values["reviewer_comment"] = request.comment
        # Committed before the recorder writes its row in its own session
        try:
            version = await repo.compare_and_set_status(
                claim.id, from_status, claim.version, result.to_status, **values
            )
        except ConcurrentModificationError:
            await session.rollback()
            raise
        await session.commit()

    if from_status == ClaimStatus.DRAFT and request.to_status == ClaimStatus.SUBMITTED:
        context = await build_context(
            source,
            member_id=claim.member_id,
            service_code=claim.service_code,
            service_date=claim.service_date,
            provider_id=request.provider_id or claim.provider_id,
            requested_amount=claim.requested_amount,
            pre_authorization_id=claim.pre_authorization_id,
            policy_id=claim.policy_id,
        )
        outcome = await service.submit(
            str(claim.id),
            context,
            request.roles,
            actor_id=request.actor_id,
            write_status=write_status,
        )
        result = outcome.transition
        eligibility_request_id = outcome.eligibility.request_id
        if outcome.amounts is not None:
            amounts = ClaimAmountsOut(**outcome.amounts.__dict__)
    else:
        result = await service.transition(
            str(claim.id),
            from_status,
            request.to_status,
            request.roles,
            TransitionDetails(
                comment=request.comment,
                approved_amount=request.approved_amount,
                requested_amount=claim.requested_amount,
                valid_until=request.valid_until,
            ),
            actor_id=request.actor_id,
            write_status=write_status,
        )

    return ClaimTransitionResponse(
        claim_id=str(claim.id),
        from_status=result.from_status,
        to_status=result.to_status,
        actor_role=result.actor_role,
        version=version,
        eligibility_request_id=eligibility_request_id,
        amounts=amounts,
        available_transitions=service.authorizer.available_transitions(
            result.to_status, request.roles
        ),
    )
