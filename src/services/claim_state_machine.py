"""
Claim Status State Machine.

Provides:
- Valid status transitions and the roles allowed to perform them
- Transition validation with typed failures
- Business requirements per transition (comment, approved amount)

State Diagram:
    DRAFT -> SUBMITTED
    SUBMITTED -> UNDER_REVIEW
    UNDER_REVIEW -> APPROVED | PARTIALLY_APPROVED | REJECTED
    APPROVED -> SETTLED
    PARTIALLY_APPROVED -> SETTLED

Terminal: REJECTED, SETTLED.

DRAFT -> SUBMITTED additionally requires a successful policy validation and
eligibility check; see src.services.claim_submission.
"""

from typing import Optional

from src.core.enums import ClaimStatus, Role
from src.services.lifecycle import (
    LifecycleStateMachine,
    Transition,
    TransitionDetails,
    roles,
)
from src.utils.errors import BusinessRuleError, TransitionRequirementError


# =============================================================================
# Valid Transitions Definition
# =============================================================================


TERMINAL_CLAIM_STATUSES = frozenset({ClaimStatus.REJECTED, ClaimStatus.SETTLED})

_REVIEWERS = roles(Role.INSURANCE_ADMIN, Role.REVIEWER)

CLAIM_TRANSITIONS: list[Transition[ClaimStatus]] = [
    # From DRAFT
    Transition(
        from_status=ClaimStatus.DRAFT,
        to_status=ClaimStatus.SUBMITTED,
        allowed_roles=roles(Role.EMPLOYER_ADMIN, Role.INSURANCE_ADMIN),
    ),

    # From SUBMITTED
    Transition(
        from_status=ClaimStatus.SUBMITTED,
        to_status=ClaimStatus.UNDER_REVIEW,
        allowed_roles=_REVIEWERS,
    ),

    # From UNDER_REVIEW
    Transition(
        from_status=ClaimStatus.UNDER_REVIEW,
        to_status=ClaimStatus.APPROVED,
        allowed_roles=_REVIEWERS,
        requires_approved_amount=True,
    ),
    Transition(
        from_status=ClaimStatus.UNDER_REVIEW,
        to_status=ClaimStatus.PARTIALLY_APPROVED,
        allowed_roles=_REVIEWERS,
        requires_approved_amount=True,
    ),
    Transition(
        from_status=ClaimStatus.UNDER_REVIEW,
        to_status=ClaimStatus.REJECTED,
        allowed_roles=_REVIEWERS,
        requires_comment=True,
    ),

    # From APPROVED / PARTIALLY_APPROVED
    Transition(
        from_status=ClaimStatus.APPROVED,
        to_status=ClaimStatus.SETTLED,
        allowed_roles=roles(Role.INSURANCE_ADMIN),
    ),
    Transition(
        from_status=ClaimStatus.PARTIALLY_APPROVED,
        to_status=ClaimStatus.SETTLED,
        allowed_roles=roles(Role.INSURANCE_ADMIN),
    ),
]


# =============================================================================
# State Machine
# =============================================================================


class ClaimStateMachine(LifecycleStateMachine[ClaimStatus]):
    """
    State machine for claim status transitions.

    Manages valid status transitions and validates transition requests.
    """

    entity_name = "claim"

    def __init__(self):
        """Initialize state machine with the claim transition table."""
        super().__init__(ClaimStatus, CLAIM_TRANSITIONS, TERMINAL_CLAIM_STATUSES)

    def check_requirements(
        self,
        transition: Transition[ClaimStatus],
        details: TransitionDetails,
    ) -> Optional[BusinessRuleError]:
        error = super().check_requirements(transition, details)
        if error is not None:
            return error

        if transition.from_status == ClaimStatus.DRAFT and not details.eligibility_confirmed:
            return TransitionRequirementError(
                "Claim submission requires a successful policy and eligibility check"
            )

        if transition.to_status == ClaimStatus.PARTIALLY_APPROVED:
            requested = details.requested_amount
            if requested is None or details.approved_amount >= requested:
                return TransitionRequirementError(
                    "Partial approval requires an approved amount below the requested amount"
                )

        if transition.to_status == ClaimStatus.APPROVED and details.requested_amount is not None:
            if details.approved_amount > details.requested_amount:
                return TransitionRequirementError(
                    "Approved amount cannot exceed the requested amount"
                )

        return None


# =============================================================================
# Singleton Instance
# =============================================================================


_state_machine: Optional[ClaimStateMachine] = None


def get_claim_state_machine() -> ClaimStateMachine:
    """Get singleton state machine instance."""
    global _state_machine
    if _state_machine is None:
        _state_machine = ClaimStateMachine()
    return _state_machine
