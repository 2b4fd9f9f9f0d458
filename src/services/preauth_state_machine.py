"""
Pre-Authorization Status State Machine.

State Diagram:
    REQUESTED -> UNDER_REVIEW
    UNDER_REVIEW -> APPROVED | REJECTED | MORE_INFO_REQUIRED
    MORE_INFO_REQUIRED -> REQUESTED (resubmission)
    APPROVED -> EXPIRED (system only)

Terminal: REJECTED, EXPIRED.

Expiry is never triggered by the machine itself. A scheduled job selects
approved pre-authorizations whose validity window has ended (find_expired)
and moves each one with the SYSTEM role.
"""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from src.core.enums import PreAuthStatus, Role
from src.services.lifecycle import (
    LifecycleStateMachine,
    Transition,
    TransitionDetails,
    TransitionResult,
    roles,
)
from src.utils.errors import BusinessRuleError, TransitionRequirementError

logger = logging.getLogger(__name__)


# =============================================================================
# Valid Transitions Definition
# =============================================================================


TERMINAL_PREAUTH_STATUSES = frozenset({PreAuthStatus.REJECTED, PreAuthStatus.EXPIRED})

_REVIEWERS = roles(Role.INSURANCE_ADMIN, Role.REVIEWER)

PREAUTH_TRANSITIONS: list[Transition[PreAuthStatus]] = [
    Transition(
        from_status=PreAuthStatus.REQUESTED,
        to_status=PreAuthStatus.UNDER_REVIEW,
        allowed_roles=_REVIEWERS,
    ),
    Transition(
        from_status=PreAuthStatus.UNDER_REVIEW,
        to_status=PreAuthStatus.APPROVED,
        allowed_roles=_REVIEWERS,
        requires_approved_amount=True,
    ),
    Transition(
        from_status=PreAuthStatus.UNDER_REVIEW,
        to_status=PreAuthStatus.REJECTED,
        allowed_roles=_REVIEWERS,
        requires_comment=True,
    ),
    Transition(
        from_status=PreAuthStatus.UNDER_REVIEW,
        to_status=PreAuthStatus.MORE_INFO_REQUIRED,
        allowed_roles=roles(Role.REVIEWER),
        requires_comment=True,
    ),
    Transition(
        from_status=PreAuthStatus.MORE_INFO_REQUIRED,
        to_status=PreAuthStatus.REQUESTED,
        allowed_roles=roles(Role.EMPLOYER_ADMIN, Role.INSURANCE_ADMIN),
    ),
    Transition(
        from_status=PreAuthStatus.APPROVED,
        to_status=PreAuthStatus.EXPIRED,
        allowed_roles=roles(Role.SYSTEM),
        system_only=True,
    ),
]


@dataclass(frozen=True)
class PreAuthorizationSnapshot:
    """Pre-authorization state read by the expiry sweep and claim checks."""

    preauth_id: str
    status: PreAuthStatus
    valid_from: Optional[date] = None
    valid_until: Optional[date] = None
    approved_amount: Optional[Decimal] = None
    service_code: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "preauth_id": self.preauth_id,
            "status": self.status.value,
            "valid_from": self.valid_from.isoformat() if self.valid_from else None,
            "valid_until": self.valid_until.isoformat() if self.valid_until else None,
            "approved_amount": str(self.approved_amount) if self.approved_amount is not None else None,
            "service_code": self.service_code,
        }


# =============================================================================
# State Machine
# =============================================================================


class PreAuthStateMachine(LifecycleStateMachine[PreAuthStatus]):
    """State machine for pre-authorization status transitions."""

    entity_name = "pre-authorization"

    def __init__(self):
        super().__init__(PreAuthStatus, PREAUTH_TRANSITIONS, TERMINAL_PREAUTH_STATUSES)

    def check_requirements(
        self,
        transition: Transition[PreAuthStatus],
        details: TransitionDetails,
    ) -> Optional[BusinessRuleError]:
        error = super().check_requirements(transition, details)
        if error is not None:
            return error

        if transition.to_status == PreAuthStatus.APPROVED and details.valid_until is None:
            return TransitionRequirementError(
                "Pre-authorization approval requires a validity end date"
            )
        return None

    def is_usable_for_claim(self, status: PreAuthStatus) -> bool:
        """Only APPROVED pre-authorizations can back a claim."""
        return status == PreAuthStatus.APPROVED

    def expire(self, preauth_id: str, from_status: PreAuthStatus) -> TransitionResult[PreAuthStatus]:
        """Expire an approved pre-authorization on behalf of the scheduler."""
        return self.transition(preauth_id, from_status, PreAuthStatus.EXPIRED, Role.SYSTEM)


# =============================================================================
# Expiry Helpers
# =============================================================================


def is_expired_on(preauth: PreAuthorizationSnapshot, as_of: date) -> bool:
    """An approved pre-authorization is expired once as_of passes valid_until."""
    return (
        preauth.status == PreAuthStatus.APPROVED
        and preauth.valid_until is not None
        and as_of > preauth.valid_until
    )


def is_usable_on(preauth: PreAuthorizationSnapshot, service_date: date) -> bool:
    """Usable for a claim: APPROVED and service date inside the validity window."""
    if preauth.status != PreAuthStatus.APPROVED:
        return False
    if preauth.valid_from is not None and service_date < preauth.valid_from:
        return False
    if preauth.valid_until is not None and service_date > preauth.valid_until:
        return False
    return True


def find_expired(
    preauths: Iterable[PreAuthorizationSnapshot],
    as_of: date,
) -> list[PreAuthorizationSnapshot]:
    """
    Select pre-authorizations the expiry job should transition.

    Args:
        preauths: Candidates, typically all APPROVED pre-authorizations
        as_of: Date the job runs for

    Returns:
        Approved pre-authorizations whose validity window ended before as_of
    """
    expired = [p for p in preauths if is_expired_on(p, as_of)]
    if expired:
        logger.info(f"Found {len(expired)} expired pre-authorizations as of {as_of.isoformat()}")
    return expired


# =============================================================================
# Singleton Instance
# =============================================================================


_state_machine: Optional[PreAuthStateMachine] = None


def get_preauth_state_machine() -> PreAuthStateMachine:
    """Get singleton state machine instance."""
    global _state_machine
    if _state_machine is None:
        _state_machine = PreAuthStateMachine()
    return _state_machine
