"""
Lifecycle State Machine Base.

Shared machinery for the claim and pre-authorization lifecycles:
- Central transition table (from, to, roles, requirements)
- Role-gated transitions; the actor role is a call parameter
- Typed failures carrying (from_status, to_status, required_role)

The machine is pure. It never reads the clock or storage; callers persist
the new status (with a version check) and record the attempt.
"""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Generic, Iterable, Optional, TypeVar

from src.core.enums import Role
from src.utils.errors import (
    BusinessRuleError,
    InvalidTransitionError,
    TransitionRequirementError,
)

logger = logging.getLogger(__name__)

S = TypeVar("S", bound=Enum)


@dataclass(frozen=True)
class Transition(Generic[S]):
    """A legal status change and who may perform it."""

    from_status: S
    to_status: S
    allowed_roles: frozenset[Role]
    requires_comment: bool = False
    requires_approved_amount: bool = False
    system_only: bool = False  # Triggered by scheduled jobs, never offered to users


@dataclass(frozen=True)
class TransitionDetails:
    """Data supplied with a transition request."""

    comment: Optional[str] = None
    approved_amount: Optional[Decimal] = None
    requested_amount: Optional[Decimal] = None
    valid_until: Optional[date] = None
    eligibility_confirmed: bool = False


@dataclass(frozen=True)
class TransitionResult(Generic[S]):
    """Result of a transition attempt."""

    success: bool
    entity_id: str
    from_status: S
    to_status: S
    actor_role: Role
    error: Optional[BusinessRuleError] = None
    transition: Optional[Transition[S]] = None

    def raise_if_failed(self) -> None:
        if self.error is not None:
            raise self.error

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "success": self.success,
            "entity_id": self.entity_id,
            "from_status": self.from_status.value,
            "to_status": self.to_status.value,
            "actor_role": self.actor_role.value,
        }
        if self.error is not None:
            data["error"] = self.error.to_dict()
        return data


class LifecycleStateMachine(Generic[S]):
    """
    Table-driven state machine.

    Subclasses supply the status enum, the transition table and the terminal
    statuses, and may add per-transition requirement checks.
    """

    entity_name: str = "entity"

    def __init__(
        self,
        statuses: type[S],
        transitions: Iterable[Transition[S]],
        terminal_statuses: Iterable[S],
    ):
        self._statuses = statuses
        self._transitions: dict[tuple[S, S], Transition[S]] = {}
        self._from_status_map: dict[S, list[Transition[S]]] = {}
        self._terminal = frozenset(terminal_statuses)

        for transition in transitions:
            key = (transition.from_status, transition.to_status)
            if not all(isinstance(s, statuses) for s in key):
                raise TypeError(f"Transition {key} does not use {statuses.__name__}")
            if key in self._transitions:
                raise ValueError(f"Duplicate transition {key}")
            if transition.from_status in self._terminal:
                raise ValueError(f"Terminal status {transition.from_status} cannot have transitions")
            self._transitions[key] = transition
            self._from_status_map.setdefault(transition.from_status, []).append(transition)

    @property
    def transitions(self) -> list[Transition[S]]:
        return list(self._transitions.values())

    def is_terminal(self, status: S) -> bool:
        """Check if status is terminal (no further transitions)."""
        return status in self._terminal

    def get_transition(self, from_status: S, to_status: S) -> Optional[Transition[S]]:
        return self._transitions.get((from_status, to_status))

    def can_transition(self, from_status: S, to_status: S) -> bool:
        """True iff (from_status, to_status) is in the transition table."""
        return (from_status, to_status) in self._transitions

    def get_next_statuses(self, status: S) -> list[S]:
        """All statuses reachable in one step, regardless of role."""
        return [t.to_status for t in self._from_status_map.get(status, [])]

    def required_roles(self, from_status: S, to_status: S) -> list[str]:
        transition = self.get_transition(from_status, to_status)
        if transition is None:
            return []
        return sorted(role.value for role in transition.allowed_roles)

    def available_transitions(self, status: S, role: Role) -> list[S]:
        """Statuses the role may move to from status; system-only moves are excluded."""
        return [
            t.to_status
            for t in self._from_status_map.get(status, [])
            if not t.system_only and role in t.allowed_roles
        ]

    def check_requirements(
        self,
        transition: Transition[S],
        details: TransitionDetails,
    ) -> Optional[BusinessRuleError]:
        """Business requirements layered on top of the table."""
        if transition.requires_comment and not (details.comment and details.comment.strip()):
            return TransitionRequirementError(
                f"A comment is required to move a {self.entity_name} to {transition.to_status.value}"
            )
        if transition.requires_approved_amount and (
            details.approved_amount is None or details.approved_amount <= 0
        ):
            return TransitionRequirementError(
                f"An approved amount greater than zero is required to move a "
                f"{self.entity_name} to {transition.to_status.value}"
            )
        return None

    def transition(
        self,
        entity_id: str,
        from_status: S,
        to_status: S,
        actor_role: Role,
        details: Optional[TransitionDetails] = None,
    ) -> TransitionResult[S]:
        """
        Validate a transition attempt.

        Args:
            entity_id: Claim or pre-authorization id
            from_status: Status the caller believes the entity is in
            to_status: Requested status
            actor_role: Role the actor is acting as
            details: Comment, amounts and dates the transition may require

        Returns:
            TransitionResult; on failure error holds the typed reason
        """
        details = details or TransitionDetails()
        transition = self.get_transition(from_status, to_status)

        if transition is None:
            error: BusinessRuleError = InvalidTransitionError(
                from_status.value,
                to_status.value,
            )
        elif actor_role not in transition.allowed_roles:
            error = InvalidTransitionError(
                from_status.value,
                to_status.value,
                required_roles=self.required_roles(from_status, to_status),
            )
        else:
            error = self.check_requirements(transition, details)

        if error is not None:
            logger.warning(
                f"Transition failed for {self.entity_name} {entity_id}: {error.message}"
            )
            return TransitionResult(
                success=False,
                entity_id=entity_id,
                from_status=from_status,
                to_status=to_status,
                actor_role=actor_role,
                error=error,
                transition=transition,
            )

        logger.info(
            f"{self.entity_name.capitalize()} {entity_id} transitioned: "
            f"{from_status.value} -> {to_status.value} (role: {actor_role.value})"
        )
        return TransitionResult(
            success=True,
            entity_id=entity_id,
            from_status=from_status,
            to_status=to_status,
            actor_role=actor_role,
            transition=transition,
        )


def roles(*members: Role) -> frozenset[Role]:
    return frozenset(members)
