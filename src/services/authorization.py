"""
Transition Authorizer.

Maps a user's role set to the single acting role handed to a lifecycle state
machine. The super-admin bypass lives here: a super admin acts in whichever
role the transition requires. The state machines only ever see one role.
"""

import logging
from typing import Iterable, Optional

from src.core.config import get_settings
from src.core.enums import Role
from src.services.lifecycle import (
    LifecycleStateMachine,
    S,
    TransitionDetails,
    TransitionResult,
)
from src.utils.errors import InvalidTransitionError

logger = logging.getLogger(__name__)


class TransitionAuthorizer:
    """Caller-side role resolution for lifecycle transitions."""

    def __init__(
        self,
        machine: LifecycleStateMachine[S],
        super_admin_bypass: Optional[bool] = None,
    ):
        self.machine = machine
        if super_admin_bypass is None:
            super_admin_bypass = get_settings().SUPER_ADMIN_BYPASS
        self.super_admin_bypass = super_admin_bypass

    def resolve_role(self, user_roles: Iterable[Role], from_status: S, to_status: S) -> Role:
        """
        Pick the role the user acts as for a transition.

        Returns a permitted role when the user holds one (or may bypass as
        super admin); otherwise the user's first role, which the machine will
        reject with the required role.
        """
        held = list(dict.fromkeys(user_roles))
        if not held:
            raise ValueError("At least one role is required to request a transition")

        transition = self.machine.get_transition(from_status, to_status)
        if transition is None:
            return held[0]

        for role in held:
            if role in transition.allowed_roles:
                return role

        if (
            self.super_admin_bypass
            and Role.SUPER_ADMIN in held
            and not transition.system_only
        ):
            acting = sorted(transition.allowed_roles, key=lambda r: r.value)[0]
            logger.info(
                f"Super admin acting as {acting.value} for "
                f"{from_status.value} -> {to_status.value}"
            )
            return acting

        return held[0]

    def check_role(
        self,
        user_roles: Iterable[Role],
        from_status: S,
        to_status: S,
    ) -> Optional[InvalidTransitionError]:
        """
        Role gate on its own, without the transition's business requirements.

        Returns the error the machine would report for an illegal pair or a
        role that may not perform it; None when the user may proceed.
        """
        acting = self.resolve_role(user_roles, from_status, to_status)
        transition = self.machine.get_transition(from_status, to_status)
        if transition is None:
            return InvalidTransitionError(from_status.value, to_status.value)
        if acting not in transition.allowed_roles:
            return InvalidTransitionError(
                from_status.value,
                to_status.value,
                required_roles=self.machine.required_roles(from_status, to_status),
            )
        return None

    def transition(
        self,
        entity_id: str,
        from_status: S,
        to_status: S,
        user_roles: Iterable[Role],
        details: Optional[TransitionDetails] = None,
    ) -> TransitionResult[S]:
        """Resolve the acting role and validate the transition."""
        acting = self.resolve_role(user_roles, from_status, to_status)
        return self.machine.transition(entity_id, from_status, to_status, acting, details)

    def available_transitions(self, status: S, user_roles: Iterable[Role]) -> list[S]:
        """Statuses the user may move to from status, in table order."""
        held = set(user_roles)
        if self.super_admin_bypass and Role.SUPER_ADMIN in held:
            held.update(Role)
            held.discard(Role.SYSTEM)

        available: list[S] = []
        for role in sorted(held, key=lambda r: r.value):
            for target in self.machine.available_transitions(status, role):
                if target not in available:
                    available.append(target)
        order = self.machine.get_next_statuses(status)
        return sorted(available, key=order.index)
