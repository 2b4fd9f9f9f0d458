"""
Services Layer for the Adjudication Core.

Exports coverage resolution, policy validation, lifecycle state machines
and the decision recorder. The eligibility engine lives in
src.services.eligibility.
"""

from src.services.authorization import TransitionAuthorizer
from src.services.claim_amounts import ClaimAmounts, split_claim_amount
from src.services.claim_state_machine import ClaimStateMachine, get_claim_state_machine
from src.services.coverage_resolver import (
    BenefitConfiguration,
    CoverageRule,
    NotCovered,
    ResolvedCoverage,
    resolve_coverage,
)
from src.services.policy_validator import (
    PolicyActivityValidator,
    PolicyValidationResult,
    get_policy_validator,
)
from src.services.preauth_state_machine import (
    PreAuthorizationSnapshot,
    PreAuthStateMachine,
    find_expired,
    get_preauth_state_machine,
)

__all__ = [
    # Authorization
    "TransitionAuthorizer",
    # Amounts
    "ClaimAmounts",
    "split_claim_amount",
    # Claim lifecycle
    "ClaimStateMachine",
    "get_claim_state_machine",
    # Coverage
    "BenefitConfiguration",
    "CoverageRule",
    "NotCovered",
    "ResolvedCoverage",
    "resolve_coverage",
    # Policy validation
    "PolicyActivityValidator",
    "PolicyValidationResult",
    "get_policy_validator",
    # Pre-authorization lifecycle
    "PreAuthorizationSnapshot",
    "PreAuthStateMachine",
    "find_expired",
    "get_preauth_state_machine",
]
