"""
Core Enumerations for the Eligibility and Adjudication Core.

Every value in this module is persisted in audit records or matched by
reporting consumers. Adding a member is backward compatible; renaming or
removing one is a breaking change.
"""

from enum import Enum


# =============================================================================
# Policy & Benefit Enums
# =============================================================================


class PolicyStatus(str, Enum):
    """Policy lifecycle status."""

    PENDING = "pending"
    ACTIVE = "active"
    SUSPENDED = "suspended"
    EXPIRED = "expired"
    CANCELLED = "cancelled"
    RENEWAL_PENDING = "renewal_pending"


class CoverageTarget(str, Enum):
    """What a benefit configuration rule is attached to."""

    CATEGORY = "category"
    SERVICE = "service"


class WaitingPeriodReference(str, Enum):
    """Date from which a waiting period is counted."""

    POLICY_START = "policy_start"
    MEMBER_ENROLLMENT = "member_enrollment"


# =============================================================================
# Member / Employer / Provider Enums
# =============================================================================


class MemberStatus(str, Enum):
    """Member enrollment status."""

    PENDING = "pending"
    ACTIVE = "active"
    SUSPENDED = "suspended"
    TERMINATED = "terminated"


class CardStatus(str, Enum):
    """Membership card status."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    BLOCKED = "blocked"
    EXPIRED = "expired"


class ProviderNetworkStatus(str, Enum):
    """Provider's network participation status."""

    IN_NETWORK = "in_network"
    OUT_OF_NETWORK = "out_of_network"


# =============================================================================
# Lifecycle Enums
# =============================================================================


class ClaimStatus(str, Enum):
    """Claim lifecycle status.

    State Machine Transitions:
    DRAFT -> SUBMITTED
    SUBMITTED -> UNDER_REVIEW
    UNDER_REVIEW -> APPROVED | PARTIALLY_APPROVED | REJECTED
    APPROVED | PARTIALLY_APPROVED -> SETTLED
    """

    DRAFT = "draft"
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    PARTIALLY_APPROVED = "partially_approved"
    REJECTED = "rejected"
    SETTLED = "settled"


class PreAuthStatus(str, Enum):
    """Pre-authorization lifecycle status.

    State Machine Transitions:
    REQUESTED -> UNDER_REVIEW
    UNDER_REVIEW -> APPROVED | REJECTED | MORE_INFO_REQUIRED
    MORE_INFO_REQUIRED -> REQUESTED
    APPROVED -> EXPIRED (system only)
    """

    REQUESTED = "requested"
    UNDER_REVIEW = "under_review"
    MORE_INFO_REQUIRED = "more_info_required"
    APPROVED = "approved"
    REJECTED = "rejected"
    EXPIRED = "expired"


class EligibilityStatus(str, Enum):
    """Overall outcome of an eligibility check."""

    ELIGIBLE = "eligible"
    WARNING = "warning"  # Eligible, with non-blocking reasons
    NOT_ELIGIBLE = "not_eligible"


# =============================================================================
# Audit & RBAC Enums
# =============================================================================


class AuditEntityType(str, Enum):
    """Entities whose transitions are recorded."""

    CLAIM = "claim"
    PRE_AUTHORIZATION = "pre_authorization"


class TransitionOutcome(str, Enum):
    """Whether a recorded transition attempt was applied."""

    APPLIED = "applied"
    BLOCKED = "blocked"


class Role(str, Enum):
    """Actor roles passed to the lifecycle state machines."""

    SUPER_ADMIN = "super_admin"
    INSURANCE_ADMIN = "insurance_admin"
    EMPLOYER_ADMIN = "employer_admin"
    REVIEWER = "reviewer"
    PROVIDER = "provider"
    SYSTEM = "system"  # Scheduled jobs (pre-auth expiry)
