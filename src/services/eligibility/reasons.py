"""
Eligibility reason codes.

Reason codes are persisted with every eligibility decision and matched by
reporting consumers. Adding a code is backward compatible; renaming or
removing one is a breaking change.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from src.utils.errors import CoverageIssue


class ReasonCode(str, Enum):
    """Stable eligibility reason codes."""

    # Member
    MEMBER_NOT_FOUND = "MEMBER_NOT_FOUND"
    MEMBER_INACTIVE = "MEMBER_INACTIVE"
    MEMBER_SUSPENDED = "MEMBER_SUSPENDED"
    MEMBER_TERMINATED = "MEMBER_TERMINATED"
    MEMBER_CARD_BLOCKED = "MEMBER_CARD_BLOCKED"
    MEMBER_CARD_EXPIRED = "MEMBER_CARD_EXPIRED"
    MEMBER_NOT_ENROLLED = "MEMBER_NOT_ENROLLED"

    # Policy
    POLICY_NOT_FOUND = "POLICY_NOT_FOUND"
    POLICY_INACTIVE = "POLICY_INACTIVE"
    POLICY_PENDING = "POLICY_PENDING"
    POLICY_SUSPENDED = "POLICY_SUSPENDED"
    POLICY_EXPIRED = "POLICY_EXPIRED"
    POLICY_CANCELLED = "POLICY_CANCELLED"
    POLICY_RENEWAL_PENDING = "POLICY_RENEWAL_PENDING"
    POLICY_NOT_YET_EFFECTIVE = "POLICY_NOT_YET_EFFECTIVE"
    POLICY_NO_BENEFIT_PACKAGE = "POLICY_NO_BENEFIT_PACKAGE"

    # Coverage
    SERVICE_DATE_BEFORE_COVERAGE = "SERVICE_DATE_BEFORE_COVERAGE"
    SERVICE_DATE_AFTER_COVERAGE = "SERVICE_DATE_AFTER_COVERAGE"
    WAITING_PERIOD_NOT_SATISFIED = "WAITING_PERIOD_NOT_SATISFIED"
    SERVICE_NOT_COVERED = "SERVICE_NOT_COVERED"
    AMOUNT_LIMIT_EXCEEDED = "AMOUNT_LIMIT_EXCEEDED"
    COVERAGE_LIMIT_EXHAUSTED = "COVERAGE_LIMIT_EXHAUSTED"
    COUNT_LIMIT_EXCEEDED = "COUNT_LIMIT_EXCEEDED"
    PRE_APPROVAL_REQUIRED = "PRE_APPROVAL_REQUIRED"

    # Provider
    PROVIDER_NOT_FOUND = "PROVIDER_NOT_FOUND"
    PROVIDER_INACTIVE = "PROVIDER_INACTIVE"
    PROVIDER_NOT_IN_NETWORK = "PROVIDER_NOT_IN_NETWORK"

    # Employer
    EMPLOYER_INACTIVE = "EMPLOYER_INACTIVE"

    # Request / System
    SERVICE_DATE_INVALID = "SERVICE_DATE_INVALID"
    SERVICE_DATE_IN_FUTURE = "SERVICE_DATE_IN_FUTURE"
    SYSTEM_ERROR = "SYSTEM_ERROR"


@dataclass(frozen=True)
class ReasonDefinition:
    """Catalogue entry for a reason code."""

    code: ReasonCode
    message_en: str
    message_ar: str
    hard: bool = True


def _entry(code: ReasonCode, message_en: str, message_ar: str, hard: bool = True) -> tuple[ReasonCode, ReasonDefinition]:
    return code, ReasonDefinition(code=code, message_en=message_en, message_ar=message_ar, hard=hard)


REASON_CATALOGUE: dict[ReasonCode, ReasonDefinition] = dict(
    [
        _entry(ReasonCode.MEMBER_NOT_FOUND, "Member not found in the system", "العضو غير موجود في النظام"),
        _entry(ReasonCode.MEMBER_INACTIVE, "Member status is not active", "حالة العضو غير فعالة"),
        _entry(ReasonCode.MEMBER_SUSPENDED, "Member is suspended", "عضوية العضو موقوفة"),
        _entry(ReasonCode.MEMBER_TERMINATED, "Member has been terminated", "تم إنهاء عضوية العضو"),
        _entry(ReasonCode.MEMBER_CARD_BLOCKED, "Member card is blocked", "بطاقة العضو محجوبة"),
        _entry(ReasonCode.MEMBER_CARD_EXPIRED, "Member card has expired", "بطاقة العضو منتهية الصلاحية"),
        _entry(ReasonCode.MEMBER_NOT_ENROLLED, "Member is not enrolled in this policy", "العضو غير مسجل في هذه الوثيقة"),
        _entry(ReasonCode.POLICY_NOT_FOUND, "Policy not found", "الوثيقة غير موجودة"),
        _entry(ReasonCode.POLICY_INACTIVE, "Policy is not active", "الوثيقة غير فعالة"),
        _entry(ReasonCode.POLICY_PENDING, "Policy is pending activation", "الوثيقة بانتظار التفعيل"),
        _entry(ReasonCode.POLICY_SUSPENDED, "Policy is suspended", "الوثيقة موقوفة"),
        _entry(ReasonCode.POLICY_EXPIRED, "Policy has expired", "الوثيقة منتهية الصلاحية"),
        _entry(ReasonCode.POLICY_CANCELLED, "Policy has been cancelled", "تم إلغاء الوثيقة"),
        _entry(ReasonCode.POLICY_RENEWAL_PENDING, "Policy is pending renewal", "الوثيقة بانتظار التجديد"),
        _entry(ReasonCode.POLICY_NOT_YET_EFFECTIVE, "Policy is not yet effective", "الوثيقة لم تبدأ بعد"),
        _entry(ReasonCode.POLICY_NO_BENEFIT_PACKAGE, "Policy has no benefit package", "الوثيقة بدون باقة منافع"),
        _entry(
            ReasonCode.SERVICE_DATE_BEFORE_COVERAGE,
            "Service date is before coverage start date",
            "تاريخ الخدمة قبل بداية التغطية",
        ),
        _entry(
            ReasonCode.SERVICE_DATE_AFTER_COVERAGE,
            "Service date is after coverage end date",
            "تاريخ الخدمة بعد نهاية التغطية",
        ),
        _entry(
            ReasonCode.WAITING_PERIOD_NOT_SATISFIED,
            "Waiting period has not been satisfied",
            "فترة الانتظار لم تنتهِ بعد",
        ),
        _entry(ReasonCode.SERVICE_NOT_COVERED, "Service is not covered under this policy", "الخدمة غير مشمولة في التغطية"),
        _entry(ReasonCode.AMOUNT_LIMIT_EXCEEDED, "Requested amount exceeds the remaining limit", "المبلغ المطلوب يتجاوز الحد المتبقي"),
        _entry(ReasonCode.COVERAGE_LIMIT_EXHAUSTED, "Coverage limit has been exhausted", "تم استنفاد حد التغطية"),
        _entry(ReasonCode.COUNT_LIMIT_EXCEEDED, "Usage count limit has been reached", "تم تجاوز الحد الأقصى لعدد مرات الاستخدام"),
        _entry(ReasonCode.PRE_APPROVAL_REQUIRED, "Service requires pre-approval", "الخدمة تتطلب موافقة مسبقة", hard=False),
        _entry(ReasonCode.PROVIDER_NOT_FOUND, "Provider not found", "مقدم الخدمة غير موجود"),
        _entry(ReasonCode.PROVIDER_INACTIVE, "Provider is not active", "مقدم الخدمة غير فعال"),
        _entry(ReasonCode.PROVIDER_NOT_IN_NETWORK, "Provider is not in network", "مقدم الخدمة خارج الشبكة", hard=False),
        _entry(ReasonCode.EMPLOYER_INACTIVE, "Employer is not active", "جهة العمل غير فعالة"),
        _entry(ReasonCode.SERVICE_DATE_INVALID, "Service date is invalid", "تاريخ الخدمة غير صالح"),
        _entry(
            ReasonCode.SERVICE_DATE_IN_FUTURE,
            "Service date is too far in the future",
            "تاريخ الخدمة في المستقبل",
            hard=False,
        ),
        _entry(ReasonCode.SYSTEM_ERROR, "System error occurred", "خطأ في النظام"),
    ]
)

_missing = set(ReasonCode) - set(REASON_CATALOGUE)
if _missing:
    raise RuntimeError(f"Reason codes without a catalogue entry: {sorted(c.value for c in _missing)}")


# Coverage-class reasons surface as CoverageValidationError
COVERAGE_ISSUES: dict[ReasonCode, CoverageIssue] = {
    ReasonCode.SERVICE_NOT_COVERED: CoverageIssue.SERVICE_NOT_COVERED,
    ReasonCode.AMOUNT_LIMIT_EXCEEDED: CoverageIssue.AMOUNT_LIMIT_EXCEEDED,
    ReasonCode.COUNT_LIMIT_EXCEEDED: CoverageIssue.COUNT_LIMIT_EXCEEDED,
    ReasonCode.WAITING_PERIOD_NOT_SATISFIED: CoverageIssue.WAITING_PERIOD_NOT_MET,
    ReasonCode.COVERAGE_LIMIT_EXHAUSTED: CoverageIssue.BENEFIT_EXHAUSTED,
}


def get_reason(code: ReasonCode) -> ReasonDefinition:
    """Catalogue entry for a code."""
    return REASON_CATALOGUE[code]


def coverage_issue_for(code: ReasonCode) -> Optional[CoverageIssue]:
    return COVERAGE_ISSUES.get(code)
