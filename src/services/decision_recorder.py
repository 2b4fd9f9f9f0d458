"""
Decision/Audit Recorder.

Boundary that persists every eligibility decision and every lifecycle
transition attempt, successful or not. Writes are keyed by request id for
eligibility checks so a repeated record call is a no-op.

Implementations:
- SqlDecisionRecorder: append-only tables via SQLAlchemy, one short
  transaction per record so a caller's rollback never drops the audit row
- InMemoryDecisionRecorder: immutable entries held in memory (tests, demos)
- NullDecisionRecorder: used when auditing is disabled
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Optional, Protocol

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.core.config import AdjudicationSettings, get_settings
from src.core.enums import AuditEntityType, TransitionOutcome
from src.db.repositories import AuditRepository
from src.models.audit import EligibilityCheckRecord, StatusTransitionRecord
from src.services.eligibility.engine import EligibilityResult
from src.services.lifecycle import TransitionResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EligibilityAuditEntry:
    """Recorded eligibility decision."""

    request_id: str
    member_id: str
    service_code: str
    service_date: date
    eligible: bool
    status: str
    reason_codes: tuple[str, ...]
    rules_evaluated: int
    checked_at: datetime
    checked_by: Optional[str] = None


@dataclass(frozen=True)
class TransitionAuditEntry:
    """Recorded transition attempt."""

    entity_type: AuditEntityType
    entity_id: str
    from_status: str
    to_status: str
    actor_role: str
    outcome: TransitionOutcome
    error_code: Optional[str] = None
    message: Optional[str] = None
    actor_id: Optional[str] = None
    eligibility_request_id: Optional[str] = None
    details: dict[str, Any] = field(default_factory=dict)
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class DecisionRecorder(Protocol):
    """Audit boundary invoked for every decision and transition attempt."""

    async def record_eligibility(
        self,
        result: EligibilityResult,
        checked_by: Optional[str] = None,
    ) -> None: ...

    async def record_transition(
        self,
        entity_type: AuditEntityType,
        result: TransitionResult,
        actor_id: Optional[str] = None,
        eligibility_request_id: Optional[str] = None,
    ) -> None: ...


def build_eligibility_entry(result: EligibilityResult, checked_by: Optional[str] = None) -> EligibilityAuditEntry:
    snapshot = result.snapshot
    return EligibilityAuditEntry(
        request_id=result.request_id,
        member_id=snapshot["member_id"],
        service_code=snapshot["service_code"],
        service_date=date.fromisoformat(snapshot["service_date"]),
        eligible=result.eligible,
        status=result.status.value,
        reason_codes=tuple(result.reason_codes),
        rules_evaluated=result.rules_evaluated,
        checked_at=result.checked_at,
        checked_by=checked_by,
    )


def build_transition_entry(
    entity_type: AuditEntityType,
    result: TransitionResult,
    actor_id: Optional[str] = None,
    eligibility_request_id: Optional[str] = None,
) -> TransitionAuditEntry:
    error = result.error
    return TransitionAuditEntry(
        entity_type=entity_type,
        entity_id=result.entity_id,
        from_status=result.from_status.value,
        to_status=result.to_status.value,
        actor_role=result.actor_role.value,
        outcome=TransitionOutcome.APPLIED if result.success else TransitionOutcome.BLOCKED,
        error_code=error.error_code.value if error else None,
        message=error.message if error else None,
        actor_id=actor_id,
        eligibility_request_id=eligibility_request_id,
        details=error.to_dict() if error else {},
    )


class InMemoryDecisionRecorder:
    """Keeps audit entries in memory; entries are frozen once recorded."""

    def __init__(self):
        self._eligibility: dict[str, EligibilityAuditEntry] = {}
        self._transitions: list[TransitionAuditEntry] = []

    @property
    def eligibility_entries(self) -> tuple[EligibilityAuditEntry, ...]:
        return tuple(self._eligibility.values())

    @property
    def transition_entries(self) -> tuple[TransitionAuditEntry, ...]:
        return tuple(self._transitions)

    async def record_eligibility(
        self,
        result: EligibilityResult,
        checked_by: Optional[str] = None,
    ) -> None:
        if result.request_id in self._eligibility:
            logger.debug(f"Eligibility {result.request_id} already recorded")
            return
        self._eligibility[result.request_id] = build_eligibility_entry(result, checked_by)

    async def record_transition(
        self,
        entity_type: AuditEntityType,
        result: TransitionResult,
        actor_id: Optional[str] = None,
        eligibility_request_id: Optional[str] = None,
    ) -> None:
        self._transitions.append(
            build_transition_entry(entity_type, result, actor_id, eligibility_request_id)
        )


class NullDecisionRecorder:
    """Discards all records."""

    async def record_eligibility(self, result: EligibilityResult, checked_by: Optional[str] = None) -> None:
        return None

    async def record_transition(
        self,
        entity_type: AuditEntityType,
        result: TransitionResult,
        actor_id: Optional[str] = None,
        eligibility_request_id: Optional[str] = None,
    ) -> None:
        return None


class SqlDecisionRecorder:
    """Writes audit rows to the append-only tables."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self.session_maker = session_maker

    async def record_eligibility(
        self,
        result: EligibilityResult,
        checked_by: Optional[str] = None,
    ) -> None:
        snapshot = result.snapshot
        policy = snapshot.get("policy") or {}
        async with self.session_maker() as session:
            repo = AuditRepository(session)
            if await repo.get_eligibility_check(result.request_id) is not None:
                logger.debug(f"Eligibility {result.request_id} already recorded")
                return
            await repo.add(
                EligibilityCheckRecord(
                    request_id=result.request_id,
                    checked_at=result.checked_at,
                    member_id=snapshot["member_id"],
                    policy_id=policy.get("policy_id"),
                    provider_id=snapshot.get("provider_id"),
                    service_code=snapshot["service_code"],
                    service_date=date.fromisoformat(snapshot["service_date"]),
                    eligible=result.eligible,
                    status=result.status.value,
                    reasons=[r.to_dict() for r in result.reasons],
                    snapshot=snapshot,
                    rules_evaluated=result.rules_evaluated,
                    elapsed_ms=result.elapsed_ms,
                    checked_by=checked_by,
                )
            )
            await session.commit()

    async def record_transition(
        self,
        entity_type: AuditEntityType,
        result: TransitionResult,
        actor_id: Optional[str] = None,
        eligibility_request_id: Optional[str] = None,
    ) -> None:
        entry = build_transition_entry(entity_type, result, actor_id, eligibility_request_id)
        async with self.session_maker() as session:
            await AuditRepository(session).add(
                StatusTransitionRecord(
                    entity_type=entry.entity_type,
                    entity_id=entry.entity_id,
                    from_status=entry.from_status,
                    to_status=entry.to_status,
                    actor_role=entry.actor_role,
                    actor_id=entry.actor_id,
                    outcome=entry.outcome,
                    error_code=entry.error_code,
                    message=entry.message,
                    details=entry.details or None,
                    eligibility_request_id=entry.eligibility_request_id,
                    occurred_at=entry.occurred_at,
                )
            )
            await session.commit()


def build_decision_recorder(
    session_maker: Optional[async_sessionmaker[AsyncSession]] = None,
    settings: Optional[AdjudicationSettings] = None,
) -> DecisionRecorder:
    """Recorder for the configured environment."""
    settings = settings or get_settings()
    if not settings.AUDIT_ENABLED:
        logger.warning("Decision auditing is disabled")
        return NullDecisionRecorder()
    if session_maker is None:
        return InMemoryDecisionRecorder()
    return SqlDecisionRecorder(session_maker)
