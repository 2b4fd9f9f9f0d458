"""
Decision and Transition Audit Models.

Both tables are append-only. Rows are inserted once and never updated or
deleted: mapper events refuse flush-time changes, and a session event
refuses ORM bulk UPDATE/DELETE statements against these classes.
Source: https://docs.sqlalchemy.org/en/20/orm/events.html#mapper-events
Verified: 2026-10-17
"""

from datetime import date, datetime, timezone
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Enum,
    Float,
    Index,
    Integer,
    String,
    Text,
    event,
    func,
)
from sqlalchemy.orm import Mapped, ORMExecuteState, Session, mapped_column

from src.core.enums import AuditEntityType, TransitionOutcome
from src.models.base import Base, UUIDModel
from src.utils.errors import AuditImmutableError


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EligibilityCheckRecord(Base, UUIDModel):
    """
    One eligibility decision, eligible or not.

    request_id is unique so a retried write for the same check cannot
    create a second row.
    """

    __tablename__ = "eligibility_checks"

    request_id: Mapped[str] = mapped_column(
        String(36),
        unique=True,
        nullable=False,
        comment="Correlation id of the check",
    )
    checked_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )

    # Subject
    member_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    policy_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    provider_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    service_code: Mapped[str] = mapped_column(String(50), nullable=False)
    service_date: Mapped[date] = mapped_column(Date, nullable=False)

    # Decision
    eligible: Mapped[bool] = mapped_column(Boolean, nullable=False)
    status: Mapped[str] = mapped_column(String(30), nullable=False, index=True)
    reasons: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    snapshot: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    # Metrics
    rules_evaluated: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    elapsed_ms: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    checked_by: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        Index("ix_eligibility_checks_member_date", "member_id", "service_date"),
    )

    def __repr__(self) -> str:
        return f"<EligibilityCheckRecord(request_id='{self.request_id}', status='{self.status}')>"


class StatusTransitionRecord(Base, UUIDModel):
    """One lifecycle transition attempt, applied or blocked."""

    __tablename__ = "status_transitions"

    entity_type: Mapped[AuditEntityType] = mapped_column(
        Enum(AuditEntityType),
        nullable=False,
    )
    entity_id: Mapped[str] = mapped_column(String(64), nullable=False)
    from_status: Mapped[str] = mapped_column(String(30), nullable=False)
    to_status: Mapped[str] = mapped_column(String(30), nullable=False)
    actor_role: Mapped[str] = mapped_column(String(30), nullable=False)
    actor_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    outcome: Mapped[TransitionOutcome] = mapped_column(
        Enum(TransitionOutcome),
        nullable=False,
        index=True,
    )
    error_code: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    details: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    eligibility_request_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        nullable=True,
        comment="Eligibility check that gated this transition",
    )
    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        nullable=False,
    )

    __table_args__ = (
        Index("ix_status_transitions_entity", "entity_type", "entity_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<StatusTransitionRecord(entity='{self.entity_type}:{self.entity_id}', "
            f"{self.from_status}->{self.to_status}, outcome='{self.outcome}')>"
        )


# =============================================================================
# Append-only enforcement
# =============================================================================


APPEND_ONLY_MODELS: tuple[type[Base], ...] = (EligibilityCheckRecord, StatusTransitionRecord)


def _refuse_update(mapper, connection, target) -> None:
    raise AuditImmutableError(type(target).__name__, "update")


def _refuse_delete(mapper, connection, target) -> None:
    raise AuditImmutableError(type(target).__name__, "delete")


for _model in APPEND_ONLY_MODELS:
    event.listen(_model, "before_update", _refuse_update)
    event.listen(_model, "before_delete", _refuse_delete)


@event.listens_for(Session, "do_orm_execute")
def _refuse_bulk_changes(orm_execute_state: ORMExecuteState) -> None:
    """Refuse ORM-enabled update()/delete() statements on audit tables."""
    if not (orm_execute_state.is_update or orm_execute_state.is_delete):
        return
    mapper = orm_execute_state.bind_mapper
    if mapper is not None and mapper.class_ in APPEND_ONLY_MODELS:
        operation = "update" if orm_execute_state.is_update else "delete"
        raise AuditImmutableError(mapper.class_.__name__, operation)
