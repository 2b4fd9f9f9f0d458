"""
Claim Model.

After creation a claim changes only through status transitions. Every status
write is a conditional update on (status, version); see
src.db.repositories.ClaimRepository.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import Date, Enum, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.core.enums import ClaimStatus
from src.models.base import Base, TimeStampedModel, UUIDModel


class ClaimRecord(Base, UUIDModel, TimeStampedModel):
    """Persisted claim header."""

    __tablename__ = "claims"

    claim_number: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        nullable=False,
        index=True,
        comment="Human-readable claim number",
    )
    status: Mapped[ClaimStatus] = mapped_column(
        Enum(ClaimStatus),
        default=ClaimStatus.DRAFT,
        nullable=False,
        index=True,
    )
    version: Mapped[int] = mapped_column(
        Integer,
        default=1,
        nullable=False,
        comment="Incremented on every status write",
    )

    # Links
    member_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    policy_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    provider_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    pre_authorization_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    # Service
    service_code: Mapped[str] = mapped_column(String(50), nullable=False)
    service_category: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    service_date: Mapped[date] = mapped_column(Date, nullable=False)

    # Amounts
    requested_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    patient_copay: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"), nullable=False)
    net_provider_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"), nullable=False)
    approved_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)

    reviewer_comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_claims_member_status", "member_id", "status"),
    )

    def __repr__(self) -> str:
        return f"<ClaimRecord(claim_number='{self.claim_number}', status='{self.status}', v{self.version})>"
