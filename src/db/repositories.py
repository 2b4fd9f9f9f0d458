"""
Storage-boundary repositories.

ClaimRepository performs version-checked status writes so two actors cannot
both move the same claim. AuditRepository only ever inserts and reads.
Source: https://docs.sqlalchemy.org/en/20/orm/queryguide/dml.html#orm-update-and-delete-with-custom-where-criteria
Verified: 2026-10-17
"""

from typing import Any, Optional, Sequence
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.enums import AuditEntityType, ClaimStatus
from src.models.audit import EligibilityCheckRecord, StatusTransitionRecord
from src.models.claim import ClaimRecord
from src.utils.errors import BusinessRuleError, ConcurrentModificationError
from src.utils.logging import get_logger

logger = get_logger(__name__)


class ClaimRepository:
    """Claim persistence with optimistic status writes."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, claim: ClaimRecord) -> ClaimRecord:
        """Insert a new claim; amounts must satisfy requested = co-pay + net."""
        if claim.requested_amount != claim.patient_copay + claim.net_provider_amount:
            raise BusinessRuleError(
                f"Claim {claim.claim_number}: requested amount must equal co-pay plus net provider amount"
            )
        self.session.add(claim)
        await self.session.flush()
        return claim

    async def get(self, claim_id: UUID) -> Optional[ClaimRecord]:
        return await self.session.get(ClaimRecord, claim_id)

    async def get_by_number(self, claim_number: str) -> Optional[ClaimRecord]:
        result = await self.session.execute(
            select(ClaimRecord).where(ClaimRecord.claim_number == claim_number)
        )
        return result.scalar_one_or_none()

    async def compare_and_set_status(
        self,
        claim_id: UUID,
        expected_status: ClaimStatus,
        expected_version: int,
        new_status: ClaimStatus,
        **values: Any,
    ) -> int:
        """
        Conditionally write a new status.

        Issues UPDATE ... WHERE id = ? AND status = ? AND version = ? and
        bumps the version.

        Returns:
            The new version

        Raises:
            ConcurrentModificationError: No row matched (status or version moved on)
        """
        stmt = (
            update(ClaimRecord)
            .where(
                ClaimRecord.id == claim_id,
                ClaimRecord.status == expected_status,
                ClaimRecord.version == expected_version,
            )
            .values(status=new_status, version=ClaimRecord.version + 1, **values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        if result.rowcount == 0:
            logger.warning(
                f"Optimistic write lost for claim {claim_id}: "
                f"expected {expected_status.value} v{expected_version}"
            )
            raise ConcurrentModificationError(str(claim_id), expected_status.value)

        return expected_version + 1


class AuditRepository:
    """Insert-and-read access to the append-only audit tables."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, record: EligibilityCheckRecord | StatusTransitionRecord) -> None:
        self.session.add(record)
        await self.session.flush()

    async def get_eligibility_check(self, request_id: str) -> Optional[EligibilityCheckRecord]:
        result = await self.session.execute(
            select(EligibilityCheckRecord).where(EligibilityCheckRecord.request_id == request_id)
        )
        return result.scalar_one_or_none()

    async def list_eligibility_checks(self, member_id: str) -> Sequence[EligibilityCheckRecord]:
        result = await self.session.execute(
            select(EligibilityCheckRecord)
            .where(EligibilityCheckRecord.member_id == member_id)
            .order_by(EligibilityCheckRecord.checked_at)
        )
        return result.scalars().all()

    async def list_transitions(
        self,
        entity_type: AuditEntityType,
        entity_id: str,
    ) -> Sequence[StatusTransitionRecord]:
        result = await self.session.execute(
            select(StatusTransitionRecord)
            .where(
                StatusTransitionRecord.entity_type == entity_type,
                StatusTransitionRecord.entity_id == entity_id,
            )
            .order_by(StatusTransitionRecord.occurred_at, StatusTransitionRecord.id)
        )
        return result.scalars().all()
