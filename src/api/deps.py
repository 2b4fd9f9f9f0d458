"""
FastAPI Dependencies
Dependency injection for the snapshot source, decision recorder, services
and database sessions. Shared objects are created by create_app() and held
on app.state.
Source: https://fastapi.tiangolo.com/tutorial/dependencies/
Verified: 2026-10-17
"""

from collections.abc import AsyncGenerator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.services.claim_submission import ClaimSubmissionService
from src.services.decision_recorder import DecisionRecorder
from src.services.eligibility import EligibilityEngine
from src.services.snapshot_source import SnapshotSource
from src.utils.logging import get_logger

logger = get_logger(__name__)


def get_snapshot_source(request: Request) -> SnapshotSource:
    return request.app.state.snapshot_source


def get_decision_recorder(request: Request) -> DecisionRecorder:
    return request.app.state.recorder


def get_engine(request: Request) -> EligibilityEngine:
    return request.app.state.engine


def get_submission_service(
    recorder: DecisionRecorder = Depends(get_decision_recorder),
    engine: EligibilityEngine = Depends(get_engine),
) -> ClaimSubmissionService:
    return ClaimSubmissionService(recorder=recorder, engine=engine)


async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    Request-scoped session for claim state.

    Commits on success, rolls back and re-raises on error. Audit rows are
    written by the recorder in their own sessions and survive a rollback.
    """
    session_maker = request.app.state.session_maker
    async with session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception as e:
            await session.rollback()
            logger.error(f"Database session error: {e}")
            raise
