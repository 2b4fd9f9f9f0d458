"""
FastAPI Main Application
Entry point for the adjudication API
Source: https://fastapi.tiangolo.com/
Verified: 2026-10-17
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from src.api.routes import claims, eligibility, health
from src.core.config import AdjudicationSettings, get_settings
from src.db.connection import create_engine_for_url, init_db
from src.services.decision_recorder import build_decision_recorder
from src.services.eligibility import EligibilityEngine, EngineOptions
from src.services.snapshot_source import InMemorySnapshotSource, SnapshotSource
from src.utils.errors import (
    BusinessRuleError,
    ConcurrentModificationError,
    InvalidTransitionError,
)
from src.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)


# =============================================================================
# Exception Handlers
# =============================================================================


async def business_rule_error_handler(request: Request, exc: BusinessRuleError) -> JSONResponse:
    """Validation, eligibility and requirement failures."""
    return JSONResponse(status_code=422, content={"detail": exc.to_dict()})


async def conflict_error_handler(request: Request, exc: BusinessRuleError) -> JSONResponse:
    """Disallowed transitions and lost optimistic writes."""
    return JSONResponse(status_code=409, content={"detail": exc.to_dict()})


# =============================================================================
# Application Factory
# =============================================================================


def create_app(
    settings: Optional[AdjudicationSettings] = None,
    snapshot_source: Optional[SnapshotSource] = None,
    db_engine: Optional[AsyncEngine] = None,
    eligibility_engine: Optional[EligibilityEngine] = None,
) -> FastAPI:
    """
    Build the API application.

    Args:
        settings: Application settings; loaded from the environment when omitted
        snapshot_source: Loader for member, policy and provider snapshots
        db_engine: Async engine for claims and audit tables
        eligibility_engine: Rule engine; built from settings when omitted
    """
    settings = settings or get_settings()
    db_engine = db_engine or create_engine_for_url(
        settings.DATABASE_URL,
        echo=settings.DB_ECHO,
        testing=settings.is_testing,
    )
    session_maker = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):  # type: ignore[no-untyped-def]
        """
        Application lifespan manager.

        Source: https://fastapi.tiangolo.com/advanced/events/
        """
        setup_logging(
            level=settings.LOG_LEVEL,
            log_file=settings.LOG_FILE,
            json_logs=settings.JSON_LOGS or settings.is_production,
        )
        logger.info(f"Starting adjudication API in {settings.ENVIRONMENT} mode")
        await init_db(db_engine)

        yield

        logger.info("Shutting down application")
        await db_engine.dispose()
        logger.info("Database connections closed")

    app = FastAPI(
        title="Adjudication Core API",
        description="Eligibility checks and claim lifecycle transitions",
        version="1.0.0",
        docs_url="/docs" if not settings.is_production else None,
        redoc_url="/redoc" if not settings.is_production else None,
        openapi_url="/openapi.json" if not settings.is_production else None,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.db_engine = db_engine
    app.state.session_maker = session_maker
    app.state.snapshot_source = snapshot_source or InMemorySnapshotSource()
    app.state.engine = eligibility_engine or EligibilityEngine(
        options=EngineOptions.from_settings(settings)
    )
    app.state.recorder = build_decision_recorder(session_maker, settings)

    # Handlers resolve by class hierarchy, so the 409 subclasses win over 422
    app.add_exception_handler(BusinessRuleError, business_rule_error_handler)
    app.add_exception_handler(InvalidTransitionError, conflict_error_handler)
    app.add_exception_handler(ConcurrentModificationError, conflict_error_handler)

    app.include_router(health.router)
    app.include_router(eligibility.router)
    app.include_router(claims.router)

    return app
