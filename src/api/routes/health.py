"""
Health Check Routes
Service health monitoring endpoints
Source: https://microservices.io/patterns/observability/health-check-api.html
Verified: 2026-10-17
"""

from typing import Any

from fastapi import APIRouter, Request

from src.db.connection import check_db_connection
from src.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check() -> dict[str, Any]:
    """Basic health check endpoint."""
    return {
        "status": "healthy",
        "service": "adjudication-core",
    }


@router.get("/health/detailed")
async def detailed_health_check(request: Request) -> dict[str, Any]:
    """Health check including the decision store and the loaded rule chain."""
    db_healthy = await check_db_connection(request.app.state.db_engine)

    overall_status = "healthy" if db_healthy else "unhealthy"

    return {
        "status": overall_status,
        "service": "adjudication-core",
        "checks": {
            "database": "healthy" if db_healthy else "unhealthy",
            "rules_loaded": len(request.app.state.engine.rules),
        },
    }
