"""Health & Readiness Checks — liveness and readiness endpoints for the storefront.

Invariants:
    - GET /health/ returns 200 whenever the process is serving
    - GET /health/ready returns 503 when the database does not answer a ping
    - Both checks are exempt from the API rate limiter (api/middleware.py)
"""

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from smokehouse.api.dependencies import get_payment_gateways
from smokehouse.infrastructure import database

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/health", tags=["health"])

SERVICE = "smokehouse-storefront"
VERSION = "1.0.0"


@router.get("/", status_code=status.HTTP_200_OK)
async def health_check():
    return {"status": "healthy", "service": SERVICE, "version": VERSION}


@router.get("/ready")
async def readiness_check(gateways=Depends(get_payment_gateways)):
    """Readiness: database round trip plus the payment providers this process can reach."""
    manager = database.db_manager
    latency_ms = await manager.ping() if manager else None
    providers = sorted(p.value for p in gateways)
    if latency_ms is None:
        logger.warning("Readiness check failed: database unavailable")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready", "reason": "database_unavailable"},
        )
    return {
        "status": "ready",
        "checks": {"database": "healthy", "payment_providers": providers},
        "database_latency_ms": latency_ms,
    }
