"""Admin Security Routes — security monitor dashboard data."""

import logging

from fastapi import APIRouter, Depends, Query

from smokehouse.api.dependencies import get_security, require_admin
from smokehouse.services.security_state import SecurityState

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/api/v1/admin/security", tags=["admin-security"],
    dependencies=[Depends(require_admin)],
)


@router.get("/metrics")
async def security_metrics(
    window_hours: int = Query(24, ge=1, le=168),
    security: SecurityState = Depends(get_security),
):
    """Events in the window, all retained alerts, aggregate counts and session statistics."""
    return {
        **security.monitor.metrics(window_hours),
        "sessions": security.sessions.statistics(),
        "tracked_clients": {
            "rate_limit_windows": security.api_limiter.size + security.upload_limiter.size,
            "login_attempts": security.login_attempts.size,
        },
    }
