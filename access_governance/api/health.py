"""Health check endpoints.

/health        - Alias of /health/live
/health/live   - Liveness probe: is the process up?
/health/ready  - Readiness probe: is the admin service initialized?

These are public endpoints - no auth required.
"""

from __future__ import annotations

from datetime import UTC, datetime

from fastapi import APIRouter, Depends

from access_governance.services.access_admin import AccessAdminService, get_admin_service

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
@router.get("/live")
async def liveness() -> dict:
    """Liveness probe - always returns 200 if the process is running."""
    return {"status": "ok", "timestamp": datetime.now(UTC).isoformat()}


@router.get("/ready")
async def readiness(service: AccessAdminService = Depends(get_admin_service)) -> dict:
    """Readiness probe - reports state sizes and the last error, if any."""
    state = service.state
    return {
        "status": "ready",
        "grants": len(state.grants),
        "pending_requests": len(state.pending_requests),
        "scheduled_notifications": len(state.scheduled_notifications),
        "last_refresh": state.last_refresh.isoformat() if state.last_refresh else None,
        "last_error": state.error,
        "timestamp": datetime.now(UTC).isoformat(),
    }
