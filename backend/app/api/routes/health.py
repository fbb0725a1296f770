"""Health & Readiness Probes - liveness and readiness endpoints.

Invariants:
    - GET /health/ always returns 200 if process is up (liveness)
    - GET /health/ready returns 503 if the session runtime is not started or the
      SQL profile store is unreachable (readiness)
"""

import logging

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

import app.infrastructure.database as db_module
import app.services.session_runtime as runtime_module

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/health", tags=["health"])


@router.get("/", status_code=status.HTTP_200_OK)
async def health_check():
    """Basic liveness probe. Returns 200 if the process is up."""
    return {
        "status": "healthy",
        "service": "clansync-api",
        "version": "1.0.0",
    }


@router.get("/ready")
async def readiness_check():
    """Readiness probe - session runtime and (when used) database connectivity."""
    runtime = runtime_module.session_runtime
    checks = {"session": "healthy" if runtime and runtime.started else "unavailable"}
    if db_module.db_manager is not None:
        db_ok = await db_module.db_manager.health_check()
        checks["database"] = "healthy" if db_ok else "unavailable"
    if any(v != "healthy" for v in checks.values()):
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready", "checks": checks},
        )
    return {"status": "ready", "checks": checks}
