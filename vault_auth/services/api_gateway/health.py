"""
Health check endpoints.
Reports the status of the credential store and the token store.
"""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from datetime import datetime, timezone
import logging

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check(request: Request):
    """
    Health check including both stores.
    Answers 503 when either store is unreachable.
    """
    health_status = {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "dependencies": {}
    }

    checks = {
        "token_store": request.app.state.token_store,
        "credential_store": request.app.state.credential_store,
    }
    for name, store in checks.items():
        healthy = await store.ping()
        health_status["dependencies"][name] = {"status": "healthy" if healthy else "unhealthy"}
        if not healthy:
            logger.warning(f"Health check: {name} unhealthy")
            health_status["status"] = "degraded"

    status_code = 200 if health_status["status"] == "ok" else 503
    return JSONResponse(content=health_status, status_code=status_code)


@router.get("/health/live")
async def liveness_check():
    """Liveness probe endpoint."""
    return {"status": "alive"}
