"""
Health Check Endpoints

Provides health and readiness checks for orchestration systems, and the
Prometheus scrape endpoint.
"""

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

from src.config import Settings
from src.serving.api.dependencies import get_app_settings, get_store
from src.store.interfaces import OrderStore

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    version: str
    environment: str
    timestamp: datetime
    checks: Dict[str, Any]


@router.get("/health", response_model=HealthResponse)
async def health_check(
    store: OrderStore = Depends(get_store),
    settings: Settings = Depends(get_app_settings),
) -> HealthResponse:
    """
    Comprehensive health check endpoint.

    Checks:
    - Application status
    - Order store connectivity
    """
    checks = {}
    overall_status = "healthy"

    try:
        await run_in_threadpool(store.ping)
        checks["store"] = {"status": "healthy", "backend": settings.store.backend}
    except Exception as e:
        checks["store"] = {"status": "unhealthy", "backend": settings.store.backend, "error": str(e)}
        overall_status = "unhealthy"

    return HealthResponse(
        status=overall_status,
        version=settings.version,
        environment=settings.app_env,
        timestamp=datetime.now(timezone.utc),
        checks=checks,
    )


@router.get("/health/live")
async def liveness_check() -> Dict[str, str]:
    """
    Kubernetes liveness probe endpoint.

    Returns 200 if the application is running.
    """
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness_check(response: Response, store: OrderStore = Depends(get_store)) -> Dict[str, str]:
    """
    Kubernetes readiness probe endpoint.

    Returns 200 if the order store is reachable.
    """
    try:
        await run_in_threadpool(store.ping)
        return {"status": "ready"}
    except Exception as e:
        response.status_code = 503
        return {"status": "not_ready", "reason": str(e)}


@router.get("/metrics")
async def metrics() -> Response:
    """Prometheus metrics"""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
