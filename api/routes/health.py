"""
Health Check Endpoints
======================

API health check endpoints for monitoring and Kubernetes probes.
"""

import logging
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Optional

import psutil
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from api.dependencies import get_user_store
from api.middleware.rate_limiter import get_rate_limiter
from core.rate_limiter import RateLimiter
from core.user_store import UserStore


# Set up module logger
logger = logging.getLogger(__name__)

router = APIRouter()


class ServiceStatus(str, Enum):
    """Service health status enumeration."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class ServiceCheckResult(BaseModel):
    """Result of an individual service health check."""
    status: ServiceStatus = Field(description="Service health status")
    message: Optional[str] = Field(None, description="Status message or error details")
    latency_ms: Optional[float] = Field(None, description="Check latency in milliseconds")


class SystemMetrics(BaseModel):
    """System resource metrics."""
    cpu_percent: float = Field(description="CPU usage percentage")
    memory_percent: float = Field(description="Memory usage percentage")
    memory_available_mb: float = Field(description="Available memory in MB")


class HealthCheckResponse(BaseModel):
    """Comprehensive health check response."""
    status: ServiceStatus = Field(description="Overall health status")
    timestamp: str = Field(description="ISO 8601 timestamp of the health check")
    services: Dict[str, ServiceCheckResult] = Field(description="Individual service statuses")
    system_metrics: SystemMetrics = Field(description="System resource metrics")


class ProbeResponse(BaseModel):
    """Kubernetes probe response."""
    status: str = Field(description="Probe status")
    timestamp: str = Field(description="ISO 8601 timestamp")


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def check_user_store(store: UserStore) -> ServiceCheckResult:
    """
    Check that the user store's backing storage answers.

    Args:
        store: The user store handle

    Returns:
        ServiceCheckResult with user store health status
    """
    start_time = time.time()
    if not store.ping():
        return ServiceCheckResult(
            status=ServiceStatus.UNHEALTHY,
            message="User store unreachable"
        )
    return ServiceCheckResult(
        status=ServiceStatus.HEALTHY,
        message=type(store).__name__,
        latency_ms=round((time.time() - start_time) * 1000, 2)
    )


def check_rate_limit_storage(limiter: RateLimiter) -> ServiceCheckResult:
    """
    Check the rate limit counter storage.

    A disabled limiter is reported without touching its storage. An
    unreachable counter store leaves most routes serving, so it only
    degrades overall health.
    """
    if not limiter.enabled:
        return ServiceCheckResult(status=ServiceStatus.DEGRADED, message="Rate limiting disabled")

    try:
        healthy = limiter.is_healthy()
    except Exception as e:
        logger.warning(f"Rate limit storage check failed: {e}")
        healthy = False

    if not healthy:
        return ServiceCheckResult(status=ServiceStatus.DEGRADED, message="Counter storage unreachable")
    return ServiceCheckResult(status=ServiceStatus.HEALTHY, message="Connected")


def get_system_metrics() -> SystemMetrics:
    """
    Gather system resource metrics.

    Returns:
        SystemMetrics with CPU and memory usage
    """
    try:
        memory = psutil.virtual_memory()
        return SystemMetrics(
            cpu_percent=round(psutil.cpu_percent(interval=None), 2),
            memory_percent=round(memory.percent, 2),
            memory_available_mb=round(memory.available / (1024 * 1024), 2)
        )
    except Exception as e:
        logger.error(f"Failed to gather system metrics: {e}")
        return SystemMetrics(cpu_percent=0.0, memory_percent=0.0, memory_available_mb=0.0)


def determine_overall_status(services: Dict[str, ServiceCheckResult]) -> ServiceStatus:
    """
    Determine overall health status based on individual service statuses.

    Logic:
    - UNHEALTHY: The user store is unhealthy (nothing can authenticate)
    - DEGRADED: Any other service is unhealthy or degraded
    - HEALTHY: Everything is healthy
    """
    if services["user_store"].status == ServiceStatus.UNHEALTHY:
        return ServiceStatus.UNHEALTHY
    if any(s.status != ServiceStatus.HEALTHY for s in services.values()):
        return ServiceStatus.DEGRADED
    return ServiceStatus.HEALTHY


@router.get(
    "/health",
    response_model=HealthCheckResponse,
    status_code=status.HTTP_200_OK,
    summary="Comprehensive health check",
)
def health_check(
    store: UserStore = Depends(get_user_store),
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> HealthCheckResponse:
    """
    Check the user store, the rate limit storage and system metrics.

    Returns HTTP 200 with detailed status information even if some services
    are degraded. Use the 'status' field to determine overall health.
    """
    logger.debug("Performing comprehensive health check")

    services = {
        "api": ServiceCheckResult(status=ServiceStatus.HEALTHY, message="API is running"),
        "user_store": check_user_store(store),
        "rate_limit_storage": check_rate_limit_storage(limiter),
    }
    overall_status = determine_overall_status(services)

    if overall_status != ServiceStatus.HEALTHY:
        unhealthy_services = [
            name for name, check in services.items()
            if check.status != ServiceStatus.HEALTHY
        ]
        logger.warning(f"Unhealthy/degraded services: {unhealthy_services}")

    return HealthCheckResponse(
        status=overall_status,
        timestamp=_timestamp(),
        services=services,
        system_metrics=get_system_metrics()
    )


@router.get(
    "/health/ready",
    response_model=ProbeResponse,
    summary="Kubernetes readiness probe",
)
def readiness_probe(store: UserStore = Depends(get_user_store)) -> ProbeResponse:
    """
    Check if the application is ready to serve traffic.

    Returns HTTP 503 if the user store is unreachable.
    """
    if not store.ping():
        logger.warning("Readiness probe failed: user store unreachable")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="User store unreachable"
        )
    return ProbeResponse(status="ready", timestamp=_timestamp())


@router.get(
    "/health/live",
    response_model=ProbeResponse,
    summary="Kubernetes liveness probe",
)
async def liveness_probe() -> ProbeResponse:
    """
    Check if the application process is alive.

    Does not check external dependencies - that's what readiness is for.
    """
    return ProbeResponse(status="alive", timestamp=_timestamp())
