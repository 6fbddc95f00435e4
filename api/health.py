"""
Health check module for the FuelEU compliance API.

Checks the compliance database and the Redis rate-limit store.
Designed for Kubernetes liveness/readiness probes and load balancer checks.
"""
import logging
from typing import Dict, Any, Optional
from datetime import datetime
from enum import Enum
from dataclasses import dataclass

import redis
from sqlalchemy import text

from api.config import settings

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


class HealthStatus(Enum):
    """Health check status."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass
class ComponentHealth:
    """Health status of a single component."""
    name: str
    status: HealthStatus
    latency_ms: Optional[float] = None
    message: Optional[str] = None
    details: Optional[Dict[str, Any]] = None


def check_database_health() -> ComponentHealth:
    """
    Check database connectivity and report ledger table sizes.

    Returns:
        ComponentHealth with database status
    """
    start = datetime.utcnow()

    try:
        from api.database import SessionLocal

        db = SessionLocal()
        try:
            result = db.execute(text("SELECT 1")).scalar()
            latency_ms = (datetime.utcnow() - start).total_seconds() * 1000

            if result != 1:
                return ComponentHealth(
                    name="database",
                    status=HealthStatus.UNHEALTHY,
                    message="Unexpected query result",
                )

            details = None
            try:
                details = {
                    "routes": db.execute(text("SELECT COUNT(*) FROM routes")).scalar(),
                    "bank_entries": db.execute(text("SELECT COUNT(*) FROM bank_entries")).scalar(),
                }
            except Exception as e:
                logger.warning(f"Compliance tables not readable: {e}")
                return ComponentHealth(
                    name="database",
                    status=HealthStatus.DEGRADED,
                    latency_ms=round(latency_ms, 2),
                    message="Connected, compliance tables missing",
                )

            return ComponentHealth(
                name="database",
                status=HealthStatus.HEALTHY,
                latency_ms=round(latency_ms, 2),
                message=f"{db.bind.dialect.name} connected",
                details=details,
            )
        finally:
            db.close()

    except Exception as e:
        latency_ms = (datetime.utcnow() - start).total_seconds() * 1000
        logger.error(f"Database health check failed: {e}")
        return ComponentHealth(
            name="database",
            status=HealthStatus.UNHEALTHY,
            latency_ms=round(latency_ms, 2),
            message=f"Connection failed: {type(e).__name__}",
        )


def check_redis_health() -> ComponentHealth:
    """
    Check Redis connectivity. Redis backs rate limiting only, so a failure
    degrades the service rather than taking it down.
    """
    start = datetime.utcnow()

    if not settings.redis_enabled:
        return ComponentHealth(
            name="redis",
            status=HealthStatus.HEALTHY,
            message="Redis disabled (not required)",
        )

    try:
        client = redis.from_url(
            settings.redis_url,
            socket_connect_timeout=5,
            socket_timeout=5,
        )
        pong = client.ping()
        latency_ms = (datetime.utcnow() - start).total_seconds() * 1000

        if pong:
            return ComponentHealth(
                name="redis",
                status=HealthStatus.HEALTHY,
                latency_ms=round(latency_ms, 2),
                message="Redis connected",
            )
        return ComponentHealth(
            name="redis",
            status=HealthStatus.DEGRADED,
            message="Ping failed",
        )

    except Exception as e:
        latency_ms = (datetime.utcnow() - start).total_seconds() * 1000
        logger.error(f"Redis health check failed: {e}")
        return ComponentHealth(
            name="redis",
            status=HealthStatus.DEGRADED,
            latency_ms=round(latency_ms, 2),
            message=f"Connection failed: {type(e).__name__}",
        )


async def perform_full_health_check() -> Dict[str, Any]:
    """
    Perform health check of all components.

    Returns:
        Dict with overall status and component details
    """
    start = datetime.utcnow()

    components = [check_database_health(), check_redis_health()]

    if any(c.status == HealthStatus.UNHEALTHY for c in components):
        overall_status = HealthStatus.UNHEALTHY
    elif any(c.status == HealthStatus.DEGRADED for c in components):
        overall_status = HealthStatus.DEGRADED
    else:
        overall_status = HealthStatus.HEALTHY

    total_time_ms = (datetime.utcnow() - start).total_seconds() * 1000

    return {
        "status": overall_status.value,
        "timestamp": datetime.utcnow().isoformat() + "Z",
        "version": API_VERSION,
        "check_duration_ms": round(total_time_ms, 2),
        "components": {
            c.name: {
                "status": c.status.value,
                "latency_ms": c.latency_ms,
                "message": c.message,
                **({"details": c.details} if c.details else {}),
            }
            for c in components
        },
    }


async def perform_liveness_check() -> Dict[str, Any]:
    """Liveness probe: the process is up."""
    return {
        "status": "alive",
        "timestamp": datetime.utcnow().isoformat() + "Z",
    }


async def perform_readiness_check() -> Dict[str, Any]:
    """Readiness probe: ready once the database answers."""
    db_health = check_database_health()
    is_ready = db_health.status == HealthStatus.HEALTHY

    return {
        "status": "ready" if is_ready else "not_ready",
        "timestamp": datetime.utcnow().isoformat() + "Z",
        "database": db_health.status.value,
    }
