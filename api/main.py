"""
FastAPI Backend for the FuelEU Maritime compliance service.

Provides REST API endpoints for:
- Route records and the per-year baseline
- Compliance balance calculation
- Banking of surplus and draw-down
- Pooling of route balances

Version: 1.0.0
"""

import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from slowapi.errors import RateLimitExceeded
import uvicorn

from api.config import settings
from api.database import get_db_context, init_db
from api.middleware import (
    setup_middleware,
    metrics_collector,
    structured_logger,
    get_request_id,
)
from api.rate_limit import limiter
from api.routers import banking, fueleu, pooling, routes
from api.seed import seed_routes
from src.compliance.exceptions import ComplianceError
from src.metrics import metrics

# Configure structured logging for production
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format='%(message)s',  # JSON logs are self-contained
)
logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


# =============================================================================
# Application Factory
# =============================================================================

def create_app() -> FastAPI:
    """
    Application factory for the FuelEU compliance API.

    Creates and configures the FastAPI application with middleware,
    exception handlers and routers.

    Returns:
        FastAPI: Configured application instance
    """
    application = FastAPI(
        title="FuelEU Compliance API",
        description="""
## FuelEU Maritime Compliance API

Compliance balance, banking and pooling under Regulation (EU) 2023/1805.

### Features
- Per-route compliance balance against the yearly GHG intensity target
- Banking of positive balances and draw-down of banked surplus
- Pooling of several routes' balances for one reporting year
- Baseline comparison of routes within a year

### Rate Limiting
Mutating endpoints are rate limited per client.
        """,
        version=API_VERSION,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )

    # Setup production middleware (security headers, logging, metrics, etc.)
    setup_middleware(
        application,
        debug=settings.debug or settings.is_development,
        enable_hsts=settings.is_production,
    )

    # CORS middleware - use configured origins only (NO WILDCARDS)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=settings.cors_credentials,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    # Add rate limiter to app state
    application.state.limiter = limiter

    @application.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
        return JSONResponse(
            status_code=429,
            content={
                "error": "Rate limit exceeded",
                "detail": str(exc.detail),
                "retry_after": getattr(exc, 'retry_after', 60),
            },
            headers={"Retry-After": str(getattr(exc, 'retry_after', 60))},
        )

    @application.exception_handler(ComplianceError)
    async def compliance_error_handler(request: Request, exc: ComplianceError):
        structured_logger.warning(
            "Compliance request rejected",
            error=exc.kind,
            detail=exc.message,
            path=request.url.path,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.kind, "detail": exc.message},
        )

    @application.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"Validation error on {request.method} {request.url.path}: {exc.errors()}")
        return JSONResponse(
            status_code=422,
            content={"error": "ValidationError", "detail": jsonable_errors(exc)},
        )

    application.include_router(routes.router)
    application.include_router(fueleu.router)
    application.include_router(banking.router)
    application.include_router(pooling.router)

    return application


def jsonable_errors(exc: RequestValidationError) -> list:
    """Validation errors without the raw ``ctx`` objects, which may not serialize."""
    return [
        {k: v for k, v in err.items() if k != "ctx"}
        for err in exc.errors()
    ]


# Create the application
app = create_app()


@app.on_event("startup")
async def startup_event():
    """Create missing tables and load the reference routes."""
    init_db()

    if settings.seed_on_startup:
        with get_db_context() as db:
            inserted = seed_routes(db)
        if inserted:
            logger.info(f"Loaded {inserted} reference routes")

    logger.info("Startup complete")


# ============================================================================
# API Endpoints - Core
# ============================================================================

@app.get("/", tags=["System"])
async def root():
    """
    API root endpoint.

    Returns basic API information and available endpoint categories.
    """
    return {
        "name": "FuelEU Compliance API",
        "version": API_VERSION,
        "status": "operational",
        "docs": "/api/docs",
        "endpoints": {
            "health": "/api/health",
            "metrics": "/api/metrics",
            "routes": "/api/routes/...",
            "compliance": "/api/compliance/...",
            "banking": "/api/banking/...",
            "pools": "/api/pools/...",
        }
    }


@app.get("/api/health", tags=["System"])
async def health_check():
    """
    Health check endpoint for load balancers and orchestrators.

    Checks the database and, when enabled, the Redis rate-limit store.
    """
    from api.health import perform_full_health_check
    result = await perform_full_health_check()
    result["request_id"] = get_request_id()
    return result


@app.get("/api/health/live", tags=["System"])
async def liveness_check():
    """Kubernetes liveness probe endpoint."""
    from api.health import perform_liveness_check
    return await perform_liveness_check()


@app.get("/api/health/ready", tags=["System"])
async def readiness_check():
    """
    Kubernetes readiness probe endpoint.

    Returns 503 until the database answers.
    """
    from api.health import perform_readiness_check
    result = await perform_readiness_check()

    if result.get("status") != "ready":
        raise HTTPException(status_code=503, detail="Service not ready")

    return result


@app.get("/api/metrics", tags=["System"], response_class=PlainTextResponse)
async def get_metrics():
    """
    Prometheus-compatible metrics endpoint.

    Request counts by endpoint and status, 5xx counts, uptime, and
    compliance operation counters (banked, applied, rejected, pools).
    """
    return metrics_collector.get_prometheus_metrics(
        counters=metrics.get_summary()["counters"],
    )


@app.get("/api/metrics/json", tags=["System"])
async def get_metrics_json():
    """Metrics endpoint in JSON format."""
    return {
        **metrics_collector.get_metrics(),
        "operations": metrics.get_summary(),
    }


# ============================================================================
# Run Server
# ============================================================================

if __name__ == "__main__":
    uvicorn.run(
        "api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.is_development,
        log_level=settings.log_level.lower(),
    )
