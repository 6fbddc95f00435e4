"""
Middleware for the FuelEU compliance API.

Provides:
- Security headers
- Request ID tracking for log correlation
- Structured JSON request logging
- Request counters and timing for the metrics endpoints
- Sanitized handling of unexpected errors
"""
import time
import uuid
import logging
import json
from typing import Callable, Dict, Optional, Tuple
from contextvars import ContextVar
from datetime import datetime

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response, JSONResponse
from fastapi import FastAPI

# Context variable for request ID (thread-safe)
request_id_ctx: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def get_request_id() -> Optional[str]:
    """Get the current request ID from context."""
    return request_id_ctx.get()


class StructuredLogger:
    """
    Structured JSON logger.

    One JSON object per line with timestamp, level, service and request id.
    """

    def __init__(self, name: str, service: str = "fueleu-api"):
        self.logger = logging.getLogger(name)
        self.service = service

    def _log(self, level: str, message: str, **kwargs):
        log_entry = {
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "level": level,
            "message": message,
            "service": self.service,
            "request_id": get_request_id(),
            **kwargs
        }

        # Remove None values
        log_entry = {k: v for k, v in log_entry.items() if v is not None}

        getattr(self.logger, level.lower())(json.dumps(log_entry, default=str))

    def info(self, message: str, **kwargs):
        self._log("INFO", message, **kwargs)

    def warning(self, message: str, **kwargs):
        self._log("WARNING", message, **kwargs)

    def error(self, message: str, **kwargs):
        self._log("ERROR", message, **kwargs)


# Global structured logger instance
structured_logger = StructuredLogger("fueleu")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds baseline security headers to all JSON API responses."""

    def __init__(self, app, enable_hsts: bool = False):
        super().__init__(app)
        self.enable_hsts = enable_hsts

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        # HSTS - only enable in production with HTTPS
        if self.enable_hsts:
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )

        return response


class RequestIdMiddleware(BaseHTTPMiddleware):
    """
    Adds a request ID to each request.

    Taken from the X-Request-ID header when the caller provides one,
    otherwise a new UUID4. Echoed back on the response.
    """

    HEADER_NAME = "X-Request-ID"

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(self.HEADER_NAME) or str(uuid.uuid4())
        token = request_id_ctx.set(request_id)

        try:
            response = await call_next(request)
            response.headers[self.HEADER_NAME] = request_id
            return response
        finally:
            request_id_ctx.reset(token)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs every request with method, path, status and duration."""

    # Paths to exclude from logging (health checks, metrics)
    EXCLUDED_PATHS = {"/api/health", "/api/health/live", "/api/health/ready", "/api/metrics"}

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in self.EXCLUDED_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        client_ip = request.client.host if request.client else "unknown"

        try:
            response = await call_next(request)
        except Exception as e:
            structured_logger.error(
                "Request failed",
                method=request.method,
                path=request.url.path,
                error=str(e),
                error_type=type(e).__name__,
                duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
                client_ip=client_ip,
            )
            raise

        structured_logger.info(
            "Request completed",
            method=request.method,
            path=request.url.path,
            query=str(request.query_params) if request.query_params else None,
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
            client_ip=client_ip,
        )
        return response


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """
    Turns unexpected exceptions into a sanitized 500 response.

    Domain errors never reach this point: they are mapped by the
    application's exception handlers.
    """

    def __init__(self, app, debug: bool = False):
        super().__init__(app)
        self.debug = debug

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            request_id = get_request_id()

            structured_logger.error(
                "Unhandled exception",
                error=str(e),
                error_type=type(e).__name__,
                path=request.url.path,
                method=request.method,
            )

            if self.debug:
                detail = str(e)
            else:
                detail = "An internal error occurred. Please contact support with the request ID."

            return JSONResponse(
                status_code=500,
                content={
                    "error": "Internal Server Error",
                    "detail": detail,
                    "request_id": request_id,
                },
                headers={"X-Request-ID": request_id} if request_id else {},
            )


class MetricsCollector:
    """
    In-memory request statistics.

    Collects request counts and duration sums by method, path and status,
    plus 5xx error counts.
    """

    def __init__(self):
        self.request_count: Dict[Tuple[str, str, int], int] = {}
        self.request_duration_sum: Dict[Tuple[str, str, int], float] = {}
        self.error_count: Dict[Tuple[str, str], int] = {}
        self.start_time = datetime.utcnow()

    def record_request(self, method: str, path: str, status_code: int, duration_seconds: float):
        """
        Record a completed request.

        ``path`` is the matched route template (e.g. ``/api/routes/{route_id}``),
        never the raw URL, so the key space stays bounded.
        """
        key = (method, path, status_code)

        self.request_count[key] = self.request_count.get(key, 0) + 1
        self.request_duration_sum[key] = (
            self.request_duration_sum.get(key, 0) + duration_seconds
        )

        if status_code >= 500:
            error_key = (method, path)
            self.error_count[error_key] = self.error_count.get(error_key, 0) + 1

    def reset(self):
        self.request_count.clear()
        self.request_duration_sum.clear()
        self.error_count.clear()

    @staticmethod
    def _label(key: tuple) -> str:
        return " ".join(str(part) for part in key)

    def get_metrics(self) -> dict:
        """Get all metrics as a dictionary."""
        uptime = (datetime.utcnow() - self.start_time).total_seconds()

        return {
            "uptime_seconds": uptime,
            "requests": {
                "total": sum(self.request_count.values()),
                "by_endpoint": {self._label(k): v for k, v in self.request_count.items()},
            },
            "latency": {
                "sum_seconds": {self._label(k): v for k, v in self.request_duration_sum.items()},
            },
            "errors": {
                "total": sum(self.error_count.values()),
                "by_endpoint": {self._label(k): v for k, v in self.error_count.items()},
            },
        }

    def get_prometheus_metrics(self, counters: Optional[dict] = None) -> str:
        """Get metrics in Prometheus exposition format."""
        lines = []

        uptime = (datetime.utcnow() - self.start_time).total_seconds()
        lines.append("# HELP fueleu_uptime_seconds Time since service start")
        lines.append("# TYPE fueleu_uptime_seconds gauge")
        lines.append(f"fueleu_uptime_seconds {uptime}")

        lines.append("# HELP fueleu_requests_total Total request count")
        lines.append("# TYPE fueleu_requests_total counter")
        for (method, path, status), count in self.request_count.items():
            lines.append(
                f'fueleu_requests_total{{method="{method}",path="{path}",status="{status}"}} {count}'
            )

        lines.append("# HELP fueleu_errors_total Total 5xx error count")
        lines.append("# TYPE fueleu_errors_total counter")
        for (method, path), count in self.error_count.items():
            lines.append(f'fueleu_errors_total{{method="{method}",path="{path}"}} {count}')

        if counters:
            lines.append("# HELP fueleu_operations_total Compliance operations by outcome")
            lines.append("# TYPE fueleu_operations_total counter")
            for name, count in sorted(counters.items()):
                lines.append(f'fueleu_operations_total{{operation="{name}"}} {count}')

        return "\n".join(lines)


# Global metrics collector
metrics_collector = MetricsCollector()


class MetricsMiddleware(BaseHTTPMiddleware):
    """Collects request metrics for monitoring."""

    EXCLUDED_PATHS = {"/api/health", "/api/metrics", "/api/metrics/json"}
    UNMATCHED_PATH = "<unmatched>"

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in self.EXCLUDED_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)

        metrics_collector.record_request(
            method=request.method,
            path=self._route_template(request),
            status_code=response.status_code,
            duration_seconds=time.perf_counter() - start_time,
        )

        return response

    def _route_template(self, request: Request) -> str:
        route = request.scope.get("route")
        return getattr(route, "path", None) or self.UNMATCHED_PATH


def setup_middleware(app: FastAPI, debug: bool = False, enable_hsts: bool = False):
    """
    Configure all middleware for the application.

    Middleware executes in reverse order of addition.
    """
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    # Inside RequestIdMiddleware so sanitized 500s carry the request id
    app.add_middleware(ErrorHandlingMiddleware, debug=debug)
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(SecurityHeadersMiddleware, enable_hsts=enable_hsts)
