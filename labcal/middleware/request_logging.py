"""
Request Logging Middleware

Logs every request (method, path, client address, status, duration) and
adds an X-Process-Time header.
"""
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from labcal.utils.logging import get_logger

logger = get_logger("labcal.requests")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """One log line per request."""

    def __init__(self, app, excluded_paths=None):
        super().__init__(app)
        # Health probes would drown everything else
        self.excluded_paths = excluded_paths if excluded_paths is not None else ["/health"]

    async def dispatch(self, request: Request, call_next):
        start_time = time.perf_counter()
        response = await call_next(request)
        process_time = time.perf_counter() - start_time
        response.headers["X-Process-Time"] = f"{process_time:.6f}"

        if request.url.path not in self.excluded_paths:
            client = request.client.host if request.client else None
            logger.info(
                f"{request.method} {request.url.path} -> {response.status_code} ({process_time * 1000:.1f} ms)",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "client": client,
                    "status_code": response.status_code,
                    "duration_ms": round(process_time * 1000, 1),
                }
            )
        return response
