"""
Middleware for request tracing and timing.
"""

import time
import uuid
import logging
from typing import Callable
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

# Configure structured logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("brokerage")

# Quote requests run on every form edit and must stay fast
SLOW_QUOTE_THRESHOLD_MS = 250


class PerformanceMiddleware(BaseHTTPMiddleware):
    """
    Assigns a request ID and times every request.

    The ID comes from X-Request-ID, then X-Idempotency-Key, then a new UUID,
    and is echoed back together with X-Response-Time-Ms.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = (
            request.headers.get("X-Request-ID")
            or request.headers.get("X-Idempotency-Key")
            or str(uuid.uuid4())
        )
        request.state.request_id = request_id

        start_time = time.perf_counter()
        logger.info(
            f"Request started | "
            f"request_id={request_id} | "
            f"method={request.method} | "
            f"path={request.url.path}"
        )

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                f"Request failed | "
                f"request_id={request_id} | "
                f"method={request.method} | "
                f"path={request.url.path} | "
                f"duration_ms={duration_ms:.2f} | "
                f"error={e}"
            )
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            f"Request completed | "
            f"request_id={request_id} | "
            f"status={response.status_code} | "
            f"duration_ms={duration_ms:.2f}"
        )

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time-Ms"] = f"{duration_ms:.2f}"

        if duration_ms > SLOW_QUOTE_THRESHOLD_MS and request.url.path.startswith("/v1/quotes"):
            logger.warning(
                f"Slow quote request | "
                f"request_id={request_id} | "
                f"duration_ms={duration_ms:.2f} | "
                f"threshold_ms={SLOW_QUOTE_THRESHOLD_MS}"
            )

        return response


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Guarantees request.state.request_id for downstream handlers."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if not hasattr(request.state, "request_id"):
            request.state.request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        return await call_next(request)
