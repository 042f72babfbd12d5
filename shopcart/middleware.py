"""
Middleware for FastAPI: logging setup and request metrics.
"""
import time
import hashlib
import logging
from typing import Callable
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from shopcart.config import Config

logger = logging.getLogger(__name__)


def configure_logging(level: str = Config.LOG_LEVEL) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def hash_identifier(identifier: str) -> str:
    """Hash identifier for logging (no PII)"""
    return hashlib.sha256(identifier.encode()).hexdigest()[:8]


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware for request logging and latency headers"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()

        cart_id = request.headers.get("X-Cart-ID")
        hashed_cart_id = hash_identifier(cart_id) if cart_id else None

        logger.info(
            f"Request: {request.method} {request.url.path}",
            extra={
                "method": request.method,
                "path": request.url.path,
                "hashed_cart_id": hashed_cart_id,
                "remote_addr": request.client.host if request.client else None
            }
        )

        try:
            response = await call_next(request)

            latency_ms = (time.time() - start_time) * 1000

            logger.info(
                f"Response: {request.method} {request.url.path} {response.status_code}",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "latency_ms": round(latency_ms, 2),
                    "hashed_cart_id": hashed_cart_id
                }
            )

            response.headers["X-Response-Time-Ms"] = f"{latency_ms:.2f}"
            return response

        except Exception as e:
            logger.error(
                f"Error: {request.method} {request.url.path}",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "error": str(e),
                    "error_type": type(e).__name__,
                    "hashed_cart_id": hashed_cart_id
                },
                exc_info=True
            )

            # Re-raise so the route-level exception handlers still apply
            raise
