"""Request middleware for correlation, logging, and bulk payload monitoring."""

import time
import uuid
from collections.abc import Awaitable, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from app.core.config import get_settings
from app.core.logging import get_logger, request_id_ctx

logger = get_logger(__name__)

BYTES_PER_MB = 1024 * 1024


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Middleware to inject and propagate request IDs for correlation."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        """Process request with correlation ID.

        Args:
            request: Incoming HTTP request.
            call_next: Next middleware/handler in chain.

        Returns:
            Response with X-Request-ID header.
        """
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        token = request_id_ctx.set(request_id)
        start = time.perf_counter()

        try:
            logger.info(
                "http.request_started",
                method=request.method,
                path=str(request.url.path),
                query=str(request.url.query) if request.url.query else None,
            )

            response = await call_next(request)

            logger.info(
                "http.request_completed",
                method=request.method,
                path=str(request.url.path),
                status_code=response.status_code,
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
            )

            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            request_id_ctx.reset(token)


class BulkPayloadMiddleware(BaseHTTPMiddleware):
    """Log the declared body size of bulk requests and flag very large ones."""

    def __init__(self, app, path_prefix: str = "/bulk") -> None:  # type: ignore[no-untyped-def]
        super().__init__(app)
        self.path_prefix = path_prefix

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        """Inspect Content-Length for bulk routes before handing off.

        Args:
            request: Incoming HTTP request.
            call_next: Next middleware/handler in chain.

        Returns:
            Downstream response, unchanged.
        """
        content_length = request.headers.get("content-length")
        if request.url.path.startswith(self.path_prefix) and content_length:
            try:
                size_mb = int(content_length) / BYTES_PER_MB
            except ValueError:
                size_mb = None

            if size_mb is not None:
                warn_mb = get_settings().bulk_large_payload_warn_mb
                if size_mb > warn_mb:
                    logger.warning(
                        "bulk.large_payload_detected",
                        path=str(request.url.path),
                        size_mb=round(size_mb, 2),
                        threshold_mb=warn_mb,
                    )
                else:
                    logger.debug(
                        "bulk.payload_size",
                        path=str(request.url.path),
                        size_mb=round(size_mb, 2),
                    )

        return await call_next(request)
