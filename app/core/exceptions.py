"""Call-level exceptions and their FastAPI handlers.

Per-record failures never raise out of the bulk engine; they are reported
inside the bulk result. The exceptions here are for the few conditions
that stop a whole call before any record is processed:

- ``BadRequestError`` (400): the request breaks a configured limit.
- ``StoreUnavailableError`` (503): the document store cannot be reached.

Pydantic request validation errors are rendered as 400 (not FastAPI's 422)
because a malformed batch is a client error of the same kind.
"""

from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError

from app.core.logging import get_logger
from app.core.problem_details import ProblemDetailResponse, problem_response

logger = get_logger(__name__)

# Seconds a client should wait before retrying after a store outage
STORE_RETRY_AFTER_SECONDS = 30


class BulkIngestError(Exception):
    """Base exception for call-level application errors.

    Attributes:
        message: Human-readable description, sent as ``detail``.
        code: Machine-readable error code, selects the problem type URI.
        status_code: HTTP status of the problem response.
        details: Structured context, sent as the ``details`` extension.
    """

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}

    @property
    def title(self) -> str:
        """Problem title derived from the error code."""
        return self.code.replace("_", " ").title()

    def headers(self) -> dict[str, str] | None:
        """Extra response headers for this error."""
        return None


class BadRequestError(BulkIngestError):
    """The request is well-formed but not acceptable (e.g., over a limit)."""

    def __init__(
        self,
        message: str = "Bad request",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code="BAD_REQUEST",
            status_code=400,
            details=details,
        )


class StoreUnavailableError(BulkIngestError):
    """The document store cannot be reached at all.

    Raised before any record is attempted, so no partial work exists and
    the whole call can be retried safely.
    """

    def __init__(
        self,
        message: str = "Document store is unavailable",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code="SERVICE_UNAVAILABLE",
            status_code=503,
            details=details,
        )

    def headers(self) -> dict[str, str] | None:
        return {"Retry-After": str(STORE_RETRY_AFTER_SECONDS)}


async def app_exception_handler(
    request: Request,
    exc: BulkIngestError,
) -> ProblemDetailResponse:
    """Render a BulkIngestError as problem details.

    Args:
        request: FastAPI request object.
        exc: The raised exception.

    Returns:
        RFC 7807 Problem Detail response.
    """
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "app.error_handled",
        error=exc.message,
        error_type=type(exc).__name__,
        error_code=exc.code,
        status_code=exc.status_code,
        details=exc.details,
        path=str(request.url.path),
    )

    return problem_response(
        status=exc.status_code,
        title=exc.title,
        detail=exc.message,
        error_code=exc.code,
        details=exc.details,
        headers=exc.headers(),
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> ProblemDetailResponse:
    """Render request body validation errors as a 400 problem.

    A missing or empty array, more than 1000 entries, a batch size out of
    range, or an unknown collection in the path all end up here, before
    any record is processed.

    Args:
        request: FastAPI request object.
        exc: Pydantic validation error.

    Returns:
        RFC 7807 Problem Detail response with field-level errors.
    """
    field_errors: list[dict[str, str]] = []
    for error in exc.errors():
        loc = error.get("loc", [])
        field_path = ".".join(str(part) for part in loc if part not in ("body", "path"))
        field_errors.append(
            {
                "field": field_path,
                "message": str(error.get("msg", "Validation failed")),
                "type": str(error.get("type", "unknown")),
            }
        )

    logger.warning(
        "app.validation_error",
        error_count=len(field_errors),
        path=str(request.url.path),
        fields=[e["field"] for e in field_errors],
    )

    return problem_response(
        status=400,
        title="Validation Error",
        detail=f"Request validation failed with {len(field_errors)} error(s). "
        "Check the 'errors' field for details.",
        error_code="VALIDATION_ERROR",
        errors=field_errors,
    )


async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> ProblemDetailResponse:
    """Render an unexpected exception as a generic 500 problem.

    The exception text is logged but never sent to the client.
    """
    logger.error(
        "app.unhandled_error",
        error=str(exc),
        error_type=type(exc).__name__,
        path=str(request.url.path),
        exc_info=True,
    )

    return problem_response(
        status=500,
        title="Internal Server Error",
        detail="An unexpected error occurred. Contact support with the request_id.",
        error_code="INTERNAL_ERROR",
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers with FastAPI app.

    Args:
        app: FastAPI application instance.
    """
    app.add_exception_handler(BulkIngestError, app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_exception_handler)
