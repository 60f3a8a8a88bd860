"""RFC 7807 Problem Details for HTTP APIs.

Bulk calls that reach the engine always answer with a bulk result body
(200/206/400/500). Everything that stops a call before the engine runs
(a malformed body, a limit breach, an unreachable store, an unexpected
crash) is answered with ``application/problem+json`` instead, so clients
can tell "records were processed" from "nothing was processed" by the
content type alone.

Reference: https://datatracker.ietf.org/doc/html/rfc7807
"""

from typing import Any

from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from app.core.logging import request_id_ctx

# Relative type URIs keep the service portable across hosts
ERROR_TYPE_BASE = "/errors"

ERROR_TYPES = {
    "VALIDATION_ERROR": f"{ERROR_TYPE_BASE}/validation",
    "BAD_REQUEST": f"{ERROR_TYPE_BASE}/bad-request",
    "SERVICE_UNAVAILABLE": f"{ERROR_TYPE_BASE}/service-unavailable",
    "INTERNAL_ERROR": f"{ERROR_TYPE_BASE}/internal",
}


class ProblemDetail(BaseModel):
    """RFC 7807 body with the extensions this service adds.

    Attributes:
        type: URI identifying the error type.
        title: Short human-readable summary.
        status: HTTP status code.
        detail: Explanation specific to this occurrence.
        instance: URI reference for this occurrence.
        code: Machine-readable error code.
        errors: Field-level errors of a rejected request body.
        details: Structured context (e.g., the collection, a limit).
        request_id: Correlation id, also sent as ``X-Request-ID``.
    """

    model_config = ConfigDict(extra="allow")

    type: str = "about:blank"
    title: str
    status: int = Field(..., ge=400, le=599)
    detail: str | None = None
    instance: str | None = None
    code: str | None = None
    errors: list[dict[str, Any]] | None = None
    details: dict[str, Any] | None = None
    request_id: str | None = None


class ProblemDetailResponse(JSONResponse):
    """JSON response with RFC 7807 content type."""

    media_type = "application/problem+json"


def problem_response(
    status: int,
    title: str,
    detail: str | None = None,
    error_code: str = "INTERNAL_ERROR",
    errors: list[dict[str, Any]] | None = None,
    details: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> ProblemDetailResponse:
    """Build a problem+json response tagged with the current request id.

    Args:
        status: HTTP status code.
        title: Short problem summary.
        detail: Detailed explanation (optional).
        error_code: Error code, also selects the type URI.
        errors: Field-level validation errors (optional).
        details: Structured error context (optional).
        headers: Extra response headers (e.g., ``Retry-After``).

    Returns:
        JSONResponse with problem+json content type.
    """
    request_id = request_id_ctx.get()

    problem = ProblemDetail(
        type=ERROR_TYPES.get(error_code, f"{ERROR_TYPE_BASE}/{error_code.lower()}"),
        title=title,
        status=status,
        detail=detail,
        instance=f"/requests/{request_id}" if request_id else None,
        code=error_code,
        errors=errors,
        details=details or None,
        request_id=request_id,
    )

    return ProblemDetailResponse(
        status_code=status,
        content=problem.model_dump(exclude_none=True),
        headers=headers,
    )
