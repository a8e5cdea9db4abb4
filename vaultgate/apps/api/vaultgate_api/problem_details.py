"""
RFC 9457 Problem Details for HTTP APIs
"""

import uuid
from typing import Any, Optional

from fastapi.responses import JSONResponse

from vaultgate_api.context import request_id_var
from vaultgate_api.schemas import ProblemDetail

PROBLEM_TYPE_BASE = "https://vaultgate.dev/problems"

_TITLES = {
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    409: "Conflict",
    422: "Unprocessable Entity",
    429: "Too Many Requests",
    500: "Internal Server Error",
    502: "Bad Gateway",
    503: "Service Unavailable",
}


def get_title_for_status(status_code: int) -> str:
    """Get human-readable title for HTTP status code."""
    return _TITLES.get(status_code, f"HTTP {status_code}")


def trace_instance() -> str:
    """Opaque instance identifier for the current request (no path leaks)."""
    request_id = request_id_var.get()
    return f"urn:vaultgate:trace:{request_id}" if request_id else f"urn:vaultgate:trace:{uuid.uuid4()}"


def create_problem_details_response(
    *,
    status: int,
    detail: str | dict[str, Any],
    type_slug: Optional[str] = None,
    title: Optional[str] = None,
    headers: Optional[dict[str, str]] = None,
) -> JSONResponse:
    """
    Create RFC 9457 Problem Details JSON response

    Args:
        status: HTTP status code
        detail: Human-readable explanation (or structured details)
        type_slug: Problem type suffix (default: http-<status>)
        title: Short summary (default: standard reason phrase)
        headers: Optional additional headers

    Returns:
        JSONResponse with application/problem+json content type
    """
    title = title or get_title_for_status(status)
    problem = ProblemDetail(
        type=f"{PROBLEM_TYPE_BASE}/{type_slug or f'http-{status}'}",
        title=title,
        status=status,
        detail=detail,
        instance=trace_instance(),
        message=detail if isinstance(detail, str) else title,
    )

    return JSONResponse(
        status_code=status,
        content=problem.model_dump(exclude_none=True),
        media_type="application/problem+json",
        headers=headers,
    )
