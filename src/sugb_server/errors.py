"""Global exception handlers — map SDK exceptions to HTTP status codes.

The form and report SDKs raise ``ValueError`` for bad input and missing
rows, and ``LookupError`` subclasses for missing reports and artifacts.
Rather than catching these in every route, global handlers inspect the
exception and pick the status code, keeping route handlers on the happy
path.
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

# --- Keyword patterns in ValueError messages and their HTTP status codes ---
# Checked in order; first match wins.
_VALUE_ERROR_PATTERNS: list[tuple[str, int]] = [
    ("already exists", 409),
    # Survey response / job not found, or owned by another user
    ("not found", 404),
    # Final submission while sections are still invalid
    ("incomplete", 422),
]


# --- Client-safe messages keyed by HTTP status code ---
# Internal details (ids, owners) stay in the server log.
_SAFE_MESSAGES: dict[int, str] = {
    404: "Resource not found",
    409: "Resource already exists",
    422: "Please complete all required sections before submitting",
    400: "Invalid request",
}


async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    """Map SDK ``ValueError`` to a contextual HTTP error response.

    Falls back to 400 for unrecognised messages.  The raw message is
    logged but never sent to the client.
    """
    msg = str(exc)
    status = 400  # default
    for pattern, code in _VALUE_ERROR_PATTERNS:
        if pattern in msg.lower():
            status = code
            break

    logger.warning("ValueError [%d] at %s: %s", status, request.url, msg)
    safe_detail = _SAFE_MESSAGES.get(status, "Invalid request")
    return JSONResponse(status_code=status, content={"detail": safe_detail})


async def lookup_error_handler(request: Request, exc: LookupError) -> JSONResponse:
    """Map ``KeyError`` and the report not-found errors to 404."""
    logger.warning("%s at %s: %s", type(exc).__name__, request.url, exc)
    return JSONResponse(status_code=404, content={"detail": "Resource not found"})


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions — log full traceback, return 500."""
    logger.exception("Unhandled exception at %s", request.url)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )
