"""
Global Error Handling

Error payloads and application-wide exception handlers for the search API.

Every error body has the same shape::

    {"error": "<machine_code>", "detail": "<human message>"}

Internal exception details never reach the client; full tracebacks are
logged instead.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import BackgroundTasks, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger("arch_search.errors")


def error_response(
    status_code: int,
    error: str,
    detail: str,
    background: Optional[BackgroundTasks] = None,
) -> JSONResponse:
    """
    Build a JSON error response.

    ``background`` lets a route keep its scheduled background work (such as
    analytics) when it answers with an error instead of raising.
    """
    payload: Dict[str, Any] = {"error": error, "detail": detail}
    return JSONResponse(status_code=status_code, content=payload, background=background)


# ---------------------------------------------------------------------
# Public Exception Handlers
# ---------------------------------------------------------------------

async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """
    Catch-all handler for uncaught exceptions.

    Parameters
    ----------
    request : Request
        The incoming HTTP request that triggered the exception.

    exc : Exception
        The uncaught exception instance.

    Returns
    -------
    JSONResponse
        A 500 response with a minimal error payload.
    """
    logger.exception(
        "Unhandled exception during request: %s %s",
        request.method,
        request.url.path,
        exc_info=exc,
    )

    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "internal_server_error",
        "Internal server error",
    )
