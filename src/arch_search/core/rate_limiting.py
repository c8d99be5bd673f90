"""
API Rate Limiting

Per-client-IP request limits, enforced for every route by ``slowapi``
middleware. Counters live in the configured ``limits`` storage (process
memory by default).
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from ..config import settings
from .errors import error_response

logger = logging.getLogger("arch_search.rate_limit")

RETRY_AFTER_SECONDS = 60


def build_limiter(
    per_minute: Optional[int] = None,
    enabled: Optional[bool] = None,
    storage_uri: Optional[str] = None,
) -> Limiter:
    """Limiter keyed on the client address; arguments override the ``rate_limit_*`` settings."""
    per_minute = per_minute if per_minute is not None else settings.rate_limit_per_minute
    return Limiter(
        key_func=get_remote_address,
        default_limits=[f"{per_minute}/minute"],
        enabled=settings.rate_limit_enabled if enabled is None else enabled,
        storage_uri=storage_uri or settings.rate_limit_storage_uri,
    )


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """
    Answer 429 with the standard error payload.

    Must stay synchronous: ``SlowAPIMiddleware`` calls it without awaiting.
    """
    logger.warning(
        "Rate limit exceeded for %s on %s %s",
        get_remote_address(request),
        request.method,
        request.url.path,
    )
    response = error_response(
        status.HTTP_429_TOO_MANY_REQUESTS,
        "rate_limit_exceeded",
        f"Rate limit exceeded: {exc.detail}",
    )
    response.headers["Retry-After"] = str(RETRY_AFTER_SECONDS)
    return response


def setup_rate_limiting(app: FastAPI, limiter: Optional[Limiter] = None) -> None:
    """Attach the limiter, its 429 handler and the enforcing middleware to ``app``."""
    app.state.limiter = limiter or build_limiter()
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)
