"""
Context Provider HTTP Client

Thin async wrapper over the vector-context API (``/add``, ``/search``,
``/delete``, ``/view``, ``/health``). Every call opens a short-lived ``httpx.AsyncClient``
with a bounded timeout and bearer authentication.

Failures of any kind (transport, non-2xx status, undecodable body) surface
as ``ContextAPIError``. Retrying is the caller's concern; see ``retry.py``.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx
from pydantic import BaseModel

from ..config import settings
from .models import (
    AddContextRequest,
    DeleteContextRequest,
    SearchRequest,
    SearchResponse,
    ViewContextResponse,
)

logger = logging.getLogger("arch_search.context.client")

# Provider responses that indicate a duplicate document name
NAME_CONFLICT_MARKERS = ("File name already exists", "BAD_REQUEST")

_LOGGED_BODY_LIMIT = 500
HEALTH_CHECK_TIMEOUT = 10.0


class ContextAPIError(RuntimeError):
    """Raised when a provider request fails."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


def is_name_conflict(exc: BaseException) -> bool:
    """True when the provider rejected a document because its name is taken."""
    message = str(exc)
    return any(marker in message for marker in NAME_CONFLICT_MARKERS)


class ContextClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = (base_url or settings.context_api_base_url).rstrip("/")
        self.api_key = api_key or settings.context_api_key.get_secret_value()
        self.timeout = timeout if timeout is not None else settings.context_api_timeout
        self._transport = transport

    async def _request(
        self,
        method: str,
        endpoint: str,
        payload: Optional[BaseModel] = None,
        timeout: Optional[float] = None,
        expect_json: bool = True,
    ) -> Any:
        """
        Send one request and return the decoded JSON body (``None`` if empty).

        Raises
        ------
        ContextAPIError
            On transport errors, non-2xx responses or invalid JSON.
        """
        url = f"{self.base_url}{endpoint}"
        body = payload.model_dump(by_alias=True, exclude_none=True) if payload is not None else None
        headers = {"Authorization": f"Bearer {self.api_key}"}

        logger.debug("%s %s (has_body=%s)", method, url, body is not None)

        try:
            async with httpx.AsyncClient(
                timeout=timeout if timeout is not None else self.timeout,
                transport=self._transport,
            ) as client:
                resp = await client.request(method, url, json=body, headers=headers)
        except httpx.HTTPError as exc:
            raise ContextAPIError(f"request failed: {type(exc).__name__}: {exc}") from exc

        if not resp.is_success:
            logger.debug(
                "Provider error %d on %s: %s",
                resp.status_code,
                endpoint,
                resp.text[:_LOGGED_BODY_LIMIT],
            )
            raise ContextAPIError(
                f"API request failed with status {resp.status_code}: {resp.text}",
                status_code=resp.status_code,
                body=resp.text,
            )

        if not expect_json or not resp.content:
            return None

        try:
            return resp.json()
        except ValueError as exc:
            raise ContextAPIError(
                f"failed to decode response: {exc}",
                status_code=resp.status_code,
                body=resp.text,
            ) from exc

    async def add_context(self, request: AddContextRequest) -> None:
        await self._request("POST", "/add", request)

    async def search_context(self, request: SearchRequest) -> SearchResponse:
        data = await self._request("POST", "/search", request)
        return SearchResponse.model_validate(data or {})

    async def delete_context(self, request: DeleteContextRequest) -> None:
        await self._request("POST", "/delete", request)

    async def view_context(self) -> ViewContextResponse:
        data = await self._request("GET", "/view")
        return ViewContextResponse.model_validate(data or {})

    async def health(self, timeout: float = HEALTH_CHECK_TIMEOUT) -> None:
        """Raise ``ContextAPIError`` unless the provider answers its health endpoint."""
        await self._request("GET", "/health", timeout=timeout, expect_json=False)
