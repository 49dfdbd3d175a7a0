"""n8n API client - async wrapper around the public REST API (``/api/v1``).

Usage:
    async with N8NClient(api_key="...", instance_url="http://localhost:5678") as n8n:
        workflows = await n8n.workflows.list_all()
        tags = await n8n.tags.list()
"""

from __future__ import annotations

import logging
from typing import Any, TYPE_CHECKING

import httpx

from ..config import DEFAULT_INSTANCE_URL, Settings, format_api_base_url
from ..errors import APIError, AuthError, NotFoundError, TransportError

if TYPE_CHECKING:
    from .tags import TagsAPI
    from .workflows import WorkflowsAPI

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-N8N-API-KEY"


def _error_message(body: Any) -> str | None:
    if isinstance(body, dict):
        message = body.get("message") or body.get("error")
        if isinstance(message, str):
            return message
    if isinstance(body, str) and body:
        return body
    return None


def error_from_response(response: httpx.Response) -> APIError:
    """Translate a non-success response into the matching APIError subclass."""
    try:
        body: Any = response.json()
    except ValueError:
        body = response.text
    status = response.status_code
    message = f"API error {status}"
    detail = _error_message(body)
    if detail:
        message = f"{message}: {detail}"

    if status in (401, 403):
        return AuthError(message, status, body)
    if status == 404:
        return NotFoundError(message, status, body)
    return APIError(message, status, body)


class N8NClient:
    """n8n API client with per-resource sub-APIs.

    The underlying ``httpx.AsyncClient`` is created on ``__aenter__``; the
    ``workflows`` and ``tags`` properties raise if used outside ``async with``.
    """

    def __init__(
        self,
        api_key: str,
        instance_url: str = DEFAULT_INSTANCE_URL,
        timeout: float = 30.0,
    ):
        self.api_key = api_key
        self.base_url = format_api_base_url(instance_url)
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None
        self._workflows: WorkflowsAPI | None = None
        self._tags: TagsAPI | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "N8NClient":
        return cls(
            api_key=settings.require_api_key(),
            instance_url=settings.instance_url,
            timeout=settings.timeout,
        )

    async def __aenter__(self) -> "N8NClient":
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers={
                API_KEY_HEADER: self.api_key,
                "Accept": "application/json",
                "Content-Type": "application/json",
            },
        )

        from .tags import TagsAPI
        from .workflows import WorkflowsAPI

        self._workflows = WorkflowsAPI(self)
        self._tags = TagsAPI(self)
        return self

    async def __aexit__(self, *args):
        if self._client:
            await self._client.aclose()

    @property
    def workflows(self) -> "WorkflowsAPI":
        """Workflows API."""
        if not self._workflows:
            raise RuntimeError("Client not initialized. Use 'async with' context.")
        return self._workflows

    @property
    def tags(self) -> "TagsAPI":
        """Tags API."""
        if not self._tags:
            raise RuntimeError("Client not initialized. Use 'async with' context.")
        return self._tags

    # HTTP methods
    async def _get(self, endpoint: str, **params) -> Any:
        """Make GET request."""
        logger.debug("GET %s %s", endpoint, params)
        try:
            resp = await self._client.get(endpoint, params=params)
        except httpx.TransportError as e:
            raise TransportError(f"GET {endpoint} failed: {e}") from e
        return self._handle(resp)

    async def _post(self, endpoint: str, data: Any = None) -> Any:
        """Make POST request."""
        logger.debug("POST %s", endpoint)
        try:
            resp = await self._client.post(endpoint, json=data)
        except httpx.TransportError as e:
            raise TransportError(f"POST {endpoint} failed: {e}") from e
        return self._handle(resp)

    async def _put(self, endpoint: str, data: Any = None) -> Any:
        """Make PUT request."""
        logger.debug("PUT %s", endpoint)
        try:
            resp = await self._client.put(endpoint, json=data)
        except httpx.TransportError as e:
            raise TransportError(f"PUT {endpoint} failed: {e}") from e
        return self._handle(resp)

    async def _delete(self, endpoint: str) -> Any:
        """Make DELETE request."""
        logger.debug("DELETE %s", endpoint)
        try:
            resp = await self._client.delete(endpoint)
        except httpx.TransportError as e:
            raise TransportError(f"DELETE {endpoint} failed: {e}") from e
        return self._handle(resp)

    def _handle(self, resp: httpx.Response) -> Any:
        try:
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise error_from_response(e.response) from e

        if resp.status_code == 204 or not resp.content:
            return {}
        try:
            return resp.json()
        except ValueError as e:
            raise TransportError(f"invalid JSON in response: {e}") from e
