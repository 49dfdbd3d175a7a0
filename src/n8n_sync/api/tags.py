"""Tags API - instance-wide workflow tags."""

from __future__ import annotations

from typing import Any, TYPE_CHECKING

from ..errors import PaginationCycleError, TransportError
from ..workflow.models import Tag

if TYPE_CHECKING:
    from .client import N8NClient


class TagsAPI:
    """Tags API for n8n.

    Usage:
        async with N8NClient(api_key) as n8n:
            tags = await n8n.tags.list()
            tag = await n8n.tags.create("production")
    """

    def __init__(self, client: "N8NClient"):
        self._client = client

    async def list(self, limit: int = 100) -> list[Tag]:
        """List every tag on the instance."""
        tags: list[Tag] = []
        seen_cursors: set[str] = set()
        params: dict[str, Any] = {"limit": limit}

        while True:
            result = await self._client._get("/tags", **params)
            if not isinstance(result, dict):
                raise TransportError("unexpected tag listing response")
            tags.extend(Tag.from_dict(t) for t in result.get("data") or [] if isinstance(t, dict))

            next_cursor = result.get("nextCursor")
            if not next_cursor:
                break
            if next_cursor in seen_cursors:
                raise PaginationCycleError(next_cursor)
            seen_cursors.add(next_cursor)
            params["cursor"] = next_cursor

        return tags

    async def create(self, name: str) -> Tag:
        result = await self._client._post("/tags", {"name": name})
        if not isinstance(result, dict):
            raise TransportError("unexpected tag response")
        return Tag.from_dict(result)
