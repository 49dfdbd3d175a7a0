"""Workflows API - workflow CRUD, activation and tag assignment."""

from __future__ import annotations

import logging
from typing import Any, TYPE_CHECKING

from ..errors import PaginationCycleError, TransportError
from ..workflow.models import Tag, Workflow

if TYPE_CHECKING:
    from .client import N8NClient

logger = logging.getLogger(__name__)

PAGE_LIMIT = 100

# Fields the server owns or manages through dedicated endpoints.
READ_ONLY_FIELDS = ("id", "active", "createdAt", "updatedAt", "tags", "shared")


def workflow_payload(workflow: Workflow) -> dict[str, Any]:
    """Body for create/update requests."""
    data = workflow.to_dict()
    for key in READ_ONLY_FIELDS:
        data.pop(key, None)
    return data


def _as_workflow(data: Any) -> Workflow:
    if not isinstance(data, dict):
        raise TransportError(f"unexpected workflow response: {type(data).__name__}")
    return Workflow.from_dict(data)


class WorkflowsAPI:
    """Workflows API for n8n.

    Usage:
        async with N8NClient(api_key) as n8n:
            # Every workflow, following pagination
            workflows = await n8n.workflows.list_all()

            # Create, then activate
            created = await n8n.workflows.create(Workflow(name="Hello"))
            await n8n.workflows.activate(created.id)

            # Replace tag assignment
            await n8n.workflows.set_tags(created.id, ["tag_1", "tag_2"])
    """

    def __init__(self, client: "N8NClient"):
        self._client = client

    async def list_page(
        self, cursor: str | None = None, limit: int = PAGE_LIMIT
    ) -> tuple[list[Workflow], str | None]:
        """Fetch one page of workflows.

        Returns:
            (workflows, next_cursor); next_cursor is None on the last page.
        """
        params: dict[str, Any] = {"limit": limit}
        if cursor:
            params["cursor"] = cursor
        result = await self._client._get("/workflows", **params)
        if not isinstance(result, dict):
            raise TransportError("unexpected workflow listing response")
        data = result.get("data") or []
        return [_as_workflow(item) for item in data], result.get("nextCursor") or None

    async def list_all(self, limit: int = PAGE_LIMIT) -> list[Workflow]:
        """Fetch every workflow, following ``nextCursor`` until it is empty.

        Raises:
            PaginationCycleError: if the server hands back a cursor twice.
        """
        workflows: list[Workflow] = []
        seen_cursors: set[str] = set()
        cursor: str | None = None

        while True:
            page, next_cursor = await self.list_page(cursor=cursor, limit=limit)
            workflows.extend(page)
            if not next_cursor:
                break
            if next_cursor in seen_cursors:
                raise PaginationCycleError(next_cursor)
            seen_cursors.add(next_cursor)
            cursor = next_cursor

        logger.debug("Fetched %d workflows", len(workflows))
        return workflows

    async def get(self, workflow_id: str) -> Workflow:
        """Get a workflow by ID. Raises NotFoundError if it does not exist."""
        return _as_workflow(await self._client._get(f"/workflows/{workflow_id}"))

    async def create(self, workflow: Workflow) -> Workflow:
        """Create a workflow; the server assigns the ID."""
        return _as_workflow(await self._client._post("/workflows", workflow_payload(workflow)))

    async def update(self, workflow_id: str, workflow: Workflow) -> Workflow:
        """Replace a workflow's definition."""
        return _as_workflow(
            await self._client._put(f"/workflows/{workflow_id}", workflow_payload(workflow))
        )

    async def activate(self, workflow_id: str) -> Workflow:
        return _as_workflow(await self._client._post(f"/workflows/{workflow_id}/activate"))

    async def deactivate(self, workflow_id: str) -> Workflow:
        return _as_workflow(await self._client._post(f"/workflows/{workflow_id}/deactivate"))

    async def delete(self, workflow_id: str) -> None:
        await self._client._delete(f"/workflows/{workflow_id}")

    async def set_tags(self, workflow_id: str, tag_ids: list[str]) -> list[Tag]:
        """Replace the workflow's tags with ``tag_ids`` in one call."""
        result = await self._client._put(
            f"/workflows/{workflow_id}/tags", [{"id": tag_id} for tag_id in tag_ids]
        )
        return [Tag.from_dict(t) for t in result if isinstance(t, dict)] if isinstance(result, list) else []
