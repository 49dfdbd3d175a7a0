"""Resolve workflows by name against the remote instance."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..errors import WorkflowNotFoundError

if TYPE_CHECKING:
    from ..api.client import N8NClient


async def resolve_workflow_id_by_name(client: "N8NClient", name: str) -> str:
    """Return the id of the first remote workflow named exactly ``name``.

    Raises:
        WorkflowNotFoundError: if no workflow has that name.
    """
    for workflow in await client.workflows.list_all():
        if workflow.name == name and workflow.id:
            return workflow.id
    raise WorkflowNotFoundError(name)
