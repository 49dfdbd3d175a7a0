"""Drift detection between two workflow representations."""

from __future__ import annotations

import copy

from ..workflow.models import Tag, Workflow


def clean_workflow(workflow: Workflow) -> Workflow:
    """Return a copy without server-owned fields.

    Timestamps and ``shared`` are cleared, a missing connections map becomes
    ``{}`` and tags are reduced to id and name.
    """
    cleaned = copy.deepcopy(workflow)
    cleaned.created_at = None
    cleaned.updated_at = None
    cleaned.shared = None
    if cleaned.connections is None:
        cleaned.connections = {}
    if cleaned.tags is not None:
        cleaned.tags = [Tag(name=t.name, id=t.id) for t in cleaned.tags]
    return cleaned


def has_drift(actual: Workflow, desired: Workflow, normalize: bool = True) -> bool:
    """True when the two workflows differ structurally."""
    if normalize:
        actual = clean_workflow(actual)
        desired = clean_workflow(desired)
    return actual != desired
