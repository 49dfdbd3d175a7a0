"""Reconciliation planner: which remote operations a local workflow needs."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass

from ..workflow.models import Tag, Workflow
from .drift import has_drift


@dataclass(frozen=True)
class ChangeSet:
    """Operations required to bring a remote workflow in line with a local one."""

    needs_update: bool = False
    needs_activation: bool = False
    needs_deactivation: bool = False
    needs_tags_update: bool = False

    @property
    def is_empty(self) -> bool:
        return not (
            self.needs_update
            or self.needs_activation
            or self.needs_deactivation
            or self.needs_tags_update
        )


def _tag_keys(tags: list[Tag] | None) -> list[tuple[str | None, str]]:
    return [(t.id, t.name) for t in tags or []]


def plan_changes(local: Workflow, remote: Workflow | None) -> ChangeSet:
    """Compare a local workflow with its remote counterpart.

    ``remote`` is None when the workflow does not exist remotely yet; the
    create itself is decided by the caller, so ``needs_update`` stays False.
    An unset local ``active`` never changes the remote activation state.
    """
    if remote is None:
        return ChangeSet(
            needs_activation=local.active is True,
            needs_tags_update=bool(local.tags),
        )

    local_content = dataclasses.replace(local, id=None, active=None, tags=None)
    remote_content = dataclasses.replace(remote, id=None, active=None, tags=None)

    needs_activation = local.active is True and remote.active is not True
    needs_deactivation = local.active is False and remote.active is True

    needs_tags_update = False
    if local.tags:
        needs_tags_update = not remote.tags or _tag_keys(local.tags) != _tag_keys(remote.tags)

    return ChangeSet(
        needs_update=has_drift(remote_content, local_content),
        needs_activation=needs_activation,
        needs_deactivation=needs_deactivation,
        needs_tags_update=needs_tags_update,
    )
