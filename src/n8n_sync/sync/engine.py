"""Sync engine - pushes local workflow files to an n8n instance.

Each file is resolved completely (fetch, plan, content, activation, tags)
before the next one starts. In dry-run mode every mutating call is replaced by
a "Would ..." message; reads still happen so the plan is real.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Awaitable, Callable, TYPE_CHECKING

from ..errors import N8NSyncError, NotFoundError, TransportError, WorkflowFileError
from ..workflow.files import iter_workflow_files
from ..workflow.models import Workflow
from ..workflow.serialization import extract_workflow_id, read_workflow
from .planner import ChangeSet, plan_changes
from .report import Reporter

if TYPE_CHECKING:
    from ..api.client import N8NClient

logger = logging.getLogger(__name__)


@dataclass
class SyncOutcome:
    """Result of syncing one workflow."""

    file_path: Path | None
    name: str
    workflow_id: str | None = None
    created: bool = False
    updated: bool = False


@dataclass
class DirectorySyncResult:
    """Result of syncing every workflow file in a directory."""

    outcomes: list[SyncOutcome] = field(default_factory=list)
    local_ids: set[str] = field(default_factory=set)
    errors: dict[Path, N8NSyncError] = field(default_factory=dict)
    prune_error: N8NSyncError | None = None

    @property
    def synced_files(self) -> dict[str, Path]:
        """workflow id -> file for every outcome that resolved an id."""
        return {
            o.workflow_id: o.file_path
            for o in self.outcomes
            if o.workflow_id and o.file_path is not None
        }

    @property
    def ok(self) -> bool:
        return not self.errors and self.prune_error is None


class WorkflowSyncer:
    """Apply local workflow definitions to a remote n8n instance.

    Usage:
        async with N8NClient(api_key) as n8n:
            syncer = WorkflowSyncer(n8n, dry_run=True, reporter=Reporter(print))
            result = await syncer.sync_directory("workflows/", prune=True)
    """

    def __init__(
        self,
        client: "N8NClient",
        dry_run: bool = False,
        reporter: Reporter | None = None,
    ):
        self.client = client
        self.dry_run = dry_run
        self.report = reporter or Reporter()
        # Remote tag name -> id, fetched on first use and kept for the whole pass.
        self._tag_ids: dict[str, str] | None = None

    async def _execute_or_dry_run(
        self,
        dry_run_msg: str,
        action: Callable[[], Awaitable[str | None]],
    ) -> bool:
        """Run ``action`` and report its message, or only report ``dry_run_msg``.

        Returns True when the action actually ran.
        """
        if self.dry_run:
            self.report(dry_run_msg)
            return False
        message = await action()
        if message:
            self.report(message)
        return True

    # Single workflows

    async def sync_file(self, path: str | Path, workflow_id: str | None = None) -> SyncOutcome:
        """Sync one workflow file; ``workflow_id`` overrides the file's own id.

        Raises:
            WorkflowFileError: if the file cannot be read.
        """
        path = Path(path)
        workflow = read_workflow(path)
        if workflow_id:
            workflow.id = workflow_id
        return await self.sync_workflow(workflow, filename=path.name, file_path=path)

    async def sync_workflow(
        self,
        workflow: Workflow,
        filename: str = "",
        file_path: Path | None = None,
    ) -> SyncOutcome:
        outcome = SyncOutcome(file_path=file_path, name=workflow.name)
        filename = filename or workflow.name

        if not workflow.id:
            await self._create(
                workflow, filename, outcome, f"Would create workflow '{workflow.name}' from {filename}"
            )
            changes = plan_changes(workflow, None)
        else:
            try:
                remote = await self.client.workflows.get(workflow.id)
            except NotFoundError:
                remote = None

            if remote is None:
                await self._create(
                    workflow,
                    filename,
                    outcome,
                    f"Would create workflow '{workflow.name}' with ID {workflow.id} from {filename} "
                    "(ID specified but not found on server)",
                )
                changes = plan_changes(workflow, None)
            else:
                outcome.workflow_id = remote.id or workflow.id
                changes = plan_changes(workflow, remote)
                if changes.needs_update:
                    await self._update(workflow, filename, outcome)
                else:
                    status = "No content changes for" if self.dry_run else "No changes needed for"
                    self.report(f"{status} workflow {workflow.label} from {filename}")

        if outcome.workflow_id:
            await self._apply_activation(workflow, outcome.workflow_id, changes)
            if changes.needs_tags_update:
                await self.update_tags(workflow, outcome.workflow_id)
        return outcome

    async def _create(self, workflow: Workflow, filename: str, outcome: SyncOutcome, dry_run_msg: str) -> None:
        async def action() -> str:
            created = await self.client.workflows.create(workflow)
            outcome.created = True
            outcome.workflow_id = created.id
            return f"Created workflow {created.label} from {filename}"

        await self._execute_or_dry_run(dry_run_msg, action)

    async def _update(self, workflow: Workflow, filename: str, outcome: SyncOutcome) -> None:
        async def action() -> str:
            updated = await self.client.workflows.update(workflow.id, workflow)
            outcome.updated = True
            outcome.workflow_id = updated.id or workflow.id
            return f"Updated workflow {updated.label} from {filename}"

        await self._execute_or_dry_run(f"Would update workflow {workflow.label} from {filename}", action)

    async def _apply_activation(self, workflow: Workflow, workflow_id: str, changes: ChangeSet) -> None:
        label = f"'{workflow.name}' (ID: {workflow_id})"

        if workflow.active is True and changes.needs_activation:
            async def activate() -> str:
                await self.client.workflows.activate(workflow_id)
                return f"Activated workflow {label}"

            await self._execute_or_dry_run(f"Would activate workflow {label}", activate)

        elif workflow.active is False and changes.needs_deactivation:
            async def deactivate() -> str:
                await self.client.workflows.deactivate(workflow_id)
                return f"Deactivated workflow {label}"

            await self._execute_or_dry_run(f"Would deactivate workflow {label}", deactivate)

    # Tags

    async def _existing_tag_ids(self) -> dict[str, str]:
        if self._tag_ids is None:
            tags = await self.client.tags.list()
            self._tag_ids = {t.name: t.id for t in tags if t.id}
        return self._tag_ids

    async def update_tags(self, workflow: Workflow, workflow_id: str) -> list[str]:
        """Assign the workflow's tags remotely, creating missing ones by name.

        Tags that already carry an id are used as-is. Returns the assigned tag
        ids (empty in dry-run mode).
        """
        if not workflow.tags:
            return []

        label = f"'{workflow.name}' (ID: {workflow_id})"

        if self.dry_run:
            to_create = [t.name for t in workflow.tags if not t.id]
            message = f"Would update tags for workflow {label}"
            if to_create:
                message += " and create tags: " + ", ".join(f"'{name}'" for name in to_create)
            self.report(message)
            return []

        tag_ids: list[str] = []
        for tag in workflow.tags:
            if tag.id:
                tag_ids.append(tag.id)
                continue

            existing = await self._existing_tag_ids()
            if tag.name in existing:
                tag_ids.append(existing[tag.name])
                continue

            created = await self.client.tags.create(tag.name)
            if not created.id:
                raise TransportError(f"server returned no ID for created tag '{tag.name}'")
            existing[tag.name] = created.id
            tag_ids.append(created.id)
            self.report(f"Created tag '{tag.name}' (ID: {created.id})")

        if not tag_ids:
            return []

        await self.client.workflows.set_tags(workflow_id, tag_ids)
        self.report(f"Updated tags for workflow {label}")
        return tag_ids

    # Directories

    async def sync_directory(self, directory: str | Path, prune: bool = False) -> DirectorySyncResult:
        """Sync every workflow file directly inside ``directory``.

        A failing file is reported and skipped. Pruning runs after all files and
        stops at the first failed delete.
        Workflows created or matched during the pass count as local for pruning.

        Raises:
            WorkflowFileError: if ``directory`` is not an existing directory.
        """
        if not Path(directory).is_dir():
            raise WorkflowFileError(f"error reading directory {directory}: not a directory", directory)

        result = DirectorySyncResult()

        for path in iter_workflow_files(directory):
            local_id = extract_workflow_id(path)
            if local_id:
                result.local_ids.add(local_id)

            try:
                outcome = await self.sync_file(path)
            except N8NSyncError as e:
                logger.warning("Error processing workflow file %s: %s", path, e.message)
                self.report(f"Error processing workflow file {path}: {e.message}")
                result.errors[path] = e
                continue
            result.outcomes.append(outcome)
            if outcome.workflow_id:
                result.local_ids.add(outcome.workflow_id)

        if prune:
            try:
                await self.prune(result.local_ids)
            except N8NSyncError as e:
                logger.error("Error pruning workflows: %s", e.message)
                self.report(f"Error pruning workflows: {e.message}")
                result.prune_error = e

        return result

    async def prune(self, local_ids: set[str]) -> list[str]:
        """Delete remote workflows whose id is not in ``local_ids``.

        Workflows without an id are never touched. The first failed delete
        aborts the pass. Returns the ids deleted (or that would be deleted).
        """
        remote_workflows = await self.client.workflows.list_all()
        pruned: list[str] = []

        for remote in remote_workflows:
            if not remote.id or remote.id in local_ids:
                continue

            workflow_id = remote.id

            async def delete(workflow_id: str = workflow_id, remote: Workflow = remote) -> str:
                await self.client.workflows.delete(workflow_id)
                return f"Deleted workflow {remote.label} that was not in local files"

            await self._execute_or_dry_run(
                f"Would delete workflow {remote.label} that was not in local files", delete
            )
            pruned.append(workflow_id)

        return pruned


def outcome_summary(outcomes: list[SyncOutcome]) -> dict[str, Any]:
    """Counts for the CLI summary line."""
    return {
        "created": sum(1 for o in outcomes if o.created),
        "updated": sum(1 for o in outcomes if o.updated),
        "unchanged": sum(1 for o in outcomes if o.workflow_id and not (o.created or o.updated)),
        "total": len(outcomes),
    }
