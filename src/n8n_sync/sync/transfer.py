"""Single-workflow pull and push."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from ..errors import ValidationError, WorkflowFileError, WorkflowNotFoundError
from ..workflow.files import (
    build_index,
    find_local_workflow_by_name,
    looks_like_file_path,
    normalize_output_format,
    sanitize_filename,
    validate_workflow_file_extension,
    with_output_extension,
)
from ..workflow.serialization import extract_workflow_id, read_workflow
from .engine import SyncOutcome, WorkflowSyncer
from .lookup import resolve_workflow_id_by_name
from .refresh import ensure_directory, refresh_file
from .report import Reporter

if TYPE_CHECKING:
    from ..api.client import N8NClient

logger = logging.getLogger(__name__)


def split_file_or_name(file_or_name: str | None, workflow_id: str | None, workflow_name: str | None):
    """``--file`` accepts a path or a workflow name; return (path, name)."""
    if workflow_id and workflow_name:
        raise ValidationError("use either --id or --name, not both")
    if file_or_name and not looks_like_file_path(file_or_name):
        return None, workflow_name or file_or_name
    return (Path(file_or_name) if file_or_name else None), workflow_name


async def pull_workflow(
    client: "N8NClient",
    directory: str | Path | None = None,
    file_or_name: str | None = None,
    workflow_id: str | None = None,
    workflow_name: str | None = None,
    output: str = "",
    minimal: bool = True,
    dry_run: bool = False,
    report: Reporter | None = None,
) -> Path | None:
    """Fetch one workflow and write it to a local file.

    The workflow is found by id, by remote name, or (when the name is unknown
    remotely) by the id stored in a local file of that name. The file is the
    explicit path, the tracked file in ``directory``, or a new default path.
    """
    report = report or Reporter()
    output = normalize_output_format(output)
    file_path, workflow_name = split_file_or_name(file_or_name, workflow_id, workflow_name)

    if not workflow_id and not workflow_name and file_path is None:
        raise ValidationError("workflow id, name, or file is required")

    local_path = None
    if directory and workflow_name:
        local_path = find_local_workflow_by_name(directory, workflow_name)

    if not workflow_id and workflow_name:
        try:
            workflow_id = await resolve_workflow_id_by_name(client, workflow_name)
        except WorkflowNotFoundError:
            if local_path is None:
                raise
            workflow_id = extract_workflow_id(local_path)

    if not workflow_id and file_path is not None and file_path.is_file():
        workflow_id = extract_workflow_id(file_path)
        if not workflow_id and not workflow_name:
            try:
                workflow_name = read_workflow(file_path).name or None
            except WorkflowFileError:
                workflow_name = None
            if workflow_name:
                workflow_id = await resolve_workflow_id_by_name(client, workflow_name)

    if not workflow_id:
        if workflow_name:
            raise WorkflowNotFoundError(workflow_name)
        raise ValidationError("workflow id or name is required")

    workflow = await client.workflows.get(workflow_id)

    if file_path is None:
        if directory:
            file_path = build_index(directory).get(workflow_id)
        if file_path is None:
            file_path = local_path
        if file_path is None:
            if not directory:
                raise ValidationError("directory is required when no file path is provided")
            file_path = Path(directory) / (sanitize_filename(workflow_name or workflow.name) + ".json")

    file_path = with_output_extension(file_path, output)
    validate_workflow_file_extension(file_path)

    if file_path.parent != Path("."):
        ensure_directory(file_path.parent, dry_run, report)
    return refresh_file(workflow, file_path, dry_run=dry_run, minimal=minimal, report=report)


async def push_workflow(
    client: "N8NClient",
    directory: str | Path | None = None,
    file_or_name: str | None = None,
    workflow_id: str | None = None,
    workflow_name: str | None = None,
    dry_run: bool = False,
    report: Reporter | None = None,
) -> SyncOutcome:
    """Upload one local workflow file.

    The file is given directly or found by name in ``directory``. The remote
    workflow is matched by ``--id``, then by name; failing both, the file's own
    id (if any) decides between update and create.
    """
    report = report or Reporter()
    file_path, workflow_name = split_file_or_name(file_or_name, workflow_id, workflow_name)

    if file_path is None:
        if not workflow_name:
            raise ValidationError("workflow name or file is required")
        local_path = find_local_workflow_by_name(directory, workflow_name) if directory else None
        if local_path is None:
            raise ValidationError(f"workflow '{workflow_name}' not found in {directory or '.'}")
        file_path = local_path

    validate_workflow_file_extension(file_path)
    workflow = read_workflow(file_path)

    if workflow_id:
        workflow.id = workflow_id
    elif workflow_name:
        try:
            workflow.id = await resolve_workflow_id_by_name(client, workflow_name)
        except WorkflowNotFoundError:
            logger.debug("No remote workflow named %r; using the file's id", workflow_name)

    syncer = WorkflowSyncer(client, dry_run=dry_run, reporter=report)
    outcome = await syncer.sync_workflow(workflow, filename=file_path.name, file_path=file_path)
    if outcome.workflow_id:
        report(f"Workflow '{workflow.name}' synced (ID: {outcome.workflow_id}) from {file_path.name}")
    return outcome
