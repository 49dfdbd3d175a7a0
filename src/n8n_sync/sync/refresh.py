"""Refresh - write remote workflow state back into local files.

Tracked files keep their path (including custom names) and format unless a
conversion or overwrite is requested. A file whose decoded content already
matches the remote workflow is left untouched.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from ..errors import N8NSyncError, ValidationError, WorkflowFileError
from ..workflow.files import (
    FileAction,
    build_index,
    normalize_output_format,
    resolve_destination,
    with_output_extension,
)
from ..workflow.models import Workflow
from ..workflow.serialization import (
    decode_workflow,
    extract_original_name,
    extract_workflow_id,
    read_workflow,
    serialize_workflow,
    write_workflow_file,
)
from .drift import has_drift
from .lookup import resolve_workflow_id_by_name
from .report import Reporter

if TYPE_CHECKING:
    from ..api.client import N8NClient

logger = logging.getLogger(__name__)


def ensure_directory(directory: str | Path, dry_run: bool, report: Reporter) -> None:
    directory = Path(directory)
    if directory.is_dir():
        return
    if directory.exists():
        raise WorkflowFileError(f"{directory} exists and is not a directory", directory)
    if dry_run:
        report(f"Would create directory: {directory}")
        return
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise WorkflowFileError(f"error creating directory {directory}: {e}", directory) from e
    report(f"Created directory: {directory}")


def needs_rewrite(path: Path, existing_path: Path | None, content: str, minimal: bool) -> bool:
    """True unless ``path`` already holds the same workflow as ``content``."""
    if not path.is_file():
        return True
    if existing_path is not None and existing_path.suffix.lower() != path.suffix.lower():
        return True
    try:
        existing = decode_workflow(path.read_bytes())
        fresh = decode_workflow(content)
    except (OSError, WorkflowFileError):
        return True
    return has_drift(existing, fresh, normalize=minimal)


def _write(
    workflow: Workflow,
    path: Path,
    action: FileAction,
    content: str,
    dry_run: bool,
    report: Reporter,
) -> bool:
    if dry_run:
        report(f"Would {action.verb} workflow {workflow.label} to file: {path}")
        return False
    write_workflow_file(path, content)
    report(f"{action.value} workflow {workflow.label} to file: {path}")
    return True


def write_workflow(
    workflow: Workflow,
    index: dict[str, Path],
    directory: str | Path,
    dry_run: bool = False,
    overwrite: bool = False,
    output: str = "",
    minimal: bool = True,
    report: Reporter | None = None,
) -> Path | None:
    """Write one remote workflow into ``directory``.

    Returns the destination path, or None when the workflow has no id.
    """
    report = report or Reporter()
    if not workflow.id:
        report(f"Skipping workflow '{workflow.name}' with no ID")
        return None

    existing_path = index.get(workflow.id)
    original_name = extract_original_name(existing_path) if existing_path else None

    path, action = resolve_destination(
        workflow, index, directory, output=output, overwrite=overwrite, original_name=original_name
    )
    content = serialize_workflow(workflow, path, minimal=minimal, original_name=original_name or workflow.name)

    # A file written before the originalName marker existed is rewritten once to gain it.
    if action is FileAction.UPDATING and original_name is not None:
        if not needs_rewrite(path, existing_path, content, minimal):
            report(f"No changes for workflow {workflow.label} in file: {path}")
            return path

    _write(workflow, path, action, content, dry_run, report)
    return path


def refresh_file(
    workflow: Workflow,
    path: str | Path,
    dry_run: bool = False,
    minimal: bool = True,
    report: Reporter | None = None,
) -> Path | None:
    """Write ``workflow`` to the fixed file ``path``."""
    report = report or Reporter()
    path = Path(path)
    if not workflow.id:
        report(f"Skipping workflow '{workflow.name}' with no ID")
        return None

    original_name = extract_original_name(path) if path.is_file() else None
    content = serialize_workflow(workflow, path, minimal=minimal, original_name=original_name or workflow.name)
    action = FileAction.UPDATING if path.is_file() else FileAction.CREATING

    if action is FileAction.UPDATING and original_name is not None:
        if not needs_rewrite(path, path, content, minimal):
            report(f"No changes for workflow {workflow.label} in file: {path}")
            return path

    _write(workflow, path, action, content, dry_run, report)
    return path


async def refresh_directory(
    client: "N8NClient",
    directory: str | Path,
    dry_run: bool = False,
    overwrite: bool = False,
    output: str = "",
    minimal: bool = True,
    refresh_all: bool = False,
    known_files: dict[str, Path] | None = None,
    report: Reporter | None = None,
) -> list[Path]:
    """Refresh the workflow files in ``directory`` from the remote instance.

    Only workflows already tracked in the directory are fetched, unless
    ``refresh_all`` is set or nothing is tracked yet. ``known_files`` adds
    id -> file entries for files not yet carrying their id, such as files whose
    workflows were just created by a sync.
    """
    report = report or Reporter()
    ensure_directory(directory, dry_run, report)

    index = dict(known_files or {})
    index.update(build_index(directory))
    written: list[Path] = []

    if refresh_all or not index:
        report("Refreshing all workflows from n8n instance")
        workflows = await client.workflows.list_all()
        if not workflows:
            report("No workflows found in n8n instance")
            return written
        for workflow in workflows:
            path = write_workflow(
                workflow, index, directory, dry_run=dry_run, overwrite=overwrite,
                output=output, minimal=minimal, report=report,
            )
            if path is not None:
                written.append(path)
        return written

    report("Refreshing only workflows that exist in the directory")
    for workflow_id in sorted(index):
        try:
            workflow = await client.workflows.get(workflow_id)
        except N8NSyncError as e:
            logger.warning("Could not fetch workflow with ID %s: %s", workflow_id, e.message)
            report(f"Warning: Could not fetch workflow with ID {workflow_id}: {e.message}")
            continue
        path = write_workflow(
            workflow, index, directory, dry_run=dry_run, overwrite=overwrite,
            output=output, minimal=minimal, report=report,
        )
        if path is not None:
            written.append(path)

    if not written:
        report(
            "No workflows were refreshed. The tracked workflows may not exist on the "
            "n8n instance; try refresh --all."
        )
    return written


async def refresh_single(
    client: "N8NClient",
    path: str | Path,
    workflow_id: str | None = None,
    workflow_name: str | None = None,
    dry_run: bool = False,
    minimal: bool = True,
    output: str = "",
    report: Reporter | None = None,
) -> Path | None:
    """Refresh one file, identifying the workflow by id, by name or by the file itself.

    ``output`` switches the written file to that format's extension.
    """
    report = report or Reporter()
    path = Path(path)
    if path.parent != Path("."):
        ensure_directory(path.parent, dry_run, report)

    if not workflow_id and not workflow_name and path.is_file():
        workflow_id = extract_workflow_id(path)
        if not workflow_id:
            try:
                workflow_name = read_workflow(path).name or None
            except WorkflowFileError:
                workflow_name = None

    if not workflow_id and not workflow_name:
        raise ValidationError("workflow id or name is required when using --file")

    if not workflow_id:
        workflow_id = await resolve_workflow_id_by_name(client, workflow_name)

    workflow = await client.workflows.get(workflow_id)
    destination = with_output_extension(path, normalize_output_format(output))
    return refresh_file(workflow, destination, dry_run=dry_run, minimal=minimal, report=report)
