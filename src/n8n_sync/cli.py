"""n8n-sync CLI - Main entry point."""

import asyncio
import json
from pathlib import Path
from typing import Any

import typer
import yaml
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .config import Settings, load_settings
from .errors import N8NSyncError, ValidationError
from .logs import configure_logging

app = typer.Typer(
    name="n8n-sync",
    help="n8n-sync - keep local workflow files in sync with an n8n instance",
    no_args_is_help=True,
)
console = Console()

workflows_app = typer.Typer(help="Workflow sync and management", no_args_is_help=True)
app.add_typer(workflows_app, name="workflows")


def _say(message: str) -> None:
    console.print(message, markup=False, highlight=False)


def _fail(message: str) -> None:
    console.print(f"Error: {message}", style="red", markup=False, highlight=False)
    raise typer.Exit(1)


def _settings(ctx: typer.Context) -> Settings:
    return ctx.obj["settings"]


def _run(coro_factory):
    """Run an async command body, turning n8n-sync errors into exit code 1."""
    try:
        return asyncio.run(coro_factory())
    except N8NSyncError as e:
        _fail(e.message)


def validate_target(
    directory: str | None,
    file: str | None,
    workflow_id: str | None = None,
    workflow_name: str | None = None,
    prune: bool = False,
) -> None:
    """Reject conflicting ``--directory/--file/--id/--name/--prune`` combinations."""
    if file and directory:
        raise ValidationError("use either --file or --directory, not both")
    if not file and not directory:
        raise ValidationError("directory or file is required")
    if workflow_id and workflow_name:
        raise ValidationError("use either --id or --name, not both")
    if file and prune:
        raise ValidationError("--prune is only supported with --directory")


def _version_callback(value: bool):
    if value:
        console.print(f"n8n-sync {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    api_key: str = typer.Option(None, "--api-key", "-k", help="n8n API key (env: N8N_API_KEY)"),
    url: str = typer.Option(None, "--url", "-u", help="n8n instance URL (env: N8N_INSTANCE_URL)"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
    show_version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show the version and exit"
    ),
):
    """Sync n8n workflows between a local directory and an n8n instance."""
    settings = load_settings(api_key=api_key, instance_url=url, debug=debug or None)
    configure_logging(settings.debug)
    ctx.obj = {"settings": settings}


@app.command("version")
def version():
    """Show the n8n-sync version."""
    console.print(f"n8n-sync {__version__}")


# ============================================================================
# Sync / Refresh
# ============================================================================


@workflows_app.command("sync")
def workflows_sync(
    ctx: typer.Context,
    directory: str = typer.Option(None, "--directory", "-d", help="Directory containing workflow files"),
    file: str = typer.Option(None, "--file", "-f", help="Single workflow file to sync"),
    workflow_id: str = typer.Option(None, "--id", help="Workflow ID to sync the file into"),
    name: str = typer.Option(None, "--name", "-n", help="Remote workflow name to sync the file into"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would change without changing anything"),
    prune: bool = typer.Option(False, "--prune", help="Delete remote workflows that have no local file"),
    refresh: bool = typer.Option(True, "--refresh/--no-refresh", help="Write remote state back to local files after syncing"),
    output: str = typer.Option(None, "--output", "-o", help="Format for refreshed files: json or yaml"),
    refresh_all: bool = typer.Option(False, "--all", help="Refresh every remote workflow, not only tracked ones"),
):
    """Push local workflow files to n8n."""
    from .api import N8NClient
    from .sync.engine import WorkflowSyncer, outcome_summary
    from .sync.lookup import resolve_workflow_id_by_name
    from .sync.refresh import refresh_directory, refresh_file
    from .sync.report import Reporter
    from .workflow.files import (
        normalize_output_format,
        validate_workflow_file_extension,
        with_output_extension,
    )

    try:
        validate_target(directory, file, workflow_id, name, prune)
        output = normalize_output_format(output)
        if file:
            validate_workflow_file_extension(file)
    except ValidationError as e:
        _fail(e.message)

    settings = _settings(ctx)
    reporter = Reporter(_say)

    async def _sync() -> bool:
        async with N8NClient.from_settings(settings) as n8n:
            syncer = WorkflowSyncer(n8n, dry_run=dry_run, reporter=reporter)

            if file:
                target_id = workflow_id
                if not target_id and name:
                    target_id = await resolve_workflow_id_by_name(n8n, name)
                outcome = await syncer.sync_file(file, workflow_id=target_id)

                if refresh and not dry_run and outcome.workflow_id:
                    _say("Refreshing local workflow file with remote state...")
                    try:
                        remote = await n8n.workflows.get(outcome.workflow_id)
                        refresh_file(remote, with_output_extension(file, output), report=reporter)
                    except N8NSyncError as e:
                        _say(f"Error refreshing workflow after sync: {e.message}")
                return True

            result = await syncer.sync_directory(directory, prune=prune)
            summary = outcome_summary(result.outcomes)
            console.print(
                f"[green]{summary['created']} created[/green], "
                f"[cyan]{summary['updated']} updated[/cyan], "
                f"{summary['unchanged']} unchanged, "
                f"[red]{len(result.errors)} failed[/red]"
            )

            if refresh and not dry_run and result.synced_files:
                _say("Refreshing local workflow files with remote state...")
                try:
                    await refresh_directory(
                        n8n,
                        directory,
                        output=output,
                        refresh_all=refresh_all,
                        known_files=result.synced_files,
                        report=reporter,
                    )
                except N8NSyncError as e:
                    _say(f"Error refreshing workflows after sync: {e.message}")
            return result.prune_error is None

    if not _run(_sync):
        raise typer.Exit(1)


@workflows_app.command("refresh")
def workflows_refresh(
    ctx: typer.Context,
    directory: str = typer.Option(None, "--directory", "-d", help="Directory to write workflow files to"),
    file: str = typer.Option(None, "--file", "-f", help="Single workflow file to refresh"),
    workflow_id: str = typer.Option(None, "--id", help="Workflow ID to refresh into --file"),
    name: str = typer.Option(None, "--name", "-n", help="Workflow name to refresh into --file"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would be written without writing"),
    overwrite: bool = typer.Option(False, "--overwrite", help="Write to default file names, ignoring existing ones"),
    output: str = typer.Option(None, "--output", "-o", help="File format: json or yaml"),
    no_truncate: bool = typer.Option(False, "--no-truncate", help="Keep server-owned fields such as timestamps"),
    refresh_all: bool = typer.Option(False, "--all", help="Include workflows that have no local file yet"),
):
    """Pull remote workflow state into local files."""
    from .api import N8NClient
    from .sync.refresh import refresh_directory, refresh_single
    from .sync.report import Reporter
    from .workflow.files import normalize_output_format, validate_workflow_file_extension

    try:
        validate_target(directory, file, workflow_id, name)
        output = normalize_output_format(output)
        if file:
            validate_workflow_file_extension(file)
    except ValidationError as e:
        _fail(e.message)

    settings = _settings(ctx)
    reporter = Reporter(_say)
    minimal = not no_truncate

    async def _refresh():
        async with N8NClient.from_settings(settings) as n8n:
            if file:
                await refresh_single(
                    n8n, file, workflow_id=workflow_id, workflow_name=name,
                    dry_run=dry_run, minimal=minimal, output=output, report=reporter,
                )
                return
            await refresh_directory(
                n8n, directory, dry_run=dry_run, overwrite=overwrite, output=output,
                minimal=minimal, refresh_all=refresh_all, report=reporter,
            )

    _run(_refresh)
    console.print("[green]Workflow refresh completed[/green]")


# ============================================================================
# Single workflow transfer
# ============================================================================


@workflows_app.command("pull")
def workflows_pull(
    ctx: typer.Context,
    directory: str = typer.Option(None, "--directory", "-d", help="Directory containing workflow files"),
    file: str = typer.Option(None, "--file", "-f", help="Workflow name or file path"),
    workflow_id: str = typer.Option(None, "--id", help="Workflow ID to pull"),
    name: str = typer.Option(None, "--name", "-n", help="Workflow name to pull"),
    output: str = typer.Option(None, "--output", "-o", help="File format: json or yaml"),
    no_truncate: bool = typer.Option(False, "--no-truncate", help="Keep server-owned fields such as timestamps"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would be written without writing"),
):
    """Pull a single workflow from n8n into a local file."""
    from .api import N8NClient
    from .sync.report import Reporter
    from .sync.transfer import pull_workflow, split_file_or_name
    from .workflow.files import normalize_output_format

    try:
        output = normalize_output_format(output)
        split_file_or_name(file, workflow_id, name)
    except ValidationError as e:
        _fail(e.message)

    settings = _settings(ctx)
    reporter = Reporter(_say)

    async def _pull():
        async with N8NClient.from_settings(settings) as n8n:
            return await pull_workflow(
                n8n,
                directory=directory,
                file_or_name=file,
                workflow_id=workflow_id,
                workflow_name=name,
                output=output,
                minimal=not no_truncate,
                dry_run=dry_run,
                report=reporter,
            )

    _run(_pull)


@workflows_app.command("push")
def workflows_push(
    ctx: typer.Context,
    directory: str = typer.Option(None, "--directory", "-d", help="Directory containing workflow files"),
    file: str = typer.Option(None, "--file", "-f", help="Workflow name or file path"),
    workflow_id: str = typer.Option(None, "--id", help="Workflow ID to push into"),
    name: str = typer.Option(None, "--name", "-n", help="Workflow name to push"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would be uploaded without changing anything"),
):
    """Push a single local workflow file to n8n."""
    from .api import N8NClient
    from .sync.report import Reporter
    from .sync.transfer import push_workflow, split_file_or_name

    try:
        split_file_or_name(file, workflow_id, name)
    except ValidationError as e:
        _fail(e.message)

    settings = _settings(ctx)
    reporter = Reporter(_say)

    async def _push():
        async with N8NClient.from_settings(settings) as n8n:
            return await push_workflow(
                n8n,
                directory=directory,
                file_or_name=file,
                workflow_id=workflow_id,
                workflow_name=name,
                dry_run=dry_run,
                report=reporter,
            )

    _run(_push)


# ============================================================================
# Listing and remote state
# ============================================================================


def sort_workflows(workflows: list, order: str = "asc") -> list:
    """Sort by last update (missing timestamps first when ascending), then name."""
    by_name = sorted(workflows, key=lambda w: w.name)
    return sorted(by_name, key=lambda w: w.updated_at or "", reverse=order == "desc")


def _workflow_summary(workflow) -> dict[str, Any]:
    return {
        "id": workflow.id,
        "name": workflow.name,
        "active": bool(workflow.active),
        "updatedAt": workflow.updated_at,
        "tags": [t.name for t in workflow.tags or []],
    }


@workflows_app.command("list")
def workflows_list(
    ctx: typer.Context,
    output: str = typer.Option("table", "--output", "-o", help="Output format: table, json or yaml"),
    order: str = typer.Option("asc", "--order", help="Sort order for last update: asc or desc"),
):
    """List workflows on the n8n instance."""
    from .api import N8NClient

    output = output.lower()
    order = (order or "asc").lower()
    if output not in ("table", "json", "yaml"):
        _fail(f"unsupported output format: {output}. Supported formats: table, json, yaml")
    if order not in ("asc", "desc"):
        _fail(f"unsupported sort order: {order}. Supported orders: asc, desc")

    settings = _settings(ctx)

    async def _list():
        async with N8NClient.from_settings(settings) as n8n:
            return await n8n.workflows.list_all()

    workflows = sort_workflows(_run(_list), order)

    if output == "json":
        console.print_json(json.dumps([w.to_dict() for w in workflows], default=str))
        return
    if output == "yaml":
        _say(yaml.safe_dump([w.to_dict() for w in workflows], sort_keys=False, allow_unicode=True))
        return

    if not workflows:
        console.print("[yellow]No workflows found[/yellow]")
        return

    table = Table(title=f"Workflows ({len(workflows)})")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Active")
    table.add_column("Last Updated")
    table.add_column("Tags")

    for w in workflows:
        summary = _workflow_summary(w)
        table.add_row(
            summary["id"] or "N/A",
            summary["name"],
            "[green]Yes[/green]" if summary["active"] else "[yellow]No[/yellow]",
            summary["updatedAt"] or "N/A",
            ", ".join(summary["tags"]) or "-",
        )

    console.print(table)


def _set_state(ctx: typer.Context, workflow_id: str, action: str) -> None:
    from .api import N8NClient

    settings = _settings(ctx)

    async def _apply():
        async with N8NClient.from_settings(settings) as n8n:
            if action == "activate":
                return await n8n.workflows.activate(workflow_id)
            if action == "deactivate":
                return await n8n.workflows.deactivate(workflow_id)
            await n8n.workflows.delete(workflow_id)
            return None

    workflow = _run(_apply)
    label = workflow.label if workflow else f"ID: {workflow_id}"
    past = {"activate": "activated", "deactivate": "deactivated", "delete": "deleted"}[action]
    console.print(Panel(f"Workflow {label} {past}", style="green"))


@workflows_app.command("activate")
def workflows_activate(
    ctx: typer.Context,
    workflow_id: str = typer.Argument(..., help="Workflow ID"),
):
    """Activate a workflow."""
    _set_state(ctx, workflow_id, "activate")


@workflows_app.command("deactivate")
def workflows_deactivate(
    ctx: typer.Context,
    workflow_id: str = typer.Argument(..., help="Workflow ID"),
):
    """Deactivate a workflow."""
    _set_state(ctx, workflow_id, "deactivate")


@workflows_app.command("delete")
def workflows_delete(
    ctx: typer.Context,
    workflow_id: str = typer.Argument(..., help="Workflow ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
):
    """Delete a workflow."""
    if not yes and not typer.confirm(f"Delete workflow {workflow_id}?"):
        console.print("[yellow]Cancelled[/yellow]")
        raise typer.Exit(0)
    _set_state(ctx, workflow_id, "delete")


if __name__ == "__main__":
    app()
