"""Stage inspection CLI commands.

Both commands read through the same workflow functions as the API, so the
terminal shows exactly what the workspace and timeline endpoints return.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Annotated, TypeVar
from uuid import UUID

import typer
from rich.console import Console
from rich.table import Table
from sqlalchemy.ext.asyncio import AsyncSession

from studioflow.database.connection import get_engine, get_session_factory, session_scope
from studioflow.errors import StudioflowError
from studioflow.workflow.activity import TimelineEntry, timeline
from studioflow.workflow.stages import StageWorkspace, WorkspaceKind, build_workspace, load_stage

app = typer.Typer(help="Stage inspection commands")
console = Console()

T = TypeVar("T")

STATUS_COLORS = {
    "NOT_STARTED": "dim",
    "IN_PROGRESS": "yellow",
    "COMPLETED": "green",
    "NOT_APPLICABLE": "dim",
    "PUSHED_TO_CLIENT": "cyan",
    "CLIENT_APPROVED": "green",
    "REVISION_REQUESTED": "red",
    "PENDING": "yellow",
    "APPROVED": "green",
}


def _run(query: Callable[[AsyncSession], Awaitable[T]]) -> T:
    """Run a read query against the configured database and exit on errors."""
    from studioflow.main import get_app_context

    config = get_app_context().config

    async def _execute() -> T:
        engine = get_engine(config.database)
        try:
            async with session_scope(get_session_factory(engine)) as session:
                return await query(session)
        finally:
            await engine.dispose()

    try:
        return asyncio.run(_execute())
    except StudioflowError as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(code=1) from e


def _colored(status: str) -> str:
    color = STATUS_COLORS.get(status, "white")
    return f"[{color}]{status}[/{color}]"


def _print_workspace(workspace: StageWorkspace) -> None:
    stage = workspace.stage
    console.print(f"[bold]Stage:[/bold] {stage.type.value} ({stage.id})")
    console.print(f"[bold]Status:[/bold] {_colored(stage.status.value)}")
    console.print(f"[bold]Workspace:[/bold] {workspace.kind.value}")
    console.print()

    if workspace.kind is WorkspaceKind.RENDERING:
        if not workspace.renderings:
            console.print("[yellow]No rendering versions[/yellow]")
            return
        table = Table(title="Rendering versions")
        table.add_column("Label", style="bold")
        table.add_column("Name")
        table.add_column("Status")
        table.add_column("Revision", justify="right")
        for version in workspace.renderings:
            table.add_row(
                version.label,
                version.custom_name or "",
                _colored(version.status.value),
                str(version.revision),
            )
        console.print(table)
        return

    if workspace.kind is WorkspaceKind.CLIENT_APPROVAL:
        if not workspace.approvals:
            console.print("[yellow]Nothing sent to the client yet[/yellow]")
            return
        table = Table(title="Client approvals")
        table.add_column("Label", style="bold")
        table.add_column("Decision")
        table.add_column("Assets", justify="right")
        table.add_column("Message")
        for snapshot in workspace.approvals:
            approval = snapshot.approval
            table.add_row(
                approval.label,
                _colored(approval.decision.value),
                str(len(snapshot.assets)),
                approval.client_message or "",
            )
        console.print(table)
        return

    console.print(f"[bold]Notes:[/bold] {len(workspace.notes)}")
    console.print(f"[bold]Files:[/bold] {len(workspace.assets)}")


@app.command()
def show(
    stage_id: Annotated[UUID, typer.Argument(help="Stage ID")],
) -> None:
    """Show a stage and the contents of its workspace."""
    workspace = _run(lambda session: build_workspace(session, stage_id))
    _print_workspace(workspace)


@app.command("timeline")
def show_timeline(
    stage_id: Annotated[UUID, typer.Argument(help="Stage ID")],
    limit: Annotated[
        int,
        typer.Option("--limit", "-n", help="Maximum number of entries"),
    ] = 50,
) -> None:
    """Print a stage's activity, newest first."""

    async def _load(session: AsyncSession) -> list[TimelineEntry]:
        await load_stage(session, stage_id)
        return await timeline(session, stage_id=stage_id, limit=limit)

    entries = _run(_load)
    if not entries:
        console.print("[yellow]No activity recorded[/yellow]")
        return

    for entry in entries:
        when = entry.created_at.strftime("%Y-%m-%d %H:%M")
        console.print(f"[dim]{when}[/dim]  {entry.sentence}", soft_wrap=True)
