#!/usr/bin/env python3
"""Tracker developer CLI - runs the core operations against a JSON fixture.

The fixture holds the documents (keyed by path) and blobs (keyed by blob
path, text content) of an in-memory store:

    {"documents": {"projects/p1": {...}, ...}, "blobs": {"projects/...": "..."}}

Usage:
    python main.py recompute-issue fixture.json p1 i1
    python main.py recompute-project fixture.json p1
    python main.py --as u1 move-issue fixture.json p1 i1 p2 --name "Renamed" --save out.json
    python main.py --as u1 delete-issue fixture.json p1 i1
"""

import asyncio
import json
import sys
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import click
from rich.console import Console
from rich.table import Table

from config import settings
from errors import user_message
from logging_setup import setup_logging
from orchestrator import IssueDeleter, IssueMigrationOrchestrator
from progress import ProgressEngine
from stores import InMemoryBlobStore, InMemoryDocumentStore, get_blob_store, get_document_store


console = Console()


def load_fixture(path: str) -> Tuple[InMemoryDocumentStore, InMemoryBlobStore]:
    """Build in-memory stores from a JSON fixture file."""
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    documents = raw.get("documents", {})
    blobs = {p: content.encode("utf-8") for p, content in raw.get("blobs", {}).items()}
    return (
        get_document_store("memory", documents=documents),
        get_blob_store("memory", blobs=blobs),
    )


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Cannot serialize {type(value).__name__}")


def save_fixture(path: str, store: InMemoryDocumentStore, blob_store: InMemoryBlobStore) -> None:
    """Write the stores' current state back out as a fixture."""
    blobs: Dict[str, str] = {}
    for blob_path in blob_store.paths():
        blobs[blob_path] = blob_store.read(blob_path).decode("utf-8", errors="replace")
    payload = {"documents": store.dump(), "blobs": blobs}
    Path(path).write_text(
        json.dumps(payload, indent=2, default=_json_default, ensure_ascii=False),
        encoding="utf-8",
    )
    console.print(f"[dim]Saved fixture to:[/dim] {path}")


def _fail(error: Exception) -> None:
    console.print(f"[red]Error:[/red] {user_message(error)}")
    sys.exit(1)


@click.group()
@click.option(
    "--as", "caller_id",
    default=None,
    help="User id to act as (default: TRACKER_CALLER_ID)"
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Verbose output"
)
@click.pass_context
def cli(ctx: click.Context, caller_id: Optional[str], verbose: bool):
    """Tracker: progress aggregation and issue migration tools."""
    setup_logging("DEBUG" if verbose else None)
    ctx.ensure_object(dict)
    ctx.obj["caller_id"] = caller_id or settings.caller_id


@cli.command("recompute-issue")
@click.argument("fixture", type=click.Path(exists=True, dir_okay=False))
@click.argument("project_id")
@click.argument("issue_id")
@click.option("--save", "save_path", default=None, help="Write the updated fixture here")
def recompute_issue(fixture: str, project_id: str, issue_id: str, save_path: Optional[str]):
    """Recompute and persist one issue's progress."""
    store, blob_store = load_fixture(fixture)
    engine = ProgressEngine(store)
    progress = asyncio.run(engine.recompute_issue_progress(project_id, issue_id))
    console.print(f"[green]Issue progress:[/green] {progress:.1f}")
    if save_path:
        save_fixture(save_path, store, blob_store)


@cli.command("recompute-project")
@click.argument("fixture", type=click.Path(exists=True, dir_okay=False))
@click.argument("project_id")
@click.option("--all-issues", is_flag=True, help="Recompute every issue first")
@click.option("--save", "save_path", default=None, help="Write the updated fixture here")
def recompute_project(fixture: str, project_id: str, all_issues: bool, save_path: Optional[str]):
    """Recompute and persist one project's progress."""
    store, blob_store = load_fixture(fixture)
    engine = ProgressEngine(store)

    async def run() -> float:
        if all_issues:
            for snapshot in await store.list(f"projects/{project_id}/issues"):
                value = await engine.recompute_issue_progress(project_id, snapshot.id)
                console.print(f"  [dim]{snapshot.id}:[/dim] {value:.1f}")
        return await engine.recompute_project_progress(project_id)

    progress = asyncio.run(run())
    console.print(f"[green]Project progress:[/green] {progress:.1f}")
    if save_path:
        save_fixture(save_path, store, blob_store)


@cli.command("move-issue")
@click.argument("fixture", type=click.Path(exists=True, dir_okay=False))
@click.argument("source_project_id")
@click.argument("issue_id")
@click.argument("target_project_id")
@click.option("--name", default=None, help="New issue name")
@click.option("--overrides", "overrides_json", default=None, help="Overrides as a JSON object")
@click.option("--save", "save_path", default=None, help="Write the updated fixture here")
@click.pass_context
def move_issue_command(
    ctx: click.Context,
    fixture: str,
    source_project_id: str,
    issue_id: str,
    target_project_id: str,
    name: Optional[str],
    overrides_json: Optional[str],
    save_path: Optional[str],
):
    """Move an issue, with its tasks, to another project."""
    store, blob_store = load_fixture(fixture)

    overrides: Dict[str, Any] = json.loads(overrides_json) if overrides_json else {}
    if name is not None:
        overrides["name"] = name

    orchestrator = IssueMigrationOrchestrator(store, blob_store, caller_id=ctx.obj["caller_id"])
    try:
        result = asyncio.run(
            orchestrator.move_issue(source_project_id, issue_id, target_project_id, overrides)
        )
    except Exception as e:
        _fail(e)

    console.print(f"[green]Moved as:[/green] {result.final_name}")

    if result.date_adjusted:
        table = Table(title="Date adjustment")
        table.add_column("")
        table.add_column("Original")
        table.add_column("Adjusted")
        table.add_row("Start", str(result.original_start or "-"), str(result.adjusted_start or "-"))
        table.add_row("End", str(result.original_end or "-"), str(result.adjusted_end or "-"))
        console.print(table)

    if result.removed_assignees:
        console.print("\n[yellow]Assignees removed (not target members):[/yellow]")
        for entry in result.removed_assignees:
            console.print(f"  - {entry.task_id}: {', '.join(entry.assignee_ids)}")

    if result.skipped_tags:
        console.print(f"\n[yellow]Tags skipped:[/yellow] {', '.join(result.skipped_tags)}")

    if save_path:
        save_fixture(save_path, store, blob_store)


@cli.command("delete-issue")
@click.argument("fixture", type=click.Path(exists=True, dir_okay=False))
@click.argument("project_id")
@click.argument("issue_id")
@click.option("--save", "save_path", default=None, help="Write the updated fixture here")
@click.pass_context
def delete_issue_command(
    ctx: click.Context,
    fixture: str,
    project_id: str,
    issue_id: str,
    save_path: Optional[str],
):
    """Delete an issue and everything beneath it."""
    store, blob_store = load_fixture(fixture)
    deleter = IssueDeleter(store, blob_store, caller_id=ctx.obj["caller_id"])
    try:
        counts = asyncio.run(deleter.delete_issue(project_id, issue_id))
    except Exception as e:
        _fail(e)

    console.print(
        f"[green]Deleted:[/green] {counts['tasks']} tasks, "
        f"{counts['comments']} comments, {counts['attachments']} attachments"
    )
    if save_path:
        save_fixture(save_path, store, blob_store)


if __name__ == "__main__":
    cli()
