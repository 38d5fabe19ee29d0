"""Manage source-code/sourcemap associations of a project."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape

from source_resolver.cli.query import _render_table, _run
from source_resolver.core import associations as _associations
from source_resolver.core.errors import MutationFailure, ValidationFailure

associations_app = typer.Typer(help="Upload, activate and delete source/sourcemap associations.")
console = Console()


def _fail(exc: ValidationFailure | MutationFailure) -> typer.Exit:
    console.print(f"[red]{escape(str(exc))}[/red]")
    if isinstance(exc, ValidationFailure):
        for error in exc.errors:
            if error != exc.message:
                console.print(f"[red]  - {escape(error)}[/red]")
    return typer.Exit(1)


@associations_app.command("list")
def list_associations(
    project_id: Annotated[str, typer.Argument(help="Project id.")],
) -> None:
    """List uploaded versions of a project."""
    versions = _run(lambda store: _associations.list_associations(store, project_id))
    rows = [
        (v.id, v.version, v.sourcemap_version, "yes" if v.is_active else "", v.created_at.isoformat())
        for v in versions
    ]
    _render_table(["id", "version", "sourcemap_version", "active", "created_at"], rows)


@associations_app.command("upload")
def upload(
    project_id: Annotated[str, typer.Argument(help="Project id.")],
    version: Annotated[str, typer.Argument(help="Version label of the uploaded build.")],
    source_archive: Annotated[Path, typer.Argument(help="Zip archive of the source tree.", exists=True)],
    sourcemap_archive: Annotated[Path, typer.Argument(help="Zip archive of the sourcemaps.", exists=True)],
    activate: Annotated[bool, typer.Option("--activate", help="Make this version the active one.")] = False,
) -> None:
    """Upload a source archive and its sourcemap archive."""
    source_bytes = source_archive.read_bytes()
    sourcemap_bytes = sourcemap_archive.read_bytes()

    validation = _associations.validate_archives(source_bytes, sourcemap_bytes, version)
    for warning in validation.warnings:
        console.print(f"[yellow]{escape(warning)}[/yellow]")

    try:
        result = _run(
            lambda store: _associations.upload(store, project_id, source_bytes, sourcemap_bytes, version, activate)
        )
    except (ValidationFailure, MutationFailure) as exc:
        raise _fail(exc) from exc

    console.print(f"[green]Uploaded {project_id}@{version} as association {result.association_id}[/green]")
    console.print(f"  source files: {validation.source_file_count}  sourcemaps: {validation.sourcemap_count}")


@associations_app.command("activate")
def activate(
    project_id: Annotated[str, typer.Argument(help="Project id.")],
    association_id: Annotated[str, typer.Argument(help="Association to activate.")],
) -> None:
    """Make an association the active one for its project."""
    try:
        result = _run(lambda store: _associations.set_active(store, project_id, association_id))
    except (ValidationFailure, MutationFailure) as exc:
        raise _fail(exc) from exc
    console.print(f"[green]{escape(result.message or 'Association activated.')}[/green]")


@associations_app.command("delete")
def delete(
    project_id: Annotated[str, typer.Argument(help="Project id.")],
    association_id: Annotated[str, typer.Argument(help="Association to delete.")],
) -> None:
    """Delete an association. Deleting the active one leaves no version active."""
    try:
        result = _run(lambda store: _associations.delete(store, project_id, association_id))
    except (ValidationFailure, MutationFailure) as exc:
        raise _fail(exc) from exc
    console.print(f"[green]{escape(result.message or 'Association deleted.')}[/green]")
