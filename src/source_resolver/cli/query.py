import asyncio
from collections.abc import Awaitable, Callable, Sequence
from pathlib import Path
from typing import Annotated, Any, TypeVar

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.text import Text
from rich.tree import Tree

from source_resolver.core.diagnosis import prepare_ai_context
from source_resolver.core.errors import ValidationFailure
from source_resolver.core.location import (
    get_source_code_with_context,
    resolve_error_location,
    resolve_stack_trace,
)
from source_resolver.core.ports.store import AssociationStore
from source_resolver.core.tree import load_file_tree
from source_resolver.core.versions import validate_version
from source_resolver.models import ErrorInfo, FileNode, ResolvedLocation

query_app = typer.Typer(help="Inspect versions, files and error locations.")
console = Console()

T = TypeVar("T")


def _get_store() -> AssociationStore:
    from source_resolver.db.engine import get_store

    return get_store()


def _run(work: Callable[[AssociationStore], Awaitable[T]]) -> T:
    store = _get_store()

    async def _main() -> T:
        try:
            return await work(store)
        finally:
            await store.dispose()

    return asyncio.run(_main())


def _render_table(headers: Sequence[str], rows: Sequence[Sequence[Any]]) -> None:
    table = Table(show_lines=False)
    for h in headers:
        table.add_column(h)
    for row in rows:
        table.add_row(*("" if v is None else str(v) for v in row))
    console.print(table)
    console.print(f"({len(rows)} rows)")


def _add_branch(parent: Tree, nodes: list[FileNode]) -> None:
    for node in nodes:
        if node.is_error_file:
            suffix = f" (line {node.error_line})" if node.error_line else ""
            label = f"[bold red]{escape(node.title)}{suffix}[/bold red]"
        elif node.is_leaf:
            label = escape(node.title)
        else:
            label = f"[blue]{escape(node.title)}/[/blue]"
        branch = parent.add(label)
        if node.children:
            _add_branch(branch, node.children)


def _location_rows(locations: Sequence[ResolvedLocation | None]) -> list[tuple[Any, ...]]:
    rows: list[tuple[Any, ...]] = []
    for index, loc in enumerate(locations):
        if loc is None:
            rows.append((index, "-", "-", "-", "-"))
        else:
            rows.append((index, loc.original_file, loc.original_line, loc.original_column, loc.function_name))
    return rows


@query_app.command("validate")
def validate(
    project_id: Annotated[str, typer.Argument(help="Project id.")],
    version: Annotated[str, typer.Argument(help="Version reported by the error event.")],
) -> None:
    """Check whether source exists for a version and suggest the closest one."""
    try:
        result = _run(lambda store: validate_version(store, project_id, version))
    except ValidationFailure as exc:
        console.print(f"[red]{escape(exc.message)}[/red]")
        raise typer.Exit(1) from exc
    if result.is_valid:
        console.print(f"[green]Version {version} is available.[/green]")
    else:
        console.print(f"[yellow]Version {version} has no uploaded source.[/yellow]")
        if result.suggested_version:
            console.print(f"Suggested version: [bold]{result.suggested_version}[/bold]")
    console.print(f"Available: {', '.join(result.available_versions) or '(none)'}")


@query_app.command("tree")
def tree(
    project_id: Annotated[str, typer.Argument(help="Project id.")],
    version: Annotated[str, typer.Argument(help="Source version.")],
    error_file: Annotated[str | None, typer.Option(help="File to mark as the error location.")] = None,
    error_line: Annotated[int | None, typer.Option(help="Line of the error in --error-file.")] = None,
) -> None:
    """Print the file tree of a version."""
    view = _run(lambda store: load_file_tree(store, project_id, version, error_file, error_line))
    root = Tree(f"[bold]{project_id}@{version}[/bold]")
    _add_branch(root, view.tree)
    console.print(root)
    if error_file and not view.error_file_found:
        console.print(f"[yellow]File not found in this version: {error_file}[/yellow]")


@query_app.command("locate")
def locate(
    project_id: Annotated[str, typer.Argument(help="Project id.")],
    version: Annotated[str, typer.Argument(help="Source version.")],
    file_name: Annotated[str, typer.Argument(help="File reported by the error.")],
    line: Annotated[int, typer.Argument(help="Line reported by the error.")],
    column: Annotated[int | None, typer.Option(help="Column reported by the error.")] = None,
) -> None:
    """Resolve a runtime position to original source."""
    loc = _run(lambda store: resolve_error_location(store, project_id, version, file_name, line, column))
    if loc is None:
        console.print("[yellow]Location could not be resolved.[/yellow]")
        raise typer.Exit(1)
    _render_table(["#", "file", "line", "column", "function"], _location_rows([loc]))


@query_app.command("source")
def source(
    project_id: Annotated[str, typer.Argument(help="Project id.")],
    version: Annotated[str, typer.Argument(help="Source version.")],
    file_path: Annotated[str, typer.Argument(help="Path of the source file.")],
    line: Annotated[int, typer.Argument(help="Target line.")],
    context_lines: Annotated[int, typer.Option(help="Lines shown before and after the target.")] = 10,
) -> None:
    """Show source lines around a target line."""
    window = _run(
        lambda store: get_source_code_with_context(store, project_id, version, file_path, line, context_lines)
    )
    if window is None:
        console.print(f"[yellow]No content for {file_path}.[/yellow]")
        raise typer.Exit(1)
    for offset, text in enumerate(window.context_lines):
        number = window.start_line + offset
        if number == window.target_line:
            console.print(Text(f"> {number:>5} | {text}", style="bold red"))
        else:
            console.print(Text(f"  {number:>5} | {text}"))


@query_app.command("stack")
def stack(
    project_id: Annotated[str, typer.Argument(help="Project id.")],
    version: Annotated[str, typer.Argument(help="Source version.")],
    stack_file: Annotated[Path, typer.Argument(help="File containing the stack trace.", exists=True)],
) -> None:
    """Resolve every frame of a stack trace."""
    stack_trace = stack_file.read_text(encoding="utf-8")
    locations = _run(lambda store: resolve_stack_trace(store, project_id, version, stack_trace))
    _render_table(["#", "file", "line", "column", "function"], _location_rows(locations))


@query_app.command("diagnose")
def diagnose(
    project_id: Annotated[str, typer.Argument(help="Project id.")],
    version: Annotated[str, typer.Argument(help="Source version.")],
    file_name: Annotated[str, typer.Argument(help="File reported by the error.")],
    line: Annotated[int, typer.Argument(help="Line reported by the error.")],
    column: Annotated[int | None, typer.Option(help="Column reported by the error.")] = None,
    message: Annotated[str, typer.Option(help="Error message.")] = "",
    context_size: Annotated[int, typer.Option(help="Lines of context around the error.")] = 10,
) -> None:
    """Print the diagnosis context bundle for an error."""
    error_info = ErrorInfo(file_name=file_name, line=line, column=column, error_message=message)
    bundle = _run(lambda store: prepare_ai_context(store, project_id, version, error_info, context_size))
    console.print(bundle.context, markup=False, highlight=False)
