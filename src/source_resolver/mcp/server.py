"""FastMCP server exposing source-resolver tools to diagnosis agents."""

from __future__ import annotations

from typing import Any

from fastmcp import FastMCP

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
from source_resolver.models import ErrorInfo


def create_mcp_server(store: AssociationStore) -> FastMCP:
    """Create a FastMCP server wired to the given association store."""

    mcp = FastMCP(
        "source-resolver",
        instructions="Resolve error locations to uploaded source code and reconcile release versions.",
    )

    @mcp.tool()
    async def check_version(project_id: str, version: str) -> dict[str, Any] | str:
        """Check whether source exists for a version and suggest the closest available one."""
        try:
            result = await validate_version(store, project_id, version)
        except ValidationFailure as exc:
            return f"Error: {exc.message}"
        return result.model_dump(by_alias=True)

    @mcp.tool()
    async def file_tree(
        project_id: str, version: str, error_file: str | None = None, error_line: int | None = None
    ) -> dict[str, Any]:
        """File hierarchy of a version, with the error file marked and its ancestors expanded."""
        view = await load_file_tree(store, project_id, version, error_file, error_line)
        return view.model_dump(by_alias=True, exclude_none=True)

    @mcp.tool()
    async def resolve_location(
        project_id: str, version: str, file_name: str, line: int, column: int | None = None
    ) -> dict[str, Any] | None:
        """Map a minified position to its original source position."""
        loc = await resolve_error_location(store, project_id, version, file_name, line, column)
        return loc.model_dump(by_alias=True) if loc else None

    @mcp.tool()
    async def source_context(
        project_id: str, version: str, file_path: str, line: int, context_lines: int = 10
    ) -> dict[str, Any] | None:
        """Source lines around a target line."""
        window = await get_source_code_with_context(store, project_id, version, file_path, line, context_lines)
        return window.model_dump(by_alias=True) if window else None

    @mcp.tool()
    async def resolve_stack(project_id: str, version: str, stack_trace: str) -> list[dict[str, Any] | None]:
        """Resolve every frame of a JavaScript stack trace."""
        locations = await resolve_stack_trace(store, project_id, version, stack_trace)
        return [loc.model_dump(by_alias=True) if loc else None for loc in locations]

    @mcp.tool()
    async def diagnosis_context(
        project_id: str,
        version: str,
        file_name: str,
        line: int,
        column: int | None = None,
        error_message: str = "",
        stack_trace: str | None = None,
        context_size: int = 10,
    ) -> dict[str, Any]:
        """Bundle the error location, its snippet and related files for diagnosis."""
        error_info = ErrorInfo(
            file_name=file_name, line=line, column=column, error_message=error_message, stack_trace=stack_trace
        )
        bundle = await prepare_ai_context(store, project_id, version, error_info, context_size)
        return bundle.model_dump(by_alias=True)

    return mcp
