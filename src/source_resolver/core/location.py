import asyncio
import logging
import re
from collections.abc import Sequence

from source_resolver.core.errors import LookupFailure
from source_resolver.core.ports.store import AssociationStore
from source_resolver.models import (
    ErrorLocation,
    RawLocation,
    ResolvedLocation,
    SourceCodeContext,
    StackFrame,
)

logger = logging.getLogger(__name__)

DEFAULT_CONTEXT_LINES = 10

# V8 "at fn (file:line:col)", V8 "at file:line:col", Firefox/Safari "fn@file:line:col"
_V8_NAMED = re.compile(r"at\s+(.+?)\s+\((.+?):(\d+):(\d+)\)")
_V8_ANONYMOUS = re.compile(r"at\s+(.+?):(\d+):(\d+)")
_GECKO = re.compile(r"(.*?)@(.+?):(\d+):(\d+)")


def _normalize(raw: RawLocation, file_name: str, line: int, column: int | None) -> ResolvedLocation:
    return ResolvedLocation(
        original_file=raw.source or file_name,
        original_line=raw.line or line,
        original_column=raw.column if raw.column is not None else column,
        function_name=raw.name,
        source_content=raw.source_content,
        context_lines=raw.context_lines,
    )


async def resolve_error_location(
    store: AssociationStore,
    project_id: str,
    version: str,
    file_name: str,
    line: int,
    column: int | None = None,
) -> ResolvedLocation | None:
    """Map a runtime position to its original source position, or ``None``."""
    try:
        raw = await store.resolve_location(project_id, version, file_name, line, column)
    except LookupFailure as exc:
        logger.warning("Could not resolve %s:%s for %s@%s: %s", file_name, line, project_id, version, exc)
        return None
    if not raw:
        return None
    return _normalize(raw, file_name, line, column)


async def get_source_code_with_context(
    store: AssociationStore,
    project_id: str,
    version: str,
    file_path: str,
    line: int,
    context_lines: int = DEFAULT_CONTEXT_LINES,
) -> SourceCodeContext | None:
    """Fetch the window of ``context_lines`` lines around ``line``, clipped by the provider."""
    try:
        content = await store.get_file_content(project_id, version, file_path, line, context_lines)
    except LookupFailure as exc:
        logger.warning("Could not fetch %s for %s@%s: %s", file_path, project_id, version, exc)
        return None
    if content is None:
        return None
    return SourceCodeContext(
        file_path=file_path,
        content=content.content,
        start_line=content.start_line or 1,
        end_line=content.end_line or 1,
        target_line=line,
        context_lines=content.context_lines,
    )


async def _resolve_isolated(store: AssociationStore, location: ErrorLocation) -> ResolvedLocation | None:
    try:
        return await resolve_error_location(
            store,
            location.project_id,
            location.version,
            location.file_name,
            location.line,
            location.column,
        )
    except Exception:
        logger.exception("Unexpected error resolving %s:%s", location.file_name, location.line)
        return None


async def batch_resolve_error_locations(
    store: AssociationStore, locations: Sequence[ErrorLocation]
) -> list[ResolvedLocation | None]:
    """Resolve all locations concurrently; a failed element becomes ``None`` in place."""
    results = await asyncio.gather(*(_resolve_isolated(store, loc) for loc in locations))
    return list(results)


def _parse_stack_line(line: str) -> StackFrame | None:
    match = _V8_NAMED.search(line)
    if match:
        return StackFrame(
            function_name=match.group(1),
            file_name=match.group(2),
            line=int(match.group(3)),
            column=int(match.group(4)),
        )
    match = _V8_ANONYMOUS.search(line)
    if match:
        return StackFrame(file_name=match.group(1), line=int(match.group(2)), column=int(match.group(3)))
    match = _GECKO.search(line)
    if match:
        return StackFrame(
            function_name=match.group(1) or None,
            file_name=match.group(2),
            line=int(match.group(3)),
            column=int(match.group(4)),
        )
    return None


def parse_error_stack(stack_trace: str) -> list[StackFrame]:
    """Extract frames from a V8, Firefox or Safari stack trace, skipping other lines."""
    frames: list[StackFrame] = []
    for line in stack_trace.splitlines():
        frame = _parse_stack_line(line.strip())
        if frame is not None:
            frames.append(frame)
    return frames


async def resolve_stack_trace(
    store: AssociationStore, project_id: str, version: str, stack_trace: str
) -> list[ResolvedLocation | None]:
    """Parse ``stack_trace`` and resolve each frame, one result per frame."""
    locations = [
        ErrorLocation(
            project_id=project_id,
            version=version,
            file_name=frame.file_name,
            line=frame.line,
            column=frame.column,
        )
        for frame in parse_error_stack(stack_trace)
    ]
    return await batch_resolve_error_locations(store, locations)
