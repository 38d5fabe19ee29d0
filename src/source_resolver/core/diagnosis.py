import logging
import re

from source_resolver.core.errors import LookupFailure
from source_resolver.core.location import get_source_code_with_context, resolve_error_location
from source_resolver.core.ports.store import AssociationStore
from source_resolver.models import (
    DiagnosisContext,
    ErrorInfo,
    ErrorPosition,
    RelatedFile,
    SourceCodeContext,
)

logger = logging.getLogger(__name__)

_IMPORT_LINE = re.compile(r"^\s*(import\s|export\s.+\sfrom\s|from\s+\S+\s+import\s)|\brequire\(")


def extract_import_lines(lines: list[str]) -> list[str]:
    """Distinct import/require statements, in order of appearance."""
    seen: dict[str, None] = {}
    for line in lines:
        if _IMPORT_LINE.search(line):
            seen.setdefault(line.strip(), None)
    return list(seen)


def _render_snippet(window: SourceCodeContext) -> list[str]:
    width = len(str(window.start_line + len(window.context_lines) - 1))
    rendered = []
    for offset, text in enumerate(window.context_lines):
        number = window.start_line + offset
        marker = ">" if number == window.target_line else " "
        rendered.append(f"{marker} {number:>{width}} | {text}")
    return rendered


def render_context(
    version: str,
    location: ErrorPosition,
    error_info: ErrorInfo,
    window: SourceCodeContext | None,
    related_files: list[RelatedFile],
) -> str:
    """Plain-text summary of an error, readable by people and by the diagnosis engine."""
    position = f"{location.file}:{location.line}"
    if location.column is not None:
        position += f":{location.column}"

    sections = [f"Error location: {position}", f"Version: {version}"]
    if error_info.error_message:
        sections.append(f"Error message: {error_info.error_message}")
    if error_info.file_name != location.file or error_info.line != location.line:
        sections.append(f"Reported at: {error_info.file_name}:{error_info.line}")

    if window is not None and window.context_lines:
        sections.append("")
        sections.append(f"Source (lines {window.start_line}-{window.end_line}):")
        sections.extend(_render_snippet(window))
        imports = extract_import_lines(window.context_lines)
        if imports:
            sections.append("")
            sections.append("Imports:")
            sections.extend(f"  {line}" for line in imports)

    if related_files:
        sections.append("")
        sections.append("Related files:")
        sections.extend(f"  {rf.file} (relevance {rf.relevance:.2f})" for rf in related_files)

    if error_info.stack_trace:
        sections.append("")
        sections.append("Stack trace:")
        sections.extend(f"  {line.strip()}" for line in error_info.stack_trace.strip().splitlines())

    return "\n".join(sections)


async def prepare_ai_context(
    store: AssociationStore,
    project_id: str,
    version: str,
    error_info: ErrorInfo,
    context_size: int = 10,
) -> DiagnosisContext:
    """Bundle the resolved location, its snippet and related files for the diagnosis engine.

    Related files are passed through exactly as the store ranks them.
    """
    resolved = await resolve_error_location(
        store, project_id, version, error_info.file_name, error_info.line, error_info.column
    )
    if resolved is not None:
        location = ErrorPosition(
            file=resolved.original_file, line=resolved.original_line, column=resolved.original_column
        )
    else:
        location = ErrorPosition(file=error_info.file_name, line=error_info.line, column=error_info.column)

    window = await get_source_code_with_context(store, project_id, version, location.file, location.line, context_size)
    if window is not None and window.context_lines:
        source_code = "\n".join(window.context_lines)
    elif resolved is not None and resolved.context_lines:
        source_code = "\n".join(resolved.context_lines)
    else:
        source_code = ""

    try:
        raw = await store.prepare_context(project_id, version, error_info, context_size)
        related_files = list(raw.related_files)
    except LookupFailure as exc:
        logger.warning("Could not fetch related files for %s@%s: %s", project_id, version, exc)
        related_files = []

    return DiagnosisContext(
        error_location=location,
        source_code=source_code,
        related_files=related_files,
        context=render_context(version, location, error_info, window, related_files),
    )
