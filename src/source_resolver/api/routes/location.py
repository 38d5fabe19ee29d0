from fastapi import APIRouter, Depends, Query

from source_resolver.api.dependencies import get_store
from source_resolver.api.schemas import StackTraceRequest
from source_resolver.core.location import (
    batch_resolve_error_locations,
    get_source_code_with_context,
    resolve_error_location,
    resolve_stack_trace,
)
from source_resolver.core.ports.store import AssociationStore
from source_resolver.models import ErrorLocation, ResolvedLocation, SourceCodeContext

router = APIRouter(tags=["location"])


@router.post("/locations/resolve", response_model=ResolvedLocation | None)
async def resolve(
    body: ErrorLocation,
    store: AssociationStore = Depends(get_store),
) -> ResolvedLocation | None:
    """Map a runtime position to original source; ``null`` when it cannot be resolved."""
    return await resolve_error_location(store, body.project_id, body.version, body.file_name, body.line, body.column)


@router.post("/locations/batch-resolve", response_model=list[ResolvedLocation | None])
async def batch_resolve(
    body: list[ErrorLocation],
    store: AssociationStore = Depends(get_store),
) -> list[ResolvedLocation | None]:
    return await batch_resolve_error_locations(store, body)


@router.post("/locations/stack", response_model=list[ResolvedLocation | None])
async def resolve_stack(
    body: StackTraceRequest,
    store: AssociationStore = Depends(get_store),
) -> list[ResolvedLocation | None]:
    return await resolve_stack_trace(store, body.project_id, body.version, body.stack_trace)


@router.get("/projects/{project_id}/versions/{version}/source", response_model=SourceCodeContext | None)
async def source(
    project_id: str,
    version: str,
    file_path: str = Query(...),
    line: int = Query(..., ge=1),
    context_lines: int = Query(10, ge=0),
    store: AssociationStore = Depends(get_store),
) -> SourceCodeContext | None:
    return await get_source_code_with_context(store, project_id, version, file_path, line, context_lines)
