from fastapi import APIRouter, Depends, HTTPException, Query

from source_resolver.api.dependencies import get_store
from source_resolver.api.schemas import FileSearchResponse
from source_resolver.core.errors import ValidationFailure
from source_resolver.core.ports.store import AssociationStore
from source_resolver.core.tree import load_file_tree, search_files
from source_resolver.core.versions import validate_version
from source_resolver.models import FileTreeView, VersionValidation

router = APIRouter(prefix="/projects/{project_id}/versions", tags=["versions"])


@router.get("/validate", response_model=VersionValidation)
async def validate(
    project_id: str,
    version: str = Query(...),
    store: AssociationStore = Depends(get_store),
) -> VersionValidation:
    try:
        return await validate_version(store, project_id, version)
    except ValidationFailure as exc:
        raise HTTPException(status_code=400, detail=exc.message) from exc


@router.get("/{version}/tree", response_model=FileTreeView)
async def tree(
    project_id: str,
    version: str,
    error_file: str | None = Query(None),
    error_line: int | None = Query(None, ge=1),
    store: AssociationStore = Depends(get_store),
) -> FileTreeView:
    """File hierarchy of a version, with ``error_file`` marked and its ancestors expanded."""
    return await load_file_tree(store, project_id, version, error_file, error_line)


@router.get("/{version}/files/search", response_model=FileSearchResponse)
async def search(
    project_id: str,
    version: str,
    q: str = Query(..., min_length=1),
    store: AssociationStore = Depends(get_store),
) -> FileSearchResponse:
    return FileSearchResponse(files=await search_files(store, project_id, version, q))
