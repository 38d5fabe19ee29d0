from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status

from source_resolver.api.dependencies import get_store
from source_resolver.core import associations as _associations
from source_resolver.core.errors import AssociationNotFound, MutationFailure, ValidationFailure
from source_resolver.core.ports.store import AssociationStore
from source_resolver.models import OperationResult, SourceVersion, UploadResult

router = APIRouter(prefix="/projects/{project_id}/associations", tags=["associations"])


def _http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, AssociationNotFound):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.message)
    if isinstance(exc, ValidationFailure):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": exc.message, "errors": exc.errors},
        )
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))


@router.get("", response_model=list[SourceVersion])
async def list_associations(
    project_id: str,
    store: AssociationStore = Depends(get_store),
) -> list[SourceVersion]:
    return await _associations.list_associations(store, project_id)


@router.post("", response_model=UploadResult, status_code=status.HTTP_201_CREATED)
async def upload(
    project_id: str,
    version: str = Form(...),
    set_as_active: bool = Form(False),
    source_code_archive: UploadFile = File(...),
    sourcemap_archive: UploadFile = File(...),
    store: AssociationStore = Depends(get_store),
) -> UploadResult:
    """Upload a source archive and its sourcemap archive under one version label."""
    try:
        return await _associations.upload(
            store,
            project_id,
            await source_code_archive.read(),
            await sourcemap_archive.read(),
            version,
            set_as_active,
        )
    except (ValidationFailure, MutationFailure) as exc:
        raise _http_error(exc) from exc


@router.post("/{association_id}/activate", response_model=OperationResult)
async def activate(
    project_id: str,
    association_id: str,
    store: AssociationStore = Depends(get_store),
) -> OperationResult:
    try:
        return await _associations.set_active(store, project_id, association_id)
    except (ValidationFailure, MutationFailure) as exc:
        raise _http_error(exc) from exc


@router.delete("/{association_id}", response_model=OperationResult)
async def delete(
    project_id: str,
    association_id: str,
    store: AssociationStore = Depends(get_store),
) -> OperationResult:
    try:
        return await _associations.delete(store, project_id, association_id)
    except (ValidationFailure, MutationFailure) as exc:
        raise _http_error(exc) from exc
