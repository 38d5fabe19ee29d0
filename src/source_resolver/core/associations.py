"""Upload, activate and delete source-code/sourcemap associations.

Lifecycle: NONE -> UPLOADED -> ACTIVE <-> UPLOADED -> DELETED. The single-active
invariant is enforced by the store; this module validates input and turns store
answers into results or errors.
"""

import io
import logging
import zipfile
from collections.abc import Awaitable, Callable

from source_resolver.core.errors import AssociationNotFound, LookupFailure, MutationFailure, ValidationFailure
from source_resolver.core.ports.store import AssociationStore
from source_resolver.models import ArchiveValidation, OperationResult, SourceVersion, UploadResult

logger = logging.getLogger(__name__)

SOURCEMAP_SUFFIX = ".map"


def archive_members(archive: bytes) -> list[str]:
    """Names of the regular files inside a zip archive."""
    with zipfile.ZipFile(io.BytesIO(archive)) as zf:
        return [info.filename for info in zf.infolist() if not info.is_dir()]


def validate_archives(source_archive: bytes, sourcemap_archive: bytes, version: str) -> ArchiveValidation:
    errors: list[str] = []
    warnings: list[str] = []
    source_count = 0
    sourcemap_count = 0

    if not version.strip():
        errors.append("Version label must not be empty.")

    try:
        source_count = sum(1 for name in archive_members(source_archive) if not name.endswith(SOURCEMAP_SUFFIX))
    except zipfile.BadZipFile:
        errors.append("Source archive is not a valid zip file.")
    else:
        if source_count == 0:
            errors.append("No source files found in the source archive.")

    try:
        sourcemap_count = sum(1 for name in archive_members(sourcemap_archive) if name.endswith(SOURCEMAP_SUFFIX))
    except zipfile.BadZipFile:
        errors.append("Sourcemap archive is not a valid zip file.")
    else:
        if sourcemap_count == 0:
            warnings.append("No sourcemap files found; error locations cannot be resolved for this version.")

    return ArchiveValidation(
        is_valid=not errors,
        errors=errors,
        warnings=warnings,
        source_file_count=source_count,
        sourcemap_count=sourcemap_count,
    )


async def list_associations(store: AssociationStore, project_id: str) -> list[SourceVersion]:
    try:
        return await store.list_source_versions(project_id)
    except LookupFailure as exc:
        logger.warning("Could not list associations for project %s: %s", project_id, exc)
        return []


async def upload(
    store: AssociationStore,
    project_id: str,
    source_archive: bytes,
    sourcemap_archive: bytes,
    version: str,
    set_as_active: bool = False,
) -> UploadResult:
    if not project_id:
        raise ValidationFailure("Project id must not be empty.")
    validation = validate_archives(source_archive, sourcemap_archive, version)
    if not validation.is_valid:
        raise ValidationFailure("Archive validation failed.", validation.errors)
    for warning in validation.warnings:
        logger.warning("Upload %s@%s: %s", project_id, version, warning)

    try:
        result = await store.upload_source_code_and_sourcemap(
            project_id, version, source_archive, sourcemap_archive, set_as_active
        )
    except LookupFailure as exc:
        raise MutationFailure(f"Upload of {project_id}@{version} failed: {exc}") from exc

    logger.info(
        "Uploaded %s@%s as association %s (active=%s)", project_id, version, result.association_id, set_as_active
    )
    return result


async def _mutate(
    action: str,
    call: Callable[[str, str], Awaitable[OperationResult]],
    project_id: str,
    association_id: str,
) -> OperationResult:
    try:
        result = await call(project_id, association_id)
    except LookupFailure as exc:
        raise MutationFailure(f"Could not {action} association {association_id}: {exc}") from exc
    if not result.success:
        raise AssociationNotFound(
            result.message or f"Association {association_id} not found for project {project_id}."
        )
    logger.info("Association %s of project %s: %s", association_id, project_id, action)
    return result


async def set_active(store: AssociationStore, project_id: str, association_id: str) -> OperationResult:
    """Activate ``association_id``; the store demotes the previously active one."""
    return await _mutate("activate", store.set_active_association, project_id, association_id)


async def delete(store: AssociationStore, project_id: str, association_id: str) -> OperationResult:
    """Remove ``association_id``; deleting the active one leaves the project with none active."""
    return await _mutate("delete", store.delete_association, project_id, association_id)
