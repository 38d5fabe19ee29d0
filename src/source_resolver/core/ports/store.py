from typing import Protocol

from source_resolver.models import (
    ErrorInfo,
    FileContent,
    FileEntry,
    OperationResult,
    RawDiagnosisContext,
    RawLocation,
    SourceVersion,
    UploadResult,
)


class AssociationStore(Protocol):
    async def list_source_versions(self, project_id: str) -> list[SourceVersion]: ...

    async def upload_source_code_and_sourcemap(
        self,
        project_id: str,
        version: str,
        source_archive: bytes,
        sourcemap_archive: bytes,
        set_as_active: bool = False,
    ) -> UploadResult: ...

    # An unsuccessful result means the association is unknown; other rejections raise LookupFailure.
    async def set_active_association(self, project_id: str, association_id: str) -> OperationResult: ...

    async def delete_association(self, project_id: str, association_id: str) -> OperationResult: ...

    async def list_files(self, project_id: str, version: str) -> list[FileEntry]: ...

    async def resolve_location(
        self,
        project_id: str,
        version: str,
        file_name: str,
        line: int,
        column: int | None = None,
    ) -> RawLocation | None: ...

    async def get_file_content(
        self,
        project_id: str,
        version: str,
        file_path: str,
        line: int,
        context_lines: int,
    ) -> FileContent | None: ...

    async def prepare_context(
        self,
        project_id: str,
        version: str,
        error_info: ErrorInfo,
        context_size: int,
    ) -> RawDiagnosisContext: ...

    async def ping(self) -> bool: ...

    async def dispose(self) -> None: ...
