import asyncio
import io
import posixpath
import re
import uuid
import zipfile
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone

from source_resolver.core.errors import LookupFailure, MutationFailure
from source_resolver.models import (
    ErrorInfo,
    FileContent,
    FileEntry,
    OperationResult,
    RawDiagnosisContext,
    RawLocation,
    RelatedFile,
    SourceVersion,
    UploadResult,
)

_SOURCEMAP_SUFFIX = ".map"
_IMPORT_SPECIFIER = re.compile(r"""(?:from\s+|import\s+|require\(\s*)['"](\.{1,2}/[^'"]+)['"]""")
_RESOLVE_SUFFIXES = ("", ".js", ".ts", ".jsx", ".tsx", "/index.js", "/index.ts")
_MAX_RELATED_FILES = 5
_IMPORT_RELEVANCE = 1.0
_SIBLING_RELEVANCE = 0.5


@dataclass(frozen=True)
class InMemoryAssociation:
    association_id: str
    sourcemap_version_id: str
    project_id: str
    version: str
    is_active: bool
    created: datetime
    updated: datetime
    files: dict[str, str] = field(default_factory=dict)
    sourcemaps: tuple[str, ...] = ()

    def to_source_version(self) -> SourceVersion:
        return SourceVersion(
            id=self.association_id,
            project_id=self.project_id,
            version=self.version,
            sourcemap_version=self.version if self.sourcemaps else None,
            is_active=self.is_active,
            created_at=self.created,
            updated_at=self.updated,
        )


PositionKey = tuple[str, str, str, int, int | None]


def _read_archive(archive: bytes) -> dict[str, str]:
    contents: dict[str, str] = {}
    with zipfile.ZipFile(io.BytesIO(archive)) as zf:
        for info in zf.infolist():
            if info.is_dir():
                continue
            contents[info.filename] = zf.read(info).decode("utf-8", errors="replace")
    return contents


def _clip_window(content: str, line: int, context_lines: int) -> FileContent:
    lines = content.split("\n")
    target = min(max(line, 1), len(lines))
    start = max(1, target - context_lines)
    end = min(len(lines), target + context_lines)
    return FileContent(content=content, start_line=start, end_line=end, context_lines=lines[start - 1 : end])


class InMemoryAssociationStore:
    """Association store kept in process memory.

    Unpacks uploaded zip archives, keeps the single-active invariant per project
    and answers location lookups from positions registered with
    ``register_position``; it does no sourcemap decoding of its own.
    """

    def __init__(self) -> None:
        self.associations: dict[str, InMemoryAssociation] = {}
        self.positions: dict[PositionKey, RawLocation] = {}
        self._lock = asyncio.Lock()

    def register_position(
        self,
        project_id: str,
        version: str,
        file_name: str,
        line: int,
        column: int | None,
        location: RawLocation,
    ) -> None:
        self.positions[(project_id, version, file_name, line, column)] = location

    def _find(self, project_id: str, version: str) -> InMemoryAssociation | None:
        for assoc in self.associations.values():
            if assoc.project_id == project_id and assoc.version == version:
                return assoc
        return None

    def _require(self, project_id: str, version: str) -> InMemoryAssociation:
        assoc = self._find(project_id, version)
        if assoc is None:
            raise LookupFailure(f"Version {version} not found for project {project_id}")
        return assoc

    def _activate(self, project_id: str, association_id: str, now: datetime) -> None:
        for key, assoc in self.associations.items():
            if assoc.project_id != project_id:
                continue
            should_be_active = key == association_id
            if assoc.is_active != should_be_active:
                self.associations[key] = replace(assoc, is_active=should_be_active, updated=now)

    async def list_source_versions(self, project_id: str) -> list[SourceVersion]:
        return [a.to_source_version() for a in self.associations.values() if a.project_id == project_id]

    async def upload_source_code_and_sourcemap(
        self,
        project_id: str,
        version: str,
        source_archive: bytes,
        sourcemap_archive: bytes,
        set_as_active: bool = False,
    ) -> UploadResult:
        try:
            files = {p: c for p, c in _read_archive(source_archive).items() if not p.endswith(_SOURCEMAP_SUFFIX)}
            sourcemaps = tuple(p for p in _read_archive(sourcemap_archive) if p.endswith(_SOURCEMAP_SUFFIX))
        except zipfile.BadZipFile as exc:
            raise MutationFailure(f"Unreadable archive: {exc}") from exc

        async with self._lock:
            if self._find(project_id, version) is not None:
                raise MutationFailure(f"Version {version} already exists for project {project_id}")

            now = datetime.now(timezone.utc)
            assoc = InMemoryAssociation(
                association_id=str(uuid.uuid4()),
                sourcemap_version_id=str(uuid.uuid4()),
                project_id=project_id,
                version=version,
                is_active=False,
                created=now,
                updated=now,
                files=files,
                sourcemaps=sourcemaps,
            )
            self.associations[assoc.association_id] = assoc
            if set_as_active:
                self._activate(project_id, assoc.association_id, now)

        return UploadResult(
            association_id=assoc.association_id,
            source_code_version_id=assoc.association_id,
            sourcemap_version_id=assoc.sourcemap_version_id,
        )

    async def set_active_association(self, project_id: str, association_id: str) -> OperationResult:
        async with self._lock:
            assoc = self.associations.get(association_id)
            if assoc is None or assoc.project_id != project_id:
                return OperationResult(
                    success=False, message=f"Association {association_id} not found for project {project_id}"
                )
            self._activate(project_id, association_id, datetime.now(timezone.utc))
        return OperationResult(success=True, message="Active association updated")

    async def delete_association(self, project_id: str, association_id: str) -> OperationResult:
        async with self._lock:
            assoc = self.associations.get(association_id)
            if assoc is None or assoc.project_id != project_id:
                return OperationResult(
                    success=False, message=f"Association {association_id} not found for project {project_id}"
                )
            del self.associations[association_id]
        return OperationResult(success=True, message="Association deleted")

    async def list_files(self, project_id: str, version: str) -> list[FileEntry]:
        assoc = self._require(project_id, version)
        return [FileEntry(file_path=path) for path in assoc.files]

    async def resolve_location(
        self,
        project_id: str,
        version: str,
        file_name: str,
        line: int,
        column: int | None = None,
    ) -> RawLocation | None:
        self._require(project_id, version)
        exact = self.positions.get((project_id, version, file_name, line, column))
        if exact is not None:
            return exact
        return self.positions.get((project_id, version, file_name, line, None))

    async def get_file_content(
        self,
        project_id: str,
        version: str,
        file_path: str,
        line: int,
        context_lines: int,
    ) -> FileContent | None:
        assoc = self._require(project_id, version)
        content = assoc.files.get(file_path)
        if content is None:
            return None
        return _clip_window(content, line, context_lines)

    async def prepare_context(
        self,
        project_id: str,
        version: str,
        error_info: ErrorInfo,
        context_size: int,
    ) -> RawDiagnosisContext:
        assoc = self._require(project_id, version)
        resolved = await self.resolve_location(
            project_id, version, error_info.file_name, error_info.line, error_info.column
        )
        error_file = resolved.source if resolved and resolved.source else error_info.file_name
        return RawDiagnosisContext(related_files=self._related_files(assoc, error_file))

    def _related_files(self, assoc: InMemoryAssociation, error_file: str) -> list[RelatedFile]:
        content = assoc.files.get(error_file)
        if content is None:
            return []

        base_dir = posixpath.dirname(error_file)
        ranked: dict[str, float] = {}
        for specifier in _IMPORT_SPECIFIER.findall(content):
            target = posixpath.normpath(posixpath.join(base_dir, specifier))
            for suffix in _RESOLVE_SUFFIXES:
                candidate = target + suffix
                if candidate in assoc.files and candidate != error_file:
                    ranked.setdefault(candidate, _IMPORT_RELEVANCE)
                    break
        for path in sorted(assoc.files):
            if path != error_file and posixpath.dirname(path) == base_dir:
                ranked.setdefault(path, _SIBLING_RELEVANCE)

        return [
            RelatedFile(file=path, content=assoc.files[path], relevance=relevance)
            for path, relevance in list(ranked.items())[:_MAX_RELATED_FILES]
        ]

    async def ping(self) -> bool:
        return True

    async def dispose(self) -> None:
        pass
