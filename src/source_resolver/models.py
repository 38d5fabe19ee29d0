from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for payloads exchanged with the backend, which speaks camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class SourceVersion(CamelModel):
    id: str
    project_id: str
    version: str
    sourcemap_version: str | None = None
    is_active: bool = False
    created_at: datetime
    updated_at: datetime


class FileEntry(CamelModel):
    file_path: str


class FileNode(CamelModel):
    key: str
    title: str
    is_leaf: bool
    children: list["FileNode"] | None = None
    is_error_file: bool | None = None
    error_line: int | None = None


FileNode.model_rebuild()  # necessary for recursive types


class FileTreeView(CamelModel):
    tree: list[FileNode]
    expanded_keys: list[str] = Field(default_factory=list)
    selected_key: str | None = None
    error_file_found: bool = False


class RawLocation(CamelModel):
    """Location as answered by the sourcemap service, before normalization."""

    source: str | None = None
    line: int | None = None
    column: int | None = None
    name: str | None = None
    source_content: str | None = None
    context_lines: list[str] | None = None


class ResolvedLocation(CamelModel):
    original_file: str
    original_line: int
    original_column: int | None = None
    function_name: str | None = None
    source_content: str | None = None
    context_lines: list[str] | None = None


class FileContent(CamelModel):
    content: str
    start_line: int
    end_line: int
    context_lines: list[str] = Field(default_factory=list)


class SourceCodeContext(CamelModel):
    file_path: str
    content: str
    start_line: int
    end_line: int
    target_line: int
    context_lines: list[str] = Field(default_factory=list)


class VersionValidation(CamelModel):
    is_valid: bool
    available_versions: list[str] = Field(default_factory=list)
    suggested_version: str | None = None


class ErrorLocation(CamelModel):
    project_id: str
    version: str
    file_name: str
    line: int
    column: int | None = None
    error_message: str | None = None


class ErrorInfo(CamelModel):
    file_name: str
    line: int
    column: int | None = None
    error_message: str = ""
    stack_trace: str | None = None


class StackFrame(CamelModel):
    file_name: str
    line: int
    column: int
    function_name: str | None = None


class ErrorPosition(CamelModel):
    file: str
    line: int
    column: int | None = None


class RelatedFile(CamelModel):
    file: str
    content: str
    relevance: float = Field(ge=0.0, le=1.0)


class RawDiagnosisContext(CamelModel):
    related_files: list[RelatedFile] = Field(default_factory=list)


class DiagnosisContext(CamelModel):
    error_location: ErrorPosition
    source_code: str
    related_files: list[RelatedFile] = Field(default_factory=list)
    context: str


class UploadResult(CamelModel):
    association_id: str
    source_code_version_id: str
    sourcemap_version_id: str


class OperationResult(CamelModel):
    success: bool
    message: str = ""


class ArchiveValidation(CamelModel):
    is_valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    source_file_count: int = 0
    sourcemap_count: int = 0
