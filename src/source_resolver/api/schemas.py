from __future__ import annotations

from pydantic import BaseModel, Field

from source_resolver.models import CamelModel, ErrorInfo


class HealthResponse(BaseModel):
    status: str = "ok"


class ReadinessResponse(BaseModel):
    status: str = "ok"
    store: str = "up"


class StackTraceRequest(CamelModel):
    project_id: str
    version: str
    stack_trace: str


class DiagnosisRequest(CamelModel):
    project_id: str
    version: str
    error_info: ErrorInfo
    context_size: int = Field(10, ge=0)


class FileSearchResponse(BaseModel):
    files: list[str]
