import logging
from typing import Any

import httpx
from pydantic import ValidationError

from source_resolver.core.errors import LookupFailure
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

logger = logging.getLogger(__name__)

_VERSIONS_PATH = "/api/source-code-version"
_LOCATION_PATH = "/api/error-location"
_INTEGRATION_PATH = "/api/source-code-sourcemap-integration"


def _items(data: Any, key: str) -> list[Any]:
    """Accept either a bare list or ``{key: [...]}`` as the envelope payload."""
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        return list(data.get(key) or [])
    return []


def _raw_location(data: Any) -> RawLocation | None:
    if not data:
        return None
    frames = data.get("resolvedFrames") if isinstance(data, dict) else None
    if frames is None:
        return RawLocation.model_validate(data)
    if not isinstance(frames, list):
        raise LookupFailure("resolvedFrames is not a list")
    if not frames:
        return None
    frame = frames[0]
    if not isinstance(frame, dict):
        raise LookupFailure("Resolved frame is not an object")
    if not frame.get("originalSource"):
        return None
    return RawLocation(
        source=frame.get("originalSource"),
        line=frame.get("originalLine"),
        column=frame.get("originalColumn"),
        name=frame.get("originalName"),
        source_content=frame.get("sourceContent"),
        context_lines=frame.get("contextLines"),
    )


class HttpAssociationStore:
    """Association store backed by the error-monitoring backend's HTTP API.

    Every lookup raises ``LookupFailure`` on transport errors, non-2xx statuses,
    malformed bodies and ``success: false`` envelopes.
    """

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        logger.debug("%s %s", method, url)
        try:
            return await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise LookupFailure(f"{method} {url} failed: {exc!r}") from exc

    @staticmethod
    def _envelope(method: str, url: str, response: httpx.Response) -> dict[str, Any]:
        try:
            body = response.json()
        except ValueError as exc:
            raise LookupFailure(f"{method} {url} returned a non-JSON body (HTTP {response.status_code})") from exc
        if not isinstance(body, dict):
            raise LookupFailure(f"{method} {url} returned an unexpected body")
        return body

    async def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        response = await self._send(method, url, **kwargs)
        if response.is_error:
            raise LookupFailure(f"{method} {url} returned HTTP {response.status_code}")
        body = self._envelope(method, url, response)
        if not body.get("success", False):
            raise LookupFailure(body.get("message") or f"{method} {url} was not successful")
        return body.get("data")

    async def _mutate(self, method: str, url: str) -> OperationResult:
        response = await self._send(method, url)
        if response.status_code == httpx.codes.NOT_FOUND:
            return OperationResult(success=False, message=f"{url} not found")
        if response.is_error:
            raise LookupFailure(f"{method} {url} returned HTTP {response.status_code}")
        body = self._envelope(method, url, response)
        if not body.get("success", False):
            raise LookupFailure(body.get("message") or f"{method} {url} was rejected")
        return OperationResult(success=True, message=str(body.get("message") or ""))

    async def list_source_versions(self, project_id: str) -> list[SourceVersion]:
        data = await self._request("GET", f"{_VERSIONS_PATH}/versions", params={"projectId": project_id})
        try:
            return [SourceVersion.model_validate(v) for v in _items(data, "versions")]
        except ValidationError as exc:
            raise LookupFailure(f"Malformed version list for project {project_id}") from exc

    async def upload_source_code_and_sourcemap(
        self,
        project_id: str,
        version: str,
        source_archive: bytes,
        sourcemap_archive: bytes,
        set_as_active: bool = False,
    ) -> UploadResult:
        files = {
            "sourceCodeArchive": (f"{project_id}-{version}-source-code.zip", source_archive, "application/zip"),
            "sourcemapArchive": (f"{project_id}-{version}-sourcemap.zip", sourcemap_archive, "application/zip"),
        }
        form = {"projectId": project_id, "version": version, "setAsActive": str(set_as_active).lower()}
        data = await self._request("POST", f"{_INTEGRATION_PATH}/upload", data=form, files=files)
        try:
            return UploadResult.model_validate(data)
        except ValidationError as exc:
            raise LookupFailure(f"Malformed upload response for {project_id}@{version}") from exc

    async def set_active_association(self, project_id: str, association_id: str) -> OperationResult:
        return await self._mutate("POST", f"{_INTEGRATION_PATH}/set-active/{project_id}/{association_id}")

    async def delete_association(self, project_id: str, association_id: str) -> OperationResult:
        return await self._mutate("DELETE", f"{_INTEGRATION_PATH}/association/{project_id}/{association_id}")

    async def list_files(self, project_id: str, version: str) -> list[FileEntry]:
        data = await self._request(
            "GET", f"{_VERSIONS_PATH}/files", params={"projectId": project_id, "version": version}
        )
        try:
            return [FileEntry.model_validate(f) for f in _items(data, "files")]
        except ValidationError as exc:
            raise LookupFailure(f"Malformed file list for {project_id}@{version}") from exc

    async def resolve_location(
        self,
        project_id: str,
        version: str,
        file_name: str,
        line: int,
        column: int | None = None,
    ) -> RawLocation | None:
        payload = {
            "projectId": project_id,
            "version": version,
            "fileName": file_name,
            "lineNumber": line,
            "columnNumber": column,
        }
        data = await self._request("POST", f"{_LOCATION_PATH}/resolve", json=payload)
        try:
            return _raw_location(data)
        except ValidationError as exc:
            raise LookupFailure(f"Malformed location for {file_name}:{line}") from exc

    async def get_file_content(
        self,
        project_id: str,
        version: str,
        file_path: str,
        line: int,
        context_lines: int,
    ) -> FileContent | None:
        data = await self._request(
            "GET",
            f"{_VERSIONS_PATH}/file-content/{project_id}/{version}",
            params={"filePath": file_path, "lineNumber": line, "contextSize": context_lines},
        )
        if not data:
            return None
        if isinstance(data, dict) and "contextLines" not in data and "lines" in data:
            data = {**data, "contextLines": data["lines"]}
        try:
            return FileContent.model_validate(data)
        except ValidationError as exc:
            raise LookupFailure(f"Malformed content window for {file_path}") from exc

    async def prepare_context(
        self,
        project_id: str,
        version: str,
        error_info: ErrorInfo,
        context_size: int,
    ) -> RawDiagnosisContext:
        payload = {
            "projectId": project_id,
            "version": version,
            "errorInfo": error_info.model_dump(by_alias=True, exclude_none=True),
            "contextSize": context_size,
        }
        data = await self._request("POST", f"{_INTEGRATION_PATH}/prepare-ai-context", json=payload)
        try:
            return RawDiagnosisContext.model_validate(data or {})
        except ValidationError as exc:
            raise LookupFailure(f"Malformed diagnosis context for {project_id}@{version}") from exc

    async def ping(self) -> bool:
        try:
            response = await self._client.get("/health")
        except httpx.HTTPError:
            return False
        return response.is_success

    async def dispose(self) -> None:
        await self._client.aclose()
