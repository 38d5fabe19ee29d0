from __future__ import annotations

from typing import Any

from fastapi import APIRouter

router = APIRouter()


@router.get("/")
async def root() -> dict[str, Any]:
    """API directory for programmatic and human clients."""
    return {
        "meta": {
            "title": "Source Resolver API",
            "description": "Resolve error locations to uploaded source and reconcile release versions.",
            "version": "0.1.0",
        },
        "links": {
            "self": "/",
            "associations": "/projects/{project_id}/associations",
            "validate-version": "/projects/{project_id}/versions/validate",
            "file-tree": "/projects/{project_id}/versions/{version}/tree",
            "source": "/projects/{project_id}/versions/{version}/source",
            "resolve": "/locations/resolve",
            "batch-resolve": "/locations/batch-resolve",
            "resolve-stack": "/locations/stack",
            "diagnosis-context": "/diagnosis/context",
            "openapi": "/openapi.json",
            "docs": "/docs",
        },
    }
