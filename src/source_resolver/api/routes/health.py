from fastapi import APIRouter, Depends, Response, status

from source_resolver.api.dependencies import get_store
from source_resolver.api.schemas import HealthResponse, ReadinessResponse
from source_resolver.core.ports.store import AssociationStore

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    return HealthResponse()


@router.get("/healthz/live", response_model=HealthResponse)
async def liveness() -> HealthResponse:
    """Liveness probe: is the process alive?"""
    return HealthResponse()


@router.get("/healthz/ready", response_model=ReadinessResponse)
async def readiness(
    response: Response,
    store: AssociationStore = Depends(get_store),
) -> ReadinessResponse:
    """Readiness probe: can the association store be reached?"""
    if await store.ping():
        return ReadinessResponse(status="ok", store="up")
    response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return ReadinessResponse(status="degraded", store="down")
