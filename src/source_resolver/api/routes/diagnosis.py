from fastapi import APIRouter, Depends

from source_resolver.api.dependencies import get_store
from source_resolver.api.schemas import DiagnosisRequest
from source_resolver.core.diagnosis import prepare_ai_context
from source_resolver.core.ports.store import AssociationStore
from source_resolver.models import DiagnosisContext

router = APIRouter(prefix="/diagnosis", tags=["diagnosis"])


@router.post("/context", response_model=DiagnosisContext)
async def context(
    body: DiagnosisRequest,
    store: AssociationStore = Depends(get_store),
) -> DiagnosisContext:
    """Assemble the location, snippet and related files for an external diagnosis engine."""
    return await prepare_ai_context(store, body.project_id, body.version, body.error_info, body.context_size)
