from __future__ import annotations

from fastapi import FastAPI

from source_resolver.api.lifespan import lifespan
from source_resolver.api.routes.associations import router as associations_router
from source_resolver.api.routes.diagnosis import router as diagnosis_router
from source_resolver.api.routes.health import router as health_router
from source_resolver.api.routes.location import router as location_router
from source_resolver.api.routes.root import router as root_router
from source_resolver.api.routes.versions import router as versions_router


def create_app() -> FastAPI:
    app = FastAPI(
        title="Source Resolver API",
        description="Resolve error locations to uploaded source and reconcile release versions.",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.include_router(root_router, include_in_schema=False)
    app.include_router(health_router, include_in_schema=False)
    app.include_router(associations_router)
    app.include_router(versions_router)
    app.include_router(location_router)
    app.include_router(diagnosis_router)

    return app
