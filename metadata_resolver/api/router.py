from fastapi import APIRouter

from metadata_resolver.api.routes import health, metadata

api_router = APIRouter()
api_router.include_router(health.router, tags=["health"])
api_router.include_router(metadata.router, prefix="/metadata", tags=["metadata"])
