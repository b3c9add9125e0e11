from fastapi import APIRouter, Depends

from metadata_resolver.schemas.metadata import (
    DisputePayload,
    ListingMetadata,
    ResolvedJson,
    ResolveListingRequest,
    ResolveReferenceRequest,
)
from metadata_resolver.services.metadata import MetadataService, get_metadata_service

router = APIRouter()


@router.post("/resolve", response_model=ListingMetadata | None)
async def resolve_listing_metadata(
    payload: ResolveListingRequest,
    service: MetadataService = Depends(get_metadata_service),
) -> ListingMetadata | None:
    return await service.resolve(payload.reference, payload.listing)


@router.post("/json", response_model=ResolvedJson)
async def resolve_reference_json(
    payload: ResolveReferenceRequest,
    service: MetadataService = Depends(get_metadata_service),
) -> ResolvedJson:
    normalized = service.normalize(payload.reference)
    resolved = await service.resolve_json(payload.reference)
    return ResolvedJson(
        reference=None if payload.reference is None else str(payload.reference),
        normalized=normalized,
        resolved=resolved is not None,
        payload=resolved,
    )


@router.post("/dispute", response_model=DisputePayload | None)
async def resolve_dispute_payload(
    payload: ResolveReferenceRequest,
    service: MetadataService = Depends(get_metadata_service),
) -> DisputePayload | None:
    return await service.resolve_dispute(payload.reference)


@router.delete("/cache")
async def clear_resolution_cache(service: MetadataService = Depends(get_metadata_service)) -> dict[str, str]:
    service.clear_cache()
    return {"status": "cleared"}
