from __future__ import annotations

from collections.abc import Mapping
from functools import lru_cache
import logging
from typing import Any

from opentelemetry import trace

from metadata_resolver.core.config import Settings, get_settings
from metadata_resolver.core.inline import decode_inline_reference, is_self_contained
from metadata_resolver.core.references import normalize_reference
from metadata_resolver.schemas.metadata import DisputePayload, ListingMetadata, OnchainListing
from metadata_resolver.services.coercion import (
    coerce_dispute_payload,
    coerce_listing_metadata,
    fallback_metadata,
    text_metadata,
)
from metadata_resolver.services.errors import ResolutionFailedError
from metadata_resolver.services.resolver import GatewayResolver

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class MetadataService:
    """Entry point used by callers holding an on-chain reference.

    Network and decode failures never escape: listing resolution degrades to
    a synthesized record and JSON resolution degrades to None.
    """

    def __init__(self, resolver: GatewayResolver, settings: Settings) -> None:
        self.resolver = resolver
        self.settings = settings

    def normalize(self, reference: Any) -> str | None:
        return normalize_reference(reference, arweave_gateway=self.settings.arweave_gateway)

    async def resolve(self, reference: Any, listing: OnchainListing) -> ListingMetadata | None:
        normalized = self.normalize(reference)
        if normalized is None:
            return None

        with tracer.start_as_current_span("metadata.resolve") as span:
            span.set_attribute("listing.id", str(listing.id))
            span.set_attribute("metadata.reference", normalized)
            try:
                metadata, source = await self._resolve_listing(normalized, listing)
            except Exception:
                logger.exception("metadata resolution crashed listing_id=%s", listing.id)
                metadata, source = fallback_metadata(listing), "fallback"
            span.set_attribute("metadata.source", source)
            return metadata

    async def _resolve_listing(self, normalized: str, listing: OnchainListing) -> tuple[ListingMetadata, str]:
        inline = decode_inline_reference(normalized)
        if inline is not None:
            return coerce_listing_metadata(inline, listing), "inline"
        if is_self_contained(normalized):
            logger.info("undecodable inline metadata listing_id=%s", listing.id)
            return fallback_metadata(listing), "fallback"

        try:
            payload = await self.resolver.fetch_json(normalized)
        except ResolutionFailedError as exc:
            text = exc.text_fallback
            if text is not None:
                return text_metadata(text, listing), "text"
            return fallback_metadata(listing), "fallback"

        if not isinstance(payload, Mapping):
            logger.info("metadata payload is not an object listing_id=%s", listing.id)
            return fallback_metadata(listing), "fallback"
        return coerce_listing_metadata(payload, listing), "gateway"

    async def resolve_json(self, reference: Any) -> Any | None:
        normalized = self.normalize(reference)
        if normalized is None:
            return None
        inline = decode_inline_reference(normalized)
        if inline is not None:
            return inline
        if is_self_contained(normalized):
            return None
        try:
            return await self.resolver.fetch_json(normalized)
        except ResolutionFailedError:
            return None
        except Exception:
            logger.exception("json resolution crashed reference=%s", normalized)
            return None

    async def resolve_dispute(self, reference: Any) -> DisputePayload | None:
        payload = await self.resolve_json(reference)
        if not isinstance(payload, Mapping):
            return None
        return coerce_dispute_payload(payload, gateway=self.settings.primary_gateway)

    def clear_cache(self) -> None:
        self.resolver.cache.clear()


@lru_cache
def get_metadata_service() -> MetadataService:
    settings = get_settings()
    return MetadataService(GatewayResolver.from_settings(settings), settings)


async def resolve(reference: Any, listing: OnchainListing) -> ListingMetadata | None:
    return await get_metadata_service().resolve(reference, listing)
