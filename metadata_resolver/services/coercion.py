from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
import math
from typing import Any, Generic, TypeVar, Union

from metadata_resolver.core.references import DEFAULT_GATEWAY, to_gateway_url
from metadata_resolver.schemas.metadata import Budget, DisputePayload, ListingMetadata, OnchainListing

T = TypeVar("T")

DEFAULT_CURRENCY = "USD"
# Timestamps above this are taken to be milliseconds.
MILLISECONDS_THRESHOLD = 10**12


class Missing(Enum):
    ABSENT = "absent"
    INVALID = "invalid"


ABSENT = Missing.ABSENT
INVALID = Missing.INVALID


@dataclass(slots=True, frozen=True)
class Present(Generic[T]):
    value: T


FieldResult = Union[Present[T], Missing]


def read_string(raw: Mapping[str, Any], key: str) -> FieldResult[str]:
    value = raw.get(key)
    if value is None or value == "":
        return ABSENT
    if isinstance(value, str):
        return Present(value)
    return INVALID


def read_number(raw: Mapping[str, Any], key: str) -> FieldResult[float]:
    value = raw.get(key)
    if value is None:
        return ABSENT
    if isinstance(value, bool):
        return INVALID
    if not isinstance(value, (int, float, str)) or (isinstance(value, str) and not value.strip()):
        return INVALID
    try:
        number = float(value)
    except (OverflowError, ValueError):
        return INVALID
    return Present(number) if math.isfinite(number) else INVALID


def read_string_list(raw: Mapping[str, Any], key: str) -> FieldResult[list[str]]:
    value = raw.get(key)
    if value is None:
        return ABSENT
    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        return Present(list(value))
    return INVALID


def read_object(raw: Mapping[str, Any], key: str) -> FieldResult[Mapping[str, Any]]:
    value = raw.get(key)
    if value is None:
        return ABSENT
    if isinstance(value, Mapping):
        return Present(value)
    return INVALID


def first_present(*results: FieldResult[T]) -> T | None:
    for result in results:
        if isinstance(result, Present):
            return result.value
    return None


def synthesized_title(listing: OnchainListing) -> str:
    return f"{listing.kind_label} #{listing.id}"


def resolve_title(raw: Mapping[str, Any], listing: OnchainListing) -> str:
    return first_present(read_string(raw, "title"), read_string(raw, "name")) or synthesized_title(listing)


def resolve_description(raw: Mapping[str, Any]) -> str:
    return first_present(read_string(raw, "description"), read_string(raw, "details")) or ""


def resolve_category(raw: Mapping[str, Any], listing: OnchainListing) -> int:
    """Integral numbers only; fractional or non-numeric values keep the on-chain category."""
    number = first_present(read_number(raw, "category"))
    if number is None or not number.is_integer():
        return listing.category
    return int(number)


def resolve_requirements(raw: Mapping[str, Any]) -> list[str]:
    return first_present(read_string_list(raw, "requirements"), read_string_list(raw, "tags")) or []


def resolve_string_list(raw: Mapping[str, Any], key: str) -> list[str]:
    return first_present(read_string_list(raw, key)) or []


def resolve_budget(raw: Mapping[str, Any]) -> Budget | None:
    budget = first_present(read_object(raw, "budget"), read_object(raw, "pricing"))
    if budget is None:
        return None
    return Budget(
        min=first_present(read_number(budget, "min")),
        max=first_present(read_number(budget, "max")),
        currency=first_present(read_string(budget, "currency")) or DEFAULT_CURRENCY,
    )


def coerce_listing_metadata(raw: Mapping[str, Any], listing: OnchainListing) -> ListingMetadata:
    """Map an untrusted metadata document onto a fully populated record.

    Fields missing or mistyped in ``raw`` fall back to empty values; the
    category falls back to the on-chain value.
    """
    return ListingMetadata(
        title=resolve_title(raw, listing),
        description=resolve_description(raw),
        image=first_present(read_string(raw, "image")),
        category=resolve_category(raw, listing),
        type=listing.listing_type,
        requirements=resolve_requirements(raw),
        tags=resolve_string_list(raw, "tags"),
        deliverables=resolve_string_list(raw, "deliverables"),
        timeline=first_present(read_string(raw, "timeline")),
        delivery_time=first_present(read_string(raw, "deliveryTime")),
        budget=resolve_budget(raw),
        attachments=resolve_string_list(raw, "attachments"),
    )


def text_metadata(text: str, listing: OnchainListing) -> ListingMetadata:
    return ListingMetadata(
        title=synthesized_title(listing),
        description=text,
        category=listing.category,
        type=listing.listing_type,
    )


def fallback_metadata(listing: OnchainListing) -> ListingMetadata:
    return ListingMetadata(
        title=synthesized_title(listing),
        category=listing.category,
        type=listing.listing_type,
    )


def coerce_dispute_payload(raw: Mapping[str, Any], *, gateway: str = DEFAULT_GATEWAY) -> DisputePayload:
    attachments = resolve_string_list(raw, "attachments")
    return DisputePayload(
        type=first_present(read_string(raw, "type")),
        offer_id=_read_identifier(raw, "offerId"),
        listing_id=_read_identifier(raw, "listingId"),
        author=first_present(read_string(raw, "author")),
        role=first_present(read_string(raw, "role")),
        reason=first_present(read_string(raw, "reason")),
        attachments=attachments,
        attachment_urls=[url for url in (to_gateway_url(item, gateway=gateway) for item in attachments) if url],
        created_at=_read_timestamp(raw, "createdAt"),
    )


def _read_identifier(raw: Mapping[str, Any], key: str) -> str | None:
    value = raw.get(key)
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _read_timestamp(raw: Mapping[str, Any], key: str) -> datetime | None:
    number = first_present(read_number(raw, key))
    if number is None or number < 0:
        return None
    seconds = number / 1000.0 if number >= MILLISECONDS_THRESHOLD else number
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None
