from datetime import datetime
from enum import IntEnum
from typing import Any

from pydantic import BaseModel, Field


class ListingType(IntEnum):
    BRIEF = 0
    GIG = 1


LISTING_KIND_LABELS = {
    ListingType.BRIEF: "Brief",
    ListingType.GIG: "Gig",
}


class OnchainListing(BaseModel):
    id: int
    listing_type: ListingType = ListingType.BRIEF
    category: int = 0
    creator: str | None = None
    metadata_uri: str | None = None
    created_at: int | None = None
    active: bool = True

    @property
    def kind_label(self) -> str:
        return LISTING_KIND_LABELS.get(self.listing_type, "Listing")


class Budget(BaseModel):
    min: float | None = None
    max: float | None = None
    currency: str = "USD"


class ListingMetadata(BaseModel):
    title: str
    description: str = ""
    image: str | None = None
    category: int
    type: ListingType
    requirements: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    deliverables: list[str] = Field(default_factory=list)
    timeline: str | None = None
    delivery_time: str | None = None
    budget: Budget | None = None
    attachments: list[str] = Field(default_factory=list)


class DisputePayload(BaseModel):
    type: str | None = None
    offer_id: str | None = None
    listing_id: str | None = None
    author: str | None = None
    role: str | None = None
    reason: str | None = None
    attachments: list[str] = Field(default_factory=list)
    attachment_urls: list[str] = Field(default_factory=list)
    created_at: datetime | None = None


class ResolveListingRequest(BaseModel):
    reference: Any = None
    listing: OnchainListing


class ResolveReferenceRequest(BaseModel):
    reference: Any = None


class ResolvedJson(BaseModel):
    reference: str | None = None
    normalized: str | None = None
    resolved: bool
    payload: Any = None
