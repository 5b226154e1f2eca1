from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import Field

from app.models.listing import ListingInDB, ListingStatus
from app.schemas.base import CamelModel
from app.schemas.user import LocationSchema
from app.utils.validation import NonBlank


class ListingCreate(CamelModel):
    """Fields of a new listing (images arrive separately as files)."""
    crop_type: NonBlank
    quantity: Decimal = Field(..., gt=0, le=10000, decimal_places=3)
    unit: NonBlank
    expected_price: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    description: Optional[str] = Field(None, max_length=2000)
    harvest_date: Optional[date] = None


class ListingResponse(CamelModel):
    id: str
    farmer_id: str
    crop_type: str
    quantity: Decimal
    unit: str
    expected_price: Decimal
    description: Optional[str] = None
    harvest_date: Optional[date] = None
    images: List[str] = []
    location: Optional[LocationSchema] = None
    status: ListingStatus
    created_at: datetime


def to_listing_response(listing: ListingInDB) -> ListingResponse:
    return ListingResponse(
        id=str(listing.id),
        farmer_id=str(listing.farmer_id),
        crop_type=listing.crop_type,
        quantity=listing.quantity,
        unit=listing.unit,
        expected_price=listing.expected_price,
        description=listing.description,
        harvest_date=listing.harvest_date,
        images=listing.images,
        location=LocationSchema.model_validate(listing.location.model_dump()) if listing.location else None,
        status=listing.status,
        created_at=listing.created_at,
    )
