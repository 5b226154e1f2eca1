"""
Listing model - a farmer's crop offer.

Status moves only along:
- active -> contracted (a contract on it was accepted)
- contracted -> active (that contract was rejected or cancelled)
- contracted -> completed (that contract was completed)
"""

from datetime import date, datetime
from enum import Enum
from typing import Annotated, Any, List, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

from app.models.base import DecimalField, PyObjectId
from app.models.user import Location


def _as_date(value: Any) -> Any:
    # BSON has no date type, harvest dates are stored as midnight UTC
    if isinstance(value, datetime):
        return value.date()
    return value


class ListingStatus(str, Enum):
    ACTIVE = "active"
    CONTRACTED = "contracted"
    COMPLETED = "completed"


class ListingInDB(BaseModel):
    id: PyObjectId = Field(alias="_id")
    farmer_id: PyObjectId
    crop_type: str
    quantity: DecimalField
    unit: str
    expected_price: DecimalField
    description: Optional[str] = None
    harvest_date: Annotated[Optional[date], BeforeValidator(_as_date)] = None
    images: List[str] = []
    location: Optional[Location] = None
    status: ListingStatus = ListingStatus.ACTIVE
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True
    )
