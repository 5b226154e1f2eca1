import re
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import List, Optional, Tuple

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorClientSession, AsyncIOMotorDatabase
from pymongo import ReturnDocument

from app.models.base import parse_object_id, to_decimal128
from app.models.listing import ListingInDB, ListingStatus
from app.models.user import Location
from app.utils.validation import start_of_day


class ListingRepository:
    """Listing database operations."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db["listings"]

    async def create_listing(
        self,
        farmer_id: str,
        crop_type: str,
        quantity: Decimal,
        unit: str,
        expected_price: Decimal,
        description: Optional[str] = None,
        harvest_date: Optional[date] = None,
        images: Optional[List[str]] = None,
        location: Optional[Location] = None,
    ) -> ListingInDB:
        """Create a new active listing."""
        now = datetime.now(timezone.utc)
        listing_dict = {
            "farmer_id": ObjectId(farmer_id),
            "crop_type": crop_type,
            "quantity": to_decimal128(quantity),
            "unit": unit,
            "expected_price": to_decimal128(expected_price),
            "description": description,
            "harvest_date": start_of_day(harvest_date) if harvest_date else None,
            "images": images or [],
            "location": location.model_dump() if location else None,
            "status": ListingStatus.ACTIVE.value,
            "created_at": now,
            "updated_at": now
        }

        result = await self.collection.insert_one(listing_dict)
        listing_dict["_id"] = result.inserted_id
        return ListingInDB(**listing_dict)

    async def get_listing(
        self, listing_id: str, session: Optional[AsyncIOMotorClientSession] = None
    ) -> ListingInDB | None:
        """Get a listing by ID."""
        oid = parse_object_id(listing_id)
        if oid is None:
            return None
        doc = await self.collection.find_one({"_id": oid}, session=session)
        if doc:
            return ListingInDB(**doc)
        return None

    async def browse_active(
        self,
        crop_type: Optional[str] = None,
        location: Optional[str] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[ListingInDB], int]:
        """
        Active listings, newest first, with the total match count.

        crop_type and location are case-insensitive substring filters; location
        matches the city, state or pincode of the listing.
        """
        query: dict = {"status": ListingStatus.ACTIVE.value}
        if crop_type:
            query["crop_type"] = {"$regex": re.escape(crop_type), "$options": "i"}
        if location:
            pattern = {"$regex": re.escape(location), "$options": "i"}
            query["$or"] = [
                {"location.city": pattern},
                {"location.state": pattern},
                {"location.pincode": pattern},
            ]

        total = await self.collection.count_documents(query)
        cursor = self.collection.find(query).sort("created_at", -1).skip(skip).limit(limit)
        docs = await cursor.to_list(None)
        return [ListingInDB(**doc) for doc in docs], total

    async def transition_status(
        self,
        listing_id: ObjectId,
        from_status: ListingStatus,
        to_status: ListingStatus,
        session: Optional[AsyncIOMotorClientSession] = None,
    ) -> ListingInDB | None:
        """
        Move a listing from one status to another.

        The update only applies while the listing is still in ``from_status``;
        returns None when it is not.
        """
        result = await self.collection.find_one_and_update(
            {"_id": listing_id, "status": from_status.value},
            {"$set": {
                "status": to_status.value,
                "updated_at": datetime.now(timezone.utc)
            }},
            return_document=ReturnDocument.AFTER,
            session=session
        )
        if result:
            return ListingInDB(**result)
        return None
