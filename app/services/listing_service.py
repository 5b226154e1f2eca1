import logging
from typing import List, Optional, Tuple

from fastapi import UploadFile
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.core.permissions import Operation, require_role
from app.models.listing import ListingInDB
from app.models.user import CurrentUser
from app.repositories.listing_repo import ListingRepository
from app.repositories.user_repo import UserRepository
from app.schemas.base import Pagination
from app.schemas.listing import ListingCreate
from app.utils.uploads import discard_images, read_images, save_images

logger = logging.getLogger(__name__)


class ListingService:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.listings = ListingRepository(db)
        self.users = UserRepository(db)

    async def create_listing(
        self,
        actor: CurrentUser,
        data: ListingCreate,
        images: Optional[List[UploadFile]] = None,
    ) -> ListingInDB:
        """
        Publish a new active listing for a farmer.

        The farmer's profile location at this moment is copied onto the
        listing so it can be browsed by place.
        """
        require_role(actor.role, Operation.CREATE_LISTING)

        uploaded = await read_images(images)
        farmer = await self.users.get_user_by_id(actor.id)
        location = farmer.location if farmer else None

        image_paths = await save_images(uploaded)
        try:
            listing = await self.listings.create_listing(
                farmer_id=actor.id,
                crop_type=data.crop_type,
                quantity=data.quantity,
                unit=data.unit,
                expected_price=data.expected_price,
                description=data.description,
                harvest_date=data.harvest_date,
                images=image_paths,
                location=location,
            )
        except Exception:
            await discard_images(image_paths)
            raise
        logger.info("Listing %s created by %s", listing.id, actor.id)
        return listing

    async def browse_listings(
        self,
        crop_type: Optional[str] = None,
        location: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[ListingInDB], Pagination]:
        listings, total = await self.listings.browse_active(
            crop_type=crop_type,
            location=location,
            skip=(page - 1) * limit,
            limit=limit,
        )
        return listings, Pagination.build(page, limit, total)
