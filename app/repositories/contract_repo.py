from datetime import datetime, timezone
from typing import Iterable, List, Optional, Tuple

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorClientSession, AsyncIOMotorDatabase
from pymongo import ReturnDocument

from app.models.base import compute_total, parse_object_id, to_decimal128
from app.models.contract import ContractInDB, ContractStatus
from app.models.listing import ListingInDB


class ContractRepository:
    """Contract database operations."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db["contracts"]

    async def create_contract(
        self, listing: ListingInDB, buyer_id: str, terms: Optional[str] = None
    ) -> ContractInDB:
        """Create a requested contract from a snapshot of ``listing``."""
        now = datetime.now(timezone.utc)
        contract_dict = {
            "listing_id": listing.id,
            "farmer_id": listing.farmer_id,
            "buyer_id": ObjectId(buyer_id),
            "crop_type": listing.crop_type,
            "quantity": to_decimal128(listing.quantity),
            "unit": listing.unit,
            "agreed_price": to_decimal128(listing.expected_price),
            "total_amount": to_decimal128(compute_total(listing.quantity, listing.expected_price)),
            "status": ContractStatus.REQUESTED.value,
            "terms": terms,
            "completed_at": None,
            "created_at": now,
            "updated_at": now
        }

        result = await self.collection.insert_one(contract_dict)
        contract_dict["_id"] = result.inserted_id
        return ContractInDB(**contract_dict)

    async def get_for_party(
        self,
        contract_id: str,
        user_id: str,
        session: Optional[AsyncIOMotorClientSession] = None,
    ) -> ContractInDB | None:
        """Get a contract only if ``user_id`` is its farmer or buyer."""
        oid = parse_object_id(contract_id)
        uid = parse_object_id(user_id)
        if oid is None or uid is None:
            return None
        doc = await self.collection.find_one(
            {"_id": oid, "$or": [{"farmer_id": uid}, {"buyer_id": uid}]},
            session=session
        )
        if doc:
            return ContractInDB(**doc)
        return None

    async def list_for_user(
        self,
        user_id: str,
        as_farmer: bool = True,
        as_buyer: bool = True,
        status: Optional[ContractStatus] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[ContractInDB], int]:
        """Contracts the user is party to, newest first, with the total count."""
        uid = ObjectId(user_id)
        sides = []
        if as_farmer:
            sides.append({"farmer_id": uid})
        if as_buyer:
            sides.append({"buyer_id": uid})
        query: dict = {"$or": sides}
        if status is not None:
            query["status"] = status.value

        total = await self.collection.count_documents(query)
        cursor = self.collection.find(query).sort("created_at", -1).skip(skip).limit(limit)
        docs = await cursor.to_list(None)
        return [ContractInDB(**doc) for doc in docs], total

    async def transition_status(
        self,
        contract_id: ObjectId,
        from_statuses: Iterable[ContractStatus],
        to_status: ContractStatus,
        terms: Optional[str] = None,
        completed_at: Optional[datetime] = None,
        session: Optional[AsyncIOMotorClientSession] = None,
    ) -> ContractInDB | None:
        """
        Move a contract to ``to_status`` if it is still in one of ``from_statuses``.

        The status check and the write happen in one conditional update, so two
        concurrent transitions cannot both succeed. Returns None when the
        contract is no longer in an expected status.
        """
        now = datetime.now(timezone.utc)
        updates: dict = {"status": to_status.value, "updated_at": now}
        if terms is not None:
            updates["terms"] = terms
        if completed_at is not None:
            updates["completed_at"] = completed_at

        result = await self.collection.find_one_and_update(
            {"_id": contract_id, "status": {"$in": [s.value for s in from_statuses]}},
            {"$set": updates},
            return_document=ReturnDocument.AFTER,
            session=session
        )
        if result:
            return ContractInDB(**result)
        return None
