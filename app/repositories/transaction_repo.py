"""
TransactionRepository - per-user income and expense ledger.

Entries are only ever inserted; there is no update or delete.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorClientSession, AsyncIOMotorDatabase

from app.models.base import parse_object_id, quantize_money, to_decimal128
from app.models.transaction import ReferenceType, TransactionInDB, TransactionType


class TransactionRepository:
    """Repository for ledger transactions."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db["transactions"]

    async def insert_transaction(
        self,
        user_id: ObjectId,
        type: TransactionType,
        amount: Decimal,
        category: str = "other",
        description: Optional[str] = None,
        reference_id: Optional[ObjectId] = None,
        reference_type: Optional[ReferenceType] = None,
        transaction_date: Optional[datetime] = None,
        session: Optional[AsyncIOMotorClientSession] = None,
    ) -> TransactionInDB:
        """Insert one ledger entry."""
        now = datetime.now(timezone.utc)
        doc = {
            "user_id": user_id,
            "type": type.value,
            "category": category,
            "amount": to_decimal128(quantize_money(amount)),
            "description": description,
            "reference_id": reference_id,
            "reference_type": reference_type.value if reference_type else None,
            "transaction_date": transaction_date or now,
            "created_at": now
        }
        result = await self.collection.insert_one(doc, session=session)
        doc["_id"] = result.inserted_id
        return TransactionInDB(**doc)

    async def list_for_user(
        self,
        user_id: str,
        type: Optional[TransactionType] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[TransactionInDB], int]:
        """A user's entries, most recent transaction date first, with the total count."""
        query: dict = {"user_id": ObjectId(user_id)}
        if type is not None:
            query["type"] = type.value
        if start is not None or end is not None:
            window = {}
            if start is not None:
                window["$gte"] = start
            if end is not None:
                window["$lt"] = end
            query["transaction_date"] = window

        total = await self.collection.count_documents(query)
        cursor = (
            self.collection.find(query)
            .sort([("transaction_date", -1), ("_id", -1)])
            .skip(skip)
            .limit(limit)
        )
        docs = await cursor.to_list(None)
        return [TransactionInDB(**doc) for doc in docs], total

    async def get_for_user(self, transaction_id: str, user_id: str) -> TransactionInDB | None:
        """Get an entry only if it belongs to ``user_id``."""
        oid = parse_object_id(transaction_id)
        if oid is None:
            return None
        doc = await self.collection.find_one({"_id": oid, "user_id": ObjectId(user_id)})
        if doc:
            return TransactionInDB(**doc)
        return None

    async def list_by_reference(self, reference_id: ObjectId) -> List[TransactionInDB]:
        """All entries written for one contract."""
        docs = await self.collection.find({
            "reference_id": reference_id,
            "reference_type": ReferenceType.CONTRACT.value
        }).to_list(None)
        return [TransactionInDB(**doc) for doc in docs]

    async def totals_by_type(
        self, user_id: str, start: datetime, end: datetime
    ) -> Dict[str, Tuple[Decimal, int]]:
        """
        Sum and count of a user's entries per type within [start, end).

        Returns:
        {
            "income": (total, count),
            "expense": (total, count)
        }
        Types with no entries are absent.
        """
        rows = await self.collection.aggregate([
            {
                "$match": {
                    "user_id": ObjectId(user_id),
                    "transaction_date": {"$gte": start, "$lt": end}
                }
            },
            {
                "$group": {
                    "_id": "$type",
                    "total": {"$sum": "$amount"},
                    "count": {"$sum": 1}
                }
            }
        ]).to_list(None)

        totals = {}
        for row in rows:
            total = row["total"]
            if hasattr(total, "to_decimal"):
                total = total.to_decimal()
            totals[row["_id"]] = (Decimal(total), row["count"])
        return totals
