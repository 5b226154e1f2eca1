from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from datetime import datetime, timezone
from typing import Optional

from app.core.permissions import Role
from app.core.security import hash_password
from app.models.base import parse_object_id
from app.models.user import BankDetails, Location, UserInDB
from app.schemas.auth import UserRegister

class UserRepository:
    """User database operations."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db["users"]

    async def create_user(self, user_data: UserRegister) -> UserInDB:
        """Create a new user."""
        return await self._insert({
            "full_name": user_data.full_name,
            "email": user_data.email,
            "phone": user_data.phone,
            "password_hash": hash_password(user_data.password),
            "role": user_data.role.value,
        })

    async def create_phone_user(self, phone: str, password: str) -> UserInDB:
        """Create a placeholder account for a phone verified by OTP."""
        return await self._insert({
            "full_name": f"User {phone}",
            "email": f"{phone}@temp.com",
            "phone": phone,
            "password_hash": hash_password(password),
            "role": Role.FARMER.value,
        })

    async def _insert(self, fields: dict) -> UserInDB:
        now = datetime.now(timezone.utc)
        user_dict = {
            **fields,
            "is_verified": False,
            "is_active": True,
            "created_at": now,
            "updated_at": now
        }

        result = await self.collection.insert_one(user_dict)
        user_dict["_id"] = result.inserted_id
        return UserInDB(**user_dict)

    async def get_user_by_email(self, email: str) -> UserInDB | None:
        """Get user by email."""
        user = await self.collection.find_one({"email": email})
        if user:
            return UserInDB(**user)
        return None

    async def get_user_by_phone(self, phone: str) -> UserInDB | None:
        """Get user by phone."""
        user = await self.collection.find_one({"phone": phone})
        if user:
            return UserInDB(**user)
        return None

    async def get_user_by_id(self, user_id: str) -> UserInDB | None:
        """Get user by ID."""
        oid = parse_object_id(user_id)
        if oid is None:
            return None
        user = await self.collection.find_one({"_id": oid})
        if user:
            return UserInDB(**user)
        return None

    async def find_conflicting_user(
        self, user_id: str, email: Optional[str] = None, phone: Optional[str] = None
    ) -> UserInDB | None:
        """Another user already holding ``email`` or ``phone``."""
        clauses = []
        if email:
            clauses.append({"email": email})
        if phone:
            clauses.append({"phone": phone})
        if not clauses:
            return None
        user = await self.collection.find_one({
            "_id": {"$ne": parse_object_id(user_id)},
            "$or": clauses
        })
        if user:
            return UserInDB(**user)
        return None

    async def update_user(self, user_id: str, update_data: dict) -> UserInDB | None:
        """Update user fields."""
        oid = parse_object_id(user_id)
        if oid is None:
            return None
        update_data["updated_at"] = datetime.now(timezone.utc)
        result = await self.collection.find_one_and_update(
            {"_id": oid, "is_active": True},
            {"$set": update_data},
            return_document=ReturnDocument.AFTER
        )
        if result:
            return UserInDB(**result)
        return None

    async def set_location(self, user_id: str, location: Location) -> UserInDB | None:
        """Create or replace the user's location."""
        return await self.update_user(user_id, {"location": location.model_dump()})

    async def set_bank_details(self, user_id: str, bank_details: BankDetails) -> UserInDB | None:
        """Create or replace the user's bank details."""
        return await self.update_user(user_id, {"bank_details": bank_details.model_dump()})

    async def set_password(self, user_id: str, password: str) -> UserInDB | None:
        return await self.update_user(user_id, {"password_hash": hash_password(password)})

    async def deactivate_user(self, user_id: str) -> bool:
        """Soft delete user."""
        oid = parse_object_id(user_id)
        if oid is None:
            return False
        result = await self.collection.update_one(
            {"_id": oid, "is_active": True},
            {"$set": {
                "is_active": False,
                "updated_at": datetime.now(timezone.utc)
            }}
        )
        return result.modified_count > 0
