from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime
from typing import Optional
from bson import ObjectId

from app.core.permissions import Role


class Location(BaseModel):
    """Where a user farms or operates from."""
    latitude: float
    longitude: float
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = None


class BankDetails(BaseModel):
    """Payout account of a user."""
    account_number: str
    ifsc_code: str
    bank_name: str
    account_holder_name: str
    upi_id: Optional[str] = None
    is_verified: bool = False


class UserInDB(BaseModel):
    """User database schema."""
    id: ObjectId = Field(alias="_id")
    full_name: str
    email: str
    phone: str
    password_hash: str
    role: Role
    is_verified: bool = False
    is_active: bool = True
    profile_picture_url: Optional[str] = None
    location: Optional[Location] = None
    bank_details: Optional[BankDetails] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(
        populate_by_name=True,
        from_attributes=True,
        arbitrary_types_allowed=True
    )

    @property
    def _id(self) -> ObjectId:
        """Alias for id to match MongoDB naming."""
        return self.id


class CurrentUser(BaseModel):
    """The authenticated caller, as resolved from the bearer token."""
    id: str
    full_name: str
    email: str
    phone: str
    role: Role
    is_verified: bool = False

    @classmethod
    def from_db(cls, user: UserInDB) -> "CurrentUser":
        return cls(
            id=str(user.id),
            full_name=user.full_name,
            email=user.email,
            phone=user.phone,
            role=user.role,
            is_verified=user.is_verified,
        )
