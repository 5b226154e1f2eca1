from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field

from app.core.permissions import Role
from app.models.user import UserInDB
from app.schemas.base import CamelModel
from app.utils.validation import FullName, NonBlank, Phone


class LocationSchema(CamelModel):
    latitude: float = Field(..., ge=-90, le=90, alias="lat")
    longitude: float = Field(..., ge=-180, le=180, alias="lng")
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = None


class BankDetailsUpdate(CamelModel):
    account_no: NonBlank
    ifsc: NonBlank
    bank_name: NonBlank
    account_holder_name: NonBlank
    upi_id: Optional[str] = None


class BankDetailsResponse(CamelModel):
    """Bank details as shown back to the owner; the account number is never echoed."""
    bank_name: str
    account_holder_name: str
    ifsc_code: str
    upi_id: Optional[str] = None
    is_verified: bool = False


class ProfilePicture(CamelModel):
    image_url: str


class UserResponse(CamelModel):
    id: str
    full_name: str
    email: str
    phone: str
    role: Role
    is_verified: bool = False
    profile_picture_url: Optional[str] = None
    created_at: Optional[datetime] = None


class ProfileResponse(UserResponse):
    location: Optional[LocationSchema] = None
    bank_details: Optional[BankDetailsResponse] = None


class ProfileUpdate(CamelModel):
    full_name: Optional[FullName] = None
    email: Optional[EmailStr] = None
    phone: Optional[Phone] = None


def to_user_response(user: UserInDB) -> UserResponse:
    return UserResponse(
        id=str(user.id),
        full_name=user.full_name,
        email=user.email,
        phone=user.phone,
        role=user.role,
        is_verified=user.is_verified,
        profile_picture_url=user.profile_picture_url,
        created_at=user.created_at,
    )


def to_profile_response(user: UserInDB) -> ProfileResponse:
    bank = user.bank_details
    return ProfileResponse(
        **to_user_response(user).model_dump(),
        location=LocationSchema.model_validate(user.location.model_dump()) if user.location else None,
        bank_details=BankDetailsResponse.model_validate(bank.model_dump()) if bank else None,
    )
