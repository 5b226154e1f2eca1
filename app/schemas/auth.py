from typing import Optional

from pydantic import EmailStr, Field, model_validator

from app.core.permissions import Role
from app.schemas.base import CamelModel
from app.schemas.user import UserResponse
from app.utils.validation import FullName, Password, Phone


class UserRegister(CamelModel):
    """Schema for user registration"""
    full_name: FullName
    email: EmailStr
    phone: Phone
    password: Password
    role: Role


class UserLogin(CamelModel):
    """Login with either email or phone."""
    email: Optional[EmailStr] = None
    phone: Optional[Phone] = None
    password: str

    @model_validator(mode="after")
    def require_email_or_phone(self) -> "UserLogin":
        if not self.email and not self.phone:
            raise ValueError("Either email or phone is required")
        return self


class AuthResponse(CamelModel):
    user_id: str
    token: str
    refresh_token: Optional[str] = None
    user: UserResponse


class OtpSend(CamelModel):
    phone: Phone


class OtpVerify(CamelModel):
    phone: str
    otp: str = Field(..., min_length=4, max_length=8)


class OtpSent(CamelModel):
    # Only populated in debug mode, there is no SMS gateway
    otp: Optional[str] = None


class OtpVerified(CamelModel):
    verified: bool = True
    token: str
    user: UserResponse


class ForgotPassword(CamelModel):
    email: Optional[EmailStr] = None
    phone: Optional[str] = None

    @model_validator(mode="after")
    def require_email_or_phone(self) -> "ForgotPassword":
        if not self.email and not self.phone:
            raise ValueError("Email or phone is required")
        return self


class ResetTokenIssued(CamelModel):
    reset_token: Optional[str] = None


class ResetPassword(CamelModel):
    token: str
    new_password: Password
