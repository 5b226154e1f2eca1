import logging
import secrets

from fastapi import APIRouter, Depends, status

from app.core.auth import (
    RESET_TOKEN,
    create_access_token,
    create_refresh_token,
    create_reset_token,
    decode_token,
    get_current_user,
)
from app.core.config import settings
from app.core.errors import ConflictError, ForbiddenError, UnauthorizedError, ValidationError
from app.core.security import generate_otp, verify_password
from app.db.mongo import get_db
from app.models.user import CurrentUser, UserInDB
from app.repositories.otp_repo import OtpRepository
from app.repositories.user_repo import UserRepository
from app.schemas.auth import (
    AuthResponse,
    ForgotPassword,
    OtpSend,
    OtpSent,
    OtpVerified,
    OtpVerify,
    ResetPassword,
    ResetTokenIssued,
    UserLogin,
    UserRegister,
)
from app.schemas.base import ApiResponse, ok
from app.schemas.user import to_user_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _auth_response(user: UserInDB) -> AuthResponse:
    user_id = str(user.id)
    return AuthResponse(
        user_id=user_id,
        token=create_access_token(user_id, user.role),
        refresh_token=create_refresh_token(user_id),
        user=to_user_response(user),
    )


@router.post("/register", response_model=ApiResponse[AuthResponse], status_code=status.HTTP_201_CREATED)
async def register(user_data: UserRegister, db = Depends(get_db)):
    """Create a new user account."""
    user_repo = UserRepository(db)

    if await user_repo.get_user_by_email(user_data.email):
        raise ConflictError("Email already registered.")
    if await user_repo.get_user_by_phone(user_data.phone):
        raise ConflictError("Phone number already registered.")

    user = await user_repo.create_user(user_data)
    logger.info("Registered %s %s", user.role.value, user.id)
    return ok("User registered successfully", _auth_response(user))


@router.post("/login", response_model=ApiResponse[AuthResponse])
async def login(credentials: UserLogin, db = Depends(get_db)):
    """Login with email or phone and password."""
    user_repo = UserRepository(db)

    if credentials.email:
        user = await user_repo.get_user_by_email(credentials.email)
    else:
        user = await user_repo.get_user_by_phone(credentials.phone)

    if not user or not verify_password(credentials.password, user.password_hash):
        raise UnauthorizedError("Invalid credentials.")
    if not user.is_active:
        raise ForbiddenError("Account is deactivated.")

    return ok("Login successful", _auth_response(user))


@router.post("/send-otp", response_model=ApiResponse[OtpSent])
async def send_otp(payload: OtpSend, db = Depends(get_db)):
    """Issue a one-time login code for a phone number."""
    code = generate_otp()
    await OtpRepository(db).store_code(payload.phone, code)

    if settings.DEBUG:
        logger.info("OTP for %s: %s", payload.phone, code)
        return ok("OTP sent successfully", OtpSent(otp=code))
    return ok("OTP sent successfully", OtpSent())


@router.post("/verify-otp", response_model=ApiResponse[OtpVerified])
async def verify_otp(payload: OtpVerify, db = Depends(get_db)):
    """Verify a login code; signs in the phone's user, creating one if needed."""
    if not await OtpRepository(db).consume_code(payload.phone, payload.otp):
        logger.warning("Rejected OTP for %s", payload.phone)
        raise ValidationError("Invalid or expired OTP.")

    user_repo = UserRepository(db)
    user = await user_repo.get_user_by_phone(payload.phone)
    if user is None:
        user = await user_repo.create_phone_user(payload.phone, secrets.token_urlsafe(16))
        logger.info("Created account %s from OTP login", user.id)
    if not user.is_active:
        raise ForbiddenError("Account is deactivated.")

    user = await user_repo.update_user(str(user.id), {"is_verified": True})
    return ok(
        "OTP verified successfully",
        OtpVerified(
            verified=True,
            token=create_access_token(str(user.id), user.role),
            user=to_user_response(user),
        ),
    )


@router.post("/forgot-password", response_model=ApiResponse[ResetTokenIssued])
async def forgot_password(payload: ForgotPassword, db = Depends(get_db)):
    """Start a password reset. The reply does not reveal whether the account exists."""
    user_repo = UserRepository(db)
    if payload.email:
        user = await user_repo.get_user_by_email(payload.email)
    else:
        user = await user_repo.get_user_by_phone(payload.phone)

    message = "If the account exists, password reset instructions have been sent"
    if user is None or not user.is_active:
        return ok(message, ResetTokenIssued())

    token = create_reset_token(str(user.id))
    # No mail gateway: the token is only exposed in debug mode
    if settings.DEBUG:
        logger.info("Password reset token for %s: %s", user.id, token)
        return ok(message, ResetTokenIssued(reset_token=token))
    return ok(message, ResetTokenIssued())


@router.post("/reset-password", response_model=ApiResponse[None])
async def reset_password(payload: ResetPassword, db = Depends(get_db)):
    """Set a new password using a password reset token."""
    user_id = decode_token(payload.token, token_type=RESET_TOKEN)
    user = await UserRepository(db).set_password(user_id, payload.new_password)
    if user is None:
        raise UnauthorizedError("Invalid or expired token.")
    logger.info("Password reset for %s", user_id)
    return ok("Password reset successfully")


@router.post("/logout", response_model=ApiResponse[None])
async def logout(current_user: CurrentUser = Depends(get_current_user)):
    """Tokens are stateless; the client discards its copy."""
    logger.info("User %s logged out", current_user.id)
    return ok("Logged out successfully.")
