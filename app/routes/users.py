import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile

from app.core.auth import get_current_user
from app.core.errors import ConflictError, NotFoundError, ValidationError
from app.db.mongo import get_db
from app.models.user import BankDetails, CurrentUser, Location
from app.repositories.user_repo import UserRepository
from app.schemas.base import ApiResponse, ok
from app.schemas.user import (
    BankDetailsResponse,
    BankDetailsUpdate,
    LocationSchema,
    ProfilePicture,
    ProfileResponse,
    ProfileUpdate,
    to_profile_response,
)
from app.utils.uploads import discard_images, read_images, save_images

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/user", tags=["user"])


def _user_not_found() -> NotFoundError:
    return NotFoundError("User not found.")


@router.get("/profile", response_model=ApiResponse[ProfileResponse])
async def get_profile(
    current_user: CurrentUser = Depends(get_current_user),
    db = Depends(get_db)
):
    """Profile of the caller, with location and bank details."""
    user = await UserRepository(db).get_user_by_id(current_user.id)
    if user is None:
        raise _user_not_found()
    return ok("Profile retrieved successfully", to_profile_response(user))


@router.put("/profile", response_model=ApiResponse[ProfileResponse])
async def update_profile(
    payload: ProfileUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    db = Depends(get_db)
):
    """Update name, email or phone."""
    user_repo = UserRepository(db)
    updates = payload.model_dump(exclude_unset=True, exclude_none=True)
    if not updates:
        user = await user_repo.get_user_by_id(current_user.id)
        if user is None:
            raise _user_not_found()
        return ok("Profile updated successfully", to_profile_response(user))

    conflict = await user_repo.find_conflicting_user(
        current_user.id, email=updates.get("email"), phone=updates.get("phone")
    )
    if conflict is not None:
        field = "Email" if updates.get("email") == conflict.email else "Phone number"
        raise ConflictError(f"{field} already in use.")

    user = await user_repo.update_user(current_user.id, updates)
    if user is None:
        raise _user_not_found()
    return ok("Profile updated successfully", to_profile_response(user))


@router.put("/location", response_model=ApiResponse[LocationSchema])
async def update_location(
    payload: LocationSchema,
    current_user: CurrentUser = Depends(get_current_user),
    db = Depends(get_db)
):
    """Create or replace the caller's location."""
    location = Location(**payload.model_dump())
    user = await UserRepository(db).set_location(current_user.id, location)
    if user is None:
        raise _user_not_found()
    return ok("Location updated successfully", payload)


@router.put("/bank-details", response_model=ApiResponse[BankDetailsResponse])
async def update_bank_details(
    payload: BankDetailsUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    db = Depends(get_db)
):
    """Create or replace the caller's bank details. Changing them clears verification."""
    bank_details = BankDetails(
        account_number=payload.account_no,
        ifsc_code=payload.ifsc.upper(),
        bank_name=payload.bank_name,
        account_holder_name=payload.account_holder_name,
        upi_id=payload.upi_id,
    )
    user = await UserRepository(db).set_bank_details(current_user.id, bank_details)
    if user is None:
        raise _user_not_found()
    logger.info("Bank details updated for %s", current_user.id)
    return ok(
        "Bank details updated successfully",
        BankDetailsResponse.model_validate(bank_details.model_dump()),
    )


@router.delete("/account", response_model=ApiResponse[None])
async def delete_account(
    current_user: CurrentUser = Depends(get_current_user),
    db = Depends(get_db)
):
    """Deactivate the caller's account."""
    if not await UserRepository(db).deactivate_user(current_user.id):
        raise _user_not_found()
    logger.info("Deactivated account %s", current_user.id)
    return ok("Account deleted successfully")


@router.put("/profile-picture", response_model=ApiResponse[ProfilePicture])
async def upload_profile_picture(
    image: Optional[UploadFile] = File(None),
    current_user: CurrentUser = Depends(get_current_user),
    db = Depends(get_db)
):
    """Replace the caller's profile picture with a single uploaded image."""
    uploaded = await read_images([image] if image else [], max_count=1)
    if not uploaded:
        raise ValidationError("No file uploaded.", details="Please upload an image file")

    paths = await save_images(uploaded)
    try:
        user = await UserRepository(db).update_user(current_user.id, {"profile_picture_url": paths[0]})
    except Exception:
        await discard_images(paths)
        raise
    if user is None:
        await discard_images(paths)
        raise _user_not_found()
    return ok("Profile picture uploaded successfully.", ProfilePicture(image_url=paths[0]))
