from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from app.core.config import settings
from app.core.errors import ForbiddenError, UnauthorizedError
from app.core.permissions import Role
from app.db.mongo import get_db
from app.models.user import CurrentUser
from app.repositories.user_repo import UserRepository

ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"
RESET_TOKEN = "password_reset"

security = HTTPBearer(auto_error=False)


def create_access_token(
    user_id: str,
    role: Role | None = None,
    expires_delta: timedelta | None = None,
    token_type: str = ACCESS_TOKEN,
) -> str:
    """Create a signed JWT for ``user_id``."""
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    now = datetime.now(timezone.utc)
    expire = now + expires_delta

    payload = {
        "sub": user_id,
        "type": token_type,
        "exp": int(expire.timestamp()),
        "iat": int(now.timestamp())
    }
    if role is not None:
        payload["role"] = role.value

    return jwt.encode(
        payload,
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM
    )


def create_refresh_token(user_id: str) -> str:
    return create_access_token(
        user_id,
        expires_delta=timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
        token_type=REFRESH_TOKEN,
    )


def create_reset_token(user_id: str) -> str:
    return create_access_token(
        user_id,
        expires_delta=timedelta(minutes=settings.RESET_TOKEN_EXPIRE_MINUTES),
        token_type=RESET_TOKEN,
    )


def decode_token(token: str, token_type: str = ACCESS_TOKEN) -> str:
    """Return the user id of a valid token of ``token_type``."""
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM]
        )
    except JWTError as e:
        raise UnauthorizedError("Invalid or expired token.") from e

    user_id = payload.get("sub")
    if user_id is None or payload.get("type") != token_type:
        raise UnauthorizedError("Invalid or expired token.")
    return user_id


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db = Depends(get_db)
) -> CurrentUser:
    """Get current user from JWT token."""
    if credentials is None:
        raise UnauthorizedError("Authentication required.", details="Missing bearer token")

    user_id = decode_token(credentials.credentials)

    user_repo = UserRepository(db)
    user = await user_repo.get_user_by_id(user_id)
    if user is None:
        raise UnauthorizedError("Invalid or expired token.", details="User not found")
    if not user.is_active:
        raise ForbiddenError("Account is deactivated.")

    return CurrentUser.from_db(user)


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db = Depends(get_db)
) -> Optional[CurrentUser]:
    """Current user when a valid token is sent, otherwise None."""
    if credentials is None:
        return None
    try:
        return await get_current_user(credentials, db)
    except (UnauthorizedError, ForbiddenError):
        return None
