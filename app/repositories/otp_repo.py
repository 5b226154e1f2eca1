from datetime import datetime, timedelta, timezone

from motor.motor_asyncio import AsyncIOMotorDatabase

from app.core.config import settings


class OtpRepository:
    """One-time login codes, one live code per phone."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db["otp_codes"]

    async def store_code(self, phone: str, code: str) -> datetime:
        """Store ``code`` for ``phone``, replacing any earlier code. Returns its expiry."""
        now = datetime.now(timezone.utc)
        expires_at = now + timedelta(minutes=settings.OTP_EXPIRE_MINUTES)
        await self.collection.update_one(
            {"phone": phone},
            {"$set": {
                "code": code,
                "expires_at": expires_at,
                "created_at": now
            }},
            upsert=True
        )
        return expires_at

    async def consume_code(self, phone: str, code: str) -> bool:
        """
        Delete the code for ``phone`` if it matches and has not expired.

        The TTL index removes expired codes only periodically, so expiry is
        also checked here.
        """
        result = await self.collection.delete_one({
            "phone": phone,
            "code": code,
            "expires_at": {"$gt": datetime.now(timezone.utc)}
        })
        return result.deleted_count > 0
