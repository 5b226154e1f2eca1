import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorClientSession, AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from app.core.config import settings
from app.core.errors import ConflictError

logger = logging.getLogger(__name__)


class MongoDatabase:
    """MongoDB connection manager."""

    client: AsyncIOMotorClient = None
    db: AsyncIOMotorDatabase = None

mongodb = MongoDatabase()

async def connect_to_mongo():
    """Connect to MongoDB."""
    mongodb.client = AsyncIOMotorClient(settings.MONGODB_URI, tz_aware=True)
    mongodb.db = mongodb.client[settings.MONGODB_DB]

    await create_indexes(mongodb.db)
    logger.info("Connected to MongoDB: %s", settings.MONGODB_DB)

async def disconnect_from_mongo():
    """Disconnect from MongoDB."""
    if mongodb.client is not None:
        mongodb.client.close()
    logger.info("Disconnected from MongoDB")

async def create_indexes(db: AsyncIOMotorDatabase):
    """Create database indexes."""
    await db["users"].create_index("email", unique=True)
    await db["users"].create_index("phone", unique=True)

    await db["listings"].create_index([("status", 1), ("created_at", -1)])
    await db["listings"].create_index("farmer_id")

    await db["contracts"].create_index("listing_id")
    await db["contracts"].create_index([("farmer_id", 1), ("status", 1)])
    await db["contracts"].create_index([("buyer_id", 1), ("status", 1)])

    await db["transactions"].create_index([("user_id", 1), ("transaction_date", -1)])
    # One ledger pair per completed contract
    await db["transactions"].create_index(
        [("reference_id", 1), ("user_id", 1), ("type", 1)],
        unique=True,
        partialFilterExpression={"reference_type": "contract"},
    )

    await db["otp_codes"].create_index("phone", unique=True)
    await db["otp_codes"].create_index("expires_at", expireAfterSeconds=0)

def get_db() -> AsyncIOMotorDatabase:
    """Get database instance."""
    return mongodb.db


@asynccontextmanager
async def start_transaction(db: AsyncIOMotorDatabase) -> AsyncIterator[AsyncIOMotorClientSession]:
    """
    Run a block inside one multi-document transaction.

    Any exception raised in the block aborts the transaction. Write conflicts
    with a concurrent transaction surface as ConflictError; nothing is retried.
    """
    try:
        async with await db.client.start_session() as session:
            async with session.start_transaction():
                yield session
    except PyMongoError as exc:
        if exc.has_error_label("TransientTransactionError"):
            raise ConflictError(
                "The record was modified by another request.",
                details="Concurrent update detected, please retry",
            ) from exc
        raise
