import os
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
import pytest_asyncio
from bson import ObjectId
from fastapi.testclient import TestClient
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from main import app
from app.core.auth import get_current_user
from app.core.permissions import Role
from app.core.security import hash_password
from app.db.mongo import create_indexes, get_db
from app.models.user import CurrentUser, UserInDB

# Test database configuration
TEST_MONGODB_URI = os.getenv("MONGODB_URI")
TEST_MONGODB_DB = "contract_farming_test"

FARMER_ID = "507f1f77bcf86cd799439011"
BUYER_ID = "507f1f77bcf86cd799439012"


@pytest_asyncio.fixture
async def test_db() -> AsyncIOMotorDatabase:
    """Fixture for a real MongoDB test database (replica set needed for transactions)."""
    if not TEST_MONGODB_URI:
        pytest.skip("MONGODB_URI not set")

    client = AsyncIOMotorClient(TEST_MONGODB_URI, tz_aware=True)
    db = client[TEST_MONGODB_DB]

    # Drop database before test to ensure clean state
    await client.drop_database(TEST_MONGODB_DB)
    await create_indexes(db)

    yield db

    await client.drop_database(TEST_MONGODB_DB)
    client.close()


@pytest.fixture
def farmer() -> CurrentUser:
    return CurrentUser(
        id=FARMER_ID,
        full_name="Ravi Kumar",
        email="ravi@example.com",
        phone="9876543210",
        role=Role.FARMER,
    )


@pytest.fixture
def buyer() -> CurrentUser:
    return CurrentUser(
        id=BUYER_ID,
        full_name="Anita Shah",
        email="anita@example.com",
        phone="9123456780",
        role=Role.BUYER,
    )


@pytest.fixture
def mock_db():
    """Stand-in database handle for routes whose services are patched."""
    return MagicMock()


@pytest.fixture
def client(mock_db):
    """Test client without a Mongo connection; get_db yields ``mock_db``."""
    app.dependency_overrides[get_db] = lambda: mock_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def login_as():
    """Authenticate the test client as the given user."""
    def _login(user: CurrentUser):
        app.dependency_overrides[get_current_user] = lambda: user
    return _login


PASSWORD = "Harvest@2024"


@pytest.fixture
def make_user():
    """Build the stored document of a test user; fields override defaults."""
    def _make(user: CurrentUser, **fields) -> UserInDB:
        now = datetime.now(timezone.utc)
        data = {
            "_id": ObjectId(user.id),
            "full_name": user.full_name,
            "email": user.email,
            "phone": user.phone,
            "password_hash": hash_password(PASSWORD),
            "role": user.role,
            "created_at": now,
            "updated_at": now,
        }
        data.update(fields)
        return UserInDB(**data)
    return _make
