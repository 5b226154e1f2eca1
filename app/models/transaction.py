"""
Transaction model - one income or expense line in a user's ledger.

Entries are write-once. Contract completion writes a matched pair: income
for the farmer, expense for the buyer, both referencing the contract.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.base import DecimalField, PyObjectId


class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class ReferenceType(str, Enum):
    CONTRACT = "contract"


class TransactionInDB(BaseModel):
    id: PyObjectId = Field(alias="_id")
    user_id: PyObjectId
    type: TransactionType
    category: str = "other"
    amount: DecimalField
    description: Optional[str] = None
    reference_id: Optional[PyObjectId] = None
    reference_type: Optional[ReferenceType] = None
    transaction_date: datetime
    created_at: datetime

    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True
    )
