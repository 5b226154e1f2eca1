from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import Field

from app.models.transaction import ReferenceType, TransactionInDB, TransactionType
from app.schemas.base import CamelModel
from app.utils.validation import PastOrToday


class TransactionCreate(CamelModel):
    """Manual ledger entry."""
    type: TransactionType
    amount: Decimal = Field(..., gt=0, max_digits=15, decimal_places=2)
    category: str = Field("other", min_length=1, max_length=50)
    description: Optional[str] = Field(None, max_length=500)
    transaction_date: Optional[PastOrToday] = None


class TransactionResponse(CamelModel):
    id: str
    user_id: str
    type: TransactionType
    category: str
    amount: Decimal
    description: Optional[str] = None
    reference_id: Optional[str] = None
    reference_type: Optional[ReferenceType] = None
    transaction_date: datetime
    created_at: datetime


class MonthlySummary(CamelModel):
    income: Decimal
    expenses: Decimal
    net: Decimal
    transaction_count: int


def to_transaction_response(entry: TransactionInDB) -> TransactionResponse:
    return TransactionResponse(
        id=str(entry.id),
        user_id=str(entry.user_id),
        type=entry.type,
        category=entry.category,
        amount=entry.amount,
        description=entry.description,
        reference_id=str(entry.reference_id) if entry.reference_id else None,
        reference_type=entry.reference_type,
        transaction_date=entry.transaction_date,
        created_at=entry.created_at,
    )
