"""
Contract model - agreement between one farmer and one buyer over one listing.

Design principles:
- Crop, quantity, unit and price are copied from the listing when the
  contract is requested; later listing edits never reach the contract
- total_amount = quantity x agreed_price, rounded to cents
- Status: requested -> accepted -> (in_progress) -> completed, or -> cancelled
- completed and cancelled are terminal
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.base import DecimalField, PyObjectId


class ContractStatus(str, Enum):
    REQUESTED = "requested"
    ACCEPTED = "accepted"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = frozenset({ContractStatus.COMPLETED, ContractStatus.CANCELLED})

# Statuses in which the contract holds its listing in "contracted"
HOLDING_STATUSES = frozenset({ContractStatus.ACCEPTED, ContractStatus.IN_PROGRESS})


class ContractInDB(BaseModel):
    id: PyObjectId = Field(alias="_id")
    listing_id: PyObjectId
    farmer_id: PyObjectId
    buyer_id: PyObjectId

    # Snapshot of the listing at request time
    crop_type: str
    quantity: DecimalField
    unit: str
    agreed_price: DecimalField
    total_amount: DecimalField

    status: ContractStatus = ContractStatus.REQUESTED
    terms: Optional[str] = None
    completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True
    )


def append_note(terms: Optional[str], label: str, text: Optional[str]) -> Optional[str]:
    """Append a labelled line (e.g. a rejection reason) to contract terms."""
    if not text:
        return terms
    note = f"{label}: {text}"
    return f"{terms}\n{note}" if terms else note
