from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import Field

from app.models.contract import ContractInDB, ContractStatus
from app.schemas.base import CamelModel


class ContractScope(str, Enum):
    """Which of the caller's contracts to list."""
    MY_LISTINGS = "my_listings"
    MY_REQUESTS = "my_requests"


class ContractRequest(CamelModel):
    terms: Optional[str] = Field(None, max_length=2000)
    message: Optional[str] = Field(None, max_length=2000)


class ContractReason(CamelModel):
    reason: Optional[str] = Field(None, max_length=1000)


class ContractCompletion(CamelModel):
    delivery_proof: Optional[str] = Field(None, max_length=2000)


class ContractResponse(CamelModel):
    id: str
    listing_id: str
    farmer_id: str
    buyer_id: str
    crop_type: str
    quantity: Decimal
    unit: str
    agreed_price: Decimal
    total_amount: Decimal
    status: ContractStatus
    terms: Optional[str] = None
    completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


def to_contract_response(contract: ContractInDB) -> ContractResponse:
    return ContractResponse(
        id=str(contract.id),
        listing_id=str(contract.listing_id),
        farmer_id=str(contract.farmer_id),
        buyer_id=str(contract.buyer_id),
        crop_type=contract.crop_type,
        quantity=contract.quantity,
        unit=contract.unit,
        agreed_price=contract.agreed_price,
        total_amount=contract.total_amount,
        status=contract.status,
        terms=contract.terms,
        completed_at=contract.completed_at,
        created_at=contract.created_at,
        updated_at=contract.updated_at,
    )
