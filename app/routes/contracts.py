from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError as PydanticValidationError

from app.core.auth import get_current_user, get_optional_user
from app.db.mongo import get_db
from app.models.contract import ContractStatus
from app.models.user import CurrentUser
from app.schemas.base import ApiResponse, ok
from app.schemas.contract import (
    ContractCompletion,
    ContractReason,
    ContractRequest,
    ContractResponse,
    ContractScope,
    to_contract_response,
)
from app.schemas.listing import ListingCreate, ListingResponse, to_listing_response
from app.services.contract_service import ContractService
from app.services.listing_service import ListingService

router = APIRouter(prefix="/contracts", tags=["contracts"])


@router.get("", response_model=ApiResponse[List[ContractResponse]])
async def list_contracts(
    status: Optional[ContractStatus] = None,
    type: Optional[ContractScope] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user: CurrentUser = Depends(get_current_user),
    db = Depends(get_db)
):
    """Contracts the caller is party to."""
    contracts, pagination = await ContractService(db).list_contracts(
        current_user, status=status, scope=type, page=page, limit=limit
    )
    return ok(
        "Contracts retrieved successfully",
        [to_contract_response(c) for c in contracts],
        pagination,
    )


@router.get("/listings", response_model=ApiResponse[List[ListingResponse]])
async def browse_listings(
    crop: Optional[str] = None,
    location: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user: Optional[CurrentUser] = Depends(get_optional_user),
    db = Depends(get_db)
):
    """Active listings, filtered by crop and location."""
    listings, pagination = await ListingService(db).browse_listings(
        crop_type=crop, location=location, page=page, limit=limit
    )
    return ok(
        "Listings retrieved successfully",
        [to_listing_response(listing) for listing in listings],
        pagination,
    )


@router.post("/listing", response_model=ApiResponse[ListingResponse], status_code=status.HTTP_201_CREATED)
async def create_listing(
    crop_type: str = Form(..., alias="cropType"),
    quantity: str = Form(...),
    unit: str = Form(...),
    expected_price: str = Form(..., alias="expectedPrice"),
    description: Optional[str] = Form(None),
    harvest_date: Optional[str] = Form(None, alias="harvestDate"),
    images: Optional[List[UploadFile]] = File(None),
    current_user: CurrentUser = Depends(get_current_user),
    db = Depends(get_db)
):
    """Create a listing (farmers only). Up to five images may be attached."""
    try:
        data = ListingCreate(
            crop_type=crop_type,
            quantity=quantity,
            unit=unit,
            expected_price=expected_price,
            description=description,
            harvest_date=harvest_date or None,
        )
    except PydanticValidationError as e:
        raise RequestValidationError(e.errors()) from e

    listing = await ListingService(db).create_listing(current_user, data, images)
    return ok("Contract listing created successfully", to_listing_response(listing))


@router.get("/{contract_id}", response_model=ApiResponse[ContractResponse])
async def get_contract(
    contract_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    db = Depends(get_db)
):
    contract = await ContractService(db).get_contract(contract_id, current_user)
    return ok("Contract retrieved successfully", to_contract_response(contract))


@router.post("/{listing_id}/request", response_model=ApiResponse[ContractResponse], status_code=status.HTTP_201_CREATED)
async def request_contract(
    listing_id: str,
    payload: Optional[ContractRequest] = None,
    current_user: CurrentUser = Depends(get_current_user),
    db = Depends(get_db)
):
    """Request a contract on an active listing (buyers only)."""
    payload = payload or ContractRequest()
    contract = await ContractService(db).request_contract(
        listing_id, current_user, terms=payload.terms or payload.message
    )
    return ok("Contract request sent successfully", to_contract_response(contract))


@router.put("/{contract_id}/accept", response_model=ApiResponse[ContractResponse])
async def accept_contract(
    contract_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    db = Depends(get_db)
):
    contract = await ContractService(db).accept_contract(contract_id, current_user)
    return ok("Contract accepted successfully", to_contract_response(contract))


@router.put("/{contract_id}/reject", response_model=ApiResponse[ContractResponse])
async def reject_contract(
    contract_id: str,
    payload: Optional[ContractReason] = None,
    current_user: CurrentUser = Depends(get_current_user),
    db = Depends(get_db)
):
    reason = payload.reason if payload else None
    contract = await ContractService(db).reject_contract(contract_id, current_user, reason)
    return ok("Contract rejected successfully", to_contract_response(contract))


@router.put("/{contract_id}/complete", response_model=ApiResponse[ContractResponse])
async def complete_contract(
    contract_id: str,
    payload: Optional[ContractCompletion] = None,
    current_user: CurrentUser = Depends(get_current_user),
    db = Depends(get_db)
):
    """Mark a contract delivered; records the sale and purchase in both ledgers."""
    delivery_proof = payload.delivery_proof if payload else None
    contract = await ContractService(db).complete_contract(contract_id, current_user, delivery_proof)
    return ok("Contract completed successfully", to_contract_response(contract))


@router.put("/{contract_id}/cancel", response_model=ApiResponse[ContractResponse])
async def cancel_contract(
    contract_id: str,
    payload: Optional[ContractReason] = None,
    current_user: CurrentUser = Depends(get_current_user),
    db = Depends(get_db)
):
    reason = payload.reason if payload else None
    contract = await ContractService(db).cancel_contract(contract_id, current_user, reason)
    return ok("Contract cancelled successfully", to_contract_response(contract))
