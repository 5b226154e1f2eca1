from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from app.core.auth import get_current_user
from app.db.mongo import get_db
from app.models.transaction import TransactionType
from app.models.user import CurrentUser
from app.schemas.base import ApiResponse, ok
from app.schemas.transaction import (
    MonthlySummary,
    TransactionCreate,
    TransactionResponse,
    to_transaction_response,
)
from app.services.ledger_service import LedgerService

router = APIRouter(prefix="/transactions", tags=["transactions"])


@router.get("", response_model=ApiResponse[List[TransactionResponse]])
async def list_transactions(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=1900, le=9999),
    type: Optional[TransactionType] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user: CurrentUser = Depends(get_current_user),
    db = Depends(get_db)
):
    """The caller's ledger, newest first."""
    entries, pagination = await LedgerService(db).list_transactions(
        current_user.id, type=type, month=month, year=year, page=page, limit=limit
    )
    return ok(
        "Transactions retrieved successfully",
        [to_transaction_response(entry) for entry in entries],
        pagination,
    )


@router.get("/summary", response_model=ApiResponse[MonthlySummary])
async def monthly_summary(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=1900, le=9999),
    current_user: CurrentUser = Depends(get_current_user),
    db = Depends(get_db)
):
    summary = await LedgerService(db).monthly_summary(current_user.id, month, year)
    return ok("Monthly summary retrieved successfully", summary)


@router.post("", response_model=ApiResponse[TransactionResponse], status_code=status.HTTP_201_CREATED)
async def create_transaction(
    payload: TransactionCreate,
    current_user: CurrentUser = Depends(get_current_user),
    db = Depends(get_db)
):
    """Record a manual income or expense."""
    entry = await LedgerService(db).record_transaction(current_user.id, payload)
    return ok("Transaction created successfully", to_transaction_response(entry))


@router.get("/{transaction_id}", response_model=ApiResponse[TransactionResponse])
async def get_transaction(
    transaction_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    db = Depends(get_db)
):
    entry = await LedgerService(db).get_transaction(current_user.id, transaction_id)
    return ok("Transaction retrieved successfully", to_transaction_response(entry))
