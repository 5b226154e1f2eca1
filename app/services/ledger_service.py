import logging
from decimal import Decimal
from typing import List, Optional, Tuple

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorClientSession, AsyncIOMotorDatabase

from app.core.errors import NotFoundError, ValidationError
from app.models.base import quantize_money
from app.models.contract import ContractInDB
from app.models.transaction import ReferenceType, TransactionInDB, TransactionType
from app.repositories.transaction_repo import TransactionRepository
from app.schemas.base import Pagination
from app.schemas.transaction import MonthlySummary, TransactionCreate
from app.utils.validation import month_range, start_of_day, year_range

logger = logging.getLogger(__name__)

SALE_CATEGORY = "sale"
PURCHASE_CATEGORY = "purchase"


class LedgerService:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.transactions = TransactionRepository(db)

    async def record_transaction(self, user_id: str, entry: TransactionCreate) -> TransactionInDB:
        """Record a manual income or expense entry for ``user_id``."""
        return await self.transactions.insert_transaction(
            user_id=ObjectId(user_id),
            type=entry.type,
            amount=entry.amount,
            category=entry.category,
            description=entry.description,
            transaction_date=start_of_day(entry.transaction_date) if entry.transaction_date else None,
        )

    async def record_contract_settlement(
        self,
        contract: ContractInDB,
        session: Optional[AsyncIOMotorClientSession] = None,
    ) -> Tuple[TransactionInDB, TransactionInDB]:
        """
        Write the ledger pair for a completed contract.

        The farmer gets an income entry and the buyer an expense entry, both
        for the contract total and both referencing the contract. Pass the
        session of the completing transaction so the pair commits with it.
        """
        when = contract.completed_at or contract.updated_at
        contract_ref = str(contract.id)

        income = await self.transactions.insert_transaction(
            user_id=contract.farmer_id,
            type=TransactionType.INCOME,
            amount=contract.total_amount,
            category=SALE_CATEGORY,
            description=f"Sale of {contract.crop_type} - Contract {contract_ref}",
            reference_id=contract.id,
            reference_type=ReferenceType.CONTRACT,
            transaction_date=when,
            session=session,
        )
        expense = await self.transactions.insert_transaction(
            user_id=contract.buyer_id,
            type=TransactionType.EXPENSE,
            amount=contract.total_amount,
            category=PURCHASE_CATEGORY,
            description=f"Purchase of {contract.crop_type} - Contract {contract_ref}",
            reference_id=contract.id,
            reference_type=ReferenceType.CONTRACT,
            transaction_date=when,
            session=session,
        )
        logger.info(
            "Recorded settlement for contract %s: %s %s",
            contract_ref, contract.total_amount, contract.crop_type,
        )
        return income, expense

    async def list_transactions(
        self,
        user_id: str,
        type: Optional[TransactionType] = None,
        month: Optional[int] = None,
        year: Optional[int] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[TransactionInDB], Pagination]:
        """
        A page of the user's entries.

        month narrows to one calendar month and needs year; year alone
        narrows to the whole year.
        """
        start = end = None
        if month is not None:
            if year is None:
                raise ValidationError("Year is required when filtering by month.")
            start, end = month_range(year, month)
        elif year is not None:
            start, end = year_range(year)

        entries, total = await self.transactions.list_for_user(
            user_id,
            type=type,
            start=start,
            end=end,
            skip=(page - 1) * limit,
            limit=limit,
        )
        return entries, Pagination.build(page, limit, total)

    async def monthly_summary(
        self, user_id: str, month: Optional[int], year: Optional[int]
    ) -> MonthlySummary:
        """Income, expenses and net for one calendar month."""
        if month is None or year is None:
            raise ValidationError("Month and year are required.")
        start, end = month_range(year, month)
        totals = await self.transactions.totals_by_type(user_id, start, end)

        income, income_count = totals.get(TransactionType.INCOME.value, (Decimal("0"), 0))
        expenses, expense_count = totals.get(TransactionType.EXPENSE.value, (Decimal("0"), 0))
        return MonthlySummary(
            income=quantize_money(income),
            expenses=quantize_money(expenses),
            net=quantize_money(income - expenses),
            transaction_count=income_count + expense_count,
        )

    async def get_transaction(self, user_id: str, transaction_id: str) -> TransactionInDB:
        entry = await self.transactions.get_for_user(transaction_id, user_id)
        if entry is None:
            raise NotFoundError("Transaction not found.")
        return entry
