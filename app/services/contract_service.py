"""
ContractService - the contract lifecycle.

requested -> accepted -> (in_progress) -> completed
requested | accepted -> cancelled (reject)
any non-terminal -> cancelled (cancel)

Every transition that touches more than one document runs inside a single
MongoDB transaction. Status checks are part of the update filters, so a
transition whose precondition no longer holds writes nothing.
"""

import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Tuple

from motor.motor_asyncio import AsyncIOMotorClientSession, AsyncIOMotorDatabase

from app.core.errors import ConflictError, ForbiddenError, NotFoundError
from app.core.permissions import Operation, require_party, require_role
from app.db.mongo import start_transaction
from app.models.contract import (
    HOLDING_STATUSES,
    TERMINAL_STATUSES,
    ContractInDB,
    ContractStatus,
    append_note,
)
from app.models.listing import ListingStatus
from app.models.user import CurrentUser
from app.repositories.contract_repo import ContractRepository
from app.repositories.listing_repo import ListingRepository
from app.schemas.base import Pagination
from app.schemas.contract import ContractScope
from app.services.ledger_service import LedgerService

logger = logging.getLogger(__name__)

REJECTABLE_STATUSES = frozenset({ContractStatus.REQUESTED, ContractStatus.ACCEPTED})
COMPLETABLE_STATUSES = HOLDING_STATUSES
CANCELLABLE_STATUSES = frozenset(set(ContractStatus) - TERMINAL_STATUSES)


def _not_eligible(action: str) -> NotFoundError:
    return NotFoundError(
        "Contract not found.",
        details=f"Contract does not exist or cannot be {action}",
    )


class ContractService:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.listings = ListingRepository(db)
        self.contracts = ContractRepository(db)
        self.ledger = LedgerService(db)

    async def request_contract(
        self, listing_id: str, actor: CurrentUser, terms: Optional[str] = None
    ) -> ContractInDB:
        """Open a contract request from a buyer on an active listing."""
        require_role(actor.role, Operation.REQUEST_CONTRACT)

        listing = await self.listings.get_listing(listing_id)
        if listing is None:
            raise NotFoundError("Listing not found.")
        if listing.status != ListingStatus.ACTIVE:
            raise ConflictError(
                "Listing is not available for contracts.",
                details=f"Listing status is {listing.status.value}",
            )
        if str(listing.farmer_id) == actor.id:
            raise ForbiddenError("You cannot request a contract on your own listing.")

        contract = await self.contracts.create_contract(listing, actor.id, terms=terms)
        logger.info(
            "Contract %s requested by %s on listing %s", contract.id, actor.id, listing.id
        )
        return contract

    async def accept_contract(self, contract_id: str, actor: CurrentUser) -> ContractInDB:
        """Farmer accepts a requested contract; its listing becomes contracted."""
        async with start_transaction(self.db) as session:
            contract = await self._load_for_party(contract_id, actor, Operation.ACCEPT_CONTRACT, session)

            accepted = await self.contracts.transition_status(
                contract.id,
                [ContractStatus.REQUESTED],
                ContractStatus.ACCEPTED,
                session=session,
            )
            if accepted is None:
                raise NotFoundError(
                    "Contract request not found.",
                    details="Contract does not exist or is not in requested status",
                )

            listing = await self.listings.transition_status(
                contract.listing_id,
                ListingStatus.ACTIVE,
                ListingStatus.CONTRACTED,
                session=session,
            )
            if listing is None:
                raise ConflictError(
                    "Listing is no longer available.",
                    details="Another contract on this listing was already accepted",
                )

        logger.info("Contract %s accepted by %s", accepted.id, actor.id)
        return accepted

    async def reject_contract(
        self, contract_id: str, actor: CurrentUser, reason: Optional[str] = None
    ) -> ContractInDB:
        """Either party rejects a requested or accepted contract."""
        async with start_transaction(self.db) as session:
            contract = await self._load_for_party(contract_id, actor, Operation.REJECT_CONTRACT, session)
            rejected = await self._cancel(
                contract, REJECTABLE_STATUSES, "rejected", "Rejection reason", reason, session
            )

        logger.info("Contract %s rejected by %s", rejected.id, actor.id)
        return rejected

    async def cancel_contract(
        self, contract_id: str, actor: CurrentUser, reason: Optional[str] = None
    ) -> ContractInDB:
        """Either party cancels a contract that has not finished."""
        async with start_transaction(self.db) as session:
            contract = await self._load_for_party(contract_id, actor, Operation.CANCEL_CONTRACT, session)
            cancelled = await self._cancel(
                contract, CANCELLABLE_STATUSES, "cancelled", "Cancellation reason", reason, session
            )

        logger.info("Contract %s cancelled by %s", cancelled.id, actor.id)
        return cancelled

    async def complete_contract(
        self, contract_id: str, actor: CurrentUser, delivery_proof: Optional[str] = None
    ) -> ContractInDB:
        """
        Either party marks delivery done.

        The contract and its listing become completed and the ledger pair is
        written, all in one transaction.
        """
        async with start_transaction(self.db) as session:
            contract = await self._load_for_party(contract_id, actor, Operation.COMPLETE_CONTRACT, session)
            if contract.status not in COMPLETABLE_STATUSES:
                raise _not_eligible("completed")

            completed = await self.contracts.transition_status(
                contract.id,
                [contract.status],
                ContractStatus.COMPLETED,
                terms=append_note(contract.terms, "Delivery proof", delivery_proof),
                completed_at=datetime.now(timezone.utc),
                session=session,
            )
            if completed is None:
                raise _not_eligible("completed")

            listing = await self.listings.transition_status(
                contract.listing_id,
                ListingStatus.CONTRACTED,
                ListingStatus.COMPLETED,
                session=session,
            )
            if listing is None:
                raise ConflictError(
                    "Listing is not in contracted status.",
                    details="The listing of this contract cannot be completed",
                )

            await self.ledger.record_contract_settlement(completed, session=session)

        logger.info("Contract %s completed by %s", completed.id, actor.id)
        return completed

    async def get_contract(self, contract_id: str, actor: CurrentUser) -> ContractInDB:
        contract = await self.contracts.get_for_party(contract_id, actor.id)
        if contract is None:
            raise NotFoundError(
                "Contract not found.",
                details="Contract does not exist or you do not have access",
            )
        return contract

    async def list_contracts(
        self,
        actor: CurrentUser,
        status: Optional[ContractStatus] = None,
        scope: Optional[ContractScope] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[ContractInDB], Pagination]:
        """
        The caller's contracts.

        my_listings limits to contracts where the caller is the farmer,
        my_requests to those where the caller is the buyer.
        """
        contracts, total = await self.contracts.list_for_user(
            actor.id,
            as_farmer=scope != ContractScope.MY_REQUESTS,
            as_buyer=scope != ContractScope.MY_LISTINGS,
            status=status,
            skip=(page - 1) * limit,
            limit=limit,
        )
        return contracts, Pagination.build(page, limit, total)

    # ===== PRIVATE HELPERS =====

    async def _load_for_party(
        self,
        contract_id: str,
        actor: CurrentUser,
        operation: Operation,
        session: AsyncIOMotorClientSession,
    ) -> ContractInDB:
        contract = await self.contracts.get_for_party(contract_id, actor.id, session=session)
        if contract is None:
            raise NotFoundError(
                "Contract not found.",
                details="Contract does not exist or you do not have access",
            )
        require_party(str(contract.farmer_id), str(contract.buyer_id), actor.id, operation)
        return contract

    async def _cancel(
        self,
        contract: ContractInDB,
        allowed: Iterable[ContractStatus],
        action: str,
        label: str,
        reason: Optional[str],
        session: AsyncIOMotorClientSession,
    ) -> ContractInDB:
        """Move ``contract`` to cancelled and release its listing if it held one."""
        if contract.status not in allowed:
            raise _not_eligible(action)

        cancelled = await self.contracts.transition_status(
            contract.id,
            [contract.status],
            ContractStatus.CANCELLED,
            terms=append_note(contract.terms, label, reason),
            session=session,
        )
        if cancelled is None:
            raise _not_eligible(action)

        if contract.status in HOLDING_STATUSES:
            listing = await self.listings.transition_status(
                contract.listing_id,
                ListingStatus.CONTRACTED,
                ListingStatus.ACTIVE,
                session=session,
            )
            if listing is None:
                logger.warning(
                    "Listing %s of contract %s was not contracted; left unchanged",
                    contract.listing_id, contract.id,
                )
        return cancelled
