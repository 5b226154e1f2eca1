from contextlib import asynccontextmanager
from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest
from bson import ObjectId

from app.core.errors import ConflictError, ForbiddenError, NotFoundError
from app.models.contract import ContractInDB, ContractStatus
from app.models.listing import ListingInDB, ListingStatus
from app.repositories.contract_repo import ContractRepository
from app.repositories.listing_repo import ListingRepository
from app.schemas.contract import ContractScope
from app.services.contract_service import ContractService
from app.services.ledger_service import LedgerService

SESSION = object()


@asynccontextmanager
async def fake_transaction(db):
    yield SESSION


def make_listing(farmer_id, status=ListingStatus.ACTIVE) -> ListingInDB:
    now = datetime.now(timezone.utc)
    return ListingInDB(
        _id=ObjectId(),
        farmer_id=ObjectId(farmer_id),
        crop_type="Wheat",
        quantity=Decimal("100"),
        unit="kg",
        expected_price=Decimal("25.50"),
        status=status,
        created_at=now,
        updated_at=now,
    )


def make_contract(farmer_id, buyer_id, status=ContractStatus.REQUESTED, terms=None) -> ContractInDB:
    now = datetime.now(timezone.utc)
    return ContractInDB(
        _id=ObjectId(),
        listing_id=ObjectId(),
        farmer_id=ObjectId(farmer_id),
        buyer_id=ObjectId(buyer_id),
        crop_type="Wheat",
        quantity=Decimal("100"),
        unit="kg",
        agreed_price=Decimal("25.50"),
        total_amount=Decimal("2550.00"),
        status=status,
        terms=terms,
        created_at=now,
        updated_at=now,
    )


def moved_to(contract: ContractInDB, status: ContractStatus, **changes) -> ContractInDB:
    return contract.model_copy(update={"status": status, **changes})


@pytest.fixture
def service():
    svc = ContractService(MagicMock())
    svc.listings = MagicMock(spec=ListingRepository)
    svc.contracts = MagicMock(spec=ContractRepository)
    svc.ledger = MagicMock(spec=LedgerService)
    with patch("app.services.contract_service.start_transaction", fake_transaction):
        yield svc


# ===== request =====

@pytest.mark.asyncio
async def test_request_contract_snapshots_listing(service, farmer, buyer):
    listing = make_listing(farmer.id)
    service.listings.get_listing.return_value = listing
    service.contracts.create_contract.return_value = make_contract(farmer.id, buyer.id)

    contract = await service.request_contract(str(listing.id), buyer, terms="Deliver by March")

    assert contract.status == ContractStatus.REQUESTED
    service.contracts.create_contract.assert_awaited_once_with(listing, buyer.id, terms="Deliver by March")


@pytest.mark.asyncio
async def test_request_contract_requires_buyer_role(service, farmer):
    with pytest.raises(ForbiddenError):
        await service.request_contract(str(ObjectId()), farmer)

    service.listings.get_listing.assert_not_awaited()


@pytest.mark.asyncio
async def test_request_contract_missing_listing(service, buyer):
    service.listings.get_listing.return_value = None

    with pytest.raises(NotFoundError):
        await service.request_contract(str(ObjectId()), buyer)


@pytest.mark.asyncio
async def test_request_contract_on_contracted_listing_conflicts(service, farmer, buyer):
    service.listings.get_listing.return_value = make_listing(farmer.id, ListingStatus.CONTRACTED)

    with pytest.raises(ConflictError):
        await service.request_contract(str(ObjectId()), buyer)

    service.contracts.create_contract.assert_not_awaited()


@pytest.mark.asyncio
async def test_request_contract_on_own_listing_forbidden(service, buyer):
    service.listings.get_listing.return_value = make_listing(buyer.id)

    with pytest.raises(ForbiddenError):
        await service.request_contract(str(ObjectId()), buyer)

    service.contracts.create_contract.assert_not_awaited()


# ===== accept =====

@pytest.mark.asyncio
async def test_accept_contract_moves_contract_and_listing(service, farmer, buyer):
    contract = make_contract(farmer.id, buyer.id)
    service.contracts.get_for_party.return_value = contract
    service.contracts.transition_status.return_value = moved_to(contract, ContractStatus.ACCEPTED)
    service.listings.transition_status.return_value = make_listing(farmer.id, ListingStatus.CONTRACTED)

    accepted = await service.accept_contract(str(contract.id), farmer)

    assert accepted.status == ContractStatus.ACCEPTED
    service.contracts.get_for_party.assert_awaited_once_with(str(contract.id), farmer.id, session=SESSION)
    service.contracts.transition_status.assert_awaited_once_with(
        contract.id, [ContractStatus.REQUESTED], ContractStatus.ACCEPTED, session=SESSION
    )
    service.listings.transition_status.assert_awaited_once_with(
        contract.listing_id, ListingStatus.ACTIVE, ListingStatus.CONTRACTED, session=SESSION
    )


@pytest.mark.asyncio
async def test_accept_contract_by_buyer_forbidden(service, farmer, buyer):
    service.contracts.get_for_party.return_value = make_contract(farmer.id, buyer.id)

    with pytest.raises(ForbiddenError):
        await service.accept_contract(str(ObjectId()), buyer)

    service.contracts.transition_status.assert_not_awaited()
    service.listings.transition_status.assert_not_awaited()


@pytest.mark.asyncio
async def test_accept_contract_not_visible_to_outsider(service, farmer):
    service.contracts.get_for_party.return_value = None

    with pytest.raises(NotFoundError):
        await service.accept_contract(str(ObjectId()), farmer)


@pytest.mark.asyncio
async def test_accept_contract_no_longer_requested(service, farmer, buyer):
    service.contracts.get_for_party.return_value = make_contract(farmer.id, buyer.id, ContractStatus.CANCELLED)
    service.contracts.transition_status.return_value = None

    with pytest.raises(NotFoundError) as exc_info:
        await service.accept_contract(str(ObjectId()), farmer)

    assert "requested status" in exc_info.value.details
    service.listings.transition_status.assert_not_awaited()


@pytest.mark.asyncio
async def test_accept_contract_listing_taken_conflicts(service, farmer, buyer):
    contract = make_contract(farmer.id, buyer.id)
    service.contracts.get_for_party.return_value = contract
    service.contracts.transition_status.return_value = moved_to(contract, ContractStatus.ACCEPTED)
    service.listings.transition_status.return_value = None

    with pytest.raises(ConflictError):
        await service.accept_contract(str(contract.id), farmer)


# ===== reject =====

@pytest.mark.asyncio
async def test_reject_requested_contract_leaves_listing(service, farmer, buyer):
    contract = make_contract(farmer.id, buyer.id, terms="Net 30")
    service.contracts.get_for_party.return_value = contract
    service.contracts.transition_status.return_value = moved_to(contract, ContractStatus.CANCELLED)

    await service.reject_contract(str(contract.id), buyer, reason="Price too high")

    service.contracts.transition_status.assert_awaited_once_with(
        contract.id,
        [ContractStatus.REQUESTED],
        ContractStatus.CANCELLED,
        terms="Net 30\nRejection reason: Price too high",
        session=SESSION,
    )
    service.listings.transition_status.assert_not_awaited()


@pytest.mark.asyncio
async def test_reject_accepted_contract_releases_listing(service, farmer, buyer):
    contract = make_contract(farmer.id, buyer.id, ContractStatus.ACCEPTED)
    service.contracts.get_for_party.return_value = contract
    service.contracts.transition_status.return_value = moved_to(contract, ContractStatus.CANCELLED)
    service.listings.transition_status.return_value = make_listing(farmer.id)

    await service.reject_contract(str(contract.id), farmer)

    service.listings.transition_status.assert_awaited_once_with(
        contract.listing_id, ListingStatus.CONTRACTED, ListingStatus.ACTIVE, session=SESSION
    )


@pytest.mark.asyncio
async def test_reject_completed_contract_not_found(service, farmer, buyer):
    service.contracts.get_for_party.return_value = make_contract(farmer.id, buyer.id, ContractStatus.COMPLETED)

    with pytest.raises(NotFoundError):
        await service.reject_contract(str(ObjectId()), farmer)

    service.contracts.transition_status.assert_not_awaited()


# ===== complete =====

@pytest.mark.asyncio
async def test_complete_contract_writes_ledger_pair(service, farmer, buyer):
    contract = make_contract(farmer.id, buyer.id, ContractStatus.ACCEPTED)
    completed = moved_to(contract, ContractStatus.COMPLETED, completed_at=datetime.now(timezone.utc))
    service.contracts.get_for_party.return_value = contract
    service.contracts.transition_status.return_value = completed
    service.listings.transition_status.return_value = make_listing(farmer.id, ListingStatus.COMPLETED)

    result = await service.complete_contract(str(contract.id), buyer, delivery_proof="Receipt #42")

    assert result.status == ContractStatus.COMPLETED
    kwargs = service.contracts.transition_status.await_args.kwargs
    assert kwargs["terms"] == "Delivery proof: Receipt #42"
    assert kwargs["completed_at"] is not None
    service.listings.transition_status.assert_awaited_once_with(
        contract.listing_id, ListingStatus.CONTRACTED, ListingStatus.COMPLETED, session=SESSION
    )
    service.ledger.record_contract_settlement.assert_awaited_once_with(completed, session=SESSION)


@pytest.mark.asyncio
async def test_complete_requested_contract_not_found(service, farmer, buyer):
    service.contracts.get_for_party.return_value = make_contract(farmer.id, buyer.id)

    with pytest.raises(NotFoundError):
        await service.complete_contract(str(ObjectId()), farmer)

    service.ledger.record_contract_settlement.assert_not_awaited()


@pytest.mark.asyncio
async def test_complete_twice_never_writes_second_pair(service, farmer, buyer):
    service.contracts.get_for_party.return_value = make_contract(farmer.id, buyer.id, ContractStatus.COMPLETED)

    with pytest.raises(NotFoundError):
        await service.complete_contract(str(ObjectId()), farmer)

    service.contracts.transition_status.assert_not_awaited()
    service.ledger.record_contract_settlement.assert_not_awaited()


@pytest.mark.asyncio
async def test_complete_contract_listing_mismatch_conflicts(service, farmer, buyer):
    contract = make_contract(farmer.id, buyer.id, ContractStatus.IN_PROGRESS)
    service.contracts.get_for_party.return_value = contract
    service.contracts.transition_status.return_value = moved_to(contract, ContractStatus.COMPLETED)
    service.listings.transition_status.return_value = None

    with pytest.raises(ConflictError):
        await service.complete_contract(str(contract.id), farmer)

    service.ledger.record_contract_settlement.assert_not_awaited()


# ===== cancel =====

@pytest.mark.asyncio
async def test_cancel_in_progress_contract_releases_listing(service, farmer, buyer):
    contract = make_contract(farmer.id, buyer.id, ContractStatus.IN_PROGRESS)
    service.contracts.get_for_party.return_value = contract
    service.contracts.transition_status.return_value = moved_to(contract, ContractStatus.CANCELLED)
    service.listings.transition_status.return_value = make_listing(farmer.id)

    await service.cancel_contract(str(contract.id), buyer, reason="Changed plans")

    assert service.contracts.transition_status.await_args.kwargs["terms"] == "Cancellation reason: Changed plans"
    service.listings.transition_status.assert_awaited_once_with(
        contract.listing_id, ListingStatus.CONTRACTED, ListingStatus.ACTIVE, session=SESSION
    )


@pytest.mark.asyncio
async def test_cancel_requested_contract_leaves_listing(service, farmer, buyer):
    contract = make_contract(farmer.id, buyer.id)
    service.contracts.get_for_party.return_value = contract
    service.contracts.transition_status.return_value = moved_to(contract, ContractStatus.CANCELLED)

    await service.cancel_contract(str(contract.id), buyer)

    service.listings.transition_status.assert_not_awaited()


@pytest.mark.asyncio
async def test_cancel_cancelled_contract_not_found(service, farmer, buyer):
    service.contracts.get_for_party.return_value = make_contract(farmer.id, buyer.id, ContractStatus.CANCELLED)

    with pytest.raises(NotFoundError):
        await service.cancel_contract(str(ObjectId()), buyer)


@pytest.mark.asyncio
async def test_cancel_lost_race_not_found(service, farmer, buyer):
    service.contracts.get_for_party.return_value = make_contract(farmer.id, buyer.id, ContractStatus.ACCEPTED)
    service.contracts.transition_status.return_value = None

    with pytest.raises(NotFoundError):
        await service.cancel_contract(str(ObjectId()), buyer)

    service.listings.transition_status.assert_not_awaited()


# ===== queries =====

@pytest.mark.asyncio
async def test_get_contract_hidden_from_non_party(service, buyer):
    service.contracts.get_for_party.return_value = None

    with pytest.raises(NotFoundError):
        await service.get_contract(str(ObjectId()), buyer)


@pytest.mark.asyncio
async def test_list_contracts_my_listings_scope(service, farmer, buyer):
    service.contracts.list_for_user.return_value = ([make_contract(farmer.id, buyer.id)], 11)

    contracts, pagination = await service.list_contracts(
        farmer, status=ContractStatus.REQUESTED, scope=ContractScope.MY_LISTINGS, page=2, limit=5
    )

    assert len(contracts) == 1
    service.contracts.list_for_user.assert_awaited_once_with(
        farmer.id, as_farmer=True, as_buyer=False, status=ContractStatus.REQUESTED, skip=5, limit=5
    )
    assert pagination.total_pages == 3
    assert pagination.has_next is True
    assert pagination.has_previous is True


@pytest.mark.asyncio
async def test_list_contracts_without_scope_covers_both_sides(service, buyer):
    service.contracts.list_for_user.return_value = ([], 0)

    contracts, pagination = await service.list_contracts(buyer)

    assert contracts == []
    kwargs = service.contracts.list_for_user.await_args.kwargs
    assert kwargs["as_farmer"] is True
    assert kwargs["as_buyer"] is True
    assert pagination.total_pages == 0
    assert pagination.has_next is False
