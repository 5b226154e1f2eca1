import pytest

from app.core.errors import ForbiddenError, NotFoundError
from app.core.permissions import Operation, Party, Role, party_of, require_party, require_role

FARMER = "507f1f77bcf86cd799439011"
BUYER = "507f1f77bcf86cd799439012"
OUTSIDER = "507f1f77bcf86cd799439013"


@pytest.mark.parametrize("role, operation", [
    (Role.FARMER, Operation.CREATE_LISTING),
    (Role.BUYER, Operation.REQUEST_CONTRACT),
])
def test_require_role_allows(role, operation):
    require_role(role, operation)


@pytest.mark.parametrize("role, operation", [
    (Role.BUYER, Operation.CREATE_LISTING),
    (Role.FARMER, Operation.REQUEST_CONTRACT),
])
def test_require_role_denies(role, operation):
    with pytest.raises(ForbiddenError) as exc_info:
        require_role(role, operation)
    assert exc_info.value.status_code == 403


def test_party_of():
    assert party_of(FARMER, BUYER, FARMER) == Party.FARMER
    assert party_of(FARMER, BUYER, BUYER) == Party.BUYER
    assert party_of(FARMER, BUYER, OUTSIDER) is None


def test_only_farmer_party_accepts():
    assert require_party(FARMER, BUYER, FARMER, Operation.ACCEPT_CONTRACT) == Party.FARMER
    with pytest.raises(ForbiddenError):
        require_party(FARMER, BUYER, BUYER, Operation.ACCEPT_CONTRACT)


@pytest.mark.parametrize("operation", [
    Operation.REJECT_CONTRACT,
    Operation.COMPLETE_CONTRACT,
    Operation.CANCEL_CONTRACT,
])
def test_either_party_may_reject_complete_cancel(operation):
    assert require_party(FARMER, BUYER, FARMER, operation) == Party.FARMER
    assert require_party(FARMER, BUYER, BUYER, operation) == Party.BUYER


def test_outsider_gets_not_found():
    with pytest.raises(NotFoundError):
        require_party(FARMER, BUYER, OUTSIDER, Operation.CANCEL_CONTRACT)


def test_party_is_independent_of_account_role():
    # A buyer account that is the farmer side of a contract may accept it
    assert require_party(BUYER, FARMER, BUYER, Operation.ACCEPT_CONTRACT) == Party.FARMER
