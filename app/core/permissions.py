"""
Access control for listing and contract operations.

Account roles gate who may start things (create a listing, request a
contract). Once a contract exists, what matters is which side of it the
caller is on, independent of their account role.
"""

from enum import Enum
from typing import Optional

from app.core.errors import ForbiddenError, NotFoundError


class Role(str, Enum):
    FARMER = "farmer"
    BUYER = "buyer"


class Party(str, Enum):
    """Side of a contract a user is on."""
    FARMER = "farmer"
    BUYER = "buyer"


class Operation(str, Enum):
    CREATE_LISTING = "create_listing"
    REQUEST_CONTRACT = "request_contract"
    ACCEPT_CONTRACT = "accept_contract"
    REJECT_CONTRACT = "reject_contract"
    COMPLETE_CONTRACT = "complete_contract"
    CANCEL_CONTRACT = "cancel_contract"


ROLE_PERMISSIONS: dict[Operation, frozenset[Role]] = {
    Operation.CREATE_LISTING: frozenset({Role.FARMER}),
    Operation.REQUEST_CONTRACT: frozenset({Role.BUYER}),
}

PARTY_PERMISSIONS: dict[Operation, frozenset[Party]] = {
    Operation.ACCEPT_CONTRACT: frozenset({Party.FARMER}),
    Operation.REJECT_CONTRACT: frozenset({Party.FARMER, Party.BUYER}),
    Operation.COMPLETE_CONTRACT: frozenset({Party.FARMER, Party.BUYER}),
    Operation.CANCEL_CONTRACT: frozenset({Party.FARMER, Party.BUYER}),
}


def require_role(role: Role, operation: Operation) -> None:
    """Raise ForbiddenError unless ``role`` may perform ``operation``."""
    allowed = ROLE_PERMISSIONS[operation]
    if role not in allowed:
        required = " or ".join(sorted(r.value for r in allowed))
        raise ForbiddenError(
            f"Only {required}s can {operation.value.replace('_', ' ')}.",
            details=f"Required role: {required}",
        )


def party_of(farmer_id: str, buyer_id: str, user_id: str) -> Optional[Party]:
    if user_id == farmer_id:
        return Party.FARMER
    if user_id == buyer_id:
        return Party.BUYER
    return None


def require_party(farmer_id: str, buyer_id: str, user_id: str, operation: Operation) -> Party:
    """
    Check the caller's side of a contract for ``operation``.

    Non-parties get NotFoundError so the contract's existence is not
    confirmed to them; a party on the wrong side gets ForbiddenError.
    """
    party = party_of(farmer_id, buyer_id, user_id)
    if party is None:
        raise NotFoundError(
            "Contract not found.",
            details="Contract does not exist or you do not have access",
        )
    allowed = PARTY_PERMISSIONS[operation]
    if party not in allowed:
        raise ForbiddenError(
            f"Only the contract's {' or '.join(sorted(p.value for p in allowed))} "
            f"can {operation.value.split('_')[0]} it.",
            details=f"You are the {party.value} on this contract",
        )
    return party
