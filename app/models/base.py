from decimal import Decimal, ROUND_HALF_UP
from typing import Annotated, Any

from bson import ObjectId
from bson.decimal128 import Decimal128
from pydantic import BeforeValidator

MONEY_QUANTUM = Decimal("0.01")


class PyObjectId(ObjectId):
    @classmethod
    def __get_pydantic_core_schema__(cls, source_type: Any, handler: Any):
        from pydantic_core import core_schema

        return core_schema.no_info_plain_validator_function(
            cls.validate,
            serialization=core_schema.plain_serializer_function_ser_schema(str),
        )

    @classmethod
    def validate(cls, value: Any) -> ObjectId:
        if isinstance(value, ObjectId):
            return value
        if isinstance(value, str) and ObjectId.is_valid(value):
            return ObjectId(value)
        raise ValueError("Invalid ObjectId")


def parse_object_id(value: str) -> ObjectId | None:
    """ObjectId for a path/query id, or None when it is not a valid id."""
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return None


def _from_decimal128(value: Any) -> Any:
    if isinstance(value, Decimal128):
        return value.to_decimal()
    return value


# Decimal in Python, Decimal128 in MongoDB
DecimalField = Annotated[Decimal, BeforeValidator(_from_decimal128)]


def to_decimal128(value: Decimal) -> Decimal128:
    return Decimal128(value)


def quantize_money(value: Decimal) -> Decimal:
    """Round a monetary amount to cents, half up."""
    return value.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


def compute_total(quantity: Decimal, unit_price: Decimal) -> Decimal:
    """Contract total from quantity and agreed unit price."""
    return quantize_money(quantity * unit_price)
