from datetime import datetime, timezone
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """API schema: camelCase on the wire, snake_case in Python."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True
    )


class ErrorInfo(CamelModel):
    code: str
    details: Optional[Any] = None


class Pagination(CamelModel):
    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int
    has_next: bool
    has_previous: bool

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        total_pages = (total + limit - 1) // limit
        return cls(
            current_page=page,
            total_pages=total_pages,
            total_items=total,
            items_per_page=limit,
            has_next=page < total_pages,
            has_previous=page > 1,
        )


class ApiResponse(CamelModel, Generic[T]):
    """Envelope returned by every endpoint."""
    success: bool = True
    message: str
    data: Optional[T] = None
    pagination: Optional[Pagination] = None
    error: Optional[ErrorInfo] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


def ok(message: str, data: Any = None, pagination: Optional[Pagination] = None) -> ApiResponse:
    return ApiResponse(message=message, data=data, pagination=pagination)


def failure(message: str, code: str, details: Any = None) -> dict:
    """JSON-ready error envelope for exception handlers."""
    return ApiResponse[None](
        success=False,
        message=message,
        error=ErrorInfo(code=code, details=details),
    ).model_dump(mode="json", by_alias=True)
