"""
Shared response envelope and base schema for the API.
"""
from datetime import datetime, timezone
from typing import Annotated, Any, Generic, List, Optional, TypeVar
from pydantic import AfterValidator, BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from dental_lab.utils.helpers import calculate_pages

T = TypeVar("T")


def _to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


# Incoming timestamps are normalised to naive UTC before they reach the database
UTCDateTime = Annotated[datetime, AfterValidator(_to_naive_utc)]


def reject_null(value):
    """Partial updates may omit a field but not clear a required one."""
    if value is None:
        raise ValueError("Field cannot be null")
    return value


class CamelModel(BaseModel):
    """Base schema: camelCase on the wire, snake_case accepted on input."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class Pagination(CamelModel):
    total: int
    page: int
    limit: int
    pages: int

    @classmethod
    def build(cls, total: int, page: int, limit: int) -> "Pagination":
        return cls(total=total, page=page, limit=limit, pages=calculate_pages(total, limit))


class Page(CamelModel, Generic[T]):
    """Paginated list payload."""
    data: List[T]
    pagination: Pagination

    @classmethod
    def build(cls, items: list, total: int, page: int, limit: int) -> "Page":
        return cls(data=items, pagination=Pagination.build(total, page, limit))


class ApiResponse(CamelModel, Generic[T]):
    """Success envelope."""
    success: bool = True
    data: Optional[T] = None
    message: Optional[str] = None


class ErrorResponse(CamelModel):
    """Failure envelope."""
    success: bool = False
    message: str
    code: str
    details: Optional[Any] = None

