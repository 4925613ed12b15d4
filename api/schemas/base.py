"""Base Pydantic schemas with CamelCase conversion."""

from datetime import datetime
from typing import Annotated, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, PlainSerializer
from humps import camelize

from api.utils.time import as_aware_utc


def to_camel(string: str) -> str:
    """Convert snake_case to camelCase."""
    return camelize(string)


def _serialize_utc(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return as_aware_utc(value).isoformat().replace("+00:00", "Z")


# Stored instants are naive UTC; emit them with an explicit Z
UtcDateTime = Annotated[datetime, PlainSerializer(_serialize_utc, return_type=str)]


class CamelModel(BaseModel):
    """
    Base model that converts snake_case fields to camelCase in JSON responses.

    Usage:
        class MyResponse(CamelModel):
            process_step_id: int      # JSON: processStepId
            scheduled_date: datetime  # JSON: scheduledDate
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


T = TypeVar("T")


class PaginationMeta(CamelModel):
    """Pagination metadata."""

    page: int
    per_page: int
    total: int
    total_pages: int


class PaginatedResponse(CamelModel, Generic[T]):
    """
    Generic paginated response wrapper.

    Usage:
        PaginatedResponse[ActivityResponse](
            data=[...],
            meta=PaginationMeta(page=1, per_page=20, total=100, total_pages=5)
        )
    """

    data: list[T]
    meta: PaginationMeta
