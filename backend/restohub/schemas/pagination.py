"""List envelopes shared by the list endpoints.

Full lists:      {"items": [...], "total": <int>}
Paged lists:     {"items": [...], "total": <int>, "skip": <int>, "limit": <int>, "has_more": <bool>}
"""

from typing import Generic, List, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class ListResponse(BaseModel, Generic[T]):
    """An unpaged list, e.g. a work queue."""

    items: List[T]
    total: int

    @classmethod
    def of(cls, items: List[T]) -> "ListResponse[T]":
        return cls(items=items, total=len(items))


class PaginatedResponse(BaseModel, Generic[T]):
    """Generic paginated response wrapper."""

    items: List[T]
    total: int = Field(description="Total number of items matching the query")
    skip: int = Field(description="Number of items skipped")
    limit: int = Field(description="Maximum items requested")
    has_more: bool = Field(description="Whether more items are available")

    @classmethod
    def create(cls, items: List[T], total: int, skip: int, limit: int) -> "PaginatedResponse[T]":
        return cls(
            items=items,
            total=total,
            skip=skip,
            limit=limit,
            has_more=(skip + len(items)) < total,
        )
