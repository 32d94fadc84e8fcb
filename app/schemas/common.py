# app/schemas/common.py
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Generic, List, TypeVar

T = TypeVar("T")


class CamelModel(BaseModel):
    """Base schema: camelCase on the wire, snake_case accepted on input."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class PaginationMeta(CamelModel):
    total_count: int
    total_pages: int
    current_page: int
    page_size: int


class Page(CamelModel, Generic[T]):
    data: List[T]
    pagination: PaginationMeta


def build_pagination(total: int, page: int, limit: int) -> PaginationMeta:
    return PaginationMeta(
        total_count=total,
        total_pages=(total + limit - 1) // limit if limit else 0,
        current_page=page,
        page_size=limit,
    )


def reject_null(v):
    """For PATCH fields that may be omitted but not cleared."""
    if v is None:
        raise ValueError("must not be null")
    return v
