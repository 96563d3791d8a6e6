"""Shared pydantic base for API payloads (camelCase on the wire)."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Accepts snake_case or camelCase input, serialises with camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_more: bool


def paginate(page: int, limit: int, total: int) -> Pagination:
    """Build the pagination block returned by list endpoints."""
    total_pages = (total + limit - 1) // limit if limit else 0
    return Pagination(page=page, limit=limit, total=total, total_pages=total_pages, has_more=page < total_pages)
