"""Result DTOs for item operations (shape of {data, meta} responses)."""

from typing import Any

from pydantic import BaseModel, Field


class ListMeta(BaseModel):
    """Pagination metadata for list responses."""

    count: int
    total: int
    limit: int
    offset: int


class ItemMeta(BaseModel):
    """Identifying metadata for single-item responses."""

    table: str
    id: str | None = None


class ItemListResult(BaseModel):
    data: list[dict[str, Any]] = Field(default_factory=list)
    meta: ListMeta


class ItemResult(BaseModel):
    data: dict[str, Any] | None = None
    meta: ItemMeta
