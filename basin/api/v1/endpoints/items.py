"""Generic item endpoints over collections and system tables.

Routes only resolve the principal and hand off to ItemsService; every
authorization, validation and SQL decision is made there.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, Request

from basin.api.v1.dependencies import (
    get_items_service,
    get_items_service_for_write,
    get_principal,
)
from basin.application.dtos.items import ItemListResult, ItemResult
from basin.application.use_cases.items import ItemsService
from basin.core.limiter import limit_writes
from basin.domain.value_objects.access import Principal

router = APIRouter()


@router.get("/{table}", response_model=ItemListResult)
async def list_items(
    request: Request,
    table: str,
    principal: Annotated[Principal, Depends(get_principal)],
    service: Annotated[ItemsService, Depends(get_items_service)],
) -> ItemListResult:
    """List rows of a table visible to the caller (filters, sort, paging via query)."""
    return await service.list_items(principal, table, dict(request.query_params))


@router.get("/{table}/{item_id}", response_model=ItemResult)
async def get_item(
    table: str,
    item_id: str,
    principal: Annotated[Principal, Depends(get_principal)],
    service: Annotated[ItemsService, Depends(get_items_service)],
) -> ItemResult:
    """Get one row by id. Rows outside the caller's filter are not found."""
    return await service.get_item(principal, table, item_id)


@router.post("/{table}", response_model=ItemResult, status_code=201)
@limit_writes
async def create_item(
    request: Request,
    table: str,
    body: Annotated[dict[str, Any], Body()],
    principal: Annotated[Principal, Depends(get_principal)],
    service: Annotated[ItemsService, Depends(get_items_service_for_write)],
) -> ItemResult:
    """Create a row. Creating in collections also creates the physical table."""
    return await service.create_item(principal, table, body)


@router.patch("/{table}/{item_id}", response_model=ItemResult)
@limit_writes
async def update_item(
    request: Request,
    table: str,
    item_id: str,
    body: Annotated[dict[str, Any], Body()],
    principal: Annotated[Principal, Depends(get_principal)],
    service: Annotated[ItemsService, Depends(get_items_service_for_write)],
) -> ItemResult:
    """Partially update a row the caller may update."""
    return await service.update_item(principal, table, item_id, body)


@router.delete("/{table}/{item_id}", response_model=ItemResult)
@limit_writes
async def delete_item(
    request: Request,
    table: str,
    item_id: str,
    principal: Annotated[Principal, Depends(get_principal)],
    service: Annotated[ItemsService, Depends(get_items_service_for_write)],
) -> ItemResult:
    """Delete a row. Deleting a collection drops its table; deleting a field drops its column."""
    return await service.delete_item(principal, table, item_id)
