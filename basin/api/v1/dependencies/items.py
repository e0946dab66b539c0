"""Items service dependencies (composition root)."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from basin.application.services.authorization_service import AuthorizationService
from basin.application.use_cases.items import ItemsService
from basin.core.config import get_settings
from basin.infrastructure.persistence.database import get_db, get_db_transactional
from basin.infrastructure.services import PermissionResolver


def _build_items_service(request: Request, db: AsyncSession) -> ItemsService:
    """Build ItemsService with permission resolver and optional cache.

    Cache is set in app lifespan (app.state.cache) when Redis is enabled;
    otherwise cache is None and permission checks hit the DB only.
    """
    settings = get_settings()
    authorization = AuthorizationService(
        permission_resolver=PermissionResolver(db),
        cache=getattr(request.app.state, "cache", None),
        cache_ttl=settings.cache_ttl_permissions,
    )
    return ItemsService(db, authorization, settings=settings)


async def get_items_service(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ItemsService:
    """Items service for reads (list, get)."""
    return _build_items_service(request, db)


async def get_items_service_for_write(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_transactional)],
) -> ItemsService:
    """Items service for create/update/delete (one transaction per request)."""
    return _build_items_service(request, db)
