"""Authorization service: permission resolution with optional short-TTL caching."""

from __future__ import annotations

import logging

from basin.application.interfaces.services import ICacheService, IPermissionResolver
from basin.domain.enums import Action
from basin.domain.exceptions import AuthorizationException
from basin.domain.value_objects.access import Denied, EffectivePermission, Principal
from basin.infrastructure.cache.keys import permission_key, permission_tenant_pattern

logger = logging.getLogger(__name__)


class AuthorizationService:
    """Centralized permission checks; uses cache when available.

    Only grants are cached. Any write to permission rules or to the set of
    collections must call invalidate_tenant_cache().
    """

    def __init__(
        self,
        permission_resolver: IPermissionResolver,
        cache: ICacheService | None = None,
        cache_ttl: int = 30,
    ) -> None:
        self.permission_resolver = permission_resolver
        self.cache = cache
        self.cache_ttl = cache_ttl

    def _cache_usable(self) -> bool:
        return self.cache is not None and self.cache.is_available()

    async def resolve(
        self, principal: Principal, table: str, action: Action
    ) -> EffectivePermission | Denied:
        """Return the effective permission (cached) or Denied."""
        key = None
        if self._cache_usable():
            key = permission_key(principal.tenant_id, table, action.value, principal.role_ids)
            cached = await self.cache.get(key)
            if cached is not None:
                return EffectivePermission.from_dict(cached)

        result = await self.permission_resolver.resolve(principal, table, action)
        if key is not None and isinstance(result, EffectivePermission):
            await self.cache.set(key, result.to_dict(), ttl=self.cache_ttl)
        return result

    async def require(
        self, principal: Principal, table: str, action: Action
    ) -> EffectivePermission:
        """Return the effective permission or raise AuthorizationException (fail closed)."""
        result = await self.resolve(principal, table, action)
        if isinstance(result, Denied):
            logger.info(
                "Denied %s on %s for tenant_id=%s user_id=%s",
                action.value,
                table,
                principal.tenant_id,
                principal.user_id,
            )
            raise AuthorizationException(resource=table, action=action.value)
        return result

    async def invalidate_tenant_cache(self, tenant_id: str) -> None:
        """Invalidate all cached permissions for a tenant."""
        if self._cache_usable():
            await self.cache.delete_pattern(permission_tenant_pattern(tenant_id))
