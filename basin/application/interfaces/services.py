"""Service interfaces (ports) for the application layer.

Protocols define contracts for application services; callers depend on these,
not on how rules are stored or where the cache lives.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from basin.domain.enums import Action
    from basin.domain.value_objects.access import Denied, EffectivePermission, Principal


class IPermissionResolver(Protocol):
    """Protocol for resolving the effective permission of a principal on a table."""

    async def resolve(
        self, principal: Principal, table: str, action: Action
    ) -> EffectivePermission | Denied:
        """Return the merged grant, or Denied when no rule matches.

        Raises PolicyStoreUnavailableException if rules cannot be loaded.
        """
        ...


class ICacheService(Protocol):
    """Protocol for cache backends (e.g. Redis)."""

    def is_available(self) -> bool: ...

    async def get(self, key: str) -> Any: ...

    async def set(self, key: str, value: Any, ttl: int = 30) -> bool: ...

    async def delete_pattern(self, pattern: str) -> int: ...
