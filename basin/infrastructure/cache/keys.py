"""Cache key builders. Single place for key format.

Key components (tenant_id, table, action) must not contain CACHE_KEY_SEP
to avoid ambiguous or colliding keys.
"""

import hashlib
from collections.abc import Iterable

from basin.core.constants import CACHE_KEY_SEP, CACHE_PREFIX_PERMISSION


def _validate_key_component(value: str, name: str) -> None:
    """Raise ValueError if value contains the cache key separator or a glob character."""
    if CACHE_KEY_SEP in value or any(c in value for c in "*?[]"):
        raise ValueError(
            f"Cache key component {name!r} must not contain separator {CACHE_KEY_SEP!r}"
        )


def roles_digest(role_ids: Iterable[str]) -> str:
    """Stable short digest of a role set (order-insensitive)."""
    joined = ",".join(sorted(set(role_ids)))
    return hashlib.sha256(joined.encode("utf-8")).hexdigest()[:16]


def permission_key(tenant_id: str, table: str, action: str, role_ids: Iterable[str]) -> str:
    """Cache key for a resolved permission (tenant + table + action + role set)."""
    for value, name in ((tenant_id, "tenant_id"), (table, "table"), (action, "action")):
        _validate_key_component(value, name)
    return CACHE_KEY_SEP.join(
        (CACHE_PREFIX_PERMISSION, tenant_id, table, action, roles_digest(role_ids))
    )


def permission_tenant_pattern(tenant_id: str) -> str:
    """SCAN pattern matching every cached permission of a tenant."""
    _validate_key_component(tenant_id, "tenant_id")
    return f"{CACHE_PREFIX_PERMISSION}{CACHE_KEY_SEP}{tenant_id}{CACHE_KEY_SEP}*"
