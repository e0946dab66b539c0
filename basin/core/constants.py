"""Core constants: cache key prefixes, reserved columns and system table names."""

# Cache key prefixes
CACHE_PREFIX_PERMISSION = "permission"

# Delimiter for composite keys
CACHE_KEY_SEP = ":"

# Server-managed columns present on every physical table. Never caller-settable.
AUDIT_COLUMNS: tuple[str, ...] = (
    "id",
    "created_at",
    "updated_at",
    "created_by",
    "updated_by",
)

# Column scoping system tables to a tenant; injected server-side.
TENANT_COLUMN = "tenant_id"

# Catalog tables exposed through the item API (item table name -> physical table).
SYSTEM_TABLES: dict[str, str] = {
    "collections": "collection",
    "fields": "field",
    "roles": "role",
    "permissions": "permission",
}

# Postgres limit on identifier length (bytes).
MAX_IDENTIFIER_LENGTH = 63

# Query parameters consumed by pagination/sorting, never treated as filters.
RESERVED_QUERY_PARAMS = frozenset(
    {"limit", "offset", "page", "per_page", "sort", "order"}
)
