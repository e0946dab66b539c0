"""Identifier generators: CUID2 catalog keys and request IDs."""

import uuid

from cuid2 import cuid_wrapper

cuid_generator = cuid_wrapper()


def generate_cuid() -> str:
    """Collision-resistant primary key for catalog rows (tenant, role, permission, collection, field)."""
    result = cuid_generator()
    if not isinstance(result, str):
        raise TypeError(
            f"Expected str from cuid_generator, got {type(result).__name__}"
        )
    return result


def generate_request_id() -> str:
    """Request ID for calls that arrive without a usable one (32 hex chars)."""
    return uuid.uuid4().hex
