"""Rate limiter instance for SlowAPI.

Shared so both main (app.state.limiter) and the items routes use the same
instance without circular imports. Item writes are counted per tenant when the
request names one in the tenant header, otherwise per client address.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request

from basin.core.config import get_settings


def tenant_or_remote_address(request: Request) -> str:
    """Rate-limit key: 'tenant:<id>' from the tenant header, else the client address."""
    tenant_id = request.headers.get(get_settings().tenant_header_name, "").strip()
    if tenant_id:
        return f"tenant:{tenant_id}"
    return get_remote_address(request)


def write_limit() -> str:
    return get_settings().rate_limit_writes


limiter = Limiter(key_func=tenant_or_remote_address)

limit_writes = limiter.limit(write_limit)
