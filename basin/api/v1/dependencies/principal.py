"""Principal resolution from a verified bearer token."""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from basin.core.config import get_settings
from basin.core.request_context import set_tenant_id
from basin.domain.exceptions import AuthenticationException, AuthorizationException
from basin.domain.value_objects.access import Principal
from basin.infrastructure.security.jwt import verify_token

_http_bearer = HTTPBearer(auto_error=False)


def _role_ids(claim: Any) -> frozenset[str]:
    if claim is None:
        return frozenset()
    if isinstance(claim, str):
        return frozenset(r for r in claim.split(",") if r.strip())
    if isinstance(claim, (list, tuple)) and all(isinstance(r, str) for r in claim):
        return frozenset(claim)
    raise AuthenticationException("Token roles claim is malformed")


def principal_from_payload(payload: dict[str, Any]) -> Principal:
    """Build a Principal from decoded token claims.

    Raises:
        AuthenticationException: If the tenant claim is missing or roles are malformed.
    """
    settings = get_settings()
    tenant_id = payload.get(settings.tenant_claim)
    if not tenant_id or not isinstance(tenant_id, str):
        raise AuthenticationException("Token missing tenant claim")
    return Principal(
        tenant_id=tenant_id,
        role_ids=_role_ids(payload.get(settings.roles_claim)),
        user_id=str(payload["sub"]),
    )


async def get_principal(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_http_bearer)],
) -> Principal:
    """Return the calling principal; 401 without a valid token.

    The tenant header, when sent, must name the token's tenant (403 otherwise).
    """
    if not credentials:
        raise AuthenticationException("Not authenticated")
    try:
        payload = verify_token(credentials.credentials)
    except ValueError:
        raise AuthenticationException("Invalid or expired token") from None
    principal = principal_from_payload(payload)

    header_tenant = request.headers.get(get_settings().tenant_header_name)
    if header_tenant and header_tenant != principal.tenant_id:
        raise AuthorizationException(message="Tenant header does not match token")
    set_tenant_id(principal.tenant_id)
    return principal
