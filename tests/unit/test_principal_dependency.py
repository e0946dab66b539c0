"""Tests for building a Principal from token claims."""

import pytest

from basin.api.v1.dependencies.principal import principal_from_payload
from basin.domain.exceptions import AuthenticationException
from basin.infrastructure.security.jwt import create_access_token, verify_token


def test_principal_from_claims() -> None:
    """sub, tenant_id and roles claims become the Principal."""
    p = principal_from_payload({"sub": "u1", "tenant_id": "t1", "roles": ["r1", "r2"]})
    assert p.tenant_id == "t1"
    assert p.role_ids == frozenset({"r1", "r2"})
    assert p.user_id == "u1"


def test_roles_claim_may_be_comma_separated() -> None:
    """A comma-separated roles string is accepted."""
    p = principal_from_payload({"sub": "u1", "tenant_id": "t1", "roles": "r1,r2"})
    assert p.role_ids == frozenset({"r1", "r2"})


def test_missing_roles_is_empty_set() -> None:
    """No roles claim means no roles (every table then resolves to Denied)."""
    assert principal_from_payload({"sub": "u1", "tenant_id": "t1"}).role_ids == frozenset()


def test_missing_tenant_rejected() -> None:
    """A token without a tenant claim cannot authenticate."""
    with pytest.raises(AuthenticationException, match="tenant"):
        principal_from_payload({"sub": "u1", "roles": []})


def test_malformed_roles_rejected() -> None:
    """Roles must be strings."""
    with pytest.raises(AuthenticationException, match="roles"):
        principal_from_payload({"sub": "u1", "tenant_id": "t1", "roles": [1, 2]})


def test_token_round_trip() -> None:
    """A token minted with the configured key verifies and keeps its claims."""
    token = create_access_token({"sub": "u1", "tenant_id": "t1", "roles": ["r1"]})
    payload = verify_token(token)
    assert payload["sub"] == "u1"
    assert payload["tenant_id"] == "t1"


def test_tampered_token_rejected() -> None:
    """A modified token fails verification with ValueError."""
    token = create_access_token({"sub": "u1", "tenant_id": "t1"})
    with pytest.raises(ValueError, match="Invalid token"):
        verify_token(token[:-2] + ("AA" if not token.endswith("AA") else "BB"))
