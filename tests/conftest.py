"""Pytest configuration and fixtures for basin.

Uses basin.main for HTTP tests and basin.infrastructure.persistence.database
for DB-dependent fixtures. A signing key is set before the app is imported so
bearer tokens can be minted in tests.
"""

import os
import uuid
from collections.abc import Callable

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

os.environ.setdefault("SECRET_KEY", "test-secret-key-for-basin")

from basin.core.config import get_settings  # noqa: E402

get_settings.cache_clear()

from basin.application.services.authorization_service import AuthorizationService  # noqa: E402
from basin.application.use_cases.items import ItemsService  # noqa: E402
from basin.domain.value_objects.access import Principal  # noqa: E402
from basin.infrastructure.persistence import database  # noqa: E402
from basin.infrastructure.persistence.models import Role, Tenant  # noqa: E402
from basin.infrastructure.security.jwt import create_access_token  # noqa: E402
from basin.infrastructure.services import PermissionResolver  # noqa: E402
from basin.main import app  # noqa: E402


@pytest.fixture
async def client() -> AsyncClient:
    """Async HTTP client against the FastAPI app (ASGI)."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def make_token() -> Callable[..., str]:
    """Return a function that mints a bearer token for (tenant_id, roles, sub)."""

    def _make(tenant_id: str = "t1", roles: list[str] | None = None, sub: str = "user-1") -> str:
        return create_access_token(
            {"sub": sub, "tenant_id": tenant_id, "roles": roles or []}
        )

    return _make


@pytest.fixture
async def db_session() -> AsyncSession:
    """Database session for integration tests. Rolls back after test.

    Requires DATABASE_URL and a migrated catalog (alembic upgrade head).
    Skips when Postgres is not configured. Mark tests that need this fixture
    with @pytest.mark.requires_db; run without DB via: pytest -m 'not requires_db'.
    """
    database._ensure_engine()
    if database.AsyncSessionLocal is None:
        pytest.skip(
            "Postgres not configured: set DATABASE_URL, then run: alembic upgrade head"
        )
    async with database.AsyncSessionLocal() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def tenant_admin(db_session: AsyncSession) -> tuple[Tenant, Role, Principal]:
    """A fresh tenant with its own schema and an admin role; principal holds that role."""
    suffix = uuid.uuid4().hex[:12]
    tenant = Tenant(name=f"Tenant {suffix}", slug=f"t-{suffix}", schema_name=f"t_{suffix}")
    db_session.add(tenant)
    await db_session.flush()
    role = Role(tenant_id=tenant.id, name=get_settings().admin_role_name, is_system=True)
    db_session.add(role)
    await db_session.flush()
    principal = Principal(tenant_id=tenant.id, role_ids=frozenset({role.id}), user_id="admin-user")
    return tenant, role, principal


@pytest.fixture
def items_service(db_session: AsyncSession) -> ItemsService:
    """ItemsService over the test session with DB-only permission resolution."""
    authorization = AuthorizationService(permission_resolver=PermissionResolver(db_session))
    return ItemsService(db_session, authorization)


@pytest.fixture
def grant(db_session: AsyncSession) -> Callable:
    """Return an async function that stores a permission rule for a role."""
    from basin.infrastructure.persistence.models import Permission

    async def _grant(
        role: Role,
        table: str,
        actions: tuple[str, ...] = ("create", "read", "update", "delete"),
        allowed_fields: list[str] | None = None,
        field_filter: dict | None = None,
    ) -> None:
        for action in actions:
            db_session.add(
                Permission(
                    tenant_id=role.tenant_id,
                    role_id=role.id,
                    table_name=table,
                    action=action,
                    allowed_fields=allowed_fields,
                    field_filter=field_filter,
                )
            )
        await db_session.flush()

    return _grant
