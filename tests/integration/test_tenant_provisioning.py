"""Tenant provisioning against Postgres. Require DATABASE_URL; session is rolled back after each test."""

import uuid

import pytest
from sqlalchemy import func, select, text

from basin.domain.exceptions import ConflictException
from basin.domain.value_objects.access import Principal
from basin.infrastructure.persistence.models import Permission
from basin.infrastructure.services import TenantProvisioningService

pytestmark = pytest.mark.requires_db


async def test_provisioned_admin_can_bootstrap_catalog(db_session, items_service) -> None:
    """The new admin role can define a collection and write to it right away."""
    slug = f"acme-{uuid.uuid4().hex[:8]}"
    tenant, role = await TenantProvisioningService(db_session).provision(slug, "Acme")
    assert tenant.schema_name == "t_" + slug.replace("-", "_")
    exists = await db_session.execute(
        text("SELECT 1 FROM information_schema.schemata WHERE schema_name = :schema"),
        {"schema": tenant.schema_name},
    )
    assert exists.first() is not None

    principal = Principal(tenant_id=tenant.id, role_ids=frozenset({role.id}), user_id="owner")
    created = await items_service.create_item(principal, "collections", {"name": "notes"})
    await items_service.create_item(
        principal,
        "fields",
        {"collection_id": created.data["id"], "name": "body", "type": "text"},
    )
    await items_service.create_item(principal, "notes", {"body": "first"})
    listed = await items_service.list_items(principal, "notes", {})
    assert [r["body"] for r in listed.data] == ["first"]


async def test_duplicate_slug_conflicts(db_session) -> None:
    """A slug can be provisioned once."""
    slug = f"dup-{uuid.uuid4().hex[:8]}"
    service = TenantProvisioningService(db_session)
    await service.provision(slug)
    with pytest.raises(ConflictException):
        await service.provision(slug)


async def test_admin_rules_are_not_duplicated(db_session) -> None:
    """Re-running the admin bootstrap adds no rules."""
    service = TenantProvisioningService(db_session)
    tenant, role = await service.provision(f"idem-{uuid.uuid4().hex[:8]}")
    count = select(func.count()).select_from(Permission).where(Permission.role_id == role.id)
    before = (await db_session.execute(count)).scalar_one()
    again = await service.ensure_admin_role(tenant)
    assert again.id == role.id
    assert (await db_session.execute(count)).scalar_one() == before == 16
