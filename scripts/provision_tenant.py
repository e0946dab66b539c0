"""Provision a tenant: catalog row, schema, admin role and its system-table rules.

Usage:
    python -m scripts.provision_tenant <slug> [name] [--token <subject>]
With --token, prints a bearer token for <subject> holding the admin role.
Requires Postgres with the catalog migrated (alembic upgrade head).
"""

import asyncio
import sys

from basin.core.config import get_settings
from basin.domain.exceptions import BasinException
from basin.infrastructure.persistence.database import get_session_factory
from basin.infrastructure.security.jwt import create_access_token
from basin.infrastructure.services import TenantProvisioningService

USAGE = "Usage: python -m scripts.provision_tenant <slug> [name] [--token <subject>]"


def parse_args(argv: list[str]) -> tuple[str, str | None, str | None]:
    """Return (slug, name, token subject) from argv; exits with usage on bad input."""
    args = list(argv)
    subject = None
    if "--token" in args:
        i = args.index("--token")
        if i + 1 >= len(args):
            print(USAGE, file=sys.stderr)
            sys.exit(1)
        subject = args[i + 1]
        del args[i : i + 2]
    if not args or len(args) > 2:
        print(USAGE, file=sys.stderr)
        sys.exit(1)
    return args[0], (args[1] if len(args) > 1 else None), subject


async def main() -> None:
    slug, name, subject = parse_args(sys.argv[1:])
    settings = get_settings()
    factory = get_session_factory()
    async with factory() as session:
        async with session.begin():
            try:
                tenant, role = await TenantProvisioningService(session).provision(slug, name)
            except BasinException as e:
                print(f"{e.error_code}: {e.message}", file=sys.stderr)
                sys.exit(1)
    print(f"Provisioned tenant {tenant.id} ({tenant.slug}), schema {tenant.schema_name}")
    print(f"Admin role {role.id}")
    if subject:
        token = create_access_token(
            {
                "sub": subject,
                settings.tenant_claim: tenant.id,
                settings.roles_claim: [role.id],
            }
        )
        print(token)


if __name__ == "__main__":
    asyncio.run(main())
