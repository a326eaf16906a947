import argparse
import asyncio

from ewaiter.config import get_settings
from ewaiter.context import AppContext


async def create(tenant_id: str, restaurant_name: str, owner: str) -> int:
    context = AppContext.build(get_settings())
    if await context.directory.get_tenant(tenant_id):
        print("Tenant already exists")
        return 1

    tenant = await context.directory.create_tenant(tenant_id, display_name=restaurant_name, owner_principal=owner)
    print(f"Tenant created: {tenant.id}")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Create a new restaurant tenant")
    parser.add_argument("--tenant-id", required=True)
    parser.add_argument("--restaurant-name", required=True)
    parser.add_argument("--owner", required=True, help="Owner email (registry flow) or principal id (session flow)")
    args = parser.parse_args()

    return asyncio.run(create(args.tenant_id.strip(), args.restaurant_name.strip(), args.owner.strip()))


if __name__ == "__main__":
    raise SystemExit(main())
