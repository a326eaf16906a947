import argparse
import asyncio

from ewaiter.config import get_settings
from ewaiter.context import AppContext
from ewaiter.services.device_registry import ASSIGNABLE_ROLES, Role
from ewaiter.services.identity import PRINCIPAL_COLLECTION, create_principal, principal_key


def format_time(value) -> str:
    return value.isoformat() if value else "-"


async def list_tenants(context: AppContext) -> int:
    tenants = await context.directory.list_tenants()
    if not tenants:
        print("No tenants found")
        return 0
    for tenant in sorted(tenants, key=lambda item: item.id):
        print(f"{tenant.id}\t{tenant.display_name or '-'}\t{tenant.owner_principal or '-'}")
    return 0


async def add_principal(context: AppContext, principal_id: str, email: str, password: str) -> int:
    if await context.store.get(PRINCIPAL_COLLECTION, principal_key(email)):
        print("Principal already exists")
        return 1
    principal = await create_principal(context.store, principal_id, email, password)
    print(f"Principal created: {principal.id} <{principal.email}>")
    return 0


async def migrate_owner(context: AppContext) -> int:
    migrated = await context.directory.migrate_owner_principal()
    print(f"Tenants migrated: {migrated}")
    return 0


async def list_devices(context: AppContext, tenant_id: str) -> int:
    if not await context.directory.get_tenant(tenant_id):
        print("Tenant not found")
        return 1
    devices = await context.registry.list(tenant_id)
    if not devices:
        print("No devices found")
        return 0
    for device in devices:
        print(
            f"{device.device_id}\t{device.role.value}\t{device.activated}\t"
            f"{device.table_number or '-'}\t{format_time(device.last_login)}"
        )
    return 0


async def activate_device(context: AppContext, tenant_id: str, device_id: str, role: str, table: str) -> int:
    if not await context.registry.get(tenant_id, device_id):
        print("Device not found")
        return 1
    device_role = Role.parse(role)
    if device_role == Role.table and not table:
        print("Table number required")
        return 1
    device = await context.registry.activate(tenant_id, device_id, device_role, table)
    print(f"Device activated as {device.role.value}")
    return 0


async def list_sessions(context: AppContext, tenant_id: str, active_only: bool) -> int:
    filters = {"isActive": True} if active_only else {}
    sessions = await context.ledger.find(tenant_id, **filters)
    if not sessions:
        print("No sessions found")
        return 0
    for session in sessions:
        print(
            f"{session.id}\t{session.device_id}\t{session.role.value}\t{session.table_number}\t"
            f"{session.is_active}\t{format_time(session.last_activity)}"
        )
    return 0


async def reassign_device(context: AppContext, tenant_id: str, device_id: str) -> int:
    """Forget a device so its next login starts from scratch with any role."""
    removed_device = await context.registry.delete(tenant_id, device_id)
    sessions = await context.ledger.find(tenant_id, deviceId=device_id)
    for session in sessions:
        await context.ledger.delete(tenant_id, session.id)
    if not removed_device and not sessions:
        print("Device not found")
        return 1
    print(f"Device released: {len(sessions)} session(s) removed")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Admin console for restaurant devices")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("list-tenants")
    subparsers.add_parser("migrate-owner")

    create_principal_parser = subparsers.add_parser("create-principal")
    create_principal_parser.add_argument("--principal-id", required=True)
    create_principal_parser.add_argument("--email", required=True)
    create_principal_parser.add_argument("--password", required=True)

    list_devices_parser = subparsers.add_parser("list-devices")
    list_devices_parser.add_argument("--tenant-id", required=True)

    activate_device_parser = subparsers.add_parser("activate-device")
    activate_device_parser.add_argument("--tenant-id", required=True)
    activate_device_parser.add_argument("--device-id", required=True)
    activate_device_parser.add_argument("--role", choices=[role.value for role in ASSIGNABLE_ROLES], required=True)
    activate_device_parser.add_argument("--table-number", default="")

    list_sessions_parser = subparsers.add_parser("list-sessions")
    list_sessions_parser.add_argument("--tenant-id", required=True)
    list_sessions_parser.add_argument("--active-only", action="store_true")

    reassign_device_parser = subparsers.add_parser("reassign-device")
    reassign_device_parser.add_argument("--tenant-id", required=True)
    reassign_device_parser.add_argument("--device-id", required=True)

    return parser


async def run(args: argparse.Namespace) -> int:
    context = AppContext.build(get_settings())
    if args.command == "list-tenants":
        return await list_tenants(context)
    if args.command == "migrate-owner":
        return await migrate_owner(context)
    if args.command == "create-principal":
        return await add_principal(context, args.principal_id.strip(), args.email, args.password)
    if args.command == "list-devices":
        return await list_devices(context, args.tenant_id)
    if args.command == "activate-device":
        return await activate_device(context, args.tenant_id, args.device_id, args.role, args.table_number.strip())
    if args.command == "list-sessions":
        return await list_sessions(context, args.tenant_id, args.active_only)
    if args.command == "reassign-device":
        return await reassign_device(context, args.tenant_id, args.device_id)
    print("Unknown command")
    return 1


def main() -> int:
    return asyncio.run(run(build_parser().parse_args()))


if __name__ == "__main__":
    raise SystemExit(main())
