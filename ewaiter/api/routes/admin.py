from fastapi import APIRouter, Depends, HTTPException, Response

from ewaiter.api.deps import get_context, require_admin
from ewaiter.context import AppContext
from ewaiter.schemas import (
    DeviceActivateRequest,
    DeviceResponse,
    MigrationResponse,
    PrincipalCreateRequest,
    PrincipalResponse,
    SessionResponse,
    TenantCreateRequest,
    TenantResponse,
)
from ewaiter.services.device_registry import ASSIGNABLE_ROLES, DeviceRecord, Role
from ewaiter.services.identity import PRINCIPAL_COLLECTION, create_principal, principal_key
from ewaiter.services.session_ledger import Session
from ewaiter.services.tenant_directory import Tenant

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


async def get_tenant_or_404(context: AppContext, tenant_id: str) -> Tenant:
    tenant = await context.directory.get_tenant(tenant_id)
    if not tenant:
        raise HTTPException(status_code=404, detail="Tenant not found")
    return tenant


def serialize_tenant(tenant: Tenant) -> TenantResponse:
    return TenantResponse(id=tenant.id, name=tenant.display_name)


def serialize_device(device: DeviceRecord) -> DeviceResponse:
    return DeviceResponse(
        device_id=device.device_id,
        role=device.role,
        activated=device.activated,
        table_number=device.table_number,
        last_login=device.last_login,
        created_at=device.created_at,
    )


def serialize_session(session: Session) -> SessionResponse:
    return SessionResponse(
        id=session.id,
        principal_id=session.principal_id,
        device_id=session.device_id,
        role=session.role,
        table_number=session.table_number,
        is_active=session.is_active,
        login_time=session.login_time,
        last_activity=session.last_activity,
        logout_time=session.logout_time,
    )


@router.get("/tenants", response_model=list[TenantResponse])
async def list_tenants(context: AppContext = Depends(get_context)) -> list[TenantResponse]:
    tenants = await context.directory.list_tenants()
    return [serialize_tenant(tenant) for tenant in sorted(tenants, key=lambda item: item.id)]


@router.post("/tenants", response_model=TenantResponse, status_code=201)
async def create_tenant(payload: TenantCreateRequest, context: AppContext = Depends(get_context)) -> TenantResponse:
    tenant_id = payload.tenant_id.strip()
    if await context.directory.get_tenant(tenant_id):
        raise HTTPException(status_code=409, detail="Tenant already exists")

    tenant = await context.directory.create_tenant(
        tenant_id,
        display_name=payload.restaurant_name.strip(),
        owner_principal=payload.owner_principal.strip(),
    )
    return serialize_tenant(tenant)


@router.post("/tenants/migrate-owner", response_model=MigrationResponse)
async def migrate_owner(context: AppContext = Depends(get_context)) -> MigrationResponse:
    return MigrationResponse(migrated=await context.directory.migrate_owner_principal())


@router.post("/principals", response_model=PrincipalResponse, status_code=201)
async def add_principal(
    payload: PrincipalCreateRequest, context: AppContext = Depends(get_context)
) -> PrincipalResponse:
    if await context.store.get(PRINCIPAL_COLLECTION, principal_key(payload.email)):
        raise HTTPException(status_code=409, detail="Principal already exists")

    principal = await create_principal(context.store, payload.principal_id.strip(), payload.email, payload.password)
    return PrincipalResponse(principal_id=principal.id, email=principal.email)


@router.get("/tenants/{tenant_id}/devices", response_model=list[DeviceResponse])
async def list_devices(tenant_id: str, context: AppContext = Depends(get_context)) -> list[DeviceResponse]:
    await get_tenant_or_404(context, tenant_id)
    devices = await context.registry.list(tenant_id)
    return [serialize_device(device) for device in devices]


@router.patch("/tenants/{tenant_id}/devices/{device_id}", response_model=DeviceResponse)
async def activate_device(
    tenant_id: str,
    device_id: str,
    payload: DeviceActivateRequest,
    context: AppContext = Depends(get_context),
) -> DeviceResponse:
    await get_tenant_or_404(context, tenant_id)
    if payload.role not in ASSIGNABLE_ROLES:
        raise HTTPException(status_code=400, detail="Invalid device role")
    if payload.role == Role.table and not payload.table_number.strip():
        raise HTTPException(status_code=400, detail="Table number required")

    if not await context.registry.get(tenant_id, device_id):
        raise HTTPException(status_code=404, detail="Device not found")

    device = await context.registry.activate(tenant_id, device_id, payload.role, payload.table_number.strip())
    return serialize_device(device)


@router.delete("/tenants/{tenant_id}/devices/{device_id}", status_code=204)
async def delete_device(tenant_id: str, device_id: str, context: AppContext = Depends(get_context)) -> Response:
    await get_tenant_or_404(context, tenant_id)
    if not await context.registry.delete(tenant_id, device_id):
        raise HTTPException(status_code=404, detail="Device not found")
    return Response(status_code=204)


@router.get("/tenants/{tenant_id}/sessions", response_model=list[SessionResponse])
async def list_sessions(
    tenant_id: str,
    active_only: bool = False,
    context: AppContext = Depends(get_context),
) -> list[SessionResponse]:
    await get_tenant_or_404(context, tenant_id)
    filters = {"isActive": True} if active_only else {}
    sessions = await context.ledger.find(tenant_id, **filters)
    return [serialize_session(session) for session in sessions]


@router.delete("/tenants/{tenant_id}/sessions/{session_id}", status_code=204)
async def delete_session(tenant_id: str, session_id: str, context: AppContext = Depends(get_context)) -> Response:
    await get_tenant_or_404(context, tenant_id)
    if not await context.ledger.delete(tenant_id, session_id):
        raise HTTPException(status_code=404, detail="Session not found")
    return Response(status_code=204)
