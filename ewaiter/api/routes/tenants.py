from fastapi import APIRouter, Depends

from ewaiter.api.deps import get_context
from ewaiter.context import AppContext
from ewaiter.schemas import TenantResponse

router = APIRouter(tags=["tenants"])


@router.get("/tenants", response_model=list[TenantResponse])
async def list_restaurants(context: AppContext = Depends(get_context)) -> list[TenantResponse]:
    # Restaurants without a display name are not offered to devices.
    tenants = await context.directory.list_tenants()
    return [TenantResponse(id=tenant.id, name=tenant.display_name) for tenant in tenants if tenant.display_name]
