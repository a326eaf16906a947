from ewaiter.api.routes.admin import router as admin_router
from ewaiter.api.routes.auth import router as auth_router
from ewaiter.api.routes.tenants import router as tenants_router

__all__ = ["admin_router", "auth_router", "tenants_router"]
