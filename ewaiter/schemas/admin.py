from datetime import datetime

from pydantic import BaseModel, Field

from ewaiter.services.device_registry import Role


class TenantCreateRequest(BaseModel):
    tenant_id: str = Field(..., min_length=1, max_length=128)
    restaurant_name: str = Field(..., min_length=1, max_length=255)
    owner_principal: str = Field(..., min_length=1, max_length=255)


class TenantResponse(BaseModel):
    id: str
    name: str | None = None


class PrincipalCreateRequest(BaseModel):
    principal_id: str = Field(..., min_length=1, max_length=128)
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=8, max_length=256)


class PrincipalResponse(BaseModel):
    principal_id: str
    email: str


class DeviceActivateRequest(BaseModel):
    role: Role
    table_number: str = Field(default="", max_length=16)


class DeviceResponse(BaseModel):
    device_id: str
    role: Role
    activated: bool
    table_number: str
    last_login: datetime | None
    created_at: datetime | None = None


class SessionResponse(BaseModel):
    id: str
    principal_id: str
    device_id: str
    role: Role
    table_number: int
    is_active: bool
    login_time: datetime | None
    last_activity: datetime | None
    logout_time: datetime | None = None


class MigrationResponse(BaseModel):
    migrated: int
