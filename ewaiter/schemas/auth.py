from datetime import datetime

from pydantic import BaseModel, Field

from ewaiter.services.device_registry import Role


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1, max_length=256)
    tenant_id: str = Field(..., min_length=1, max_length=128)
    role: Role | None = None


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    role: Role
    tenant_id: str
    table_number: int
    session_id: str | None = None
    issued_at: datetime


class SessionInfoResponse(BaseModel):
    tenant_id: str
    device_id: str
    principal_id: str
    role: Role
    table_number: int
    session_id: str | None = None
    issued_at: datetime
