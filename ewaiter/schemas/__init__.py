from ewaiter.schemas.admin import (
    DeviceActivateRequest,
    DeviceResponse,
    MigrationResponse,
    PrincipalCreateRequest,
    PrincipalResponse,
    SessionResponse,
    TenantCreateRequest,
    TenantResponse,
)
from ewaiter.schemas.auth import LoginRequest, LoginResponse, SessionInfoResponse

__all__ = [
    "LoginRequest",
    "LoginResponse",
    "SessionInfoResponse",
    "TenantCreateRequest",
    "TenantResponse",
    "PrincipalCreateRequest",
    "PrincipalResponse",
    "DeviceActivateRequest",
    "DeviceResponse",
    "SessionResponse",
    "MigrationResponse",
]
