from dataclasses import dataclass
import hmac

from fastapi import Depends, Header, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ewaiter.context import AppContext
from ewaiter.services.auth import TokenData, TokenInvalid, decode_access_token
from ewaiter.services.device_identity import StaticDeviceIdentity
from ewaiter.services.device_registry import DeviceRecord
from ewaiter.services.session_ledger import Session

bearer_scheme = HTTPBearer(auto_error=False)

ERROR_STATUS = {
    "validation": 400,
    "credentials": 401,
    "access": 403,
    "registered": 403,
    "not_activated": 403,
    "bound_elsewhere": 409,
    "role_conflict": 409,
    "transport": 503,
    "not_found": 409,
}


@dataclass
class RequestContext:
    token: TokenData
    session: Session | None
    device: DeviceRecord | None


def get_context(request: Request) -> AppContext:
    return request.app.state.context


def get_client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return "unknown"


def error_status(kind: str | None) -> int:
    return ERROR_STATUS.get(kind or "", 400)


def get_device_identity(
    x_device_id: str = Header(..., min_length=1, max_length=128),
) -> StaticDeviceIdentity:
    fingerprint = x_device_id.strip()
    if not fingerprint:
        raise HTTPException(status_code=400, detail="Device id missing")
    return StaticDeviceIdentity(fingerprint)


def require_admin(
    x_admin_token: str | None = Header(default=None),
    context: AppContext = Depends(get_context),
) -> None:
    admin_token = context.settings.admin_token
    if not admin_token:
        raise HTTPException(status_code=503, detail="Admin token not configured")
    if not x_admin_token or not hmac.compare_digest(x_admin_token, admin_token):
        raise HTTPException(status_code=401, detail="Admin token invalid")


def get_token_data(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    context: AppContext = Depends(get_context),
) -> TokenData:
    if not credentials or credentials.scheme.lower() != "bearer":
        raise HTTPException(status_code=401, detail="Missing bearer token")

    try:
        return decode_access_token(
            credentials.credentials,
            secret=context.settings.jwt_secret,
            algorithm=context.settings.jwt_algorithm,
        )
    except TokenInvalid:
        raise HTTPException(status_code=401, detail="Token invalid")


async def get_request_context(
    token_data: TokenData = Depends(get_token_data),
    device_identity: StaticDeviceIdentity = Depends(get_device_identity),
    context: AppContext = Depends(get_context),
) -> RequestContext:
    if device_identity.current_fingerprint() != token_data.device_id:
        raise HTTPException(status_code=401, detail="Token issued to another device")

    if token_data.session_id:
        session = await context.ledger.get(token_data.tenant_id, token_data.session_id)
        if (
            not session
            or not session.is_active
            or session.device_id != token_data.device_id
            or session.principal_id != token_data.principal_id
        ):
            raise HTTPException(status_code=401, detail="Session inactive")
        return RequestContext(token=token_data, session=session, device=None)

    device = await context.registry.get(token_data.tenant_id, token_data.device_id)
    if not device or not device.activated or device.role != token_data.role:
        raise HTTPException(status_code=403, detail="Device not activated")
    return RequestContext(token=token_data, session=None, device=device)
