from fastapi import APIRouter, Depends, HTTPException, Request, Response

from ewaiter.api.deps import (
    RequestContext,
    error_status,
    get_client_ip,
    get_context,
    get_device_identity,
    get_request_context,
    get_token_data,
)
from ewaiter.context import AppContext
from ewaiter.schemas import LoginRequest, LoginResponse, SessionInfoResponse
from ewaiter.services.auth import TokenData, create_access_token
from ewaiter.services.authorization import AuthorizationRequest
from ewaiter.services.device_identity import StaticDeviceIdentity

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=LoginResponse)
async def login(
    payload: LoginRequest,
    request: Request,
    device_identity: StaticDeviceIdentity = Depends(get_device_identity),
    context: AppContext = Depends(get_context),
) -> LoginResponse:
    limit_key = f"{get_client_ip(request)}:{payload.tenant_id.strip().lower()}"
    if context.login_limiter.blocked(limit_key):
        raise HTTPException(status_code=429, detail="Too many requests")

    engine = context.engine(device_identity)
    result = await engine.authorize(
        AuthorizationRequest(
            email=payload.email,
            password=payload.password,
            tenant_id=payload.tenant_id,
            requested_role=payload.role,
        )
    )
    if not result.success:
        if not result.retryable:
            context.login_limiter.record(limit_key)
        raise HTTPException(
            status_code=error_status(result.error_kind),
            detail=result.error_message,
            headers={"X-Error-Kind": result.error_kind or "error"},
        )

    context.login_limiter.reset(limit_key)
    token, token_data = create_access_token(
        result.tenant_id,
        device_id=result.device_id,
        principal_id=result.principal_id,
        role=result.role,
        table_number=result.table_number or 0,
        session_id=result.session_id,
        secret=context.settings.jwt_secret,
        algorithm=context.settings.jwt_algorithm,
    )
    return LoginResponse(
        access_token=token,
        role=token_data.role,
        tenant_id=token_data.tenant_id,
        table_number=token_data.table_number,
        session_id=token_data.session_id,
        issued_at=token_data.issued_at,
    )


@router.post("/logout", status_code=204)
async def logout(
    token_data: TokenData = Depends(get_token_data),
    device_identity: StaticDeviceIdentity = Depends(get_device_identity),
    context: AppContext = Depends(get_context),
) -> Response:
    if device_identity.current_fingerprint() != token_data.device_id:
        raise HTTPException(status_code=401, detail="Token issued to another device")

    engine = context.engine(device_identity)
    await engine.logout(token_data.tenant_id, token_data.principal_id)
    return Response(status_code=204)


@router.get("/me", response_model=SessionInfoResponse)
def me(request_context: RequestContext = Depends(get_request_context)) -> SessionInfoResponse:
    token = request_context.token
    return SessionInfoResponse(
        tenant_id=token.tenant_id,
        device_id=token.device_id,
        principal_id=token.principal_id,
        role=token.role,
        table_number=token.table_number,
        session_id=token.session_id,
        issued_at=token.issued_at,
    )
