from dataclasses import dataclass
from datetime import datetime, timezone

import jwt

from ewaiter.config import get_settings
from ewaiter.services.device_registry import Role
from ewaiter.utils.time import utcnow


class TokenError(Exception):
    pass


class TokenInvalid(TokenError):
    pass


@dataclass(frozen=True)
class TokenData:
    tenant_id: str
    device_id: str
    principal_id: str
    role: Role
    issued_at: datetime
    table_number: int = 0
    session_id: str | None = None


def create_access_token(
    tenant_id: str,
    device_id: str,
    principal_id: str,
    role: Role,
    table_number: int = 0,
    session_id: str | None = None,
    issued_at: datetime | None = None,
    secret: str | None = None,
    algorithm: str | None = None,
) -> tuple[str, TokenData]:
    # No expiry claim: validity is re-checked against the session or device record.
    settings = None
    issued_at = issued_at or utcnow()
    if secret is None or algorithm is None:
        settings = get_settings()

    payload = {
        "tenant_id": tenant_id,
        "device_id": device_id,
        "sub": principal_id,
        "role": role.value,
        "table_number": table_number,
        "session_id": session_id,
        "iat": int(issued_at.timestamp()),
    }

    token = jwt.encode(
        payload,
        secret or settings.jwt_secret,
        algorithm=algorithm or settings.jwt_algorithm,
    )
    return token, TokenData(
        tenant_id=tenant_id,
        device_id=device_id,
        principal_id=principal_id,
        role=role,
        issued_at=issued_at,
        table_number=table_number,
        session_id=session_id,
    )


def decode_access_token(
    token: str,
    secret: str | None = None,
    algorithm: str | None = None,
) -> TokenData:
    settings = None
    if secret is None or algorithm is None:
        settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            secret or settings.jwt_secret,
            algorithms=[algorithm or settings.jwt_algorithm],
        )
    except jwt.InvalidTokenError as exc:
        raise TokenInvalid("Token invalid") from exc

    tenant_id = payload.get("tenant_id")
    device_id = payload.get("device_id")
    principal_id = payload.get("sub")
    issued_at = payload.get("iat")

    if not tenant_id or not device_id or not principal_id or not issued_at:
        raise TokenInvalid("Token payload missing required claims")

    return TokenData(
        tenant_id=tenant_id,
        device_id=device_id,
        principal_id=principal_id,
        role=Role.parse(payload.get("role")),
        issued_at=datetime.fromtimestamp(issued_at, tz=timezone.utc),
        table_number=int(payload.get("table_number") or 0),
        session_id=payload.get("session_id"),
    )
