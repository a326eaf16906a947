"""End-to-end device authorization.

Two variants share the ``AuthorizationEngine`` interface:

* ``RegistryAuthorizationEngine``: the device must have been registered and
  then activated by the restaurant owner; the role comes from the device record.
* ``SessionAuthorizationEngine``: the device picks its role on first use and
  is locked to it through its session row; tables get a number automatically.

Every attempt runs its steps strictly in order and ends in an
``AuthorizationResult``. No attempt leaves the identity provider signed in:
failures sign out right away and successful attempts sign out once the
result is built. After that the service's own bearer token stands for the
session.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

from ewaiter.services.device_identity import DeviceIdentity
from ewaiter.services.device_registry import ASSIGNABLE_ROLES, CrossTenantScanner, DeviceRegistry, Role
from ewaiter.services.errors import (
    AuthorizationError,
    DeviceBoundElsewhere,
    DeviceNotActivated,
    DeviceRegistered,
    DocumentStoreError,
    TenantAccessDenied,
)
from ewaiter.services.identity import IdentityProvider
from ewaiter.services.session_ledger import SessionLedger
from ewaiter.services.tenant_directory import TenantDirectory

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthorizationRequest:
    email: str
    password: str
    tenant_id: str
    requested_role: Role | None = None

    def is_complete(self) -> bool:
        return bool(self.email.strip() and self.password and self.tenant_id.strip())


@dataclass(frozen=True)
class AuthorizationResult:
    success: bool
    role: Role | None = None
    tenant_id: str | None = None
    table_number: int | None = None
    error_message: str | None = None
    error_kind: str | None = None
    retryable: bool = False
    principal_id: str | None = None
    device_id: str | None = None
    session_id: str | None = None

    @classmethod
    def failure(cls, message: str, kind: str = "error", retryable: bool = False) -> "AuthorizationResult":
        return cls(success=False, error_message=message, error_kind=kind, retryable=retryable)


def parse_table_number(value: str) -> int:
    value = value.strip()
    return int(value) if value.isdigit() else 0


class AuthorizationEngine(ABC):
    def __init__(
        self,
        provider: IdentityProvider,
        device_identity: DeviceIdentity,
        directory: TenantDirectory,
    ) -> None:
        self.provider = provider
        self.device_identity = device_identity
        self.directory = directory

    async def authorize(self, request: AuthorizationRequest) -> AuthorizationResult:
        if not request.is_complete():
            return AuthorizationResult.failure("Please fill in all fields", kind="validation")

        logger.info("Starting authorization for %s in tenant %s", request.email, request.tenant_id)
        try:
            result = await self._authorize(request)
        except AuthorizationError as exc:
            logger.info("Authorization for %s in tenant %s failed: %s", request.email, request.tenant_id, exc.kind)
            await self._sign_out_if_signed_in()
            return AuthorizationResult.failure(exc.message, kind=exc.kind, retryable=exc.retryable)

        logger.info(
            "Authorized device %s in tenant %s as %s",
            result.device_id,
            result.tenant_id,
            result.role.value if result.role else None,
        )
        await self._sign_out_if_signed_in()
        return result

    async def _sign_out_if_signed_in(self) -> None:
        if self.provider.current_principal_id() is None:
            return
        await self.provider.sign_out()

    async def _check_access(self, tenant_id: str, principal_identifier: str) -> None:
        if not await self.directory.verify_access(tenant_id, principal_identifier):
            raise TenantAccessDenied()

    @abstractmethod
    async def _authorize(self, request: AuthorizationRequest) -> AuthorizationResult:
        raise NotImplementedError

    @abstractmethod
    async def logout(self, tenant_id: str, principal_id: str) -> None:
        raise NotImplementedError


class RegistryAuthorizationEngine(AuthorizationEngine):
    def __init__(
        self,
        provider: IdentityProvider,
        device_identity: DeviceIdentity,
        directory: TenantDirectory,
        registry: DeviceRegistry,
        scanner: CrossTenantScanner,
    ) -> None:
        super().__init__(provider, device_identity, directory)
        self.registry = registry
        self.scanner = scanner

    async def _authorize(self, request: AuthorizationRequest) -> AuthorizationResult:
        fingerprint = self.device_identity.current_fingerprint()

        bound = await self.scanner.scan(fingerprint)
        if bound is not None and bound.tenant_id != request.tenant_id:
            raise DeviceBoundElsewhere(bound.tenant_id)

        principal = await self.provider.sign_in(request.email, request.password)
        await self._check_access(request.tenant_id, request.email)

        record = await self.registry.get(request.tenant_id, fingerprint)
        if record is None:
            try:
                await self.registry.create(request.tenant_id, fingerprint)
            except DocumentStoreError as exc:
                raise DocumentStoreError("Failed to register device. Please try again.") from exc
            raise DeviceRegistered()

        if not record.activated or record.role not in ASSIGNABLE_ROLES:
            raise DeviceNotActivated()

        await self.registry.touch_last_login(request.tenant_id, fingerprint)
        return AuthorizationResult(
            success=True,
            role=record.role,
            tenant_id=request.tenant_id,
            table_number=parse_table_number(record.table_number) if record.role == Role.table else 0,
            principal_id=principal.id,
            device_id=fingerprint,
        )

    async def logout(self, tenant_id: str, principal_id: str) -> None:
        logger.info("Signing out principal %s from tenant %s", principal_id, tenant_id)
        await self.provider.sign_out()


class SessionAuthorizationEngine(AuthorizationEngine):
    def __init__(
        self,
        provider: IdentityProvider,
        device_identity: DeviceIdentity,
        directory: TenantDirectory,
        ledger: SessionLedger,
    ) -> None:
        super().__init__(provider, device_identity, directory)
        self.ledger = ledger

    async def authorize(self, request: AuthorizationRequest) -> AuthorizationResult:
        if request.requested_role not in ASSIGNABLE_ROLES:
            return AuthorizationResult.failure("Please choose owner, staff or table", kind="validation")
        return await super().authorize(request)

    async def _authorize(self, request: AuthorizationRequest) -> AuthorizationResult:
        principal = await self.provider.sign_in(request.email, request.password)
        await self._check_access(request.tenant_id, principal.id)

        fingerprint = self.device_identity.current_fingerprint()
        # RoleConflictError propagates; authorize() signs the provider out.
        session = await self.ledger.open_or_reuse(
            request.tenant_id, principal.id, fingerprint, request.requested_role
        )
        return AuthorizationResult(
            success=True,
            role=session.role,
            tenant_id=request.tenant_id,
            table_number=session.table_number,
            principal_id=principal.id,
            device_id=fingerprint,
            session_id=session.id,
        )

    async def logout(self, tenant_id: str, principal_id: str) -> None:
        fingerprint = self.device_identity.current_fingerprint()
        closed = await self.ledger.close(tenant_id, principal_id, fingerprint)
        if not closed:
            logger.info("No active session for device %s in tenant %s", fingerprint, tenant_id)
        await self.provider.sign_out()
