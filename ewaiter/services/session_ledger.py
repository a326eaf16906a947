"""Per-tenant session records binding one device to one role.

A device gets at most one session row per tenant. Later logins from the same
device reactivate that row when the requested role matches, and are refused
with ``RoleConflictError`` otherwise. A table number stays with its device
across logouts, so new numbers are "highest number held by any table row + 1",
handed out while holding the tenant's allocation lock.
"""
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime

from ewaiter.services.device_registry import ASSIGNABLE_ROLES, Role
from ewaiter.services.document_store import DocumentStore, Snapshot
from ewaiter.services.errors import RoleConflictError
from ewaiter.utils.time import from_iso, to_iso, utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Session:
    id: str
    tenant_id: str
    principal_id: str
    device_id: str
    role: Role
    table_number: int
    is_active: bool
    login_time: datetime | None
    last_activity: datetime | None
    logout_time: datetime | None = None

    @classmethod
    def from_snapshot(cls, tenant_id: str, snapshot: Snapshot) -> "Session":
        data = snapshot.data
        return cls(
            id=snapshot.id,
            tenant_id=tenant_id,
            principal_id=data.get("principalId", ""),
            device_id=data.get("deviceId", ""),
            role=Role.parse(data.get("role")),
            table_number=int(data.get("tableNumber") or 0),
            is_active=bool(data.get("isActive", False)),
            login_time=from_iso(data.get("loginTime")),
            last_activity=from_iso(data.get("lastActivity")),
            logout_time=from_iso(data.get("logoutTime")),
        )


class TenantLocks:
    """One ``asyncio.Lock`` per tenant, created on first use."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}

    def for_tenant(self, tenant_id: str) -> asyncio.Lock:
        lock = self._locks.get(tenant_id)
        if lock is None:
            lock = self._locks.setdefault(tenant_id, asyncio.Lock())
        return lock


class SessionLedger:
    def __init__(self, store: DocumentStore, tenant_collection: str, locks: TenantLocks) -> None:
        self.store = store
        self.tenant_collection = tenant_collection
        self.locks = locks
        self.allocator = TableNumberAllocator(self)

    def collection(self, tenant_id: str) -> str:
        return f"{self.tenant_collection}/{tenant_id}/Sessions"

    async def get(self, tenant_id: str, session_id: str) -> Session | None:
        snapshot = await self.store.get(self.collection(tenant_id), session_id)
        if snapshot is None:
            return None
        return Session.from_snapshot(tenant_id, snapshot)

    async def find(self, tenant_id: str, **filters) -> list[Session]:
        snapshots = await self.store.query(self.collection(tenant_id), **filters)
        return [Session.from_snapshot(tenant_id, snapshot) for snapshot in snapshots]

    async def for_device(self, tenant_id: str, fingerprint: str) -> Session | None:
        sessions = await self.find(tenant_id, deviceId=fingerprint)
        if len(sessions) > 1:
            logger.error("Device %s has %d sessions in tenant %s", fingerprint, len(sessions), tenant_id)
        return sessions[0] if sessions else None

    async def open_or_reuse(
        self, tenant_id: str, principal_id: str, fingerprint: str, requested_role: Role
    ) -> Session:
        if requested_role not in ASSIGNABLE_ROLES:
            raise ValueError(f"Role {requested_role.value} cannot be requested")

        async with self.locks.for_tenant(tenant_id):
            existing = await self.for_device(tenant_id, fingerprint)
            if existing is None:
                return await self._open(tenant_id, principal_id, fingerprint, requested_role)

        if existing.role != requested_role:
            logger.info(
                "Device %s in tenant %s is bound to %s, refusing %s",
                fingerprint,
                tenant_id,
                existing.role.value,
                requested_role.value,
            )
            raise RoleConflictError(existing.role, existing.table_number)
        return await self._reactivate(existing, principal_id)

    async def _open(self, tenant_id: str, principal_id: str, fingerprint: str, role: Role) -> Session:
        table_number = await self.allocator.next(tenant_id) if role == Role.table else 0
        now = to_iso(utcnow())
        fields = {
            "principalId": principal_id,
            "deviceId": fingerprint,
            "role": role.value,
            "tableNumber": table_number,
            "isActive": True,
            "loginTime": now,
            "lastActivity": now,
        }
        session_id = await self.store.add(self.collection(tenant_id), fields)
        logger.info(
            "Opened %s session %s for device %s in tenant %s (table %d)",
            role.value,
            session_id,
            fingerprint,
            tenant_id,
            table_number,
        )
        return Session.from_snapshot(tenant_id, Snapshot(id=session_id, data=fields))

    async def _reactivate(self, session: Session, principal_id: str) -> Session:
        await self.store.update(
            self.collection(session.tenant_id),
            session.id,
            {"principalId": principal_id, "isActive": True, "lastActivity": to_iso(utcnow())},
        )
        logger.info("Reactivated session %s in tenant %s", session.id, session.tenant_id)
        refreshed = await self.get(session.tenant_id, session.id)
        return refreshed or session

    async def touch(self, tenant_id: str, session_id: str) -> None:
        await self.store.update(self.collection(tenant_id), session_id, {"lastActivity": to_iso(utcnow())})

    async def close(self, tenant_id: str, principal_id: str, fingerprint: str) -> bool:
        """Mark the matching active session as logged out.

        Returns ``False`` when there was nothing active to close.
        """
        sessions = await self.find(tenant_id, principalId=principal_id, deviceId=fingerprint, isActive=True)
        if not sessions:
            return False
        now = to_iso(utcnow())
        for session in sessions:
            await self.store.update(
                self.collection(tenant_id),
                session.id,
                {"isActive": False, "logoutTime": now},
            )
            logger.info("Closed session %s in tenant %s", session.id, tenant_id)
        return True

    async def delete(self, tenant_id: str, session_id: str) -> bool:
        deleted = await self.store.delete(self.collection(tenant_id), session_id)
        if deleted:
            logger.info("Deleted session %s from tenant %s", session_id, tenant_id)
        return deleted


class TableNumberAllocator:
    """Next table number for a tenant: highest table number on record plus one.

    Inactive table rows still count because reactivating them restores their
    number. Gaps are not filled. Callers must hold the tenant's lock from
    ``TenantLocks`` until the new session row is written.
    """

    def __init__(self, ledger: SessionLedger) -> None:
        self.ledger = ledger

    async def next(self, tenant_id: str) -> int:
        tables = await self.ledger.find(tenant_id, role=Role.table.value)
        highest = max((session.table_number for session in tables), default=0)
        return highest + 1
