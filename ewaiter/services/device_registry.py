import asyncio
import enum
import logging
from dataclasses import dataclass
from datetime import datetime

from ewaiter.services.document_store import DocumentStore, Snapshot
from ewaiter.services.errors import DocumentStoreError
from ewaiter.services.tenant_directory import TenantDirectory
from ewaiter.utils.time import from_iso, to_iso, utcnow

logger = logging.getLogger(__name__)


class Role(str, enum.Enum):
    owner = "owner"
    staff = "staff"
    table = "table"
    unactivated = "unactivated"

    @classmethod
    def parse(cls, value: str | None) -> "Role":
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return cls.unactivated


ASSIGNABLE_ROLES = (Role.owner, Role.staff, Role.table)


@dataclass(frozen=True)
class DeviceRecord:
    device_id: str
    tenant_id: str
    role: Role
    activated: bool
    table_number: str
    last_login: datetime | None
    created_at: datetime | None = None

    @classmethod
    def from_snapshot(cls, tenant_id: str, snapshot: Snapshot) -> "DeviceRecord":
        data = snapshot.data
        return cls(
            device_id=data.get("deviceId") or snapshot.id,
            tenant_id=tenant_id,
            role=Role.parse(data.get("deviceRole")),
            activated=bool(data.get("activated", False)),
            table_number=str(data.get("tableNumber") or ""),
            last_login=from_iso(data.get("lastLogin")),
            created_at=from_iso(data.get("createdAt")),
        )


@dataclass(frozen=True)
class BoundDevice:
    tenant_id: str
    record: DeviceRecord


class DeviceRegistry:
    def __init__(self, store: DocumentStore, tenant_collection: str) -> None:
        self.store = store
        self.tenant_collection = tenant_collection

    def collection(self, tenant_id: str) -> str:
        return f"{self.tenant_collection}/{tenant_id}/Devices"

    async def get(self, tenant_id: str, fingerprint: str) -> DeviceRecord | None:
        snapshot = await self.store.get(self.collection(tenant_id), fingerprint)
        if snapshot is None:
            return None
        return DeviceRecord.from_snapshot(tenant_id, snapshot)

    async def list(self, tenant_id: str) -> list[DeviceRecord]:
        snapshots = await self.store.get_all(self.collection(tenant_id))
        return [DeviceRecord.from_snapshot(tenant_id, snapshot) for snapshot in snapshots]

    async def create(self, tenant_id: str, fingerprint: str) -> DeviceRecord:
        # Concurrent creates for the same fingerprint are not deduplicated; the last write wins.
        now = utcnow()
        await self.store.set(
            self.collection(tenant_id),
            fingerprint,
            {
                "deviceId": fingerprint,
                "activated": False,
                "deviceRole": "",
                "tableNumber": "",
                "lastLogin": to_iso(now),
                "createdAt": to_iso(now),
            },
        )
        logger.info("Registered new device %s for tenant %s", fingerprint, tenant_id)
        return DeviceRecord(
            device_id=fingerprint,
            tenant_id=tenant_id,
            role=Role.unactivated,
            activated=False,
            table_number="",
            last_login=now,
            created_at=now,
        )

    async def touch_last_login(self, tenant_id: str, fingerprint: str) -> None:
        try:
            await self.store.update(self.collection(tenant_id), fingerprint, {"lastLogin": to_iso(utcnow())})
        except DocumentStoreError as exc:
            logger.warning("Failed to update last login for device %s: %s", fingerprint, exc)

    async def activate(self, tenant_id: str, fingerprint: str, role: Role, table_number: str = "") -> DeviceRecord:
        if role not in ASSIGNABLE_ROLES:
            raise ValueError(f"Role {role.value} cannot be assigned to a device")
        await self.store.update(
            self.collection(tenant_id),
            fingerprint,
            {
                "activated": True,
                "deviceRole": role.value,
                "tableNumber": table_number if role == Role.table else "",
            },
        )
        logger.info("Activated device %s in tenant %s as %s", fingerprint, tenant_id, role.value)
        record = await self.get(tenant_id, fingerprint)
        if record is None:
            raise DocumentStoreError(f"Device {fingerprint} disappeared during activation")
        return record

    async def delete(self, tenant_id: str, fingerprint: str) -> bool:
        deleted = await self.store.delete(self.collection(tenant_id), fingerprint)
        if deleted:
            logger.info("Deleted device %s from tenant %s", fingerprint, tenant_id)
        return deleted


class CrossTenantScanner:
    """Finds the tenant, if any, that already holds a device fingerprint.

    Tenants are probed concurrently and the first probe to report a hit wins,
    so the result is not deterministic when several tenants hold the same
    fingerprint. The scan gives up after ``timeout_seconds`` and reports no
    binding.
    """

    def __init__(self, directory: TenantDirectory, registry: DeviceRegistry, timeout_seconds: float) -> None:
        self.directory = directory
        self.registry = registry
        self.timeout_seconds = timeout_seconds

    async def scan(self, fingerprint: str) -> BoundDevice | None:
        try:
            return await asyncio.wait_for(self._scan(fingerprint), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning(
                "Device scan for %s timed out after %.1fs, treating device as unbound",
                fingerprint,
                self.timeout_seconds,
            )
            return None

    async def _probe(self, tenant_id: str, fingerprint: str) -> BoundDevice | None:
        record = await self.registry.get(tenant_id, fingerprint)
        if record is None:
            return None
        return BoundDevice(tenant_id=tenant_id, record=record)

    async def _scan(self, fingerprint: str) -> BoundDevice | None:
        tenant_ids = await self.directory.list_tenant_ids()
        tasks = [asyncio.create_task(self._probe(tenant_id, fingerprint)) for tenant_id in tenant_ids]
        try:
            for next_done in asyncio.as_completed(tasks):
                found = await next_done
                if found is not None:
                    logger.info("Device %s is already assigned to tenant %s", fingerprint, found.tenant_id)
                    return found
            return None
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
