import logging
from dataclasses import dataclass
from typing import Any

from ewaiter.services.document_store import DocumentStore, Snapshot

logger = logging.getLogger(__name__)

OWNER_FIELD = "ownerPrincipal"
DISPLAY_NAME_FIELDS = ("restaurantName", "displayName", "name")


@dataclass(frozen=True)
class Tenant:
    id: str
    display_name: str | None
    owner_principal: str | None


def normalize_identifier(value: str) -> str:
    return value.strip().lower()


def display_name_of(data: dict[str, Any]) -> str | None:
    for name in DISPLAY_NAME_FIELDS:
        value = data.get(name)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


class TenantDirectory:
    def __init__(self, store: DocumentStore, collection: str, legacy_owner_fields: list[str]) -> None:
        self.store = store
        self.collection = collection
        self.legacy_owner_fields = list(legacy_owner_fields)

    def owner_marker(self, data: dict[str, Any], candidate: str | None = None) -> str | None:
        """Return the owner marker of a tenant document.

        With ``candidate`` given, the first field whose value equals it
        (case-insensitively) wins; otherwise the first populated field does.
        """
        fields = [OWNER_FIELD, *self.legacy_owner_fields]
        for name in fields:
            value = data.get(name)
            if not isinstance(value, str) or not value.strip():
                continue
            if candidate is None or normalize_identifier(value) == normalize_identifier(candidate):
                return value
        return None

    def _to_tenant(self, snapshot: Snapshot) -> Tenant:
        return Tenant(
            id=snapshot.id,
            display_name=display_name_of(snapshot.data),
            owner_principal=self.owner_marker(snapshot.data),
        )

    async def get_tenant(self, tenant_id: str) -> Tenant | None:
        snapshot = await self.store.get(self.collection, tenant_id)
        if snapshot is None:
            return None
        return self._to_tenant(snapshot)

    async def verify_access(self, tenant_id: str, principal_identifier: str) -> bool:
        # Missing tenant and wrong principal are reported identically.
        if not tenant_id or not principal_identifier:
            return False
        snapshot = await self.store.get(self.collection, tenant_id)
        if snapshot is None:
            logger.info("Tenant %s not found during access check", tenant_id)
            return False
        if self.owner_marker(snapshot.data, principal_identifier) is None:
            logger.info("Principal %s has no access to tenant %s", principal_identifier, tenant_id)
            return False
        return True

    async def list_tenant_ids(self) -> list[str]:
        return [snapshot.id for snapshot in await self.store.get_all(self.collection)]

    async def list_tenants(self) -> list[Tenant]:
        return [self._to_tenant(snapshot) for snapshot in await self.store.get_all(self.collection)]

    async def create_tenant(self, tenant_id: str, display_name: str, owner_principal: str) -> Tenant:
        await self.store.set(
            self.collection,
            tenant_id,
            {"restaurantName": display_name, OWNER_FIELD: owner_principal},
        )
        return Tenant(id=tenant_id, display_name=display_name, owner_principal=owner_principal)

    async def migrate_owner_principal(self) -> int:
        """Copy the first legacy owner field into ``ownerPrincipal``."""
        migrated = 0
        for snapshot in await self.store.get_all(self.collection):
            if snapshot.data.get(OWNER_FIELD):
                continue
            marker = self.owner_marker(snapshot.data)
            if marker is None:
                logger.warning("Tenant %s has no owner field to migrate", snapshot.id)
                continue
            await self.store.update(self.collection, snapshot.id, {OWNER_FIELD: marker})
            migrated += 1
        return migrated
