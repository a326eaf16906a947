import pytest

from ewaiter.config import DEFAULT_LEGACY_OWNER_FIELDS
from ewaiter.services.errors import DocumentStoreError
from ewaiter.services.tenant_directory import TenantDirectory
from tests.conftest import TENANTS
from tests.mocks.memory_store import InMemoryDocumentStore

LEGACY_FIELDS = DEFAULT_LEGACY_OWNER_FIELDS.split(",")


def make_directory(store, legacy_fields=LEGACY_FIELDS) -> TenantDirectory:
    return TenantDirectory(store, TENANTS, legacy_fields)


@pytest.mark.asyncio
async def test_owner_email_matches_case_insensitively(store):
    directory = make_directory(store)

    assert await directory.verify_access("42", "A@B.com") is True


@pytest.mark.asyncio
async def test_missing_tenant_and_wrong_owner_look_the_same(store):
    directory = make_directory(store)

    assert await directory.verify_access("does-not-exist", "a@b.com") is False
    assert await directory.verify_access("42", "someone@else.com") is False


@pytest.mark.asyncio
async def test_principal_id_matches_normalized_owner_field(store):
    directory = make_directory(store)

    assert await directory.verify_access("7", "uid-seven") is True
    assert await directory.verify_access("7", "UID-SEVEN") is True


@pytest.mark.asyncio
async def test_first_matching_legacy_field_grants_access():
    store = InMemoryDocumentStore()
    store.put(TENANTS, "5", {"userEmail": "first@x.test", "owner_id": "second@x.test"})
    directory = make_directory(store)

    assert await directory.verify_access("5", "second@x.test") is True
    assert await directory.verify_access("5", "first@x.test") is True


@pytest.mark.asyncio
async def test_legacy_fields_ignored_once_disabled(store):
    directory = make_directory(store, legacy_fields=[])

    assert await directory.verify_access("42", "a@b.com") is False
    assert await directory.verify_access("7", "uid-seven") is True


@pytest.mark.asyncio
async def test_non_string_owner_values_are_skipped():
    store = InMemoryDocumentStore()
    store.put(TENANTS, "8", {"userId": 12345, "email": "real@owner.test"})
    directory = make_directory(store)

    assert await directory.verify_access("8", "12345") is False
    assert await directory.verify_access("8", "real@owner.test") is True


@pytest.mark.asyncio
async def test_empty_identifier_has_no_access(store):
    directory = make_directory(store)

    assert await directory.verify_access("42", "") is False


@pytest.mark.asyncio
async def test_store_failure_is_not_reported_as_no_access(store):
    store.fail_with = DocumentStoreError("Document store unavailable. Please try again.")
    directory = make_directory(store)

    with pytest.raises(DocumentStoreError):
        await directory.verify_access("42", "a@b.com")


@pytest.mark.asyncio
async def test_list_tenants_reads_display_names(store):
    store.put(TENANTS, "nameless", {"email": "x@y.test"})
    directory = make_directory(store)

    tenants = {tenant.id: tenant for tenant in await directory.list_tenants()}

    assert tenants["7"].display_name == "Seven Seas"
    assert tenants["42"].owner_principal == "uid-a"
    assert tenants["nameless"].display_name is None


@pytest.mark.asyncio
async def test_migrate_owner_principal_copies_first_legacy_field(store):
    directory = make_directory(store)

    migrated = await directory.migrate_owner_principal()

    assert migrated == 1
    assert store.read(TENANTS, "42")["ownerPrincipal"] == "uid-a"
    assert store.read(TENANTS, "7")["ownerPrincipal"] == "uid-seven"

    assert await directory.migrate_owner_principal() == 0
