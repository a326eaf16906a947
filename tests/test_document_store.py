import pytest

from ewaiter.db import Base, build_engine, build_sessionmaker
from ewaiter.services.document_store import SqlDocumentStore
from ewaiter.services.errors import DocumentNotFound, DocumentStoreError


@pytest.fixture
def sql_store(tmp_path) -> SqlDocumentStore:
    engine = build_engine(f"sqlite:///{tmp_path / 'documents.db'}")
    Base.metadata.create_all(engine)
    return SqlDocumentStore(build_sessionmaker(engine))


@pytest.mark.asyncio
async def test_set_get_and_overwrite(sql_store):
    await sql_store.set("Restaurants", "42", {"restaurantName": "Answer Bistro"})
    await sql_store.set("Restaurants", "42", {"restaurantName": "Renamed"})

    snapshot = await sql_store.get("Restaurants", "42")

    assert snapshot.id == "42"
    assert snapshot.data == {"restaurantName": "Renamed"}
    assert await sql_store.get("Restaurants", "missing") is None


@pytest.mark.asyncio
async def test_update_merges_fields(sql_store):
    await sql_store.set("Restaurants/42/Devices", "dev-1", {"activated": False, "deviceRole": ""})

    await sql_store.update("Restaurants/42/Devices", "dev-1", {"activated": True})

    snapshot = await sql_store.get("Restaurants/42/Devices", "dev-1")
    assert snapshot.data == {"activated": True, "deviceRole": ""}


@pytest.mark.asyncio
async def test_update_missing_document(sql_store):
    with pytest.raises(DocumentNotFound):
        await sql_store.update("Restaurants", "missing", {"name": "x"})


@pytest.mark.asyncio
async def test_query_filters_within_collection(sql_store):
    sessions = "Restaurants/7/Sessions"
    first = await sql_store.add(sessions, {"deviceId": "dev-1", "isActive": True, "role": "table"})
    await sql_store.add(sessions, {"deviceId": "dev-2", "isActive": False, "role": "table"})
    await sql_store.add("Restaurants/42/Sessions", {"deviceId": "dev-1", "isActive": True, "role": "table"})

    active = await sql_store.query(sessions, isActive=True)

    assert [snapshot.id for snapshot in active] == [first]
    assert len(await sql_store.get_all(sessions)) == 2


@pytest.mark.asyncio
async def test_delete(sql_store):
    await sql_store.set("Restaurants", "7", {"restaurantName": "Seven Seas"})

    assert await sql_store.delete("Restaurants", "7") is True
    assert await sql_store.delete("Restaurants", "7") is False


@pytest.mark.asyncio
async def test_missing_table_raises_store_error(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'empty.db'}")
    store = SqlDocumentStore(build_sessionmaker(engine))

    with pytest.raises(DocumentStoreError) as excinfo:
        await store.get("Restaurants", "7")

    assert excinfo.value.retryable is True
