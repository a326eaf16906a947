"""Generic document store used for tenants, devices and sessions.

Documents are JSON objects addressed by a collection path
(``Restaurants/42/Devices``) and a document id. The SQL implementation keeps
every document in one ``documents`` table and filters queries in Python, which
is enough for the per-tenant collection sizes this service deals with.
"""
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from starlette.concurrency import run_in_threadpool

from ewaiter.db import build_engine, build_sessionmaker
from ewaiter.models import Document
from ewaiter.services.errors import DocumentNotFound, DocumentStoreError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Snapshot:
    id: str
    data: dict[str, Any] = field(default_factory=dict)


class DocumentStore(Protocol):
    async def get(self, collection: str, doc_id: str) -> Snapshot | None: ...

    async def query(self, collection: str, **filters: Any) -> list[Snapshot]: ...

    async def get_all(self, collection: str) -> list[Snapshot]: ...

    async def set(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None: ...

    async def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None: ...

    async def add(self, collection: str, fields: dict[str, Any]) -> str: ...

    async def delete(self, collection: str, doc_id: str) -> bool: ...


def matches(data: dict[str, Any], filters: dict[str, Any]) -> bool:
    return all(data.get(name) == value for name, value in filters.items())


class SqlDocumentStore:
    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    @classmethod
    def from_url(cls, database_url: str) -> "SqlDocumentStore":
        return cls(build_sessionmaker(build_engine(database_url)))

    async def get(self, collection: str, doc_id: str) -> Snapshot | None:
        return await run_in_threadpool(self._run, self._get, collection, doc_id)

    async def query(self, collection: str, **filters: Any) -> list[Snapshot]:
        return await run_in_threadpool(self._run, self._query, collection, filters)

    async def get_all(self, collection: str) -> list[Snapshot]:
        return await run_in_threadpool(self._run, self._query, collection, {})

    async def set(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        await run_in_threadpool(self._run, self._set, collection, doc_id, fields)

    async def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        await run_in_threadpool(self._run, self._update, collection, doc_id, fields)

    async def add(self, collection: str, fields: dict[str, Any]) -> str:
        doc_id = uuid.uuid4().hex
        await run_in_threadpool(self._run, self._set, collection, doc_id, fields)
        return doc_id

    async def delete(self, collection: str, doc_id: str) -> bool:
        return await run_in_threadpool(self._run, self._delete, collection, doc_id)

    def _run(self, operation, *args):
        db = self._session_factory()
        try:
            result = operation(db, *args)
            db.commit()
            return result
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error("Document store operation %s failed: %s", operation.__name__, exc)
            raise DocumentStoreError("Document store unavailable. Please try again.") from exc
        finally:
            db.close()

    @staticmethod
    def _find(db: Session, collection: str, doc_id: str) -> Document | None:
        return (
            db.query(Document)
            .filter(Document.collection == collection, Document.doc_id == doc_id)
            .first()
        )

    def _get(self, db: Session, collection: str, doc_id: str) -> Snapshot | None:
        document = self._find(db, collection, doc_id)
        if not document:
            return None
        return Snapshot(id=document.doc_id, data=dict(document.data or {}))

    def _query(self, db: Session, collection: str, filters: dict[str, Any]) -> list[Snapshot]:
        documents = (
            db.query(Document)
            .filter(Document.collection == collection)
            .order_by(Document.created_at.asc(), Document.doc_id.asc())
            .all()
        )
        return [
            Snapshot(id=document.doc_id, data=dict(document.data or {}))
            for document in documents
            if matches(document.data or {}, filters)
        ]

    def _set(self, db: Session, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        document = self._find(db, collection, doc_id)
        if document:
            document.data = dict(fields)
        else:
            db.add(Document(collection=collection, doc_id=doc_id, data=dict(fields)))

    def _update(self, db: Session, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        document = self._find(db, collection, doc_id)
        if not document:
            raise DocumentNotFound(f"Document {collection}/{doc_id} not found")
        document.data = {**(document.data or {}), **fields}

    def _delete(self, db: Session, collection: str, doc_id: str) -> bool:
        document = self._find(db, collection, doc_id)
        if not document:
            return False
        db.delete(document)
        return True
