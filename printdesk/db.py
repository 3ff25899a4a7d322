"""
PrintDesk - Document Store

Minimal document-store capability the services are written against:
per-document reads and writes keyed by an opaque id, plus equality
queries with an optional order-by.

Two implementations:
- SupabaseDocumentStore: one Supabase table per collection, `id` text key.
- MemoryDocumentStore: process-local dicts; used when Supabase is not
  configured outside production, and by the test suite.

Concurrency: the store is the only shared mutable state. Supabase gives
last-writer-wins per row; the memory store serializes writes with a lock.
"""

from __future__ import annotations

import copy
import threading
import uuid
from typing import TYPE_CHECKING, Any, Optional, Protocol

from loguru import logger

from .core.errors import UpstreamError

if TYPE_CHECKING:
    from supabase import Client

    from .config import Settings

Document = dict[str, Any]


class DocumentStore(Protocol):
    """Capability interface for document persistence."""

    def get(self, collection: str, doc_id: str) -> Optional[Document]: ...

    def insert(self, collection: str, data: Document, doc_id: str | None = None) -> str: ...

    def update(self, collection: str, doc_id: str, fields: Document) -> bool: ...

    def delete(self, collection: str, doc_id: str) -> bool: ...

    def query(
        self,
        collection: str,
        where: Optional[dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[tuple[str, Document]]: ...


def new_document_id() -> str:
    return uuid.uuid4().hex


# =============================================================================
# In-memory store
# =============================================================================


class MemoryDocumentStore:
    """Thread-safe in-process document store."""

    def __init__(self, seed: Optional[dict[str, dict[str, Document]]] = None):
        self._lock = threading.Lock()
        self._collections: dict[str, dict[str, Document]] = copy.deepcopy(seed or {})

    def _collection(self, name: str) -> dict[str, Document]:
        return self._collections.setdefault(name, {})

    def get(self, collection: str, doc_id: str) -> Optional[Document]:
        with self._lock:
            doc = self._collection(collection).get(doc_id)
            return copy.deepcopy(doc) if doc is not None else None

    def insert(self, collection: str, data: Document, doc_id: str | None = None) -> str:
        doc_id = doc_id or new_document_id()
        with self._lock:
            self._collection(collection)[doc_id] = copy.deepcopy(data)
        return doc_id

    def update(self, collection: str, doc_id: str, fields: Document) -> bool:
        with self._lock:
            docs = self._collection(collection)
            if doc_id not in docs:
                return False
            docs[doc_id].update(copy.deepcopy(fields))
            return True

    def delete(self, collection: str, doc_id: str) -> bool:
        with self._lock:
            return self._collection(collection).pop(doc_id, None) is not None

    def query(
        self,
        collection: str,
        where: Optional[dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[tuple[str, Document]]:
        with self._lock:
            rows = [
                (doc_id, copy.deepcopy(doc))
                for doc_id, doc in self._collection(collection).items()
                if all(doc.get(field) == value for field, value in (where or {}).items())
            ]

        if order_by:
            # Missing values sort first ascending, last descending
            rows.sort(
                key=lambda row: (row[1].get(order_by) is not None, row[1].get(order_by) or 0),
                reverse=descending,
            )
        if limit is not None:
            rows = rows[:limit]
        return rows


# =============================================================================
# Supabase store
# =============================================================================


class SupabaseDocumentStore:
    """
    Document store over Supabase (PostgREST) tables.

    Each collection is a table with a text `id` primary key and one column
    per document field.
    """

    def __init__(self, client: "Client"):
        self._client = client

    def _execute(self, action: str, collection: str, builder: Any) -> list[Document]:
        try:
            response = builder.execute()
        except Exception as e:
            logger.error(f"Supabase {action} on {collection} failed: {e}")
            raise UpstreamError(f"Document store {action} failed: {e}") from e
        return list(response.data or [])

    @staticmethod
    def _split(row: Document) -> tuple[str, Document]:
        data = dict(row)
        doc_id = str(data.pop("id"))
        return doc_id, data

    def get(self, collection: str, doc_id: str) -> Optional[Document]:
        rows = self._execute(
            "get",
            collection,
            self._client.table(collection).select("*").eq("id", doc_id).limit(1),
        )
        if not rows:
            return None
        return self._split(rows[0])[1]

    def insert(self, collection: str, data: Document, doc_id: str | None = None) -> str:
        doc_id = doc_id or new_document_id()
        self._execute(
            "insert",
            collection,
            self._client.table(collection).insert({"id": doc_id, **data}),
        )
        return doc_id

    def update(self, collection: str, doc_id: str, fields: Document) -> bool:
        rows = self._execute(
            "update",
            collection,
            self._client.table(collection).update(fields).eq("id", doc_id),
        )
        return bool(rows)

    def delete(self, collection: str, doc_id: str) -> bool:
        rows = self._execute(
            "delete",
            collection,
            self._client.table(collection).delete().eq("id", doc_id),
        )
        return bool(rows)

    def query(
        self,
        collection: str,
        where: Optional[dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[tuple[str, Document]]:
        builder = self._client.table(collection).select("*")
        for field, value in (where or {}).items():
            builder = builder.eq(field, value)
        if order_by:
            builder = builder.order(order_by, desc=descending)
        if limit is not None:
            builder = builder.limit(limit)
        return [self._split(row) for row in self._execute("query", collection, builder)]


# =============================================================================
# Factory
# =============================================================================


def create_document_store(settings: "Settings") -> DocumentStore:
    """
    Build the document store for the configured environment.

    Production without Supabase credentials is a fatal configuration error;
    elsewhere the service boots on the in-memory store.
    """
    if settings.document_store_configured:
        from supabase import create_client

        logger.info("Creating Supabase client")
        client = create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY)
        return SupabaseDocumentStore(client)

    if settings.is_production:
        raise RuntimeError(
            "SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set in production"
        )

    logger.warning(
        "⚠️ SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY not configured - "
        "using in-memory document store (data is lost on restart)"
    )
    return MemoryDocumentStore()
