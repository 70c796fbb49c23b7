"""Document collection client backed by the ``documents`` table.

Collections hold JSON documents addressed by id. Queries support equality
filters, a single ordering field, ``start_after`` cursors and limits. Writes
go through :class:`WriteBatch` so a group of sibling writes commits in one
transaction. Listeners registered with :meth:`DocumentStore.on_snapshot`
receive the query result immediately and again after every committed write
that touches the queried collection.
"""
from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Any

from sqlalchemy import and_, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..models import StoredDocument

logger = logging.getLogger(__name__)

DOCUMENT_ID = "__name__"
ASCENDING = "asc"
DESCENDING = "desc"


class DocumentStoreError(Exception):
    """Backend failure while reading or writing documents."""


class DocumentNotFoundError(DocumentStoreError):
    """Update targeted a document that does not exist."""

    def __init__(self, collection: str, doc_id: str) -> None:
        super().__init__(f"No document to update: {collection}/{doc_id}")
        self.collection = collection
        self.doc_id = doc_id


@dataclass(frozen=True)
class DocumentSnapshot:
    collection: str
    id: str
    data: dict[str, Any]

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def to_dict(self) -> dict[str, Any]:
        return dict(self.data)


@dataclass(frozen=True)
class QuerySnapshot:
    docs: list[DocumentSnapshot]

    @property
    def size(self) -> int:
        return len(self.docs)

    @property
    def empty(self) -> bool:
        return not self.docs

    def __iter__(self) -> Iterator[DocumentSnapshot]:
        return iter(self.docs)


def to_json_value(value: Any) -> Any:
    """Convert datetimes (also nested) into ISO strings for JSON storage."""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): to_json_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [to_json_value(v) for v in value]
    return value


def _json_field(field_path: str, sample: Any):
    element = StoredDocument.data[field_path]
    if isinstance(sample, bool):
        return element.as_boolean()
    if isinstance(sample, int):
        return element.as_integer()
    if isinstance(sample, float):
        return element.as_float()
    return element.as_string()


@dataclass(frozen=True)
class Query:
    """Immutable query description; builder methods return new queries."""

    store: "DocumentStore"
    collection: str
    filters: tuple[tuple[str, Any], ...] = ()
    order_field: str = DOCUMENT_ID
    direction: str = ASCENDING
    cursor: DocumentSnapshot | None = None
    limit_count: int | None = None

    def where(self, field_path: str, op: str, value: Any) -> "Query":
        if op != "==":
            raise ValueError(f"Unsupported filter operator: {op}")
        if value is None:
            raise ValueError("Equality filters against null are not supported")
        return replace(self, filters=self.filters + ((field_path, to_json_value(value)),))

    def order_by(self, field_path: str, direction: str = ASCENDING) -> "Query":
        if direction not in (ASCENDING, DESCENDING):
            raise ValueError(f"Unsupported direction: {direction}")
        return replace(self, order_field=field_path, direction=direction)

    def start_after(self, snapshot: DocumentSnapshot) -> "Query":
        return replace(self, cursor=snapshot)

    def limit(self, count: int) -> "Query":
        if count <= 0:
            raise ValueError("Limit must be positive")
        return replace(self, limit_count=count)

    def get(self) -> QuerySnapshot:
        return self.store.run_query(self)


class Subscription:
    """Handle of a standing query listener."""

    def __init__(
        self,
        store: "DocumentStore",
        query: Query,
        callback: Callable[[QuerySnapshot], None],
        on_error: Callable[[Exception], None] | None,
    ) -> None:
        self._store = store
        self.query = query
        self.callback = callback
        self.on_error = on_error
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self.active = False
            self._store._remove_subscription(self)


class WriteBatch:
    """Set of writes applied atomically on commit."""

    def __init__(self, store: "DocumentStore") -> None:
        self._store = store
        self._ops: list[tuple[str, str, str, dict[str, Any] | None, bool]] = []
        self._committed = False

    def __len__(self) -> int:
        return len(self._ops)

    def set(self, collection: str, doc_id: str, data: dict[str, Any], *, merge: bool = False) -> "WriteBatch":
        self._ops.append(("set", collection, doc_id, to_json_value(data), merge))
        return self

    def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> "WriteBatch":
        self._ops.append(("update", collection, doc_id, to_json_value(fields), True))
        return self

    def delete(self, collection: str, doc_id: str) -> "WriteBatch":
        self._ops.append(("delete", collection, doc_id, None, False))
        return self

    def commit(self) -> None:
        if self._committed:
            raise RuntimeError("Write batch already committed")
        self._store._apply(self._ops)
        self._committed = True


class DocumentStore:
    """Collection-oriented facade over a SQLAlchemy session factory."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory
        self._subscriptions: list[Subscription] = []
        self._lock = threading.Lock()
        # Held from commit through delivery so listeners see snapshots in commit order.
        self._write_lock = threading.RLock()

    @contextmanager
    def _session(self) -> Iterator[Session]:
        db = self._session_factory()
        try:
            yield db
        finally:
            db.close()

    @staticmethod
    def _snapshot(row: StoredDocument) -> DocumentSnapshot:
        return DocumentSnapshot(collection=row.collection, id=row.doc_id, data=dict(row.data or {}))

    # Reads

    def get(self, collection: str, doc_id: str) -> DocumentSnapshot | None:
        try:
            with self._session() as db:
                row = db.query(StoredDocument).filter(
                    StoredDocument.collection == collection,
                    StoredDocument.doc_id == doc_id,
                ).first()
                return self._snapshot(row) if row else None
        except SQLAlchemyError as exc:
            raise DocumentStoreError(str(exc)) from exc

    def query(self, collection: str) -> Query:
        return Query(store=self, collection=collection)

    def run_query(self, query: Query) -> QuerySnapshot:
        if query.order_field == DOCUMENT_ID:
            order_col = StoredDocument.doc_id
        else:
            order_col = StoredDocument.data[query.order_field].as_string()
        descending = query.direction == DESCENDING

        try:
            with self._session() as db:
                q = db.query(StoredDocument).filter(StoredDocument.collection == query.collection)
                for field_path, value in query.filters:
                    q = q.filter(_json_field(field_path, value) == value)

                if query.cursor is not None:
                    q = q.filter(self._after_clause(query, order_col, descending))

                if descending:
                    q = q.order_by(order_col.desc(), StoredDocument.doc_id.desc())
                else:
                    q = q.order_by(order_col.asc(), StoredDocument.doc_id.asc())

                if query.limit_count is not None:
                    q = q.limit(query.limit_count)

                return QuerySnapshot(docs=[self._snapshot(row) for row in q.all()])
        except SQLAlchemyError as exc:
            raise DocumentStoreError(str(exc)) from exc

    @staticmethod
    def _after_clause(query: Query, order_col, descending: bool):
        cursor = query.cursor
        if query.order_field == DOCUMENT_ID:
            return StoredDocument.doc_id < cursor.id if descending else StoredDocument.doc_id > cursor.id

        value = cursor.data.get(query.order_field)
        if value is None:
            raise ValueError(f"Cursor document has no value for '{query.order_field}'")
        if descending:
            return or_(order_col < value, and_(order_col == value, StoredDocument.doc_id < cursor.id))
        return or_(order_col > value, and_(order_col == value, StoredDocument.doc_id > cursor.id))

    # Writes

    def batch(self) -> WriteBatch:
        return WriteBatch(self)

    def set(self, collection: str, doc_id: str, data: dict[str, Any], *, merge: bool = False) -> None:
        self.batch().set(collection, doc_id, data, merge=merge).commit()

    def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        self.batch().update(collection, doc_id, fields).commit()

    def delete(self, collection: str, doc_id: str) -> None:
        self.batch().delete(collection, doc_id).commit()

    def add(self, collection: str, data: dict[str, Any]) -> str:
        doc_id = uuid.uuid4().hex[:20]
        self.set(collection, doc_id, data)
        return doc_id

    def new_id(self) -> str:
        return uuid.uuid4().hex[:20]

    def _apply(self, ops: list[tuple[str, str, str, dict[str, Any] | None, bool]]) -> None:
        if not ops:
            return
        with self._write_lock:
            touched: set[str] = set()
            db = self._session_factory()
            try:
                for kind, collection, doc_id, payload, merge in ops:
                    row = db.query(StoredDocument).filter(
                        StoredDocument.collection == collection,
                        StoredDocument.doc_id == doc_id,
                    ).first()
                    if kind == "set":
                        if row is None:
                            db.add(StoredDocument(collection=collection, doc_id=doc_id, data=payload))
                        elif merge:
                            row.data = {**(row.data or {}), **payload}
                        else:
                            row.data = payload
                    elif kind == "update":
                        if row is None:
                            raise DocumentNotFoundError(collection, doc_id)
                        row.data = {**(row.data or {}), **payload}
                    elif row is not None:
                        db.delete(row)
                    db.flush()
                    touched.add(collection)
                db.commit()
            except DocumentNotFoundError:
                db.rollback()
                raise
            except SQLAlchemyError as exc:
                db.rollback()
                raise DocumentStoreError(str(exc)) from exc
            finally:
                db.close()

            self._notify(touched)

    # Subscriptions

    def on_snapshot(
        self,
        query: Query,
        callback: Callable[[QuerySnapshot], None],
        on_error: Callable[[Exception], None] | None = None,
    ) -> Subscription:
        subscription = Subscription(self, query, callback, on_error)
        with self._write_lock:
            with self._lock:
                self._subscriptions.append(subscription)
            self._deliver(subscription)
        return subscription

    def _remove_subscription(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

    def _notify(self, collections: set[str]) -> None:
        with self._lock:
            listeners = [s for s in self._subscriptions if s.query.collection in collections]
        for subscription in listeners:
            self._deliver(subscription)

    def _deliver(self, subscription: Subscription) -> None:
        if not subscription.active:
            return
        try:
            snapshot = subscription.query.get()
        except Exception as exc:
            if subscription.on_error is not None:
                subscription.on_error(exc)
            else:
                logger.exception("Snapshot query failed for collection=%s", subscription.query.collection)
            return
        try:
            subscription.callback(snapshot)
        except Exception:
            logger.exception("Snapshot listener failed for collection=%s", subscription.query.collection)

    def close(self) -> None:
        with self._lock:
            for subscription in self._subscriptions:
                subscription.active = False
            self._subscriptions.clear()
