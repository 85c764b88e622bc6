# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

"""
Document database abstraction for Firestore and an in-memory test implementation.
"""

from __future__ import annotations

import copy
import itertools
import logging
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Protocol

from firebase_admin import firestore
from google.cloud.firestore_v1 import SERVER_TIMESTAMP
from google.cloud.firestore_v1.base_query import FieldFilter

logger = logging.getLogger(__name__)

# Filter on the document id rather than a stored field.
DOCUMENT_ID = "__name__"

FILTER_OPERATORS = ("==", "array_contains", "in")


@dataclass
class DocumentRecord:
    id: str
    data: dict


@dataclass(frozen=True)
class Filter:
    field: str
    op: str
    value: Any

    def __post_init__(self):
        if self.op not in FILTER_OPERATORS:
            raise ValueError(f"Unsupported filter operator: {self.op}")


@dataclass
class Query:
    collection: str
    filters: List[Filter] = field(default_factory=list)
    order_by: Optional[str] = None
    descending: bool = False
    limit: Optional[int] = None

    def where(self, field_name: str, op: str, value: Any) -> "Query":
        return Query(
            collection=self.collection,
            filters=[*self.filters, Filter(field_name, op, value)],
            order_by=self.order_by,
            descending=self.descending,
            limit=self.limit,
        )

    def ordered(self, field_name: str, descending: bool = False) -> "Query":
        return Query(
            collection=self.collection,
            filters=list(self.filters),
            order_by=field_name,
            descending=descending,
            limit=self.limit,
        )


SnapshotCallback = Callable[[Optional[List[DocumentRecord]], Optional[Exception]], None]


class ListenerHandle(Protocol):
    def unsubscribe(self) -> None:
        ...


class DocumentStore(Protocol):
    """Defines the operations the synchronizers need from the document database."""

    def new_id(self, collection: str) -> str:
        ...

    def get(self, collection: str, doc_id: str) -> Optional[DocumentRecord]:
        ...

    def get_many(self, collection: str, ids: List[str]) -> List[DocumentRecord]:
        ...

    def add(self, collection: str, data: dict) -> str:
        ...

    def set(self, collection: str, doc_id: str, data: dict, merge: bool = False) -> None:
        ...

    def update(self, collection: str, doc_id: str, fields: dict) -> None:
        ...

    def delete(self, collection: str, doc_id: str) -> None:
        ...

    def query(self, query: Query) -> List[DocumentRecord]:
        ...

    def listen(self, query: Query, callback: SnapshotCallback) -> ListenerHandle:
        ...


class DocumentNotFoundError(LookupError):
    pass


@dataclass
class _InMemoryListener:
    store: "InMemoryDocumentStore"
    listener_id: int
    query: Query
    callback: SnapshotCallback

    def unsubscribe(self) -> None:
        self.store._remove_listener(self.listener_id)


class InMemoryDocumentStore:
    """Simple in-memory document database for development and tests.

    Writes resolve SERVER_TIMESTAMP to a strictly increasing UTC clock and
    push a fresh snapshot to every listener on the written collection before
    returning.
    """

    def __init__(self):
        self.collections: Dict[str, Dict[str, dict]] = {}
        self.query_count = 0
        self._listeners: Dict[int, _InMemoryListener] = {}
        self._listener_ids = itertools.count(1)
        self._failures: Dict[str, List[Exception]] = {}
        self._last_timestamp: Optional[datetime] = None
        self._lock = threading.RLock()

    # --- test helpers ---
    def fail_next(self, operation: str, error: Exception) -> None:
        """Make the next call to `operation` (e.g. "add", "update") raise."""
        self._failures.setdefault(operation, []).append(error)

    def push_error(self, collection: str, error: Exception) -> None:
        """Deliver a listener error to every subscriber of the collection."""
        for listener in self._listeners_for(collection):
            listener.callback(None, error)

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        with self._lock:
            self.collections.clear()
            self._failures.clear()
            self.query_count = 0

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def documents(self, collection: str) -> Dict[str, dict]:
        return copy.deepcopy(self.collections.get(collection, {}))

    # --- DocumentStore ---
    def new_id(self, collection: str) -> str:
        return uuid.uuid4().hex[:20]

    def get(self, collection: str, doc_id: str) -> Optional[DocumentRecord]:
        self._maybe_fail("get")
        with self._lock:
            data = self.collections.get(collection, {}).get(doc_id)
            if data is None:
                return None
            return DocumentRecord(doc_id, copy.deepcopy(data))

    def get_many(self, collection: str, ids: List[str]) -> List[DocumentRecord]:
        return self.query(Query(collection).where(DOCUMENT_ID, "in", list(ids)))

    def add(self, collection: str, data: dict) -> str:
        self._maybe_fail("add")
        doc_id = self.new_id(collection)
        with self._lock:
            self.collections.setdefault(collection, {})[doc_id] = self._resolve(data)
        self._notify(collection)
        return doc_id

    def set(self, collection: str, doc_id: str, data: dict, merge: bool = False) -> None:
        self._maybe_fail("set")
        with self._lock:
            docs = self.collections.setdefault(collection, {})
            resolved = self._resolve(data)
            if merge and doc_id in docs:
                docs[doc_id].update(resolved)
            else:
                docs[doc_id] = resolved
        self._notify(collection)

    def update(self, collection: str, doc_id: str, fields: dict) -> None:
        self._maybe_fail("update")
        with self._lock:
            docs = self.collections.get(collection, {})
            if doc_id not in docs:
                raise DocumentNotFoundError(f"No document to update: {collection}/{doc_id}")
            docs[doc_id].update(self._resolve(fields))
        self._notify(collection)

    def delete(self, collection: str, doc_id: str) -> None:
        self._maybe_fail("delete")
        with self._lock:
            self.collections.get(collection, {}).pop(doc_id, None)
        self._notify(collection)

    def query(self, query: Query) -> List[DocumentRecord]:
        self._maybe_fail("query")
        with self._lock:
            self.query_count += 1
            return self._run(query)

    def listen(self, query: Query, callback: SnapshotCallback) -> ListenerHandle:
        self._maybe_fail("listen")
        with self._lock:
            listener = _InMemoryListener(
                store=self,
                listener_id=next(self._listener_ids),
                query=query,
                callback=callback,
            )
            self._listeners[listener.listener_id] = listener
            initial = self._run(query)
        callback(initial, None)
        return listener

    # --- internals ---
    def _maybe_fail(self, operation: str) -> None:
        pending = self._failures.get(operation)
        if pending:
            raise pending.pop(0)

    def _now(self) -> datetime:
        now = datetime.now(timezone.utc)
        if self._last_timestamp is not None and now <= self._last_timestamp:
            now = self._last_timestamp + timedelta(microseconds=1)
        self._last_timestamp = now
        return now

    def _resolve(self, data: dict) -> dict:
        resolved = {}
        for key, value in data.items():
            resolved[key] = self._now() if value is SERVER_TIMESTAMP else copy.deepcopy(value)
        return resolved

    def _run(self, query: Query) -> List[DocumentRecord]:
        docs = self.collections.get(query.collection, {})
        matches = [
            DocumentRecord(doc_id, copy.deepcopy(data))
            for doc_id, data in docs.items()
            if all(_matches(doc_id, data, f) for f in query.filters)
        ]
        if query.order_by:
            # Firestore drops documents missing the order-by field.
            matches = [m for m in matches if m.data.get(query.order_by) is not None]
            matches.sort(key=lambda m: m.data[query.order_by], reverse=query.descending)
        if query.limit is not None:
            matches = matches[: query.limit]
        return matches

    def _listeners_for(self, collection: str) -> List[_InMemoryListener]:
        with self._lock:
            return [l for l in self._listeners.values() if l.query.collection == collection]

    def _notify(self, collection: str) -> None:
        for listener in self._listeners_for(collection):
            with self._lock:
                if listener.listener_id not in self._listeners:
                    continue
                snapshot = self._run(listener.query)
            listener.callback(snapshot, None)

    def _remove_listener(self, listener_id: int) -> None:
        with self._lock:
            self._listeners.pop(listener_id, None)


def _matches(doc_id: str, data: dict, flt: Filter) -> bool:
    value = doc_id if flt.field == DOCUMENT_ID else data.get(flt.field)
    if flt.op == "==":
        return value == flt.value
    if flt.op == "array_contains":
        return isinstance(value, list) and flt.value in value
    if flt.op == "in":
        return value in flt.value
    return False


@dataclass
class _FirestoreListener:
    watch: Any

    def unsubscribe(self) -> None:
        self.watch.unsubscribe()


class FirestoreDocumentStore:
    """
    Firestore-backed implementation using the firebase_admin client.
    """

    def __init__(self, client=None):
        self._client = client or firestore.client()

    def _collection(self, path: str):
        return self._client.collection(path)

    def _build(self, query: Query):
        collection = self._collection(query.collection)
        ref = collection
        for flt in query.filters:
            value = flt.value
            if flt.field == DOCUMENT_ID:
                if flt.op == "in":
                    value = [collection.document(doc_id) for doc_id in flt.value]
                else:
                    value = collection.document(flt.value)
            ref = ref.where(filter=FieldFilter(flt.field, flt.op, value))
        if query.order_by:
            direction = (
                firestore.Query.DESCENDING if query.descending else firestore.Query.ASCENDING
            )
            ref = ref.order_by(query.order_by, direction=direction)
        if query.limit is not None:
            ref = ref.limit(query.limit)
        return ref

    def new_id(self, collection: str) -> str:
        return self._collection(collection).document().id

    def get(self, collection: str, doc_id: str) -> Optional[DocumentRecord]:
        snapshot = self._collection(collection).document(doc_id).get()
        if not snapshot.exists:
            return None
        return DocumentRecord(snapshot.id, snapshot.to_dict())

    def get_many(self, collection: str, ids: List[str]) -> List[DocumentRecord]:
        return self.query(Query(collection).where(DOCUMENT_ID, "in", list(ids)))

    def add(self, collection: str, data: dict) -> str:
        _, doc_ref = self._collection(collection).add(data)
        return doc_ref.id

    def set(self, collection: str, doc_id: str, data: dict, merge: bool = False) -> None:
        self._collection(collection).document(doc_id).set(data, merge=merge)

    def update(self, collection: str, doc_id: str, fields: dict) -> None:
        self._collection(collection).document(doc_id).update(fields)

    def delete(self, collection: str, doc_id: str) -> None:
        self._collection(collection).document(doc_id).delete()

    def query(self, query: Query) -> List[DocumentRecord]:
        return [
            DocumentRecord(snapshot.id, snapshot.to_dict())
            for snapshot in self._build(query).stream()
        ]

    def listen(self, query: Query, callback: SnapshotCallback) -> ListenerHandle:
        def on_snapshot(snapshots, changes, read_time):
            try:
                records = [DocumentRecord(s.id, s.to_dict()) for s in snapshots]
            except Exception as e:
                logger.exception("Failed to read snapshot for %s", query.collection)
                callback(None, e)
                return
            callback(records, None)

        watch = self._build(query).on_snapshot(on_snapshot)
        logger.debug("Listening to %s", query.collection)
        return _FirestoreListener(watch)
