"""Document store contract and the in-memory implementation.

The engine addresses documents by collection (entity) name and id and only
relies on ``get``, ``query``, ``set``, ``update``, ``delete`` and
``subscribe``. Conditional writes are expressed as a ``precondition``: a
mapping of field values the stored document must still hold, otherwise the
write fails with ``ConflictError``. Every write stamps the document with an
increasing ``version`` that callers condition their writes on.
"""

from __future__ import annotations

import copy
import logging
import operator
import uuid
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from timesheets.exceptions import ConflictError, NotFoundError

logger = logging.getLogger(__name__)

Document = dict[str, Any]
SnapshotCallback = Callable[[list[Document]], None]
Unsubscribe = Callable[[], None]

VERSION_FIELD = "version"

_OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "==": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "in": lambda value, options: value in options,
}


@dataclass(frozen=True, slots=True)
class Filter:
    """A single ``field op value`` constraint on a document."""

    field: str
    op: str
    value: Any

    def __post_init__(self) -> None:
        if self.op not in _OPERATORS:
            msg = f"Unsupported filter operator: {self.op}"
            raise ValueError(msg)

    def matches(self, document: Mapping[str, Any]) -> bool:
        if self.field not in document:
            return False
        current = document[self.field]
        if current is None and self.op not in ("==", "!="):
            return False
        try:
            return _OPERATORS[self.op](current, self.value)
        except TypeError:
            return False


def where(field: str, op: str, value: Any) -> Filter:
    """Build a filter, e.g. ``where("userId", "==", user_id)``."""
    return Filter(field, op, value)


def matches_all(document: Mapping[str, Any], filters: Sequence[Filter] | None) -> bool:
    return all(f.matches(document) for f in filters or ())


def apply_ordering(documents: list[Document], order_by: str | None, descending: bool = False) -> list[Document]:
    if order_by is None:
        return documents
    present = [d for d in documents if d.get(order_by) is not None]
    missing = [d for d in documents if d.get(order_by) is None]
    return sorted(present, key=lambda d: d[order_by], reverse=descending) + missing


def check_precondition(collection: str, doc_id: str, current: Mapping[str, Any], precondition: Mapping[str, Any]) -> None:
    """Raise ConflictError if ``current`` no longer holds the expected field values."""
    for field, expected in precondition.items():
        if current.get(field) != expected:
            logger.info(
                "Precondition failed on %s/%s: %s is %r, expected %r",
                collection,
                doc_id,
                field,
                current.get(field),
                expected,
            )
            raise ConflictError


def next_version(current: Mapping[str, Any] | None) -> int:
    """Version for the next write of a document; documents never written by a store count as version 0."""
    if current is None:
        return 1
    return int(current.get(VERSION_FIELD) or 0) + 1


@runtime_checkable
class DocumentStore(Protocol):
    """Interface for the remote document store."""

    def new_id(self) -> str:
        """Allocate an id for a new document."""
        ...

    async def get(self, collection: str, doc_id: str) -> Document | None:
        """Fetch a document. Returns None if not found."""
        ...

    async def query(
        self,
        collection: str,
        filters: Sequence[Filter] | None = None,
        *,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[Document]:
        """Return the documents of ``collection`` matching every filter."""
        ...

    async def set(self, collection: str, doc_id: str, data: Mapping[str, Any]) -> Document:
        """Create or replace a document."""
        ...

    async def update(
        self,
        collection: str,
        doc_id: str,
        changes: Mapping[str, Any],
        *,
        precondition: Mapping[str, Any] | None = None,
    ) -> Document:
        """Merge ``changes`` into an existing document, bump its ``version`` and return the result."""
        ...

    async def delete(self, collection: str, doc_id: str) -> None:
        """Physically remove a document."""
        ...

    def subscribe(
        self,
        collection: str,
        callback: SnapshotCallback,
        filters: Sequence[Filter] | None = None,
    ) -> Unsubscribe:
        """Call ``callback`` with the matching documents now and after every write to ``collection``."""
        ...


class SubscriptionHub:
    """Fan-out of collection snapshots to live subscribers."""

    def __init__(self) -> None:
        self._listeners: dict[int, tuple[str, Sequence[Filter] | None, SnapshotCallback]] = {}
        self._next_token = 0

    def add(self, collection: str, filters: Sequence[Filter] | None, callback: SnapshotCallback) -> Unsubscribe:
        token = self._next_token
        self._next_token += 1
        self._listeners[token] = (collection, filters, callback)

        def _unsubscribe() -> None:
            self._listeners.pop(token, None)

        return _unsubscribe

    def has_listeners(self, collection: str) -> bool:
        return any(c == collection for c, _, _ in self._listeners.values())

    def publish(self, collection: str, documents: Sequence[Document]) -> None:
        for listener_collection, filters, callback in list(self._listeners.values()):
            if listener_collection != collection:
                continue
            snapshot = [copy.deepcopy(d) for d in documents if matches_all(d, filters)]
            try:
                callback(snapshot)
            except Exception:
                logger.exception("Subscriber callback failed for collection %s", collection)


class InMemoryDocumentStore:
    """In-memory implementation for development and tests."""

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, Document]] = {}
        self._hub = SubscriptionHub()

    def seed(self, collection: str, document: Mapping[str, Any]) -> None:
        """Seed a document for testing. The document must carry an ``id``."""
        self._collections.setdefault(collection, {})[document["id"]] = copy.deepcopy(dict(document))

    def new_id(self) -> str:
        return uuid.uuid4().hex

    async def get(self, collection: str, doc_id: str) -> Document | None:
        document = self._collections.get(collection, {}).get(doc_id)
        return copy.deepcopy(document) if document is not None else None

    async def query(
        self,
        collection: str,
        filters: Sequence[Filter] | None = None,
        *,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[Document]:
        documents = [copy.deepcopy(d) for d in self._collections.get(collection, {}).values() if matches_all(d, filters)]
        return apply_ordering(documents, order_by, descending)

    async def set(self, collection: str, doc_id: str, data: Mapping[str, Any]) -> Document:
        documents = self._collections.setdefault(collection, {})
        document = {**copy.deepcopy(dict(data)), "id": doc_id, VERSION_FIELD: next_version(documents.get(doc_id))}
        documents[doc_id] = document
        self._publish(collection)
        return copy.deepcopy(document)

    async def update(
        self,
        collection: str,
        doc_id: str,
        changes: Mapping[str, Any],
        *,
        precondition: Mapping[str, Any] | None = None,
    ) -> Document:
        current = self._collections.get(collection, {}).get(doc_id)
        if current is None:
            raise NotFoundError(f"Document {collection}/{doc_id} not found")
        if precondition:
            check_precondition(collection, doc_id, current, precondition)
        version = next_version(current)
        current.update(copy.deepcopy(dict(changes)))
        current["id"] = doc_id
        current[VERSION_FIELD] = version
        self._publish(collection)
        return copy.deepcopy(current)

    async def delete(self, collection: str, doc_id: str) -> None:
        if self._collections.get(collection, {}).pop(doc_id, None) is not None:
            self._publish(collection)

    def subscribe(
        self,
        collection: str,
        callback: SnapshotCallback,
        filters: Sequence[Filter] | None = None,
    ) -> Unsubscribe:
        unsubscribe = self._hub.add(collection, filters, callback)
        callback([copy.deepcopy(d) for d in self._collections.get(collection, {}).values() if matches_all(d, filters)])
        return unsubscribe

    def _publish(self, collection: str) -> None:
        if self._hub.has_listeners(collection):
            self._hub.publish(collection, list(self._collections.get(collection, {}).values()))
