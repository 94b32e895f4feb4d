"""In-memory document store for local runs and tests."""

import copy
import logging
from dataclasses import dataclass, field

from nutrimyth.domain.errors import StoreUnavailable, UnknownError
from nutrimyth.services.store import (
    ChangeCallback,
    Document,
    DocumentStore,
    ErrorCallback,
    Unsubscribe,
)

logger = logging.getLogger(__name__)


@dataclass
class _Listener:
    on_change: ChangeCallback
    on_error: ErrorCallback
    active: bool = True


@dataclass
class InMemoryDocumentStore(DocumentStore):
    """Document store kept in process memory.

    Writes are applied synchronously and fanned out to listeners on the
    calling task, so listeners observe changes in commit order.
    """

    documents: dict[tuple[str, str], Document] = field(default_factory=dict)
    writes: list[tuple[str, str, str]] = field(default_factory=list)
    available: bool = True
    _listeners: dict[tuple[str, str], list[_Listener]] = field(
        default_factory=dict, repr=False
    )

    async def get(self, collection: str, doc_id: str) -> Document | None:
        """Return a deep copy of the document, if present."""
        self._check_available()
        document = self.documents.get((collection, doc_id))
        return copy.deepcopy(document) if document is not None else None

    async def set(self, collection: str, doc_id: str, data: Document) -> None:
        """Overwrite the document."""
        self._check_available()
        self.documents[(collection, doc_id)] = copy.deepcopy(data)
        self._commit("set", collection, doc_id)

    async def create(self, collection: str, doc_id: str, data: Document) -> bool:
        """Insert the document unless one is already stored."""
        self._check_available()
        key = (collection, doc_id)
        if key in self.documents:
            return False
        self.documents[key] = copy.deepcopy(data)
        self._commit("create", collection, doc_id)
        return True

    async def update(self, collection: str, doc_id: str, partial: Document) -> None:
        """Merge top-level fields into an existing document."""
        self._check_available()
        key = (collection, doc_id)
        if key not in self.documents:
            raise UnknownError(f"No document {collection}/{doc_id} to update")
        self.documents[key].update(copy.deepcopy(partial))
        self._commit("update", collection, doc_id)

    async def increment(
        self, collection: str, doc_id: str, field: str, delta: int
    ) -> None:
        """Add delta to a numeric field without yielding to other tasks."""
        self._check_available()
        document = self.documents.get((collection, doc_id))
        if document is None:
            raise UnknownError(f"No document {collection}/{doc_id} to increment")
        current = document.get(field)
        base = current if isinstance(current, int | float) else 0
        document[field] = base + delta
        self._commit("increment", collection, doc_id)

    async def subscribe(
        self,
        collection: str,
        doc_id: str,
        on_change: ChangeCallback,
        on_error: ErrorCallback,
    ) -> Unsubscribe:
        """Register a listener and deliver the current document to it."""
        self._check_available()
        key = (collection, doc_id)
        listener = _Listener(on_change=on_change, on_error=on_error)
        self._listeners.setdefault(key, []).append(listener)

        def unsubscribe() -> None:
            listener.active = False
            listeners = self._listeners.get(key, [])
            if listener in listeners:
                listeners.remove(listener)

        document = self.documents.get(key)
        try:
            on_change(copy.deepcopy(document) if document is not None else None)
        except BaseException:
            unsubscribe()
            raise
        return unsubscribe

    async def delete(self, collection: str, doc_id: str) -> None:
        """Remove a document and notify listeners."""
        self._check_available()
        self.documents.pop((collection, doc_id), None)
        self._commit("delete", collection, doc_id)

    def fail_listeners(self, collection: str, doc_id: str, error: Exception) -> None:
        """Terminate every listener on a document with an error."""
        for listener in list(self._listeners.pop((collection, doc_id), [])):
            if listener.active:
                listener.active = False
                listener.on_error(error)

    def listener_count(self, collection: str, doc_id: str) -> int:
        """Return the number of active listeners on a document."""
        return len(self._listeners.get((collection, doc_id), []))

    async def close(self) -> None:
        """Drop every listener."""
        for listeners in self._listeners.values():
            for listener in listeners:
                listener.active = False
        self._listeners.clear()

    def _commit(self, operation: str, collection: str, doc_id: str) -> None:
        self.writes.append((operation, collection, doc_id))
        document = self.documents.get((collection, doc_id))
        for listener in list(self._listeners.get((collection, doc_id), [])):
            if not listener.active:
                continue
            listener.on_change(
                copy.deepcopy(document) if document is not None else None
            )

    def _check_available(self) -> None:
        if not self.available:
            logger.warning("In-memory document store marked unavailable")
            raise StoreUnavailable("Document store is unavailable")
