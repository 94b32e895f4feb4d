"""Document store interface consumed by the user data services."""

from collections.abc import Callable
from typing import Protocol

Document = dict[str, object]
ChangeCallback = Callable[[Document | None], None]
ErrorCallback = Callable[[Exception], None]
Unsubscribe = Callable[[], None]


class DocumentStore(Protocol):
    """Remote document database accessed by collection and document id."""

    async def get(self, collection: str, doc_id: str) -> Document | None:
        """Return the document, or None when it does not exist."""

    async def set(self, collection: str, doc_id: str, data: Document) -> None:
        """Overwrite the document with data."""

    async def create(self, collection: str, doc_id: str, data: Document) -> bool:
        """Insert the document only if absent; return True when inserted."""

    async def update(self, collection: str, doc_id: str, partial: Document) -> None:
        """Merge partial into the document at top-level field granularity."""

    async def increment(
        self, collection: str, doc_id: str, field: str, delta: int
    ) -> None:
        """Atomically add delta to a numeric field of an existing document."""

    async def subscribe(
        self,
        collection: str,
        doc_id: str,
        on_change: ChangeCallback,
        on_error: ErrorCallback,
    ) -> Unsubscribe:
        """Listen for changes to a document until the returned callable runs.

        on_change receives the current document first (None when absent),
        then every committed change in commit order. A failed listener calls
        on_error once and delivers nothing further.
        """

    async def close(self) -> None:
        """Release any underlying connections."""
