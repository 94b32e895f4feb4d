"""Supabase-backed document store."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TypeVar

import httpx
from postgrest.exceptions import APIError
from supabase import AsyncClient

from nutrimyth.domain.errors import (
    PermissionDenied,
    StoreUnavailable,
    UnknownError,
    UserDataError,
)
from nutrimyth.services.store import (
    ChangeCallback,
    Document,
    DocumentStore,
    ErrorCallback,
    Unsubscribe,
)

logger = logging.getLogger(__name__)

_PERMISSION_CODES = {"42501", "PGRST301", "PGRST302", "401", "403"}
_FAILED_STATES = {"CHANNEL_ERROR", "TIMED_OUT"}
_JOINED_STATE = "SUBSCRIBED"

T = TypeVar("T")


@dataclass
class SupabaseDocumentStore(DocumentStore):
    """Document store on a Supabase table of JSON documents.

    Rows are keyed by ``path`` (``<collection>/<doc_id>``) and carry a
    ``version`` bumped by every write. Writes go through Postgres functions
    so each call is one atomic statement; realtime events are ordered by
    ``version`` and stale ones are dropped.
    """

    client: AsyncClient
    table: str = "documents"
    join_timeout: float = 10.0
    _channels: list[object] = field(default_factory=list, repr=False)
    _pending_removals: set[asyncio.Task] = field(default_factory=set, repr=False)

    async def get(self, collection: str, doc_id: str) -> Document | None:
        """Return the stored document, if present."""
        row = await self._get_row(collection, doc_id)
        if row is None:
            return None
        return _as_document(row.get("data"))

    async def set(self, collection: str, doc_id: str, data: Document) -> None:
        """Overwrite the document."""
        await self._call(
            lambda: self.client.rpc(
                "put_document",
                {
                    "p_path": _path(collection, doc_id),
                    "p_collection": collection,
                    "p_doc_id": doc_id,
                    "p_data": data,
                },
            ).execute()
        )

    async def create(self, collection: str, doc_id: str, data: Document) -> bool:
        """Insert the document unless it exists; return whether it was inserted."""
        response = await self._call(
            lambda: self.client.rpc(
                "create_document_if_absent",
                {
                    "p_path": _path(collection, doc_id),
                    "p_collection": collection,
                    "p_doc_id": doc_id,
                    "p_data": data,
                },
            ).execute()
        )
        return response.data is True

    async def update(self, collection: str, doc_id: str, partial: Document) -> None:
        """Merge top-level fields with jsonb concatenation."""
        await self._call(
            lambda: self.client.rpc(
                "merge_document",
                {"p_path": _path(collection, doc_id), "p_patch": partial},
            ).execute()
        )

    async def increment(
        self, collection: str, doc_id: str, field: str, delta: int
    ) -> None:
        """Atomically add delta to a numeric field inside the document."""
        await self._call(
            lambda: self.client.rpc(
                "increment_document_field",
                {
                    "p_path": _path(collection, doc_id),
                    "p_field": field,
                    "p_delta": delta,
                },
            ).execute()
        )

    async def subscribe(
        self,
        collection: str,
        doc_id: str,
        on_change: ChangeCallback,
        on_error: ErrorCallback,
    ) -> Unsubscribe:
        """Listen to realtime row changes for one document."""
        path = _path(collection, doc_id)
        watch = _DocumentWatch(on_change=on_change, on_error=on_error)
        channel = self.client.channel(f"documents:{path}")
        channel.on_postgres_changes(
            "*",
            schema="public",
            table=self.table,
            filter=f"path=eq.{path}",
            callback=watch.handle_payload,
        )

        joined = asyncio.Event()
        join_failures: list[UserDataError] = []

        def on_status(status: object, error: Exception | None = None) -> None:
            state = str(getattr(status, "value", status))
            if error is not None:
                failure = _translate(error)
            elif state in _FAILED_STATES:
                failure = StoreUnavailable(f"Realtime channel {state.lower()}")
            else:
                if state == _JOINED_STATE:
                    joined.set()
                return
            if joined.is_set():
                watch.fail(failure)
            else:
                join_failures.append(failure)
                joined.set()

        await self._call(lambda: channel.subscribe(on_status))
        self._channels.append(channel)
        # The join is acknowledged asynchronously. Reading only after the
        # acknowledgement means every later commit arrives as an event; events
        # already covered by the read are dropped by version.
        try:
            try:
                await asyncio.wait_for(joined.wait(), self.join_timeout)
            except TimeoutError as exc:
                raise StoreUnavailable("Realtime channel did not join in time") from exc
            if join_failures:
                raise join_failures[0]
            row = await self._get_row(collection, doc_id)
        except UserDataError:
            await self._remove_channel(channel)
            raise
        try:
            watch.deliver_initial(row)
        except BaseException:
            watch.close()
            await self._remove_channel(channel)
            raise

        released = False

        def unsubscribe() -> None:
            nonlocal released
            watch.close()
            if released:
                return
            released = True
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                logger.debug("No running loop; channel %s left for close()", path)
                return
            task = loop.create_task(self._remove_channel(channel))
            self._pending_removals.add(task)
            task.add_done_callback(self._pending_removals.discard)

        return unsubscribe

    async def close(self) -> None:
        """Remove every open realtime channel."""
        if self._pending_removals:
            await asyncio.gather(*self._pending_removals)
        for channel in list(self._channels):
            await self._remove_channel(channel)

    async def _get_row(self, collection: str, doc_id: str) -> dict | None:
        response = await self._call(
            lambda: self.client.table(self.table)
            .select("data, version")
            .eq("path", _path(collection, doc_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return response.data[0]

    async def _remove_channel(self, channel: object) -> None:
        if channel in self._channels:
            self._channels.remove(channel)
        try:
            await self.client.remove_channel(channel)
        except (httpx.HTTPError, OSError):
            logger.warning("Failed to remove realtime channel", exc_info=True)

    async def _call(self, operation: Callable[[], Awaitable[T]]) -> T:
        try:
            return await operation()
        except UserDataError:
            raise
        except (APIError, httpx.HTTPError, OSError) as exc:
            raise _translate(exc) from exc


@dataclass
class _DocumentWatch:
    """Orders realtime events for one document by row version."""

    on_change: ChangeCallback
    on_error: ErrorCallback
    last_version: int = -1
    ready: bool = False
    closed: bool = False
    pending: list[dict] = field(default_factory=list)

    def deliver_initial(self, row: dict | None) -> None:
        if self.closed:
            return
        self.ready = True
        if row is None:
            self.on_change(None)
        else:
            self._emit(row)
        pending, self.pending = self.pending, []
        for event in pending:
            self._apply(event)

    def handle_payload(self, payload: dict) -> None:
        if self.closed:
            return
        event = _event_from_payload(payload)
        if event is None:
            return
        if not self.ready:
            self.pending.append(event)
            return
        self._apply(event)

    def fail(self, error: Exception) -> None:
        if self.closed:
            return
        self.closed = True
        logger.warning("Realtime subscription failed: %s", error)
        self.on_error(error)

    def close(self) -> None:
        self.closed = True

    def _apply(self, event: dict) -> None:
        if self.closed:
            return
        if event.get("deleted"):
            self.last_version = -1
            self.on_change(None)
            return
        self._emit(event)

    def _emit(self, row: dict) -> None:
        version = _as_version(row.get("version"))
        if version <= self.last_version:
            return
        self.last_version = version
        self.on_change(_as_document(row.get("data")))


def _event_from_payload(payload: dict) -> dict | None:
    data = payload.get("data") if isinstance(payload.get("data"), dict) else payload
    event_type = str(data.get("type") or data.get("eventType") or "").upper()
    if event_type == "DELETE":
        return {"deleted": True}
    record = data.get("record") or data.get("new")
    if not isinstance(record, dict):
        return None
    return record


def _translate(exc: BaseException) -> UserDataError:
    if isinstance(exc, UserDataError):
        return exc
    if isinstance(exc, APIError):
        code = str(exc.code or "")
        if code in _PERMISSION_CODES:
            return PermissionDenied(exc.message or "Permission denied")
        return UnknownError(exc.message or f"Supabase error {code}")
    if isinstance(exc, httpx.HTTPStatusError):
        if exc.response.status_code in {401, 403}:
            return PermissionDenied(str(exc))
        if exc.response.status_code >= 500:
            return StoreUnavailable(str(exc))
        return UnknownError(str(exc))
    if isinstance(exc, httpx.HTTPError | OSError):
        return StoreUnavailable(str(exc) or exc.__class__.__name__)
    return UnknownError(str(exc))


def _path(collection: str, doc_id: str) -> str:
    return f"{collection}/{doc_id}"


def _as_document(value: object) -> Document:
    return dict(value) if isinstance(value, dict) else {}


def _as_version(value: object) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.isdigit():
        return int(value)
    return 0
