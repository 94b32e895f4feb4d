"""Live mirror of a user's document fed by a store subscription."""

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass, field
from enum import StrEnum

from nutrimyth.domain.errors import (
    ErrorKind,
    PermissionDenied,
    StoreUnavailable,
    UnknownError,
    UserDataError,
    error_kind,
)
from nutrimyth.domain.models import USERS_COLLECTION, UserRecord, record_from_document
from nutrimyth.services.bootstrap import BootstrapService, validate_identity
from nutrimyth.services.store import Document, DocumentStore, Unsubscribe

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[UserRecord], None]
SyncErrorCallback = Callable[[ErrorKind], None]


class SyncState(StrEnum):
    """Lifecycle of a subscription."""

    UNINITIALIZED = "uninitialized"
    BOOTSTRAPPING = "bootstrapping"
    SYNCED = "synced"
    DETACHED = "detached"


@dataclass
class UserDataSubscription:
    """Handle for one live subscription to a user's record.

    Snapshots are immutable ``UserRecord`` values. Once ``unsubscribe``
    returns, or an error has been reported, no callback fires again.
    """

    identity: str
    on_snapshot: SnapshotCallback
    on_error: SyncErrorCallback
    state: SyncState = SyncState.UNINITIALIZED
    current: UserRecord | None = None
    _store_unsubscribe: Unsubscribe | None = field(default=None, repr=False)

    @property
    def active(self) -> bool:
        """True until the subscription is detached."""
        return self.state is not SyncState.DETACHED

    def unsubscribe(self) -> None:
        """Stop delivering snapshots; repeated calls do nothing."""
        if self.state is SyncState.DETACHED:
            return
        self._detach()
        logger.debug("Unsubscribed from %s", self.identity)

    def _handle_change(self, document: Document | None) -> None:
        if self.state is SyncState.DETACHED:
            return
        if document is None:
            logger.info("User document for %s was removed", self.identity)
            return
        snapshot = record_from_document(document)
        self.current = snapshot
        self.state = SyncState.SYNCED
        try:
            self.on_snapshot(snapshot)
        except Exception:
            # Raising here would fail the writer that committed the change.
            logger.exception("Snapshot callback for %s failed", self.identity)

    def _handle_error(self, error: Exception) -> None:
        if self.state is SyncState.DETACHED:
            return
        self._detach()
        kind = _subscription_error_kind(error)
        logger.warning(
            "Subscription for %s failed (%s): %s", self.identity, kind, error
        )
        try:
            self.on_error(kind)
        except Exception:
            logger.exception("Error callback for %s failed", self.identity)

    def _detach(self) -> None:
        self.state = SyncState.DETACHED
        self.current = None
        store_unsubscribe, self._store_unsubscribe = self._store_unsubscribe, None
        if store_unsubscribe is not None:
            store_unsubscribe()


@dataclass
class UserDataSync:
    """Opens live subscriptions on user records."""

    store: DocumentStore
    bootstrap: BootstrapService

    async def subscribe(
        self,
        identity: str,
        on_snapshot: SnapshotCallback,
        on_error: SyncErrorCallback,
    ) -> UserDataSubscription:
        """Bootstrap the record and start delivering snapshots.

        Bootstrap failures are raised to the caller; failures after the
        subscription is open are reported through ``on_error``.
        """
        validate_identity(identity)
        subscription = UserDataSubscription(
            identity=identity, on_snapshot=on_snapshot, on_error=on_error
        )
        subscription.state = SyncState.BOOTSTRAPPING
        try:
            await self.bootstrap.ensure(identity)
            store_unsubscribe = await self.store.subscribe(
                USERS_COLLECTION,
                identity,
                subscription._handle_change,
                subscription._handle_error,
            )
        except BaseException:
            subscription.state = SyncState.DETACHED
            raise
        if subscription.state is SyncState.DETACHED:
            store_unsubscribe()
        else:
            subscription._store_unsubscribe = store_unsubscribe
            logger.debug("Subscribed to %s", identity)
        return subscription

    async def snapshots(
        self, identity: str, max_buffer: int = 0
    ) -> AsyncIterator[UserRecord]:
        """Yield snapshots as they arrive until the consumer stops.

        Raises the matching ``UserDataError`` if the subscription fails. The
        listener is released when the generator closes, so consumers that may
        ``break`` early should iterate inside ``contextlib.aclosing``::

            async with aclosing(sync.snapshots(identity)) as stream:
                async for record in stream:
                    ...
        """
        queue: asyncio.Queue[UserRecord | ErrorKind] = asyncio.Queue(max_buffer)

        def push(item: UserRecord | ErrorKind) -> None:
            if queue.full():
                queue.get_nowait()
            queue.put_nowait(item)

        subscription = await self.subscribe(identity, push, push)
        try:
            while True:
                item = await queue.get()
                if isinstance(item, ErrorKind):
                    raise _error_for_kind(item)
                yield item
        finally:
            subscription.unsubscribe()


def _subscription_error_kind(error: Exception) -> ErrorKind:
    kind = error_kind(error)
    if kind in {ErrorKind.UNAVAILABLE, ErrorKind.PERMISSION_DENIED}:
        return kind
    return ErrorKind.UNKNOWN


def _error_for_kind(kind: ErrorKind) -> UserDataError:
    if kind is ErrorKind.UNAVAILABLE:
        return StoreUnavailable("User data subscription lost")
    if kind is ErrorKind.PERMISSION_DENIED:
        return PermissionDenied("User data subscription was denied")
    return UnknownError("User data subscription failed")
