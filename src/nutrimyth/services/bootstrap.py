"""Creation of the per-user root document."""

import asyncio
import logging
from dataclasses import dataclass, field

from nutrimyth.domain.errors import InvalidArgument
from nutrimyth.domain.models import (
    USERS_COLLECTION,
    UserRecord,
    now_millis,
    record_from_document,
    record_to_document,
)
from nutrimyth.services.store import DocumentStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserProfile:
    """Profile fields copied onto the record when it is first created."""

    email: str | None = None
    display_name: str | None = None


@dataclass
class BootstrapService:
    """Ensures every identity has a root user document."""

    store: DocumentStore
    _inflight: dict[str, asyncio.Future[UserRecord]] = field(
        default_factory=dict, repr=False
    )

    async def ensure(
        self, identity: str, profile: UserProfile | None = None
    ) -> UserRecord:
        """Return the user's record, creating it with defaults when absent.

        Concurrent calls for one identity share the same read and at most
        one creation write.
        """
        validate_identity(identity)
        pending = self._inflight.get(identity)
        if pending is not None:
            return await asyncio.shield(pending)

        task = asyncio.ensure_future(self._load_or_create(identity, profile))
        self._inflight[identity] = task
        task.add_done_callback(lambda _: self._forget(identity, task))
        return await asyncio.shield(task)

    async def _load_or_create(
        self, identity: str, profile: UserProfile | None
    ) -> UserRecord:
        existing = await self.store.get(USERS_COLLECTION, identity)
        if existing is not None:
            return record_from_document(existing)

        profile = profile or UserProfile()
        record = UserRecord(
            email=profile.email,
            display_name=profile.display_name,
            created_at=now_millis(),
        )
        created = await self.store.create(
            USERS_COLLECTION, identity, record_to_document(record)
        )
        if created:
            logger.info("Created user document for %s", identity)
            return record

        # Another process created it after our read; its document wins.
        logger.info("User document for %s already created elsewhere", identity)
        existing = await self.store.get(USERS_COLLECTION, identity)
        return record_from_document(existing) if existing is not None else record

    def _forget(self, identity: str, task: asyncio.Future[UserRecord]) -> None:
        if self._inflight.get(identity) is task:
            del self._inflight[identity]


def validate_identity(identity: str) -> None:
    """Reject empty identities."""
    if not isinstance(identity, str) or not identity.strip():
        raise InvalidArgument("Identity must be a non-empty string")
