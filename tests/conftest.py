"""Shared test fixtures."""

from dataclasses import dataclass, field

import pytest

from nutrimyth.adapters.memory_document_store import InMemoryDocumentStore
from nutrimyth.config import Settings
from nutrimyth.containers import AppContainer, assemble_container
from nutrimyth.domain.errors import Unauthenticated
from nutrimyth.domain.models import UserRecord
from nutrimyth.services.auth import IdentityVerifier
from nutrimyth.services.bootstrap import BootstrapService
from nutrimyth.services.sync import UserDataSync
from nutrimyth.services.user_data import UserDataService


@dataclass
class FakeIdentityVerifier(IdentityVerifier):
    """Verifier backed by a fixed token table."""

    tokens: dict[str, str] = field(
        default_factory=lambda: {"token-u1": "u1", "token-u2": "u2"}
    )

    async def verify(self, credential: str) -> str:
        identity = self.tokens.get(credential)
        if identity is None:
            raise Unauthenticated("Unknown token")
        return identity


@dataclass
class SnapshotRecorder:
    """Collects snapshots and errors emitted by a subscription."""

    snapshots: list[UserRecord] = field(default_factory=list)
    errors: list[object] = field(default_factory=list)

    def on_snapshot(self, record: UserRecord) -> None:
        self.snapshots.append(record)

    def on_error(self, kind: object) -> None:
        self.errors.append(kind)


def creation_writes(store: InMemoryDocumentStore, identity: str) -> int:
    return sum(
        1 for op, _, doc_id in store.writes if op == "create" and doc_id == identity
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="header.payload.signature",
        admin_token="admin-token",
    )


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def bootstrap(store: InMemoryDocumentStore) -> BootstrapService:
    return BootstrapService(store)


@pytest.fixture
def user_data(
    store: InMemoryDocumentStore, bootstrap: BootstrapService
) -> UserDataService:
    return UserDataService(store=store, bootstrap=bootstrap)


@pytest.fixture
def sync(store: InMemoryDocumentStore, bootstrap: BootstrapService) -> UserDataSync:
    return UserDataSync(store=store, bootstrap=bootstrap)


@pytest.fixture
def verifier() -> FakeIdentityVerifier:
    return FakeIdentityVerifier()


@pytest.fixture
def container(
    settings: Settings,
    store: InMemoryDocumentStore,
    verifier: FakeIdentityVerifier,
) -> AppContainer:
    return assemble_container(settings, store, verifier)
