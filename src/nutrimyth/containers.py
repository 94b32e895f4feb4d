"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import AsyncClient

from nutrimyth.adapters.local_identity_verifier import LocalIdentityVerifier
from nutrimyth.adapters.memory_document_store import InMemoryDocumentStore
from nutrimyth.adapters.supabase_document_store import SupabaseDocumentStore
from nutrimyth.adapters.supabase_identity_verifier import SupabaseIdentityVerifier
from nutrimyth.config import Settings, parse_allowed_user_ids
from nutrimyth.services.auth import AuthService, IdentityVerifier
from nutrimyth.services.bootstrap import BootstrapService
from nutrimyth.services.store import DocumentStore
from nutrimyth.services.sync import UserDataSync
from nutrimyth.services.user_data import UserDataService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    document_store: DocumentStore
    auth_service: AuthService
    bootstrap_service: BootstrapService
    user_data_service: UserDataService
    user_data_sync: UserDataSync
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    document_store: DocumentStore
    verifier: IdentityVerifier
    if resolved_settings.document_store == "memory":
        if resolved_settings.environment != "local":
            raise ValueError("The in-memory document store is for local runs only")
        document_store = InMemoryDocumentStore()
        verifier = LocalIdentityVerifier()
    elif resolved_settings.document_store == "supabase":
        supabase_client = AsyncClient(
            resolved_settings.supabase_url, resolved_settings.supabase_service_key
        )
        document_store = SupabaseDocumentStore(
            supabase_client, table=resolved_settings.documents_table
        )
        verifier = SupabaseIdentityVerifier(supabase_client)
    else:
        raise ValueError(
            f"Unknown document store: {resolved_settings.document_store!r}"
        )

    return assemble_container(resolved_settings, document_store, verifier)


def assemble_container(
    settings: Settings, document_store: DocumentStore, verifier: IdentityVerifier
) -> AppContainer:
    """Wire services around an existing store and verifier."""
    bootstrap_service = BootstrapService(document_store)
    user_data_service = UserDataService(
        store=document_store, bootstrap=bootstrap_service
    )
    user_data_sync = UserDataSync(store=document_store, bootstrap=bootstrap_service)
    auth_service = AuthService(
        verifier=verifier,
        allowed_user_ids=parse_allowed_user_ids(settings.allowed_user_ids),
    )

    async def close_resources() -> None:
        await document_store.close()

    return AppContainer(
        settings=settings,
        document_store=document_store,
        auth_service=auth_service,
        bootstrap_service=bootstrap_service,
        user_data_service=user_data_service,
        user_data_sync=user_data_sync,
        close_resources=close_resources,
    )
