"""Tests for caller authentication."""

import asyncio

import pytest

from nutrimyth.adapters.local_identity_verifier import LocalIdentityVerifier
from nutrimyth.domain.errors import PermissionDenied, Unauthenticated
from nutrimyth.services.auth import AuthService
from tests.conftest import FakeIdentityVerifier


def test_authenticate_resolves_identity(verifier: FakeIdentityVerifier) -> None:
    service = AuthService(verifier=verifier)

    assert asyncio.run(service.authenticate(" token-u1 ")) == "u1"


@pytest.mark.parametrize("credential", [None, "", "   "])
def test_missing_credential_is_unauthenticated(
    verifier: FakeIdentityVerifier, credential: str | None
) -> None:
    service = AuthService(verifier=verifier)

    with pytest.raises(Unauthenticated):
        asyncio.run(service.authenticate(credential))


def test_allowlist_rejects_other_identities(verifier: FakeIdentityVerifier) -> None:
    service = AuthService(verifier=verifier, allowed_user_ids={"u2"})

    with pytest.raises(PermissionDenied):
        asyncio.run(service.authenticate("token-u1"))
    assert asyncio.run(service.authenticate("token-u2")) == "u2"


def test_local_verifier_reads_embedded_identity() -> None:
    verifier = LocalIdentityVerifier()

    assert asyncio.run(verifier.verify("local:dev-user")) == "dev-user"
    with pytest.raises(Unauthenticated):
        asyncio.run(verifier.verify("dev-user"))
    with pytest.raises(Unauthenticated):
        asyncio.run(verifier.verify("local:  "))
