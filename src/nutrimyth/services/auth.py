"""Identity verification for incoming credentials."""

from dataclasses import dataclass
from typing import Protocol

from nutrimyth.domain.errors import PermissionDenied, Unauthenticated


class IdentityVerifier(Protocol):
    """Resolves an opaque credential into a stable identity."""

    async def verify(self, credential: str) -> str:
        """Return the identity for a credential or raise Unauthenticated."""


@dataclass
class AuthService:
    """Authenticates callers and applies the identity allowlist."""

    verifier: IdentityVerifier
    allowed_user_ids: set[str] | None = None

    async def authenticate(self, credential: str | None) -> str:
        """Return the caller identity for a bearer credential."""
        if not credential or not credential.strip():
            raise Unauthenticated("Missing credential")
        identity = await self.verifier.verify(credential.strip())
        if not identity:
            raise Unauthenticated("Credential did not resolve to an identity")
        if self.allowed_user_ids is not None and identity not in self.allowed_user_ids:
            raise PermissionDenied("This account is not allowed")
        return identity
