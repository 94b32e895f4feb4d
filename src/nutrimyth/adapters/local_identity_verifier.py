"""Identity verifier for local runs without an auth backend."""

from dataclasses import dataclass

from nutrimyth.domain.errors import Unauthenticated
from nutrimyth.services.auth import IdentityVerifier

_PREFIX = "local:"


@dataclass
class LocalIdentityVerifier(IdentityVerifier):
    """Accepts ``local:<identity>`` tokens as-is."""

    async def verify(self, credential: str) -> str:
        """Return the identity embedded in a local token."""
        if not credential.startswith(_PREFIX):
            raise Unauthenticated("Expected a local:<identity> token")
        identity = credential.removeprefix(_PREFIX).strip()
        if not identity:
            raise Unauthenticated("Local token carries no identity")
        return identity
