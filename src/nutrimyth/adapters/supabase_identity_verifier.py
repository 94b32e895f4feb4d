"""Supabase Auth identity verifier."""

from dataclasses import dataclass

import httpx
from supabase import AsyncClient, AuthError

from nutrimyth.domain.errors import StoreUnavailable, Unauthenticated
from nutrimyth.services.auth import IdentityVerifier


@dataclass
class SupabaseIdentityVerifier(IdentityVerifier):
    """Verifies access tokens with Supabase Auth."""

    client: AsyncClient

    async def verify(self, credential: str) -> str:
        """Return the Supabase user id for an access token."""
        try:
            response = await self.client.auth.get_user(credential)
        except httpx.TransportError as exc:
            raise StoreUnavailable("Auth service is unreachable") from exc
        except AuthError as exc:
            raise Unauthenticated("Invalid or expired token") from exc
        if response is None or response.user is None:
            raise Unauthenticated("Invalid or expired token")
        return str(response.user.id)
