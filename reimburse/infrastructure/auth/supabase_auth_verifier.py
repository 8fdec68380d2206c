"""
Infrastructure adapter: Supabase Auth /user endpoint → ITokenVerifier.

Asks the authentication service to resolve the token on every call, so revoked
sessions are rejected immediately. Used when no JWT secret is configured.
"""

from typing import Optional

import httpx

from reimburse.domain.entities.compilation import Identity
from reimburse.domain.ports.token_verifier_port import ITokenVerifier
from reimburse.infrastructure.config import SupabaseSettings


class SupabaseAuthVerifier(ITokenVerifier):
    def __init__(
        self,
        settings: SupabaseSettings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._settings = settings
        self._transport = transport

    async def verify(self, token: str) -> Identity:
        """Resolve *token* to its user.

        Raises:
            ValueError: if the auth service rejects the token or is unreachable.
        """
        try:
            async with httpx.AsyncClient(
                timeout=self._settings.timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.get(
                    f"{self._settings.auth_url}/user",
                    headers={
                        "apikey": self._settings.anon_key,
                        "Authorization": f"Bearer {token}",
                    },
                )
        except httpx.HTTPError as exc:
            raise ValueError(f"Auth service unreachable: {exc}") from exc

        if response.status_code != 200:
            raise ValueError(f"Auth service rejected token ({response.status_code})")
        user = response.json()
        if not user.get("id"):
            raise ValueError("Auth service returned no user id")
        return Identity(user_id=user["id"], email=user.get("email"))
