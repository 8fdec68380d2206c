"""
Infrastructure adapter: Supabase user_profile table → IProfileDirectory.

The lookup runs with the service-role key because user_profile is protected
by row-level security. It is only ever called by the AccessGate, after the
caller's token has been verified.
"""

from typing import Optional

import httpx

from reimburse.domain.entities.compilation import Identity
from reimburse.domain.errors import BackendError
from reimburse.domain.ports.profile_directory_port import IProfileDirectory
from reimburse.infrastructure.config import SupabaseSettings


class SupabaseProfileDirectory(IProfileDirectory):
    """Reads the admin flag from the caller's user_profile row."""

    def __init__(
        self,
        settings: SupabaseSettings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._settings = settings
        self._transport = transport

    async def is_privileged(self, identity: Identity) -> bool:
        key = self._settings.service_role_key
        try:
            async with httpx.AsyncClient(
                headers={"apikey": key, "Authorization": f"Bearer {key}"},
                timeout=self._settings.timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.get(
                    f"{self._settings.rest_url}/user_profile",
                    params={"select": "admin", "user_id": f"eq.{identity.user_id}", "limit": "1"},
                )
                response.raise_for_status()
                rows = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise BackendError(f"profile lookup failed: {exc}") from exc
        return bool(rows) and rows[0].get("admin") is True
