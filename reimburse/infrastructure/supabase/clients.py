"""
Infrastructure adapter: Supabase PostgREST + Storage → IBackendClient.

Two capability classes share one implementation and differ only in the
credentials they send:
  - RestrictedClient acts as the end user (anon key + user JWT), so the
    database's row-level security policies apply.
  - PrivilegedClient sends the service-role key and bypasses them.

All httpx specifics are confined here; httpx errors are translated into
BackendError at the port boundary.
"""

from datetime import datetime
from typing import Optional
from urllib.parse import quote

import httpx

from reimburse.domain.entities.expense import ReceiptRef
from reimburse.domain.errors import BackendError
from reimburse.domain.ports.backend_client_port import IBackendClient, IBackendClientFactory
from reimburse.infrastructure.config import SupabaseSettings


def _parse_timestamp(value: str) -> datetime:
    # PostgREST emits "+00:00" offsets; older rows may carry a trailing "Z".
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


class SupabaseClient(IBackendClient):
    def __init__(
        self,
        settings: SupabaseSettings,
        api_key: str,
        bearer: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._settings = settings
        self._http = httpx.AsyncClient(
            headers={"apikey": api_key, "Authorization": f"Bearer {bearer}"},
            timeout=settings.timeout_seconds,
            transport=transport,
        )

    async def receipts_for(self, expense_ids: list[str]) -> list[ReceiptRef]:
        ids = ",".join(f'"{expense_id}"' for expense_id in expense_ids)
        try:
            response = await self._http.get(
                f"{self._settings.rest_url}/receipt",
                params={
                    "select": "id,path,expense_id,created_at",
                    "expense_id": f"in.({ids})",
                    "order": "created_at.asc",
                },
            )
            response.raise_for_status()
            rows = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise BackendError(f"receipt query failed: {exc}") from exc

        try:
            return [
                ReceiptRef(
                    id=str(row["id"]),
                    path=row["path"],
                    expense_id=str(row["expense_id"]),
                    created_at=_parse_timestamp(row["created_at"]),
                )
                for row in rows
            ]
        except (KeyError, TypeError, ValueError) as exc:
            raise BackendError(f"unexpected receipt row shape: {exc}") from exc

    async def get_retrieval_url(self, path: str, ttl_seconds: int) -> str:
        bucket = self._settings.receipts_bucket
        try:
            response = await self._http.post(
                f"{self._settings.storage_url}/object/sign/{bucket}/{quote(path)}",
                json={"expiresIn": ttl_seconds},
            )
            response.raise_for_status()
            signed = response.json().get("signedURL")
        except (httpx.HTTPError, ValueError) as exc:
            raise BackendError(f"could not sign {path}: {exc}") from exc
        if not signed:
            raise BackendError(f"storage returned no signed URL for {path}")
        return f"{self._settings.storage_url}{signed}"

    async def aclose(self) -> None:
        await self._http.aclose()


class RestrictedClient(SupabaseClient):
    def __init__(
        self,
        settings: SupabaseSettings,
        user_token: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(settings, settings.anon_key, user_token, transport)


class PrivilegedClient(SupabaseClient):
    def __init__(
        self,
        settings: SupabaseSettings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(settings, settings.service_role_key, settings.service_role_key, transport)


class SupabaseClientFactory(IBackendClientFactory):
    def __init__(
        self,
        settings: SupabaseSettings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._settings = settings
        self._transport = transport

    def restricted(self, user_token: str) -> RestrictedClient:
        return RestrictedClient(self._settings, user_token, self._transport)

    def privileged(self) -> PrivilegedClient:
        return PrivilegedClient(self._settings, self._transport)
