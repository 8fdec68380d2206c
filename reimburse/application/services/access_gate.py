"""
Application service: authenticate the caller and hand out the backend client
matching the requested scope.

Business decisions owned here:
  - Every call re-verifies the token; no authorization decision is cached.
  - The administrative scope requires an explicit admin flag on the caller's
    profile. A profile that cannot be read counts as "not an administrator".
  - The privileged client is created only after both checks pass.
"""

import logging
from dataclasses import dataclass, replace

from reimburse.domain.entities.compilation import Identity, Scope
from reimburse.domain.errors import BackendError, Forbidden, Unauthenticated
from reimburse.domain.ports.backend_client_port import IBackendClient, IBackendClientFactory
from reimburse.domain.ports.profile_directory_port import IProfileDirectory
from reimburse.domain.ports.token_verifier_port import ITokenVerifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccessGrant:
    identity: Identity
    scope: Scope
    client: IBackendClient


class AccessGate:
    def __init__(
        self,
        verifier: ITokenVerifier,
        profiles: IProfileDirectory,
        clients: IBackendClientFactory,
    ) -> None:
        self._verifier = verifier
        self._profiles = profiles
        self._clients = clients

    async def authorize(self, token: str, scope: Scope) -> AccessGrant:
        """Verify *token* and return a grant carrying a client for *scope*.

        Raises:
            Unauthenticated: if the token is missing, invalid, or expired.
            Forbidden:       if *scope* is administrative and the caller is
                             not flagged as an administrator.
        """
        if not token:
            raise Unauthenticated("missing bearer token")
        try:
            identity = await self._verifier.verify(token)
        except ValueError as exc:
            logger.info("Rejected bearer token: %s", exc)
            raise Unauthenticated(str(exc)) from exc

        if scope is Scope.SELF:
            return AccessGrant(identity, scope, self._clients.restricted(token))

        try:
            privileged = await self._profiles.is_privileged(identity)
        except BackendError as exc:
            logger.error("Profile lookup failed for %s: %s", identity.user_id, exc)
            raise Forbidden("administrator status could not be verified") from exc
        if not privileged:
            logger.warning("User %s requested an administrative export without the admin flag", identity.user_id)
            raise Forbidden("administrator privileges required")

        return AccessGrant(
            replace(identity, is_admin=True),
            scope,
            self._clients.privileged(),
        )
