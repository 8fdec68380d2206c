"""
Port (interface) for bearer-token verifiers.
Infrastructure adapters (e.g. SupabaseJwtVerifier, SupabaseAuthVerifier) must
implement this interface.
"""

from abc import ABC, abstractmethod

from reimburse.domain.entities.compilation import Identity


class ITokenVerifier(ABC):
    @abstractmethod
    async def verify(self, token: str) -> Identity:
        """Verify a bearer token and return the identity it was issued to.

        Raises:
            ValueError: if the token is invalid, expired, or was rejected by
                        the authentication service.
        """
        ...
