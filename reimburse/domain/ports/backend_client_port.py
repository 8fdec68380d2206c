"""
Ports (interfaces) for the managed backend: receipt rows and the image store.

A backend client is a capability object. Which rows and objects it can reach
depends on the credentials it was built with, so clients are only handed out
by an IBackendClientFactory, and only the AccessGate asks for a privileged one.
"""

from abc import ABC, abstractmethod

from reimburse.domain.entities.expense import ReceiptRef


class IReceiptRepository(ABC):
    @abstractmethod
    async def receipts_for(self, expense_ids: list[str]) -> list[ReceiptRef]:
        """Return every receipt row owned by any of *expense_ids* in one lookup.

        Raises:
            BackendError: if the datastore is unavailable.
        """
        ...


class IImageStore(ABC):
    @abstractmethod
    async def get_retrieval_url(self, path: str, ttl_seconds: int) -> str:
        """Return a URL that serves the object at *path* for *ttl_seconds*.

        Raises:
            BackendError: if the store refused to sign the path.
        """
        ...


class IBackendClient(IReceiptRepository, IImageStore):
    @abstractmethod
    async def aclose(self) -> None:
        """Release any pooled connections."""
        ...


class IBackendClientFactory(ABC):
    @abstractmethod
    def restricted(self, user_token: str) -> IBackendClient:
        """Client acting as the token's owner; row-level security applies."""
        ...

    @abstractmethod
    def privileged(self) -> IBackendClient:
        """Client holding service credentials that bypass row-level security."""
        ...
