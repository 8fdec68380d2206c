"""
Port (interface) for durable storage of finished documents.
Infrastructure adapters (e.g. S3DocumentStore) must implement this interface.
"""

from abc import ABC, abstractmethod


class IDocumentStore(ABC):
    @abstractmethod
    async def put_object(self, key: str, data: bytes, content_type: str) -> None:
        """Write *data* under *key*.

        Raises:
            DocumentStoreError: if the write failed.
        """
        ...

    @abstractmethod
    async def get_retrieval_url(self, key: str, ttl_seconds: int) -> str:
        """Return a time-limited download URL for *key*.

        Raises:
            DocumentStoreError: if the URL could not be issued.
        """
        ...
