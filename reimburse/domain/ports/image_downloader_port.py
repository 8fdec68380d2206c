"""
Port (interface) for downloading receipt images from retrieval URLs.
Infrastructure adapters (e.g. HttpxImageDownloader) must implement this interface.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class DownloadedImage:
    data: bytes
    content_type: str
    width: int
    height: int


class IImageDownloader(ABC):
    @abstractmethod
    async def download(self, url: str) -> DownloadedImage:
        """Download and measure one image.

        Raises:
            ImageDownloadError: on timeout, non-2xx status, oversized payload,
                                transport failure, or undecodable image data.
        """
        ...

    @abstractmethod
    async def aclose(self) -> None:
        """Release the underlying HTTP connection pool."""
        ...
