"""
Infrastructure adapter: httpx + Pillow → IImageDownloader.

Streams the response body so an oversized object is abandoned as soon as it
crosses the byte cap instead of being buffered in full. The whole request,
body included, runs under one wall-clock timeout. The bytes are then fully
decoded with Pillow, so truncated or corrupt payloads fail here rather than
at render time.
"""

import asyncio
import io
from typing import Optional

import httpx
from PIL import Image, UnidentifiedImageError

from reimburse.domain.errors import ImageDownloadError
from reimburse.domain.ports.image_downloader_port import DownloadedImage, IImageDownloader
from reimburse.infrastructure.config import DownloadSettings

DEFAULT_CONTENT_TYPE = "image/jpeg"


class HttpxImageDownloader(IImageDownloader):
    def __init__(
        self,
        settings: Optional[DownloadSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._settings = settings or DownloadSettings()
        self._http = httpx.AsyncClient(
            timeout=self._settings.timeout_seconds,
            follow_redirects=True,
            transport=transport,
        )

    async def download(self, url: str) -> DownloadedImage:
        limit = self._settings.max_image_bytes
        timeout = self._settings.timeout_seconds
        try:
            async with asyncio.timeout(timeout):
                async with self._http.stream("GET", url) as response:
                    if not response.is_success:
                        raise ImageDownloadError(f"HTTP {response.status_code}")
                    declared = response.headers.get("content-length")
                    if declared and declared.isdigit() and int(declared) > limit:
                        raise ImageDownloadError(f"declared size {declared} exceeds {limit} bytes")
                    content_type = response.headers.get("content-type") or DEFAULT_CONTENT_TYPE
                    buffer = bytearray()
                    async for chunk in response.aiter_bytes():
                        buffer.extend(chunk)
                        if len(buffer) > limit:
                            raise ImageDownloadError(f"payload exceeds {limit} bytes")
        except (TimeoutError, httpx.TimeoutException) as exc:
            raise ImageDownloadError(f"timed out after {timeout}s") from exc
        except httpx.HTTPError as exc:
            raise ImageDownloadError(f"transport error: {exc}") from exc

        data = bytes(buffer)
        width, height = self._measure(data)
        return DownloadedImage(
            data=data,
            content_type=content_type.split(";")[0].strip(),
            width=width,
            height=height,
        )

    @staticmethod
    def _measure(data: bytes) -> tuple[int, int]:
        if not data:
            raise ImageDownloadError("empty payload")
        try:
            with Image.open(io.BytesIO(data)) as image:
                image.load()
                return image.size
        except Image.DecompressionBombError as exc:
            raise ImageDownloadError(f"too many pixels: {exc}") from exc
        except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as exc:
            raise ImageDownloadError(f"not a readable image: {exc}") from exc

    async def aclose(self) -> None:
        await self._http.aclose()
