"""
Application service: download every receipt image under bounded concurrency.

Business decisions owned here:
  - How many receipts a single run may fetch (MAX_RECEIPTS).
  - How many downloads may be in flight at once, independent of batch size.
  - Partial success: a failed receipt is logged and left out, never raised,
    whatever the adapter raised.
  - An overall deadline after which unfinished downloads are cancelled and
    the completed ones are kept.

Infrastructure adapters (IImageStore, IImageDownloader) are injected; no
imports from httpx, Pillow, or any other external library appear here.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from reimburse.domain.entities.expense import FetchedImage, ReceiptRef
from reimburse.domain.errors import BackendError, ImageDownloadError
from reimburse.domain.ports.backend_client_port import IImageStore
from reimburse.domain.ports.image_downloader_port import IImageDownloader

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FetchSettings:
    max_receipts: int = 150
    concurrency: int = 8
    url_ttl_seconds: int = 3600
    deadline_seconds: float = 120.0

    def __post_init__(self) -> None:
        if self.concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        if self.max_receipts < 0:
            raise ValueError("max_receipts must not be negative")


class ConcurrentFetcher:
    def __init__(
        self,
        downloader_factory: Callable[[], IImageDownloader],
        settings: Optional[FetchSettings] = None,
    ) -> None:
        """
        Args:
            downloader_factory: Builds a fresh IImageDownloader per run so its
                                connection pool lives on the running event loop.
            settings:           Caps, concurrency and deadline for each run.
        """
        self._downloader_factory = downloader_factory
        self._settings = settings or FetchSettings()

    async def fetch_all(
        self,
        receipts: list[ReceiptRef],
        image_store: IImageStore,
    ) -> dict[str, FetchedImage]:
        """Fetch all *receipts* and return the successful ones keyed by receipt id.

        Completion order is unconstrained; callers re-establish ordering from
        the receipt groups.
        """
        settings = self._settings
        if len(receipts) > settings.max_receipts:
            logger.warning(
                "Dropping %d receipts beyond the cap of %d",
                len(receipts) - settings.max_receipts, settings.max_receipts,
            )
            receipts = receipts[: settings.max_receipts]
        if not receipts:
            return {}

        semaphore = asyncio.Semaphore(settings.concurrency)
        downloader = self._downloader_factory()
        try:
            tasks = [
                asyncio.create_task(self._fetch_one(receipt, image_store, downloader, semaphore))
                for receipt in receipts
            ]
            done, pending = await asyncio.wait(tasks, timeout=settings.deadline_seconds)
            if pending:
                logger.warning(
                    "Fetch deadline of %.0fs reached; cancelling %d unfinished downloads",
                    settings.deadline_seconds, len(pending),
                )
                for task in pending:
                    task.cancel()
                await asyncio.gather(*pending, return_exceptions=True)
        finally:
            await downloader.aclose()

        # One slot per worker; merged only after the join.
        images: dict[str, FetchedImage] = {}
        for task in done:
            image = task.result()
            if image is not None:
                images[image.receipt_id] = image

        logger.info("Fetched %d of %d receipt images", len(images), len(receipts))
        return images

    async def _fetch_one(
        self,
        receipt: ReceiptRef,
        image_store: IImageStore,
        downloader: IImageDownloader,
        semaphore: asyncio.Semaphore,
    ) -> Optional[FetchedImage]:
        async with semaphore:
            try:
                url = await image_store.get_retrieval_url(receipt.path, self._settings.url_ttl_seconds)
                downloaded = await downloader.download(url)
            except (BackendError, ImageDownloadError) as exc:
                logger.warning("Skipping receipt %s (%s): %s", receipt.id, receipt.path, exc)
                return None
            except Exception:
                logger.exception("Skipping receipt %s (%s) after an unexpected error", receipt.id, receipt.path)
                return None
        return FetchedImage(
            receipt_id=receipt.id,
            data=downloaded.data,
            content_type=downloaded.content_type,
            width=downloaded.width,
            height=downloaded.height,
        )
