"""
Application service: render a composed document, store it, and issue a
time-limited retrieval handle.

Business decisions owned here:
  - Object key layout: receipts/[admin-]<epoch-ms>-<period>.<ext>, so that
    concurrent runs never collide.
  - The download URL is valid for one hour.
  - The suggested filename is derived from the subject name and period.
"""

import logging
import re
import time
from dataclasses import dataclass
from typing import Callable, Optional

from reimburse.domain.entities.compilation import RetrievalHandle, Scope
from reimburse.domain.entities.document import CompiledDocument
from reimburse.domain.errors import DocumentStoreError, PersistFailed
from reimburse.domain.ports.document_renderer_port import IDocumentRenderer
from reimburse.domain.ports.document_store_port import IDocumentStore

logger = logging.getLogger(__name__)

_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")


def sanitize(label: str) -> str:
    """Collapse whitespace to dashes and drop characters unsafe in keys."""
    dashed = re.sub(r"\s+", "-", label.strip())
    return _UNSAFE.sub("", dashed).strip("-.") or "untitled"


@dataclass(frozen=True)
class PublishSettings:
    key_prefix: str = "receipts"
    filename_prefix: str = "expense"
    url_ttl_seconds: int = 3600


class DocumentPublisher:
    def __init__(
        self,
        renderer: IDocumentRenderer,
        store: IDocumentStore,
        settings: Optional[PublishSettings] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._renderer = renderer
        self._store = store
        self._settings = settings or PublishSettings()
        self._clock = clock

    async def persist(
        self,
        document: CompiledDocument,
        period_label: str,
        subject_name: Optional[str] = None,
        scope: Scope = Scope.SELF,
    ) -> RetrievalHandle:
        """Store *document* and return a handle for downloading it.

        Raises:
            PersistFailed: if rendering, the write, or URL issuance failed.
        """
        try:
            data = self._renderer.render(document)
        except Exception as exc:
            logger.exception("Rendering the receipt document failed")
            raise PersistFailed(f"could not render document: {exc}") from exc

        key = self.object_key(period_label, scope)
        try:
            await self._store.put_object(key, data, self._renderer.content_type)
            url = await self._store.get_retrieval_url(key, self._settings.url_ttl_seconds)
        except DocumentStoreError as exc:
            logger.error("Persisting %s failed: %s", key, exc)
            raise PersistFailed(str(exc)) from exc

        logger.info("Stored %s (%d bytes)", key, len(data))
        return RetrievalHandle(download_url=url, filename=self.filename(period_label, subject_name))

    def object_key(self, period_label: str, scope: Scope = Scope.SELF) -> str:
        stamp = int(self._clock() * 1000)
        admin = "admin-" if scope is Scope.ADMINISTRATIVE else ""
        return (
            f"{self._settings.key_prefix}/{admin}{stamp}-{sanitize(period_label)}"
            f".{self._renderer.extension}"
        )

    def filename(self, period_label: str, subject_name: Optional[str] = None) -> str:
        parts = [self._settings.filename_prefix]
        if subject_name:
            parts.append(sanitize(subject_name))
        parts.extend(["receipts", sanitize(period_label)])
        return "-".join(p for p in parts if p) + f".{self._renderer.extension}"
