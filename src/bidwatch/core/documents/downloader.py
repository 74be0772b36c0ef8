"""
Document downloader.

Streams a notice's documents to local storage and records each stored
file against the notice. Failures are reported per document and never
raised.
"""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any, Sequence
from urllib.parse import unquote, urlparse

from sqlalchemy.exc import SQLAlchemyError

from bidwatch.core.errors import FetchError
from bidwatch.core.extract.base import DocumentLink
from bidwatch.core.fetch.http_fetcher import HttpFetcher
from bidwatch.core.logging import get_logger
from bidwatch.persistence.db import SessionFactory
from bidwatch.persistence.repo import DocumentRepository, NoticeRepository
from bidwatch.services.events import EVENT_DOCUMENTS_DOWNLOADED, SqlEventRecorder

logger = get_logger("documents")


UNSAFE_CHARS = re.compile(r"[^\w.\-]+")
DEFAULT_FILE_NAME = "document"


def safe_file_name(name: str | None, url: str) -> str:
    """File name for a document, derived from its name or its URL basename.

    A name without an extension borrows the one in the URL, so
    "Edital completo" for edital_001.pdf is stored as Edital_completo.pdf.
    """
    url_name = unquote(PurePosixPath(urlparse(url).path).name)
    candidate = UNSAFE_CHARS.sub("_", (name or "").strip() or url_name).strip("._")[:150]
    if not candidate:
        return DEFAULT_FILE_NAME

    url_suffix = UNSAFE_CHARS.sub("_", PurePosixPath(url_name).suffix)
    if url_suffix and not PurePosixPath(candidate).suffix:
        candidate += url_suffix
    return candidate


# =============================================================================
# Results
# =============================================================================


@dataclass
class DownloadItemResult:
    """Outcome of one document download."""

    name: str
    url: str
    ok: bool
    message: str = ""
    document_id: int | None = None
    path: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "url": self.url,
            "ok": self.ok,
            "message": self.message,
            "document_id": self.document_id,
            "path": self.path,
        }


@dataclass
class DownloadSummary:
    """Totals for a batch of downloads, items in input order."""

    items: list[DownloadItemResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.items)

    @property
    def succeeded(self) -> int:
        return sum(1 for item in self.items if item.ok)

    @property
    def failed(self) -> int:
        return self.total - self.succeeded

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "items": [item.to_dict() for item in self.items],
        }


# =============================================================================
# Downloader
# =============================================================================


class DocumentDownloader:
    """Concurrent document downloads for one notice at a time.

    Args:
        fetcher: HTTP fetcher used for streaming
        session_factory: Returns a commit-or-rollback session scope
        storage_root: Root directory for stored documents
        concurrency: Maximum simultaneous downloads
    """

    def __init__(
        self,
        fetcher: HttpFetcher,
        session_factory: SessionFactory,
        storage_root: Path | str,
        concurrency: int = 4,
    ):
        self.fetcher = fetcher
        self.session_factory = session_factory
        self.storage_root = Path(storage_root)
        self.concurrency = max(1, concurrency)

    def notice_dir(self, notice_id: int) -> Path:
        return self.storage_root / "notices" / str(notice_id)

    async def download_all(
        self,
        notice_id: int,
        documents: Sequence[DocumentLink],
    ) -> DownloadSummary:
        """Download every document and record the ones that succeed.

        Returns:
            DownloadSummary with one item per input document, in order
        """
        if not documents:
            return DownloadSummary()

        if not self._notice_exists(notice_id):
            logger.error("Cannot download documents: notice %s not found", notice_id)
            return DownloadSummary(
                items=[
                    DownloadItemResult(name=doc.name, url=doc.url, ok=False, message="Notice not found")
                    for doc in documents
                ]
            )

        destinations = self._plan_destinations(notice_id, documents)
        semaphore = asyncio.Semaphore(self.concurrency)

        async def bounded(doc: DocumentLink, destination: Path) -> DownloadItemResult:
            async with semaphore:
                return await self._download_one(notice_id, doc, destination)

        items = await asyncio.gather(
            *(bounded(doc, dest) for doc, dest in zip(documents, destinations))
        )
        summary = DownloadSummary(items=list(items))

        if summary.succeeded:
            self._record_event(notice_id, summary)

        logger.info(
            "Notice %s: %d of %d documents downloaded",
            notice_id,
            summary.succeeded,
            summary.total,
        )
        return summary

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    def _notice_exists(self, notice_id: int) -> bool:
        with self.session_factory() as session:
            return NoticeRepository(session).get_by_id(notice_id) is not None

    def _plan_destinations(self, notice_id: int, documents: Sequence[DocumentLink]) -> list[Path]:
        """One distinct path per document; repeated names get a numeric suffix."""
        directory = self.notice_dir(notice_id)
        taken: set[str] = {p.name for p in directory.iterdir()} if directory.is_dir() else set()
        paths = []

        for doc in documents:
            name = safe_file_name(doc.name, doc.url)
            stem, suffix = Path(name).stem, Path(name).suffix
            counter = 1
            while name in taken:
                name = f"{stem}_{counter}{suffix}"
                counter += 1
            taken.add(name)
            paths.append(directory / name)

        return paths

    async def _download_one(
        self,
        notice_id: int,
        doc: DocumentLink,
        destination: Path,
    ) -> DownloadItemResult:
        try:
            result = await self.fetcher.download(doc.url, destination)
        except FetchError as e:
            logger.warning("Download failed for %s: %s", doc.url, e, extra={"url": doc.url})
            return DownloadItemResult(name=doc.name, url=doc.url, ok=False, message=str(e))
        except Exception as e:
            logger.exception("Unexpected error downloading %s", doc.url, extra={"url": doc.url})
            return DownloadItemResult(name=doc.name, url=doc.url, ok=False, message=f"Unexpected error: {e}")

        relative_path = destination.relative_to(self.storage_root).as_posix()

        try:
            with self.session_factory() as session:
                document = DocumentRepository(session).create(
                    notice_id=notice_id,
                    name=doc.name,
                    path=relative_path,
                    url=doc.url,
                    mime_type=result.content_type,
                    size_bytes=result.size_bytes,
                )
                document_id = document.id
        except SQLAlchemyError as e:
            logger.error("Could not record document %s: %s", doc.url, e, extra={"url": doc.url})
            destination.unlink(missing_ok=True)
            return DownloadItemResult(name=doc.name, url=doc.url, ok=False, message=f"Database error: {e}")

        return DownloadItemResult(
            name=doc.name,
            url=doc.url,
            ok=True,
            message=f"Saved {result.size_bytes} bytes",
            document_id=document_id,
            path=relative_path,
        )

    def _record_event(self, notice_id: int, summary: DownloadSummary) -> None:
        names = ", ".join(item.name for item in summary.items if item.ok)
        try:
            with self.session_factory() as session:
                SqlEventRecorder(session).record(
                    notice_id,
                    EVENT_DOCUMENTS_DOWNLOADED,
                    "Documents downloaded",
                    description=f"{summary.succeeded} of {summary.total} documents stored: {names}",
                )
        except SQLAlchemyError as e:
            logger.error("Could not record download event for notice %s: %s", notice_id, e)
