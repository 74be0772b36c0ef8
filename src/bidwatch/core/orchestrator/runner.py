"""
Collection service.

Entry point for the scheduler and the CLI: resolves the portal adapter,
wires fetcher, reconciler and downloader together and turns a request
into a CollectionRun.
"""

from __future__ import annotations

from typing import Any, Mapping

from sqlalchemy.exc import SQLAlchemyError

from bidwatch.core.classify.categorizer import Categorizer
from bidwatch.core.config.loader import load_app_config, portal_overrides
from bidwatch.core.config.models import AppConfig
from bidwatch.core.documents.downloader import DocumentDownloader, DownloadSummary
from bidwatch.core.errors import NoticeNotFoundError, UnsupportedPortalError
from bidwatch.core.extract.base import DetailRecord
from bidwatch.core.fetch.http_fetcher import HttpFetcher
from bidwatch.core.logging import get_contextual_logger, get_logger
from bidwatch.core.portals.base import CollectionParams, CollectionRun, PortalAdapter
from bidwatch.core.portals.registry import PortalRegistry
from bidwatch.core.reconcile.reconciler import Reconciler, bootstrap_defaults
from bidwatch.persistence.db import SessionFactory, get_engine, get_session
from bidwatch.persistence.repo import NoticeRepository

logger = get_logger("orchestrator")


class CollectionService:
    """Runs collections, detail lookups and document downloads.

    Args:
        config: Application configuration (default: built-in defaults)
        session_factory: Returns a commit-or-rollback session scope
                         (default: the process-wide get_session)
        fetcher: HTTP fetcher (default: built from config.fetch)
        registry: Portal registry (default: built-ins plus configured overrides)
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        session_factory: SessionFactory | None = None,
        fetcher: HttpFetcher | None = None,
        registry: PortalRegistry | None = None,
    ):
        self.config = config or AppConfig()

        if session_factory is None:
            get_engine(
                self.config.database.url,
                echo=self.config.database.echo,
                pool_size=self.config.database.pool_size,
            )
            session_factory = get_session
        self.session_factory = session_factory

        self._owns_fetcher = fetcher is None
        self.fetcher = fetcher or HttpFetcher.from_config(self.config.fetch)
        self.registry = registry or PortalRegistry(portal_overrides(self.config))

        self.reconciler = Reconciler(
            session_factory,
            categorizer=Categorizer(self.config.categories or None, default=self.config.default_category),
            reviewer_role=self.config.notifications.reviewer_role,
            default_status=self.config.default_status,
        )
        self.downloader = DocumentDownloader(
            self.fetcher,
            session_factory,
            storage_root=self.config.storage.documents_dir,
            concurrency=self.config.fetch.download_concurrency,
        )
        self._bootstrapped = False

    def bootstrap(self) -> None:
        """Create the default status and category, once per service."""
        if self._bootstrapped:
            return
        with self.session_factory() as session:
            bootstrap_defaults(
                session,
                status_name=self.config.default_status,
                category_name=self.config.default_category,
            )
        self._bootstrapped = True

    def adapter(self, portal_id: str) -> PortalAdapter:
        """Raises UnsupportedPortalError for unknown portals."""
        return self.registry.get(portal_id, self.fetcher, self.reconciler)

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    async def collect(
        self,
        portal_id: str,
        params: CollectionParams | Mapping[str, Any] | None = None,
    ) -> CollectionRun:
        """Collect one portal.

        Run-level problems (unknown or disabled portal, bad parameters,
        database unavailable) come back as a run with success=False and
        zero counts; nothing is raised for them.
        """
        log = get_contextual_logger("orchestrator", portal=portal_id)

        try:
            adapter = self.adapter(portal_id)
        except UnsupportedPortalError as e:
            log.error(str(e))
            return CollectionRun.failed(portal_id, str(e))

        if not self.registry.config(portal_id).enabled:
            message = f"Portal '{portal_id}' is disabled"
            log.warning(message)
            return CollectionRun.failed(portal_id, message)

        try:
            if not isinstance(params, CollectionParams):
                params = CollectionParams.from_mapping(params)
        except (ValueError, TypeError) as e:
            log.error("Invalid collection parameters: %s", e)
            return CollectionRun.failed(portal_id, f"Invalid collection parameters: {e}")

        if adapter.implemented:
            try:
                self.bootstrap()
            except SQLAlchemyError as e:
                log.error("Database unavailable: %s", e)
                return CollectionRun.failed(portal_id, f"Database error: {e}", date_range=params.date_range)

        run = await adapter.collect(params.date_range, params.filters)

        log.with_context(run_id=run.run_id).info(
            "Run %s for %s: %s (%.1fs)",
            "succeeded" if run.success else "failed",
            params.date_range,
            run.message,
            run.duration_seconds or 0.0,
        )
        return run

    async def fetch_detail(self, portal_id: str, url: str) -> DetailRecord | None:
        return await self.adapter(portal_id).fetch_detail(url)

    async def download_documents(self, notice_number: str) -> DownloadSummary:
        """Read a stored notice's detail page and download its documents.

        The detail page's estimated value and publication date are
        stored on the notice when they are present.

        Raises:
            NoticeNotFoundError: If no notice has this number
            UnsupportedPortalError: If the notice's source matches no portal
        """
        with self.session_factory() as session:
            notice = NoticeRepository(session).get_by_number(notice_number)
            if notice is None:
                raise NoticeNotFoundError(notice_number)
            notice_id, detail_url, source = notice.id, notice.detail_url, notice.source

        portal_id = self.registry.portal_for_source(source)
        if portal_id is None:
            raise UnsupportedPortalError(source or "unknown")

        if not detail_url:
            logger.warning("Notice %s has no detail page", notice_number, extra={"notice_number": notice_number})
            return DownloadSummary()

        detail = await self.fetch_detail(portal_id, detail_url)
        if detail is None:
            return DownloadSummary()

        self._store_detail(notice_id, detail)
        return await self.downloader.download_all(notice_id, detail.documents)

    def _store_detail(self, notice_id: int, detail: DetailRecord) -> None:
        with self.session_factory() as session:
            notice = NoticeRepository(session).get_by_id(notice_id)
            if notice is None:
                return
            if detail.estimated_value is not None:
                notice.estimated_value = detail.estimated_value
            if detail.published_at is not None:
                notice.published_at = detail.published_at

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def close(self) -> None:
        if self._owns_fetcher:
            await self.fetcher.close()

    async def __aenter__(self) -> "CollectionService":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()


async def collect_notices(
    portal_id: str,
    params: Mapping[str, Any] | None = None,
    config: AppConfig | None = None,
) -> dict[str, Any]:
    """Run one collection and return the run result dict.

    Args:
        portal_id: Portal identifier, e.g. "comprasnet"
        params: start/end dates, days, and search filters
        config: Application configuration (default: loaded from app.yaml)

    Returns:
        {success, message, created, updated, unchanged, failed, details}
    """
    async with CollectionService(config or load_app_config()) as service:
        run = await service.collect(portal_id, params)
    return run.to_result()
