"""
ComprasNet portal adapter.

Searches notices by publication date with a form POST, reads the
result table and hands every row to the reconciler.
"""

from __future__ import annotations

from bidwatch.core.config.models import PortalConfig
from bidwatch.core.errors import FetchError
from bidwatch.core.extract.base import DetailRecord
from bidwatch.core.extract.detail import DetailPageExtractor
from bidwatch.core.extract.rows import TableRowExtractor
from bidwatch.core.fetch.http_fetcher import HttpFetcher
from bidwatch.core.logging import get_contextual_logger
from bidwatch.core.normalize.canonical import normalize_records
from bidwatch.core.reconcile.reconciler import Reconciler

from .base import CollectionFilters, CollectionRun, DateRange, PortalAdapter


COMPRASNET_CONFIG = PortalConfig(
    name="comprasnet",
    display_name="ComprasNet",
    base_url="https://comprasnet.gov.br",
    search_path="/ConsultaLicitacoes/ConsLicitacaoPorData.asp",
    row_selector="table.resultados tr",
    min_columns=6,
    detail_table_selector="table.detalhes tr",
    document_link_pattern="edital",
    source_tag="ComprasNet",
)


class ComprasNetPortal(PortalAdapter):
    """Adapter for the federal ComprasNet search-by-date page."""

    def __init__(
        self,
        config: PortalConfig,
        fetcher: HttpFetcher,
        reconciler: Reconciler,
    ):
        self.config = config
        self.fetcher = fetcher
        self.reconciler = reconciler

        self.rows = TableRowExtractor(
            row_selector=config.row_selector,
            min_columns=config.min_columns,
            base_url=config.base_url,
            source=config.effective_source_tag,
        )
        self.details = DetailPageExtractor(
            row_selector=config.detail_table_selector,
            document_pattern=config.document_link_pattern,
        )
        self.log = get_contextual_logger("portals.comprasnet", portal=config.name)

    @property
    def portal_id(self) -> str:
        return self.config.name

    def build_search_form(self, date_range: DateRange, filters: CollectionFilters) -> dict[str, str]:
        """Form fields expected by the search endpoint."""
        start, end = date_range.format()
        return {
            "NumDias": "0",
            "DataDe": start,
            "DataAte": end,
            "Modalidade": filters.modality,
            "Situacao": filters.situation,
            "Orgao": filters.organization,
            "TipoLicitacao": filters.notice_type,
        }

    async def collect(self, date_range: DateRange, filters: CollectionFilters) -> CollectionRun:
        """Search the portal and reconcile every notice listed.

        A failed search request ends the run with success=False and no
        outcomes; row problems never do.
        """
        run = CollectionRun(portal=self.portal_id, date_range=date_range)
        log = self.log.with_context(run_id=run.run_id)
        log.info("Collecting notices published %s", date_range)

        try:
            result = await self.fetcher.fetch(
                "POST",
                self.config.search_url,
                data=self.build_search_form(date_range, filters),
            )
        except FetchError as e:
            log.error("Search request failed: %s", e, extra={"url": e.url})
            run.success = False
            run.retryable = True
            return run.finish(f"Failed to fetch {self.config.effective_display_name} listing: {e}")

        rows = self.rows.extract_rows(result.content, encoding=result.charset)
        records = normalize_records(rows, source=self.config.effective_source_tag)

        for record in records:
            run.add(self.reconciler.process(record))

        run.finish()
        log.info(run.message)
        return run

    async def fetch_detail(self, url: str) -> DetailRecord | None:
        """Read estimated value, publication date and document links.

        Best effort: any failure is logged and yields None.
        """
        try:
            result = await self.fetcher.fetch("GET", url)
            return self.details.extract(result.content, base_url=result.final_url, encoding=result.charset)
        except Exception as e:
            self.log.warning("Could not read detail page %s: %s", url, e, extra={"url": url})
            return None
