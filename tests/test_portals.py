"""Tests for portal adapters and the registry."""

from datetime import date, datetime
from decimal import Decimal
from urllib.parse import parse_qs

import httpx
import pytest

from bidwatch.core.config.models import PortalConfig
from bidwatch.core.errors import UnsupportedPortalError
from bidwatch.core.portals import (
    COMPRASNET_CONFIG,
    CollectionFilters,
    CollectionParams,
    CollectionRun,
    ComprasNetPortal,
    DateRange,
    PortalRegistry,
    UnimplementedPortal,
)
from bidwatch.core.reconcile import OutcomeTag, Reconciler
from bidwatch.persistence.repo import NoticeRepository

from conftest import DETAIL_HTML, LISTING_HTML


MARCH = DateRange(start=date(2024, 3, 1), end=date(2024, 3, 15))


@pytest.fixture
def reconciler(session_factory):
    return Reconciler(session_factory)


def listing_handler(seen: dict):
    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["form"] = {k: v[0] for k, v in parse_qs(request.content.decode(), keep_blank_values=True).items()}
        return httpx.Response(200, text=LISTING_HTML, headers={"Content-Type": "text/html"})

    return handler


@pytest.mark.asyncio
async def test_collect_creates_and_updates(reconciler, make_record, mock_fetcher):
    # 002/2024 is already stored with an older opening date
    reconciler.process(make_record(
        "002/2024",
        description="Aquisição de computadores",
        organization="Ministério da Saúde",
        opening_date=datetime(2024, 3, 18, 10, 0),
        modality="Concorrência",
        detail_url="https://comprasnet.gov.br/detalhe.asp?id=2",
    ))

    seen: dict = {}
    async with mock_fetcher(listing_handler(seen)) as fetcher:
        portal = ComprasNetPortal(COMPRASNET_CONFIG, fetcher, reconciler)
        run = await portal.collect(MARCH, CollectionFilters(modality="5"))

    result = run.to_result()
    assert result["success"] is True
    assert {k: result[k] for k in ("created", "updated", "unchanged", "failed")} == {
        "created": 1,
        "updated": 1,
        "unchanged": 0,
        "failed": 0,
    }
    assert result["message"] == "Collection finished: 1 new, 1 updated, 0 unchanged, 0 failed."
    assert [(d["notice_number"], d["outcome"]) for d in result["details"]] == [
        ("001/2024", "created"),
        ("002/2024", "updated"),
    ]

    assert seen["url"] == "https://comprasnet.gov.br/ConsultaLicitacoes/ConsLicitacaoPorData.asp"
    assert seen["form"] == {
        "NumDias": "0",
        "DataDe": "01/03/2024",
        "DataAte": "15/03/2024",
        "Modalidade": "5",
        "Situacao": "",
        "Orgao": "",
        "TipoLicitacao": "",
    }


@pytest.mark.asyncio
async def test_second_collection_is_unchanged(reconciler, mock_fetcher):
    async with mock_fetcher(listing_handler({})) as fetcher:
        portal = ComprasNetPortal(COMPRASNET_CONFIG, fetcher, reconciler)
        first = await portal.collect(MARCH, CollectionFilters())
        second = await portal.collect(MARCH, CollectionFilters())

    assert first.counts == {"created": 2, "updated": 0, "unchanged": 0, "failed": 0}
    assert second.counts == {"created": 0, "updated": 0, "unchanged": 2, "failed": 0}


@pytest.mark.asyncio
async def test_collect_reads_latin1_listing_with_xml_declaration(reconciler, session_factory, mock_fetcher):
    page = '<?xml version="1.0" encoding="iso-8859-1"?>\n' + LISTING_HTML

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            content=page.encode("iso-8859-1"),
            headers={"Content-Type": "text/html; charset=ISO-8859-1"},
        )

    async with mock_fetcher(handler) as fetcher:
        run = await ComprasNetPortal(COMPRASNET_CONFIG, fetcher, reconciler).collect(MARCH, CollectionFilters())

    assert run.counts["created"] == 2
    with session_factory() as session:
        notice = NoticeRepository(session).get_by_number("001/2024")
        assert notice.description == "Construção de escola municipal"


@pytest.mark.asyncio
async def test_collect_fetch_failure_ends_run(reconciler, mock_fetcher):
    async with mock_fetcher(lambda request: httpx.Response(500)) as fetcher:
        portal = ComprasNetPortal(COMPRASNET_CONFIG, fetcher, reconciler)
        run = await portal.collect(MARCH, CollectionFilters())

    result = run.to_result()
    assert result["success"] is False
    assert "HTTP 500" in result["message"]
    assert (result["created"], result["updated"], result["unchanged"], result["failed"]) == (0, 0, 0, 0)
    assert result["details"] == []
    assert run.retryable


@pytest.mark.asyncio
async def test_fetch_detail(reconciler, mock_fetcher):
    def handler(request):
        return httpx.Response(200, text=DETAIL_HTML)

    async with mock_fetcher(handler) as fetcher:
        portal = ComprasNetPortal(COMPRASNET_CONFIG, fetcher, reconciler)
        detail = await portal.fetch_detail("https://comprasnet.gov.br/ConsultaLicitacoes/detalhe.asp?id=1")

    assert detail.estimated_value == Decimal("1234567.89")
    assert len(detail.documents) == 2


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [httpx.Response(404), httpx.Response(200, text="")],
)
async def test_fetch_detail_returns_none_on_failure(reconciler, mock_fetcher, response):
    async with mock_fetcher(lambda request: response) as fetcher:
        portal = ComprasNetPortal(COMPRASNET_CONFIG, fetcher, reconciler)
        assert await portal.fetch_detail("https://comprasnet.gov.br/detalhe.asp?id=9") is None


@pytest.mark.asyncio
async def test_unimplemented_portal_reports_failure():
    portal = UnimplementedPortal(PortalConfig(name="licitacoes-e", base_url="https://www.licitacoes-e.com.br"))

    run = await portal.collect(MARCH, CollectionFilters())

    assert not portal.implemented
    assert run.success is False
    assert run.message == "Portal 'licitacoes-e' is not yet implemented"
    assert run.counts == {"created": 0, "updated": 0, "unchanged": 0, "failed": 0}
    assert await portal.fetch_detail("https://www.licitacoes-e.com.br/x") is None


def test_registry_builds_adapters(reconciler, mock_fetcher):
    registry = PortalRegistry()
    fetcher = mock_fetcher(lambda request: httpx.Response(200))

    assert registry.ids() == ["comprasnet", "licitacoes-e", "portal-transparencia"]
    assert isinstance(registry.get("comprasnet", fetcher, reconciler), ComprasNetPortal)
    assert isinstance(registry.get("portal-transparencia", fetcher, reconciler), UnimplementedPortal)

    with pytest.raises(UnsupportedPortalError) as exc_info:
        registry.get("bec-sp", fetcher, reconciler)
    assert exc_info.value.portal_id == "bec-sp"


def test_registry_overrides_and_source_lookup():
    override = COMPRASNET_CONFIG.model_copy(update={"base_url": "https://mirror.example"})
    registry = PortalRegistry({"comprasnet": override})

    assert registry.config("comprasnet").base_url == "https://mirror.example"
    assert registry.portal_for_source("ComprasNet") == "comprasnet"
    assert registry.portal_for_source("Somewhere else") is None


def test_collection_params_from_mapping():
    params = CollectionParams.from_mapping({
        "start": "01/03/2024",
        "end": "2024-03-15",
        "modality": "5",
    })
    assert params.date_range == MARCH
    assert params.filters.modality == "5"

    params = CollectionParams.from_mapping({"end": "15/03/2024", "days": 1})
    assert params.date_range == DateRange(start=date(2024, 3, 14), end=date(2024, 3, 15))


@pytest.mark.parametrize(
    "mapping",
    [{"start": "32/01/2024"}, {"start": "15/03/2024", "end": "01/03/2024"}],
)
def test_collection_params_rejects_bad_dates(mapping):
    with pytest.raises(ValueError):
        CollectionParams.from_mapping(mapping)


def test_collection_run_failed_has_zero_counts():
    run = CollectionRun.failed("comprasnet", "boom")
    assert run.to_result() == {
        "success": False,
        "message": "boom",
        "created": 0,
        "updated": 0,
        "unchanged": 0,
        "failed": 0,
        "details": [],
    }
    assert run.count(OutcomeTag.FAILED) == 0
