"""Tests for the document downloader."""

import httpx
import pytest

from bidwatch.core.documents.downloader import DocumentDownloader, safe_file_name
from bidwatch.core.extract.base import DocumentLink
from bidwatch.core.reconcile import Reconciler
from bidwatch.persistence.repo import DocumentRepository, NoticeRepository
from bidwatch.services.events import EVENT_DOCUMENTS_DOWNLOADED


@pytest.fixture
def notice_id(session_factory, make_record):
    Reconciler(session_factory).process(make_record())
    with session_factory() as session:
        return NoticeRepository(session).get_by_number("001/2024").id


def file_server(failing: set[str] = frozenset()):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path in failing:
            return httpx.Response(500)
        return httpx.Response(
            200,
            content=f"contents of {request.url.path}".encode(),
            headers={"Content-Type": "application/pdf"},
        )

    return handler


DOCUMENTS = [
    DocumentLink(name="Edital", url="https://portal.example/files/edital.pdf"),
    DocumentLink(name="Anexo I", url="https://portal.example/files/anexo1.pdf"),
    DocumentLink(name="Planilha.xls", url="https://portal.example/files/planilha.xls"),
]


@pytest.mark.asyncio
async def test_one_failure_does_not_stop_the_batch(session_factory, mock_fetcher, notice_id, tmp_path):
    async with mock_fetcher(file_server({"/files/anexo1.pdf"})) as fetcher:
        downloader = DocumentDownloader(fetcher, session_factory, tmp_path)
        summary = await downloader.download_all(notice_id, DOCUMENTS)

    assert (summary.total, summary.succeeded, summary.failed) == (3, 2, 1)
    assert [item.ok for item in summary.items] == [True, False, True]
    assert "HTTP 500" in summary.items[1].message
    assert summary.items[1].document_id is None

    with session_factory() as session:
        documents = DocumentRepository(session).list_for_notice(notice_id)
        by_name = {d.name: d for d in documents}
        assert sorted(by_name) == ["Edital", "Planilha.xls"]
        assert by_name["Edital"].path == f"notices/{notice_id}/Edital.pdf"
        assert by_name["Edital"].mime_type == "application/pdf"
        assert by_name["Edital"].size_bytes == len(b"contents of /files/edital.pdf")

        events = NoticeRepository(session).get_events(notice_id)
        assert events[-1].event_type == EVENT_DOCUMENTS_DOWNLOADED
        assert events[-1].description.startswith("2 of 3 documents stored")

    assert (tmp_path / "notices" / str(notice_id) / "Planilha.xls").read_bytes() == (
        b"contents of /files/planilha.xls"
    )
    assert not (tmp_path / "notices" / str(notice_id) / "Anexo_I.pdf").exists()


@pytest.mark.asyncio
async def test_transport_exception_fails_only_that_item(session_factory, mock_fetcher, notice_id, tmp_path):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/files/anexo1.pdf":
            raise RuntimeError("connection reset by transport")
        return httpx.Response(200, content=b"%PDF-1.4")

    async with mock_fetcher(handler) as fetcher:
        summary = await DocumentDownloader(fetcher, session_factory, tmp_path).download_all(notice_id, DOCUMENTS)

    assert summary.to_dict()["total"] == 3
    assert (summary.succeeded, summary.failed) == (2, 1)
    assert [item.ok for item in summary.items] == [True, False, True]
    assert "RuntimeError" in summary.items[1].message
    assert not (tmp_path / "notices" / str(notice_id) / "Anexo_I.pdf").exists()


@pytest.mark.asyncio
async def test_malformed_url_fails_only_that_item(session_factory, mock_fetcher, notice_id, tmp_path):
    documents = [
        DocumentLink(name="Edital", url="https://portal.example/edital\x00.pdf"),
        DocumentLink(name="Anexo", url="https://portal.example/anexo.pdf"),
    ]

    async with mock_fetcher(file_server()) as fetcher:
        summary = await DocumentDownloader(fetcher, session_factory, tmp_path).download_all(notice_id, documents)

    assert [item.ok for item in summary.items] == [False, True]
    assert summary.items[0].document_id is None

    with session_factory() as session:
        assert [d.name for d in DocumentRepository(session).list_for_notice(notice_id)] == ["Anexo"]


@pytest.mark.asyncio
async def test_unknown_notice_fails_every_item(session_factory, mock_fetcher, tmp_path):
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200)

    async with mock_fetcher(handler) as fetcher:
        downloader = DocumentDownloader(fetcher, session_factory, tmp_path)
        summary = await downloader.download_all(999, DOCUMENTS[:2])

    assert (summary.total, summary.succeeded, summary.failed) == (2, 0, 2)
    assert all(item.message == "Notice not found" for item in summary.items)
    assert requests == []


@pytest.mark.asyncio
async def test_empty_document_list(session_factory, mock_fetcher, notice_id, tmp_path):
    async with mock_fetcher(file_server()) as fetcher:
        summary = await DocumentDownloader(fetcher, session_factory, tmp_path).download_all(notice_id, [])

    assert summary.to_dict() == {"total": 0, "succeeded": 0, "failed": 0, "items": []}


@pytest.mark.asyncio
async def test_repeated_names_get_distinct_files(session_factory, mock_fetcher, notice_id, tmp_path):
    documents = [
        DocumentLink(name="edital.pdf", url="https://portal.example/a/edital.pdf"),
        DocumentLink(name="edital.pdf", url="https://portal.example/b/edital.pdf"),
    ]

    async with mock_fetcher(file_server()) as fetcher:
        downloader = DocumentDownloader(fetcher, session_factory, tmp_path, concurrency=1)
        first = await downloader.download_all(notice_id, documents)
        second = await downloader.download_all(notice_id, documents[:1])

    assert [item.path for item in first.items] == [
        f"notices/{notice_id}/edital.pdf",
        f"notices/{notice_id}/edital_1.pdf",
    ]
    assert second.items[0].path == f"notices/{notice_id}/edital_2.pdf"
    assert (tmp_path / first.items[1].path).read_bytes() == b"contents of /b/edital.pdf"


@pytest.mark.parametrize(
    "name, url, expected",
    [
        ("Edital completo.pdf", "https://x/y", "Edital_completo.pdf"),
        ("Edital completo", "https://x/arquivos/edital_001.pdf", "Edital_completo.pdf"),
        ("Anexo.zip", "https://x/anexo.pdf", "Anexo.zip"),
        ("", "https://x/arquivos/anexo%20II.zip", "anexo_II.zip"),
        ("../../etc/passwd", "https://x/y", "etc_passwd"),
        (None, "https://x/", "document"),
    ],
)
def test_safe_file_name(name, url, expected):
    assert safe_file_name(name, url) == expected
