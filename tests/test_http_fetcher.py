"""Tests for the HTTP fetcher."""

import logging

import httpx
import pytest

from bidwatch.core.config.models import FetchConfig
from bidwatch.core.errors import FetchError
from bidwatch.core.fetch.http_fetcher import HttpFetcher


@pytest.mark.asyncio
async def test_fetch_posts_form_and_returns_body(mock_fetcher):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["body"] = request.content.decode()
        seen["user_agent"] = request.headers["user-agent"]
        return httpx.Response(200, text="<html>ok</html>", headers={"Content-Type": "text/html; charset=utf-8"})

    async with mock_fetcher(handler) as fetcher:
        result = await fetcher.fetch("POST", "https://portal.example/search", data={"DataDe": "01/03/2024"})

    assert seen["method"] == "POST"
    assert "DataDe=01%2F03%2F2024" in seen["body"]
    assert seen["user_agent"].startswith("Mozilla/5.0")
    assert result.ok
    assert result.text == "<html>ok</html>"
    assert result.content_type == "text/html"
    assert result.charset == "utf-8"


@pytest.mark.asyncio
async def test_non_2xx_status_raises_fetch_error(mock_fetcher):
    async with mock_fetcher(lambda request: httpx.Response(503)) as fetcher:
        with pytest.raises(FetchError) as exc_info:
            await fetcher.fetch("GET", "https://portal.example/down")

    assert exc_info.value.status_code == 503
    assert exc_info.value.url == "https://portal.example/down"
    assert isinstance(exc_info.value.cause, httpx.HTTPStatusError)


@pytest.mark.asyncio
async def test_transport_error_raises_fetch_error(mock_fetcher):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    async with mock_fetcher(handler) as fetcher:
        with pytest.raises(FetchError) as exc_info:
            await fetcher.fetch("GET", "https://portal.example/")

    assert exc_info.value.status_code is None
    assert isinstance(exc_info.value.cause, httpx.ConnectError)


@pytest.mark.asyncio
async def test_invalid_url_raises_fetch_error(mock_fetcher):
    async with mock_fetcher(lambda request: httpx.Response(200)) as fetcher:
        with pytest.raises(FetchError) as exc_info:
            await fetcher.fetch("GET", "https://portal.example/edital\x00.pdf")

    assert isinstance(exc_info.value.__cause__, httpx.InvalidURL)


@pytest.mark.asyncio
async def test_unexpected_download_error_raises_fetch_error(mock_fetcher, tmp_path):
    def handler(request: httpx.Request) -> httpx.Response:
        raise RuntimeError("boom")

    destination = tmp_path / "docs" / "edital.pdf"
    async with mock_fetcher(handler) as fetcher:
        with pytest.raises(FetchError, match="RuntimeError"):
            await fetcher.download("https://portal.example/edital.pdf", destination)

    assert not destination.exists()


@pytest.mark.asyncio
async def test_unsupported_method_is_rejected(mock_fetcher):
    async with mock_fetcher(lambda request: httpx.Response(200)) as fetcher:
        with pytest.raises(FetchError):
            await fetcher.fetch("DELETE", "https://portal.example/")


@pytest.mark.asyncio
async def test_download_streams_to_disk(mock_fetcher, tmp_path):
    payload = b"%PDF-1.4" + b"x" * 200_000

    def handler(request):
        return httpx.Response(200, content=payload, headers={"Content-Type": "application/pdf"})

    destination = tmp_path / "docs" / "edital.pdf"
    async with mock_fetcher(handler) as fetcher:
        result = await fetcher.download("https://portal.example/edital.pdf", destination)

    assert destination.read_bytes() == payload
    assert result.size_bytes == len(payload)
    assert result.content_type == "application/pdf"
    assert result.content == b""


@pytest.mark.asyncio
async def test_failed_download_leaves_no_partial_file(mock_fetcher, tmp_path):
    destination = tmp_path / "missing.pdf"

    async with mock_fetcher(lambda request: httpx.Response(404)) as fetcher:
        with pytest.raises(FetchError):
            await fetcher.download("https://portal.example/missing.pdf", destination)

    assert not destination.exists()


def test_tls_verification_is_on_by_default():
    assert HttpFetcher().verify_tls is True
    assert HttpFetcher.from_config(FetchConfig()).verify_tls is True


def test_disabling_tls_verification_logs_warning(caplog):
    with caplog.at_level(logging.WARNING, logger="bidwatch.fetch"):
        HttpFetcher.from_config(FetchConfig(verify_tls=False))

    assert "TLS certificate verification is DISABLED" in caplog.text
