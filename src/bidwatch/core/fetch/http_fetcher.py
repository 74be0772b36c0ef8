"""
HTTP fetcher built on httpx.

Provides async fetching with:
- A fixed timeout and static user agent
- TLS verification on by default, with an explicit opt-out
- Streaming downloads written to disk in chunks

Retries are left to the caller; every failure surfaces as FetchError.
"""

from __future__ import annotations

import contextlib
import time
from pathlib import Path
from typing import Any, Mapping

import httpx

from bidwatch.core.config.models import DEFAULT_USER_AGENT, FetchConfig
from bidwatch.core.errors import FetchError
from bidwatch.core.logging import get_logger

from .base import FetchResult

logger = get_logger("fetch")


def _discard(path: Path) -> None:
    """Remove a partial download, if there is one."""
    with contextlib.suppress(OSError):
        path.unlink(missing_ok=True)


class HttpFetcher:
    """HTTP fetcher using a pooled httpx.AsyncClient."""

    def __init__(
        self,
        timeout: float = 30.0,
        verify_tls: bool = True,
        user_agent: str | None = None,
        default_headers: dict[str, str] | None = None,
        chunk_size: int = 64 * 1024,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the fetcher.

        Args:
            timeout: Request timeout in seconds
            verify_tls: Verify server certificates
            user_agent: User-Agent header (default: a desktop browser string)
            default_headers: Extra headers for all requests
            chunk_size: Chunk size for streaming downloads
            transport: Custom httpx transport (tests use httpx.MockTransport)
        """
        self.timeout = timeout
        self.verify_tls = verify_tls
        self.user_agent = user_agent or DEFAULT_USER_AGENT
        self.chunk_size = chunk_size
        self._transport = transport

        self.default_headers = {
            "User-Agent": self.user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "pt-BR,pt;q=0.9,en;q=0.8",
            **(default_headers or {}),
        }

        if not verify_tls:
            logger.warning(
                "TLS certificate verification is DISABLED; use this only for local development"
            )

        self._client: httpx.AsyncClient | None = None

    @classmethod
    def from_config(
        cls,
        config: FetchConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "HttpFetcher":
        return cls(
            timeout=config.timeout_seconds,
            verify_tls=config.verify_tls,
            user_agent=config.user_agent,
            chunk_size=config.chunk_size,
            transport=transport,
        )

    async def _ensure_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
                headers=self.default_headers,
                verify=self.verify_tls,
                transport=self._transport,
                limits=httpx.Limits(
                    max_connections=20,
                    max_keepalive_connections=10,
                ),
            )
        return self._client

    async def fetch(
        self,
        method: str,
        url: str,
        params: Mapping[str, Any] | None = None,
        data: Mapping[str, Any] | None = None,
    ) -> FetchResult:
        """Fetch a URL and return the whole body.

        Args:
            method: GET or POST
            url: Absolute URL
            params: Query string parameters
            data: Form fields, sent url-encoded (POST)

        Returns:
            FetchResult with response data

        Raises:
            FetchError: On transport failure, timeout or non-2xx status
        """
        method = method.upper()
        if method not in ("GET", "POST"):
            raise FetchError(f"Unsupported method: {method}", url=url)

        client = await self._ensure_client()
        start = time.perf_counter()

        try:
            response = await client.request(
                method,
                url,
                params=dict(params) if params else None,
                data=dict(data) if data else None,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise FetchError(
                f"HTTP {e.response.status_code} from {url}",
                url=url,
                status_code=e.response.status_code,
                cause=e,
            ) from e
        except httpx.TimeoutException as e:
            raise FetchError(f"Timed out after {self.timeout}s: {url}", url=url, cause=e) from e
        except httpx.HTTPError as e:
            raise FetchError(f"Fetch failed: {e}", url=url, cause=e) from e
        except Exception as e:
            # InvalidURL, stream errors and transport bugs are not HTTPError
            raise FetchError(f"Fetch failed: {type(e).__name__}: {e}", url=url, cause=e) from e

        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.debug("%s %s -> %s (%.0f ms)", method, url, response.status_code, elapsed_ms)

        return FetchResult(
            url=url,
            final_url=str(response.url),
            status_code=response.status_code,
            headers=dict(response.headers),
            content=response.content,
            text=response.text,
            elapsed_ms=elapsed_ms,
            size_bytes=len(response.content),
        )

    async def download(self, url: str, destination: Path) -> FetchResult:
        """Stream a URL to disk.

        The partial file is removed if the download fails.

        Args:
            url: Absolute URL of the file
            destination: File path to write

        Returns:
            FetchResult with headers and size_bytes (content is empty)

        Raises:
            FetchError: On transport failure, timeout, non-2xx status or disk error
        """
        client = await self._ensure_client()
        start = time.perf_counter()
        size = 0

        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            async with client.stream("GET", url) as response:
                response.raise_for_status()
                with open(destination, "wb") as fh:
                    async for chunk in response.aiter_bytes(chunk_size=self.chunk_size):
                        fh.write(chunk)
                        size += len(chunk)
        except httpx.HTTPStatusError as e:
            _discard(destination)
            raise FetchError(
                f"HTTP {e.response.status_code} from {url}",
                url=url,
                status_code=e.response.status_code,
                cause=e,
            ) from e
        except (httpx.HTTPError, OSError) as e:
            _discard(destination)
            raise FetchError(f"Download failed: {e}", url=url, cause=e) from e
        except Exception as e:
            _discard(destination)
            raise FetchError(f"Download failed: {type(e).__name__}: {e}", url=url, cause=e) from e

        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.debug("Downloaded %s -> %s (%d bytes)", url, destination, size)

        return FetchResult(
            url=url,
            final_url=str(response.url),
            status_code=response.status_code,
            headers=dict(response.headers),
            elapsed_ms=elapsed_ms,
            size_bytes=size,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "HttpFetcher":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
