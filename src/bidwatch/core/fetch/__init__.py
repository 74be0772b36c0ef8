"""Fetch layer - outbound HTTP for portal pages and documents."""

from .base import FetchResult
from .http_fetcher import HttpFetcher

__all__ = [
    "FetchResult",
    "HttpFetcher",
]
