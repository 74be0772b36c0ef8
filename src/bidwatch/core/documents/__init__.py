"""Document download and storage."""

from .downloader import DocumentDownloader, DownloadItemResult, DownloadSummary, safe_file_name

__all__ = [
    "DocumentDownloader",
    "DownloadItemResult",
    "DownloadSummary",
    "safe_file_name",
]
