"""
Fetch result data structures.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone


@dataclass
class FetchResult:
    """Result of a fetch operation."""

    url: str
    final_url: str  # After redirects
    status_code: int
    headers: dict[str, str]

    # Body; empty when the response was streamed to disk
    content: bytes = b""
    text: str = ""

    elapsed_ms: float = 0.0
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    # Set by streaming downloads
    size_bytes: int | None = None

    @property
    def ok(self) -> bool:
        """Check if request was successful (2xx status)."""
        return 200 <= self.status_code < 300

    @property
    def content_type(self) -> str | None:
        """MIME type from the Content-Type header, without parameters."""
        for key, value in self.headers.items():
            if key.lower() == "content-type":
                mime = value.split(";", 1)[0].strip().lower()
                return mime or None
        return None

    @property
    def charset(self) -> str | None:
        """charset parameter of the Content-Type header, if the server sent one."""
        for key, value in self.headers.items():
            if key.lower() == "content-type":
                for param in value.split(";")[1:]:
                    name, _, charset = param.partition("=")
                    if name.strip().lower() == "charset" and charset.strip():
                        return charset.strip().strip("\"'").lower()
        return None
