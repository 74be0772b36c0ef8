"""
Notice detail page extraction.

Detail pages carry a label/value table (estimated value, publication
date, ...) and links to the notice documents.
"""

from __future__ import annotations

from urllib.parse import urljoin, urlsplit

from bidwatch.core.logging import get_logger
from bidwatch.core.normalize.parsing import normalize_whitespace, parse_currency, parse_day_date

from .base import DetailRecord, DocumentLink
from .rows import parse_document

logger = get_logger("extract.detail")


# Label substrings (lower-case) that identify detail fields
VALUE_LABELS = ("valor", "value")
PUBLICATION_LABELS = ("publicação", "publicacao", "publication")


class DetailPageExtractor:
    """Extract a DetailRecord from a notice detail page.

    Args:
        row_selector: CSS selector for label/value rows
        document_pattern: Anchors whose href contains this text are documents
    """

    def __init__(
        self,
        row_selector: str = "table.detalhes tr",
        document_pattern: str = "edital",
    ):
        self.row_selector = row_selector
        self.document_pattern = document_pattern

    def extract(
        self,
        html: str | bytes,
        base_url: str | None = None,
        encoding: str | None = None,
    ) -> DetailRecord:
        """Extract detail fields and document links.

        Args:
            html: Detail page HTML
            base_url: Page URL, used to resolve relative document links
            encoding: HTTP charset of a bytes page, if known

        Returns:
            DetailRecord (fields that are absent or malformed stay None)

        Raises:
            ParseError: If the page cannot be parsed at all
        """
        doc = parse_document(html, encoding)
        record = DetailRecord()

        for row in doc.cssselect(self.row_selector):
            cells = row.xpath("./td")
            if len(cells) < 2:
                continue

            label = normalize_whitespace(cells[0].text_content())
            value = normalize_whitespace(cells[1].text_content())
            if not label:
                continue

            record.fields[label.rstrip(":")] = value
            label_lower = label.lower()

            if record.estimated_value is None and any(k in label_lower for k in VALUE_LABELS):
                record.estimated_value = parse_currency(value)
            elif record.published_at is None and any(k in label_lower for k in PUBLICATION_LABELS):
                record.published_at = parse_day_date(value)

        record.documents = self._document_links(doc, base_url)

        logger.debug(
            "Detail page: value=%s published=%s documents=%d",
            record.estimated_value,
            record.published_at,
            len(record.documents),
        )
        return record

    def _document_links(self, doc, base_url: str | None) -> list[DocumentLink]:
        links: list[DocumentLink] = []
        seen: set[str] = set()

        for anchor in doc.cssselect(f'a[href*="{self.document_pattern}"]'):
            href = anchor.get("href", "").strip()
            url = urljoin(base_url, href) if base_url else href
            if not url or url in seen:
                continue
            seen.add(url)

            name = normalize_whitespace(anchor.text_content())
            if not name:
                name = urlsplit(url).path.rsplit("/", 1)[-1] or "document"
            links.append(DocumentLink(name=name, url=url))

        return links
