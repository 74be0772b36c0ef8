"""
Fixed-position table row extraction.

Reads listing pages where each result is a table row with the notice
fields in known column positions. Rows that do not fit the expected
structure are skipped and logged at debug level; third-party HTML is
not contractually stable, so a bad row never fails the page.
"""

from __future__ import annotations

import re
from typing import Iterator
from urllib.parse import urljoin, urlsplit

from lxml import etree
from lxml import html as lxml_html
from lxml.html import HtmlElement

from bidwatch.core.errors import ParseError
from bidwatch.core.logging import get_logger
from bidwatch.core.normalize.parsing import normalize_whitespace

from .base import RawRecord

logger = get_logger("extract.rows")


# Column positions in a result row
COL_NOTICE_NUMBER = 0
COL_DESCRIPTION = 1
COL_ORGANIZATION = 2
COL_OPENING_DATE = 3
COL_MODALITY = 4
COL_DETAIL_LINK = 5

# lxml rejects text that starts with <?xml ...?>; bytes keep it for the encoding
XML_DECLARATION = re.compile(r"^\ufeff?\s*<\?xml[^>]*\?>")
XML_DECLARATION_ENCODING = re.compile(rb"^(?:\xef\xbb\xbf)?\s*<\?xml[^>]*?encoding=[\"']([A-Za-z0-9._-]+)[\"']")
META_CHARSET = re.compile(rb"<meta[^>]+charset", re.IGNORECASE)


def base_origin(url: str) -> str:
    """Reduce a URL to scheme://host/ for resolving relative links."""
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}/"


def sniff_encoding(data: bytes) -> str | None:
    """Encoding of an HTML page served without an HTTP charset.

    An XML declaration wins; a <meta> charset is left for lxml to read
    (None); otherwise UTF-8 if the bytes decode as such, else Latin-1.
    """
    declared = XML_DECLARATION_ENCODING.match(data)
    if declared:
        return declared.group(1).decode("ascii")
    if META_CHARSET.search(data[:4096]):
        return None
    try:
        data.decode("utf-8")
    except UnicodeDecodeError:
        return "iso-8859-1"
    return "utf-8"


def parse_document(html: str | bytes, encoding: str | None = None) -> HtmlElement:
    """Parse an HTML document.

    Bytes are decoded with `encoding` when given (the HTTP charset), else
    as sniff_encoding decides. Text may start with an XML declaration; it
    is dropped before parsing.

    Raises:
        ParseError: If the document is empty or cannot be parsed
    """
    if isinstance(html, str):
        html = XML_DECLARATION.sub("", html, count=1)
    if not html or not html.strip():
        raise ParseError("Empty document")

    if isinstance(html, bytes) and not encoding:
        encoding = sniff_encoding(html)

    try:
        parser = lxml_html.HTMLParser(encoding=encoding) if isinstance(html, bytes) and encoding else None
        return lxml_html.document_fromstring(html, parser=parser)
    except LookupError as e:
        raise ParseError(f"Unknown page encoding: {encoding}") from e
    except (etree.ParserError, etree.XMLSyntaxError, ValueError) as e:
        raise ParseError(f"Failed to parse HTML: {e}") from e


class RowSequence:
    """Lazy, restartable sequence of RawRecords over one HTML page.

    Each iteration parses the page again, so the sequence can be walked
    any number of times and always yields the same records.
    """

    def __init__(self, extractor: "TableRowExtractor", html: str | bytes, encoding: str | None = None):
        self._extractor = extractor
        self._html = html
        self._encoding = encoding

    def __iter__(self) -> Iterator[RawRecord]:
        return self._extractor.iter_rows(self._html, self._encoding)


class TableRowExtractor:
    """Extract RawRecords from result table rows.

    Args:
        row_selector: CSS selector for candidate rows
        min_columns: Rows with fewer td cells are skipped
        base_url: Any URL on the portal; its origin resolves relative links
        source: Source tag attached to every record
    """

    def __init__(
        self,
        row_selector: str,
        min_columns: int = 6,
        base_url: str | None = None,
        source: str | None = None,
    ):
        self.row_selector = row_selector
        self.min_columns = max(min_columns, COL_DETAIL_LINK + 1)
        self.origin = base_origin(base_url) if base_url else None
        self.source = source

    def extract_rows(self, html: str | bytes, encoding: str | None = None) -> RowSequence:
        """Return the rows of a listing page as a lazy sequence."""
        return RowSequence(self, html, encoding)

    def iter_rows(self, html: str | bytes, encoding: str | None = None) -> Iterator[RawRecord]:
        """Parse the page and yield one RawRecord per data row."""
        try:
            doc = parse_document(html, encoding)
        except ParseError as e:
            if html and html.strip():
                logger.warning("Listing page could not be parsed, no rows extracted: %s", e)
            else:
                logger.debug("No rows extracted: %s", e)
            return

        for index, row in enumerate(doc.cssselect(self.row_selector)):
            try:
                cells = self._data_cells(row)
                yield self._row_to_record(cells, index)
            except ParseError as e:
                logger.debug("Skipping row %d: %s", index, e)

    def _data_cells(self, row: HtmlElement) -> list[HtmlElement]:
        if row.xpath(".//th"):
            raise ParseError("header row")

        cells = row.xpath("./td")
        if len(cells) < self.min_columns:
            raise ParseError(f"expected at least {self.min_columns} cells, found {len(cells)}")
        return cells

    def _row_to_record(self, cells: list[HtmlElement], index: int) -> RawRecord:
        def cell_text(position: int) -> str:
            return normalize_whitespace(cells[position].text_content())

        return RawRecord(
            notice_number=cell_text(COL_NOTICE_NUMBER),
            description=cell_text(COL_DESCRIPTION),
            organization=cell_text(COL_ORGANIZATION),
            opening_date=cell_text(COL_OPENING_DATE),
            modality=cell_text(COL_MODALITY),
            detail_url=self._detail_link(cells[COL_DETAIL_LINK]),
            source=self.source,
            row_index=index,
        )

    def _detail_link(self, cell: HtmlElement) -> str | None:
        anchors = cell.xpath(".//a[@href]")
        if not anchors:
            return None

        href = anchors[0].get("href", "").strip()
        if not href:
            return None

        if self.origin:
            return urljoin(self.origin, href)
        return href
