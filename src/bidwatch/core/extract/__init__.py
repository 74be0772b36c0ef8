"""Extractors - listing rows and detail pages."""

from .base import DetailRecord, DocumentLink, RawRecord
from .detail import DetailPageExtractor
from .rows import RowSequence, TableRowExtractor

__all__ = [
    "DetailRecord",
    "DocumentLink",
    "RawRecord",
    "DetailPageExtractor",
    "RowSequence",
    "TableRowExtractor",
]
