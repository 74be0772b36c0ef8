"""Collection orchestration."""

from .runner import CollectionService, collect_notices

__all__ = ["CollectionService", "collect_notices"]
