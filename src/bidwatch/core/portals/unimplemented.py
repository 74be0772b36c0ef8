"""
Placeholder adapter for portals that are known but not yet supported.
"""

from __future__ import annotations

from bidwatch.core.config.models import PortalConfig
from bidwatch.core.errors import PortalNotImplementedError
from bidwatch.core.extract.base import DetailRecord
from bidwatch.core.logging import get_logger

from .base import CollectionFilters, CollectionRun, DateRange, PortalAdapter

logger = get_logger("portals")


class UnimplementedPortal(PortalAdapter):
    """Answers every collection with an explicit "not yet implemented" failure."""

    def __init__(self, config: PortalConfig):
        self.config = config

    @property
    def portal_id(self) -> str:
        return self.config.name

    @property
    def implemented(self) -> bool:
        return False

    async def collect(self, date_range: DateRange, filters: CollectionFilters) -> CollectionRun:
        error = PortalNotImplementedError(self.portal_id)
        logger.warning(str(error), extra={"portal": self.portal_id})
        return CollectionRun.failed(self.portal_id, str(error), date_range=date_range)

    async def fetch_detail(self, url: str) -> DetailRecord | None:
        return None
