"""Portal adapters - one per procurement portal."""

from .base import (
    CollectionFilters,
    CollectionParams,
    CollectionRun,
    DateRange,
    PortalAdapter,
    parse_date_param,
)
from .comprasnet import COMPRASNET_CONFIG, ComprasNetPortal
from .registry import BUILTIN_PORTALS, PortalRegistry
from .unimplemented import UnimplementedPortal

__all__ = [
    "CollectionFilters",
    "CollectionParams",
    "CollectionRun",
    "DateRange",
    "PortalAdapter",
    "parse_date_param",
    "COMPRASNET_CONFIG",
    "ComprasNetPortal",
    "BUILTIN_PORTALS",
    "PortalRegistry",
    "UnimplementedPortal",
]
