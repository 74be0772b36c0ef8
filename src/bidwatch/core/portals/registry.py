"""
Portal registry.

Maps portal identifiers to their configuration and adapter class.
Known portals without an adapter get an UnimplementedPortal; unknown
identifiers raise UnsupportedPortalError.
"""

from __future__ import annotations

from typing import Callable, Mapping

from bidwatch.core.config.models import PortalConfig
from bidwatch.core.errors import UnsupportedPortalError
from bidwatch.core.fetch.http_fetcher import HttpFetcher
from bidwatch.core.reconcile.reconciler import Reconciler

from .base import PortalAdapter
from .comprasnet import COMPRASNET_CONFIG, ComprasNetPortal
from .unimplemented import UnimplementedPortal


AdapterFactory = Callable[[PortalConfig, HttpFetcher, Reconciler], PortalAdapter]


BUILTIN_PORTALS: dict[str, PortalConfig] = {
    COMPRASNET_CONFIG.name: COMPRASNET_CONFIG,
    "licitacoes-e": PortalConfig(
        name="licitacoes-e",
        display_name="Licitações-e (Banco do Brasil)",
        base_url="https://www.licitacoes-e.com.br",
        implemented=False,
    ),
    "portal-transparencia": PortalConfig(
        name="portal-transparencia",
        display_name="Portal da Transparência",
        base_url="https://portaldatransparencia.gov.br",
        implemented=False,
    ),
}

BUILTIN_ADAPTERS: dict[str, AdapterFactory] = {
    COMPRASNET_CONFIG.name: ComprasNetPortal,
}


class PortalRegistry:
    """Portal configurations and the adapters that serve them.

    Args:
        configs: Portal configs overriding or extending the built-in ones
    """

    def __init__(self, configs: Mapping[str, PortalConfig] | None = None):
        self._configs: dict[str, PortalConfig] = {**BUILTIN_PORTALS, **(configs or {})}
        self._factories: dict[str, AdapterFactory] = dict(BUILTIN_ADAPTERS)

    def register(self, config: PortalConfig, factory: AdapterFactory | None = None) -> None:
        """Add or replace a portal; without a factory it is treated as unimplemented."""
        self._configs[config.name] = config
        if factory is not None:
            self._factories[config.name] = factory

    def ids(self) -> list[str]:
        return sorted(self._configs)

    def config(self, portal_id: str) -> PortalConfig:
        """Get a portal's configuration.

        Raises:
            UnsupportedPortalError: If the portal is not registered
        """
        try:
            return self._configs[portal_id]
        except KeyError:
            raise UnsupportedPortalError(portal_id) from None

    def is_implemented(self, portal_id: str) -> bool:
        config = self.config(portal_id)
        return config.implemented and portal_id in self._factories

    def get(
        self,
        portal_id: str,
        fetcher: HttpFetcher,
        reconciler: Reconciler,
    ) -> PortalAdapter:
        """Build the adapter for a portal.

        Raises:
            UnsupportedPortalError: If the portal is not registered
        """
        config = self.config(portal_id)
        if not self.is_implemented(portal_id):
            return UnimplementedPortal(config)
        return self._factories[portal_id](config, fetcher, reconciler)

    def portal_for_source(self, source: str | None) -> str | None:
        """Portal id whose source tag matches a stored notice's source."""
        for portal_id, config in self._configs.items():
            if source in (config.effective_source_tag, portal_id):
                return portal_id
        return None
