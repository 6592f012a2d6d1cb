# ============================================================================
# CLAUDE CONTEXT - ZWS LAYER CATALOG CLIENT
# ============================================================================
# STATUS: Service Layer - ZWS layer list for the layer selector
# PURPOSE: Fetch the ZWS layer list with three fallback transports
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: LayerCatalogClient
# DEPENDENCIES: .transport (httpx), .query_builder, .parser
# ============================================================================
"""
ZWS Layer Catalog Client.

The ZWS endpoint answers GetLayerList over one of three transports depending
on deployment; which one works is not known up front. The client tries them
in a fixed order (REST GET, XML POST, query-parameter GET) and returns the
first non-empty list. Every failure is logged and degrades to the next
strategy; after the last one a single configured fallback layer is
returned. fetch_layers() never raises and never returns an empty list.
"""

from typing import List, Optional

from util_logger import LoggerFactory, ComponentType, LogContext

from .config import DiscoveryConfig, get_discovery_config
from .exceptions import DiscoveryError
from .models import CatalogStrategy, LayerDescriptor
from .parser import has_layer_list_marker, parse_layer_list
from .query_builder import CATALOG_STRATEGY_ORDER, build_layer_list_query
from .transport import OGCTransport

logger = LoggerFactory.create_logger(ComponentType.SERVICE, "LayerCatalogClient")


class LayerCatalogClient:
    """
    ZWS GetLayerList client.

    Usage:
        client = LayerCatalogClient()
        layers = await client.fetch_layers()
        await client.close()
    """

    def __init__(
        self,
        config: Optional[DiscoveryConfig] = None,
        transport: Optional[OGCTransport] = None
    ):
        self.config = config or get_discovery_config()
        self._owns_transport = transport is None
        self.transport = transport or OGCTransport(self.config)

    async def close(self):
        if self._owns_transport:
            await self.transport.close()

    def fallback_layers(self) -> List[LayerDescriptor]:
        name = self.config.fallback_layer_name
        return [LayerDescriptor(name=name, title=self.config.fallback_layer_title or name)]

    async def _try_strategy(self, strategy: CatalogStrategy) -> List[LayerDescriptor]:
        """Run one transport; an empty list means "try the next one"."""
        query = build_layer_list_query(strategy, self.config)
        dims = {'custom_dimensions': LogContext(strategy=strategy.value).to_dict()}
        try:
            response = await self.transport.send(query)
        except DiscoveryError as e:
            logger.debug(f"ZWS {strategy.value} failed: {e}", extra=dims)
            return []
        except Exception as e:
            logger.exception(f"Unexpected error calling ZWS {strategy.value}: {e}", extra=dims)
            return []

        if not has_layer_list_marker(response.text):
            logger.debug(f"ZWS {strategy.value} answered without a GetLayerList document", extra=dims)
            return []

        try:
            return parse_layer_list(response.text)
        except DiscoveryError as e:
            logger.warning(f"ZWS {strategy.value} returned an unreadable layer list: {e}", extra=dims)
            return []

    async def fetch_layers(self) -> List[LayerDescriptor]:
        """
        Fetch the ZWS layer list.

        Returns:
            Non-empty list of LayerDescriptor; the configured fallback entry
            when no strategy produced a usable list
        """
        for strategy in CATALOG_STRATEGY_ORDER:
            layers = await self._try_strategy(strategy)
            if layers:
                logger.info(f"ZWS layer list via {strategy.value}: {len(layers)} layers")
                return layers

        logger.warning("ZWS layer list unavailable, using fallback layer")
        return self.fallback_layers()
