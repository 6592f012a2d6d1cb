# ============================================================================
# CLAUDE CONTEXT - FEATURE DISCOVERY MODULE
# ============================================================================
# STATUS: Standalone Module - click-to-feature discovery over WMS/WFS/ZWS
# PURPOSE: Resolve a map click to at most one feature from OGC services
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: DiscoveryCoordinator, LayerCatalogClient, DiscoveryConfig, get_discovery_triggers
# INTERFACES: Azure Functions triggers, async Python API
# PYDANTIC_MODELS: ClickEvent, ViewSnapshot, FoundFeature, DiscoveryOutcome
# DEPENDENCIES: httpx, pydantic, lxml, pyproj, azure-functions
# SOURCE: Environment variables for endpoints and candidate layers
# PATTERNS: Coordinator, Adapter (transport), Pure functions (builder, parser)
# ENTRY_POINTS: from feature_discovery import get_discovery_triggers
# ============================================================================

"""
Feature Discovery - Standalone Module

Given a click on a web map showing WMS/ZWS layers, find the feature under
the cursor:

- WMS GetFeatureInfo per candidate layer, raced; first hit wins
- WFS GetFeature over a tiny box around the click when WMS finds nothing
- ZWS GetLayerList for the layer selector, with three transport fallbacks

Architecture:
    feature_discovery/
    ├── config.py         # Environment-based configuration
    ├── models.py         # Pydantic models (click, query, results)
    ├── exceptions.py     # DiscoveryError hierarchy
    ├── crs.py            # EPSG:3857 <-> EPSG:4326 (pyproj)
    ├── query_builder.py  # Pure request construction
    ├── parser.py         # GML / GeoJSON / base64 / layer list parsing (lxml)
    ├── transport.py      # httpx.AsyncClient wrapper
    ├── scope.py          # Per-click cancellation scope
    ├── catalog.py        # ZWS layer catalog client
    ├── coordinator.py    # Per-click state machine and result slot
    └── triggers.py       # Azure Functions HTTP handlers

Usage:
    from feature_discovery import DiscoveryCoordinator, ClickEvent, ViewSnapshot

    coordinator = DiscoveryCoordinator(on_result=show, on_notification=toast)
    outcome = await coordinator.identify(ClickEvent(
        coordinate=(4174000.0, 7509000.0),
        view=ViewSnapshot(width=800, height=600, bbox=(4173000, 7508000, 4175000, 7510000)),
        layers=["mo:thermo", "mo:vp"]
    ))
"""

from .catalog import LayerCatalogClient
from .config import DiscoveryConfig, get_discovery_config
from .coordinator import DiscoveryCoordinator
from .exceptions import DiscoveryError, ParseError, ServiceException, TransportError
from .models import (
    ClickEvent,
    CRSCode,
    DiscoveryOutcome,
    DiscoveryStatus,
    FoundFeature,
    LayerDescriptor,
    Notification,
    ViewSnapshot,
)
from .triggers import get_discovery_triggers

__version__ = "1.0.0"
__all__ = [
    "ClickEvent",
    "CRSCode",
    "DiscoveryConfig",
    "DiscoveryCoordinator",
    "DiscoveryError",
    "DiscoveryOutcome",
    "DiscoveryStatus",
    "FoundFeature",
    "LayerCatalogClient",
    "LayerDescriptor",
    "Notification",
    "ParseError",
    "ServiceException",
    "TransportError",
    "ViewSnapshot",
    "get_discovery_config",
    "get_discovery_triggers",
]
