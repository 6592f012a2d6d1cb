# ============================================================================
# CLAUDE CONTEXT - FEATURE DISCOVERY CONFIGURATION
# ============================================================================
# STATUS: Module Configuration - Feature Discovery
# PURPOSE: Endpoints, candidate layers and query tuning for click-to-feature discovery
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: DiscoveryConfig, get_discovery_config
# DEPENDENCIES: pydantic, os, config (base URL)
# SOURCE: Environment variables
# PATTERNS: Settings Pattern, Singleton via cached function
# ENTRY_POINTS: from feature_discovery.config import get_discovery_config
# ============================================================================

"""
Feature Discovery Configuration

Environment Variables:
    Optional:
    - DISCOVERY_WS_URL: WMS/WFS endpoint (default: {OGC_BASE_URL}/ws)
    - DISCOVERY_ZWS_URL: ZWS endpoint (default: {OGC_BASE_URL}/zws)
    - DISCOVERY_DEFAULT_LAYERS: Comma-separated candidate layers
      (default: "openlayers:teploset,mo:thermo,mo:vp")
    - DISCOVERY_FEATURE_COUNT: WMS FEATURE_COUNT (default: 1)
    - DISCOVERY_BBOX_3857: Spatial fallback half-width in metres (default: 5)
    - DISCOVERY_BBOX_4326: Spatial fallback half-width in degrees (default: 0.00005)
    - DISCOVERY_REQUEST_TIMEOUT: Per-request timeout in seconds (default: unset = no timeout)
    - DISCOVERY_ENRICH_GEOMETRY: Fetch WFS geometry by id after a WMS hit (default: true)
    - DISCOVERY_FALLBACK_LAYER: ZWS fallback layer name (default: "example:demo")

The two spatial half-widths are tuned separately per CRS. They are not
derived from a common ground distance.
"""

import os
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from config import get_app_config


def _env_layers(name: str, default: str) -> List[str]:
    raw = os.getenv(name, default)
    return [part.strip() for part in raw.split(",") if part.strip()]


def _env_optional_float(name: str) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    return float(raw)


KNOWN_LAYERS: Dict[str, str] = {
    "openlayers:teploset": "Тепловая сеть",
    "mo:thermo": "Thermo",
    "mo:vp": "Водопроводная сеть",
    "mo:region": "Регион",
    "example:demo": "Демо слой",
}


class DiscoveryConfig(BaseModel):
    """
    Configuration for feature discovery.

    Endpoint URLs default to the proxy layout under OGC_BASE_URL.
    """

    # Environment values arrive through default_factory and must be validated too
    model_config = ConfigDict(validate_default=True)

    ws_url: str = Field(
        default_factory=lambda: os.getenv("DISCOVERY_WS_URL", f"{get_app_config().ogc_base_url}/ws"),
        description="WMS/WFS endpoint"
    )
    zws_url: str = Field(
        default_factory=lambda: os.getenv("DISCOVERY_ZWS_URL", f"{get_app_config().ogc_base_url}/zws"),
        description="ZWS layer catalog endpoint"
    )
    default_layers: List[str] = Field(
        default_factory=lambda: _env_layers(
            "DISCOVERY_DEFAULT_LAYERS", "openlayers:teploset,mo:thermo,mo:vp"
        ),
        description="Candidate layers used when a click does not name any"
    )
    known_layers: Dict[str, str] = Field(
        default_factory=lambda: dict(KNOWN_LAYERS),
        description="WMS layers offered by the layer selector (name -> title)"
    )
    feature_count: int = Field(
        default_factory=lambda: int(os.getenv("DISCOVERY_FEATURE_COUNT", "1")),
        ge=1,
        description="WMS GetFeatureInfo FEATURE_COUNT"
    )
    spatial_half_width_3857: float = Field(
        default_factory=lambda: float(os.getenv("DISCOVERY_BBOX_3857", "5")),
        gt=0,
        description="WFS fallback box half-width in EPSG:3857 units (metres)"
    )
    spatial_half_width_4326: float = Field(
        default_factory=lambda: float(os.getenv("DISCOVERY_BBOX_4326", "0.00005")),
        gt=0,
        description="WFS fallback box half-width in EPSG:4326 degrees"
    )
    request_timeout_seconds: Optional[float] = Field(
        default_factory=lambda: _env_optional_float("DISCOVERY_REQUEST_TIMEOUT"),
        description="Per-request timeout; None waits until the next click cancels"
    )
    enrich_geometry: bool = Field(
        default_factory=lambda: os.getenv("DISCOVERY_ENRICH_GEOMETRY", "true").lower() == "true",
        description="Look up WFS geometry by feature id after a WMS hit"
    )
    fallback_layer_name: str = Field(
        default_factory=lambda: os.getenv("DISCOVERY_FALLBACK_LAYER", "example:demo"),
        description="ZWS layer returned when the catalog cannot be read"
    )
    fallback_layer_title: Optional[str] = Field(
        default_factory=lambda: os.getenv("DISCOVERY_FALLBACK_LAYER_TITLE"),
        description="Title of the fallback layer (defaults to its name)"
    )

    @field_validator("ws_url", "zws_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("request_timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v <= 0:
            raise ValueError("request_timeout_seconds must be positive when set")
        return v


# Singleton instance cache
_config_cache: Optional[DiscoveryConfig] = None


def get_discovery_config() -> DiscoveryConfig:
    """
    Get singleton discovery configuration instance.

    Returns:
        Cached configuration instance
    """
    global _config_cache

    if _config_cache is None:
        _config_cache = DiscoveryConfig()

    return _config_cache
