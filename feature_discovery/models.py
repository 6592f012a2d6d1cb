# ============================================================================
# CLAUDE CONTEXT - FEATURE DISCOVERY MODELS
# ============================================================================
# STATUS: Models - click, query and result value objects
# PURPOSE: Pydantic models shared by query builder, parser, catalog and coordinator
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: CRSCode, ViewSnapshot, ClickEvent, Query, ParsedFeature, FoundFeature,
#          LayerDescriptor, CatalogStrategy, Notification, DiscoveryOutcome,
#          IdentifyRequest
# DEPENDENCIES: pydantic, typing, urllib.parse
# PATTERNS: Immutable Data Transfer Objects
# ============================================================================

"""
Feature Discovery Pydantic Models

Value objects are frozen: a ParsedFeature, FoundFeature or LayerDescriptor
never changes after it is produced. ViewSnapshot is the explicit, per-click
copy of the map view; nothing in the package holds a reference to a live
map.

References:
- OGC WMS 1.1.1 GetFeatureInfo
- OGC WFS 1.1.0 GetFeature
- GeoJSON RFC 7946
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlencode

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CRSCode(str, Enum):
    """The two coordinate reference systems the client understands."""
    WEB_MERCATOR = "EPSG:3857"
    GEOGRAPHIC = "EPSG:4326"


class CatalogStrategy(str, Enum):
    """ZWS GetLayerList transports, in the order they are tried."""
    REST = "rest"
    XML_POST = "xml_post"
    QUERY_PARAM = "query_param"


class FeatureSource(str, Enum):
    WMS = "wms"
    WFS = "wfs"


class NotificationLevel(str, Enum):
    SUCCESS = "success"
    INFO = "info"
    ERROR = "error"


class DiscoveryStatus(str, Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    SERVICE_ERROR = "service_error"
    TRANSPORT_ERROR = "transport_error"
    CANCELLED = "cancelled"


# ============================================================================
# VIEW AND CLICK
# ============================================================================

class ViewSnapshot(BaseModel):
    """
    Immutable snapshot of the map view at click time.

    bbox is (minx, miny, maxx, maxy) in `crs` units; pixel rows grow
    downwards from the top edge of the view.
    """
    model_config = ConfigDict(frozen=True)

    width: int = Field(gt=0, description="Viewport width in pixels")
    height: int = Field(gt=0, description="Viewport height in pixels")
    bbox: Tuple[float, float, float, float] = Field(description="Visible extent in view CRS")
    crs: CRSCode = Field(default=CRSCode.WEB_MERCATOR)

    @field_validator("bbox")
    @classmethod
    def validate_bbox(cls, v: Tuple[float, float, float, float]) -> Tuple[float, float, float, float]:
        minx, miny, maxx, maxy = v
        if minx >= maxx or miny >= maxy:
            raise ValueError(f"Invalid bbox {v}: min must be below max")
        return v

    def pixel_of(self, x: float, y: float) -> Tuple[float, float]:
        """Map coordinate -> fractional pixel offset within the view."""
        minx, miny, maxx, maxy = self.bbox
        px = (x - minx) / (maxx - minx) * self.width
        py = (maxy - y) / (maxy - miny) * self.height
        return px, py


class ClickEvent(BaseModel):
    """A map click: coordinate in the view CRS plus the candidate layers."""
    model_config = ConfigDict(frozen=True)

    coordinate: Tuple[float, float]
    view: ViewSnapshot
    layers: List[str] = Field(min_length=1)

    @field_validator("layers")
    @classmethod
    def validate_layers(cls, v: List[str]) -> List[str]:
        cleaned = [name.strip() for name in v if name and name.strip()]
        if not cleaned:
            raise ValueError("At least one candidate layer is required")
        return cleaned

    @property
    def crs(self) -> CRSCode:
        return self.view.crs


# ============================================================================
# QUERY
# ============================================================================

class Query(BaseModel):
    """
    One upstream request. Lives for a single round trip.

    Cancellation is owned by the CancellationScope the request runs in.
    """
    model_config = ConfigDict(frozen=True)

    url: str
    method: str = "GET"
    params: Dict[str, str] = Field(default_factory=dict)
    headers: Dict[str, str] = Field(default_factory=dict)
    body: Optional[str] = None
    label: Optional[str] = Field(default=None, description="Layer or strategy, for logging")

    @property
    def full_url(self) -> str:
        if not self.params:
            return self.url
        return f"{self.url}?{urlencode(self.params)}"


# ============================================================================
# RESULTS
# ============================================================================

class ParsedFeature(BaseModel):
    """Feature parsed out of a single WMS/WFS response."""
    model_config = ConfigDict(frozen=True)

    typename: str
    fid: Optional[str] = None
    props: Dict[str, str] = Field(default_factory=dict)
    geometry: Optional[Tuple[float, float]] = Field(
        default=None,
        description="Point as (lon, lat)"
    )
    geojson: Optional[Dict[str, Any]] = None


class FoundFeature(BaseModel):
    """
    CRS-independent result of one click.

    coordinate is always geographic (lon, lat) whatever CRS the click used.
    """
    model_config = ConfigDict(frozen=True)

    typename: str
    fid: Optional[str] = None
    coordinate: Tuple[float, float]
    props: Dict[str, str] = Field(default_factory=dict)
    geojson: Optional[Dict[str, Any]] = None
    layer: Optional[str] = None
    source: FeatureSource = FeatureSource.WMS


class LayerDescriptor(BaseModel):
    """Selectable ZWS tile layer. List order is display order only."""
    model_config = ConfigDict(frozen=True)

    name: str
    title: str = ""

    @property
    def label(self) -> str:
        """Text shown in the selector; untitled layers show their name."""
        return self.title or self.name


class Notification(BaseModel):
    model_config = ConfigDict(frozen=True)

    level: NotificationLevel
    message: str


class DiscoveryOutcome(BaseModel):
    """Aggregate outcome of one click, as seen outside the coordinator."""
    model_config = ConfigDict(frozen=True)

    click_id: int
    status: DiscoveryStatus
    feature: Optional[FoundFeature] = None
    notification: Optional[Notification] = None


# ============================================================================
# HTTP REQUEST
# ============================================================================

class ViewParameters(BaseModel):
    """View part of an identify request; CRS is given once at the top level."""
    width: int = Field(gt=0)
    height: int = Field(gt=0)
    bbox: Tuple[float, float, float, float]


class IdentifyRequest(BaseModel):
    """
    Body of POST /api/discovery/identify.

    Example:
        {"coordinate": [4174000, 7509000], "crs": "EPSG:3857",
         "view": {"width": 800, "height": 600, "bbox": [4173000, 7508000, 4175000, 7510000]},
         "layers": ["mo:thermo"]}
    """
    coordinate: Tuple[float, float]
    crs: CRSCode = CRSCode.WEB_MERCATOR
    view: ViewParameters
    layers: Optional[List[str]] = Field(default=None, description="Defaults to the configured layers")

    def to_click(self, default_layers: List[str]) -> ClickEvent:
        snapshot = ViewSnapshot(
            width=self.view.width,
            height=self.view.height,
            bbox=self.view.bbox,
            crs=self.crs
        )
        return ClickEvent(
            coordinate=self.coordinate,
            view=snapshot,
            layers=self.layers or list(default_layers)
        )
