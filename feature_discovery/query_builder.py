# ============================================================================
# CLAUDE CONTEXT - QUERY BUILDER
# ============================================================================
# STATUS: Pure functions - request construction
# PURPOSE: Build WMS GetFeatureInfo, WFS GetFeature and ZWS GetLayerList requests
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: build_feature_info_query, build_spatial_query, build_feature_by_id_query,
#          build_layer_list_query
# DEPENDENCIES: .models, .config
# PATTERNS: Side-effect free builders returning Query value objects
# ============================================================================

"""
Query Builder

Deterministic construction of upstream requests. Nothing here performs I/O.
Precondition violations (empty layer list, non-positive view size) are
programming errors and raise ValueError immediately.

WMS parameter names are upper case (1.1.1 convention); WFS parameter names
follow the casing the upstream WFS 1.1.0 endpoint expects.
"""

import math
from typing import Iterable, List, Optional, Sequence, Tuple

from .config import DiscoveryConfig, get_discovery_config
from .models import CatalogStrategy, CRSCode, Query, ViewSnapshot

GML_INFO_FORMAT = "application/vnd.ogc.gml"
LAYER_LIST_BODY = '<?xml version="1.0" encoding="UTF-8"?><zwsRequest><GetLayerList/></zwsRequest>'


def _format_number(value: float) -> str:
    return repr(float(value))


def _format_bbox(values: Iterable[float]) -> str:
    return ",".join(_format_number(v) for v in values)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


# ============================================================================
# WMS GETFEATUREINFO
# ============================================================================

def build_feature_info_query(
    view: ViewSnapshot,
    crs: CRSCode,
    layers: Sequence[str],
    pixel: Tuple[float, float],
    config: Optional[DiscoveryConfig] = None,
    transparent: Optional[bool] = None,
    image_format: Optional[str] = None,
) -> Query:
    """
    Build a WMS 1.1.1 GetFeatureInfo request for a click.

    Args:
        view: View snapshot (pixel size and visible bbox)
        crs: CRS the bbox is expressed in (sent as SRS)
        layers: Non-empty ordered layer names (LAYERS and QUERY_LAYERS)
        pixel: Click position as a pixel offset inside the view
        config: Discovery configuration (singleton if not provided)
        transparent: Optional TRANSPARENT passthrough
        image_format: Optional FORMAT passthrough

    Returns:
        GET Query against the WMS endpoint

    Raises:
        ValueError: If layers is empty or the view has no area
    """
    layers = list(layers)
    if not layers:
        raise ValueError("build_feature_info_query requires at least one layer")
    if view.width <= 0 or view.height <= 0:
        raise ValueError(f"View size must be positive, got {view.width}x{view.height}")

    config = config or get_discovery_config()
    layer_param = ",".join(layers)

    # Clicks on the very edge can land a fraction outside the view.
    x = min(max(_round_half_up(pixel[0]), 0), view.width)
    y = min(max(_round_half_up(pixel[1]), 0), view.height)

    params = {
        "SERVICE": "WMS",
        "VERSION": "1.1.1",
        "REQUEST": "GetFeatureInfo",
        "LAYERS": layer_param,
        "QUERY_LAYERS": layer_param,
        "STYLES": "",
        "SRS": CRSCode(crs).value,
        "BBOX": _format_bbox(view.bbox),
        "WIDTH": str(view.width),
        "HEIGHT": str(view.height),
        "X": str(x),
        "Y": str(y),
        "INFO_FORMAT": GML_INFO_FORMAT,
        "FEATURE_COUNT": str(config.feature_count),
    }
    if transparent is not None:
        params["TRANSPARENT"] = "TRUE" if transparent else "FALSE"
    if image_format:
        params["FORMAT"] = image_format

    return Query(url=config.ws_url, method="GET", params=params, label=layer_param)


# ============================================================================
# WFS GETFEATURE
# ============================================================================

def spatial_bbox(
    point: Tuple[float, float],
    crs: CRSCode,
    config: Optional[DiscoveryConfig] = None
) -> Tuple[float, float, float, float]:
    """
    Small search box centred on `point`, in `crs` units.

    EPSG:3857 uses a half-width in metres, EPSG:4326 one in degrees. The two
    values are configured independently.
    """
    config = config or get_discovery_config()
    crs = CRSCode(crs)
    if crs == CRSCode.WEB_MERCATOR:
        d = config.spatial_half_width_3857
    else:
        d = config.spatial_half_width_4326
    x, y = point
    return (x - d, y - d, x + d, y + d)


def build_spatial_query(
    point: Tuple[float, float],
    crs: CRSCode,
    type_name: str,
    config: Optional[DiscoveryConfig] = None
) -> Query:
    """
    Build a WFS GetFeature request for the first feature of `type_name`
    inside a small box around `point`.

    Args:
        point: Click coordinate in `crs`
        crs: CRS of `point`; appended to the bbox parameter
        type_name: Qualified feature type (e.g. "mo:vp")
        config: Discovery configuration (singleton if not provided)

    Returns:
        GET Query against the WFS endpoint with maxFeatures=1
    """
    config = config or get_discovery_config()
    crs = CRSCode(crs)
    box = spatial_bbox(point, crs, config)

    params = {
        "service": "WFS",
        "version": "1.1.0",
        "request": "GetFeature",
        "typeName": type_name,
        "bbox": f"{_format_bbox(box)},{crs.value}",
        "maxFeatures": "1",
    }
    return Query(url=config.ws_url, method="GET", params=params, label=type_name)


def build_feature_by_id_query(
    typename: str,
    fid: Optional[str] = None,
    config: Optional[DiscoveryConfig] = None
) -> Query:
    """Build a WFS GetFeature request for one feature (or the type when fid is None)."""
    config = config or get_discovery_config()
    params = {
        "service": "WFS",
        "version": "1.1.0",
        "request": "GetFeature",
        "typeName": typename,
    }
    if fid:
        params["featureId"] = fid
    return Query(url=config.ws_url, method="GET", params=params, label=typename)


# ============================================================================
# ZWS GETLAYERLIST
# ============================================================================

def build_layer_list_query(
    strategy: CatalogStrategy,
    config: Optional[DiscoveryConfig] = None
) -> Query:
    """
    Build one of the three ZWS GetLayerList transports.

    REST:        GET {zws}/GetLayerList with Accept: text/xml
    XML_POST:    POST {zws} with an XML command body
    QUERY_PARAM: GET {zws}?Action=GetLayerList
    """
    config = config or get_discovery_config()
    strategy = CatalogStrategy(strategy)

    if strategy == CatalogStrategy.REST:
        return Query(
            url=f"{config.zws_url}/GetLayerList",
            method="GET",
            headers={"Accept": "text/xml"},
            label=strategy.value,
        )
    if strategy == CatalogStrategy.XML_POST:
        return Query(
            url=config.zws_url,
            method="POST",
            headers={"Content-Type": "text/xml", "SOAPAction": "GetLayerList"},
            body=LAYER_LIST_BODY,
            label=strategy.value,
        )
    return Query(
        url=config.zws_url,
        method="GET",
        params={"Action": "GetLayerList"},
        label=strategy.value,
    )


CATALOG_STRATEGY_ORDER: List[CatalogStrategy] = [
    CatalogStrategy.REST,
    CatalogStrategy.XML_POST,
    CatalogStrategy.QUERY_PARAM,
]
