"""
CRS conversion helpers.

Coordinates cross between EPSG:3857 and EPSG:4326 only here, and only when
the coordinator asks for it. pyproj transformers are built once per CRS
pair with ``always_xy=True`` so every tuple is (x, y) / (lon, lat).
"""

from functools import lru_cache
from typing import Tuple

from pyproj import Transformer

from .models import CRSCode


@lru_cache(maxsize=4)
def _transformer(source: CRSCode, target: CRSCode) -> Transformer:
    return Transformer.from_crs(source.value, target.value, always_xy=True)


def to_geographic(coordinate: Tuple[float, float], crs: CRSCode) -> Tuple[float, float]:
    """Return (lon, lat) for a coordinate given in `crs`; no-op for EPSG:4326."""
    crs = CRSCode(crs)
    if crs == CRSCode.GEOGRAPHIC:
        return (float(coordinate[0]), float(coordinate[1]))
    lon, lat = _transformer(crs, CRSCode.GEOGRAPHIC).transform(coordinate[0], coordinate[1])
    return (lon, lat)


def from_geographic(coordinate: Tuple[float, float], crs: CRSCode) -> Tuple[float, float]:
    """Return the (lon, lat) coordinate expressed in `crs`."""
    crs = CRSCode(crs)
    if crs == CRSCode.GEOGRAPHIC:
        return (float(coordinate[0]), float(coordinate[1]))
    x, y = _transformer(CRSCode.GEOGRAPHIC, crs).transform(coordinate[0], coordinate[1])
    return (x, y)
