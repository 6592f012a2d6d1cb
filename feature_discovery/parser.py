# ============================================================================
# CLAUDE CONTEXT - RESPONSE PARSER
# ============================================================================
# STATUS: Pure functions - upstream payload parsing
# PURPOSE: Turn WMS/WFS/ZWS response bodies into ParsedFeature / LayerDescriptor values
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: ContentKind, classify_content, parse_feature_response, parse_feature_json,
#          parse_feature_xml, parse_layer_list, has_layer_list_marker
# DEPENDENCIES: lxml, .models, .exceptions, util_logger
# PATTERNS: Classify -> decode -> parse; exception reports raise, empty hits return None
# ============================================================================

"""
Response Parser

The upstream answers GetFeatureInfo / GetFeature in three shapes:

1. JSON feature collections (content type contains "json")
2. GML documents with gml:featureMember elements
3. WMS exception reports, delivered with HTTP 200, sometimes as a base64
   encoded XML document

classify_content() names the shape explicitly (ContentKind) before any
parsing happens. An exception report always raises ServiceException; it is
never reported as "no feature". Malformed XML and documents without a
featureMember return None.

Qualified tag names keep their namespace prefix (``openlayers:teploset``),
which is why lxml is used rather than ElementTree: ElementTree discards
prefixes on parse.
"""

import base64
import binascii
import json
import re
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from lxml import etree

from util_logger import LoggerFactory, ComponentType

from .exceptions import ParseError, ServiceException
from .models import LayerDescriptor, ParsedFeature

logger = LoggerFactory.create_logger(ComponentType.PARSER, "ResponseParser")

GML_NAMESPACES = frozenset({
    "http://www.opengis.net/gml",
    "http://www.opengis.net/gml/3.2",
})

# base64 of "<?xml"
BASE64_XML_SIGNATURE = "PD94bWw"

EXCEPTION_REPORT_TAGS = frozenset({"ServiceExceptionReport", "ExceptionReport"})
EXCEPTION_TAGS = frozenset({"ServiceException", "Exception"})
EXCEPTION_TEXT_TAGS = frozenset({"ExceptionText"})

_LAYER_LIST_MARKER = re.compile(r"<GetLayerList(\s[^>]*)?>", re.IGNORECASE)
_NUMBER_SEPARATORS = re.compile(r"[\s,]+")


class ContentKind(str, Enum):
    """Encoding of a feature response body."""
    JSON = "json"
    PLAIN_XML = "plain_xml"
    BASE64_XML = "base64_xml"


# ============================================================================
# CONTENT CLASSIFICATION
# ============================================================================

def _decode_base64_xml(body: str) -> Optional[bytes]:
    stripped = "".join(body.split())
    if not stripped.startswith(BASE64_XML_SIGNATURE):
        return None
    try:
        decoded = base64.b64decode(stripped, validate=True)
    except (binascii.Error, ValueError):
        return None
    if not decoded.lstrip().startswith(b"<?xml"):
        return None
    return decoded


def classify_content(body: str, content_type: Optional[str] = None) -> ContentKind:
    """
    Name the encoding of a response body.

    JSON:       the content type mentions json
    BASE64_XML: the body is base64 starting with the encoding of "<?xml"
                and decodes to an XML document
    PLAIN_XML:  everything else
    """
    if content_type and "json" in content_type.lower():
        return ContentKind.JSON
    if _decode_base64_xml(body) is not None:
        return ContentKind.BASE64_XML
    return ContentKind.PLAIN_XML


# ============================================================================
# XML HELPERS
# ============================================================================

def _parse_xml(data: Union[str, bytes]) -> etree._Element:
    """
    Parse XML text or bytes.

    Raises:
        ParseError: On malformed input
    """
    try:
        if isinstance(data, str):
            # Text is already decoded; ignore any encoding in the declaration.
            parser = etree.XMLParser(encoding="utf-8", resolve_entities=False, no_network=True)
            return etree.fromstring(data.encode("utf-8"), parser=parser)
        parser = etree.XMLParser(resolve_entities=False, no_network=True)
        return etree.fromstring(data, parser=parser)
    except (etree.XMLSyntaxError, ValueError) as e:
        raise ParseError(f"Malformed XML: {e}") from e


def _elements(node: etree._Element):
    """Child elements only (skips comments and processing instructions)."""
    return [child for child in node if isinstance(child.tag, str)]


def _local_name(node: etree._Element) -> str:
    return etree.QName(node).localname


def _namespace(node: etree._Element) -> Optional[str]:
    return etree.QName(node).namespace


def _qualified_name(node: etree._Element) -> str:
    local = _local_name(node)
    return f"{node.prefix}:{local}" if node.prefix else local


def _text(node: etree._Element) -> str:
    return "".join(node.itertext()).strip()


def _find_first(root: etree._Element, local_names, namespaces=None) -> Optional[etree._Element]:
    for el in root.iter(tag=etree.Element):
        if _local_name(el) in local_names and (namespaces is None or _namespace(el) in namespaces):
            return el
    return None


# ============================================================================
# EXCEPTION REPORTS
# ============================================================================

def _raise_for_exception_report(root: etree._Element) -> None:
    """Raise ServiceException if the document is or embeds an exception report."""
    report = _find_first(root, EXCEPTION_REPORT_TAGS)
    if report is not None:
        exception = _find_first(report, EXCEPTION_TAGS)
    else:
        # A bare "Exception" element may be an ordinary feature property.
        exception = _find_first(root, {"ServiceException"})
    if report is None and exception is None:
        return

    message = ""
    code = None
    if exception is not None:
        code = exception.get("code") or exception.get("exceptionCode")
        text_node = _find_first(exception, EXCEPTION_TEXT_TAGS)
        message = _text(text_node if text_node is not None else exception)

    raise ServiceException(message or "Unknown WMS error", code=code)


# ============================================================================
# FEATURE PARSING
# ============================================================================

def _parse_point(node: etree._Element) -> Optional[Tuple[float, float]]:
    """First gml:pos (or legacy gml:coordinates) below node, as (lon, lat)."""
    pos = _find_first(node, {"pos"}, GML_NAMESPACES)
    if pos is None:
        pos = _find_first(node, {"coordinates"}, GML_NAMESPACES)
    if pos is None:
        return None

    parts = [p for p in _NUMBER_SEPARATORS.split(_text(pos)) if p]
    if len(parts) < 2:
        return None
    try:
        # GML point order is lon lat
        return (float(parts[0]), float(parts[1]))
    except ValueError:
        logger.debug(f"Unparseable GML position: {_text(pos)[:100]}")
        return None


def _point_feature(point: Tuple[float, float], props: Dict[str, str]) -> Dict[str, Any]:
    return {
        "type": "Feature",
        "geometry": {"type": "Point", "coordinates": [point[0], point[1]]},
        "properties": dict(props),
    }


def parse_feature_xml(data: Union[str, bytes]) -> Optional[ParsedFeature]:
    """
    Parse a GML GetFeatureInfo / GetFeature document.

    Returns:
        ParsedFeature for the first gml:featureMember, or None when the
        document is malformed or holds no feature

    Raises:
        ServiceException: If the document is an exception report
    """
    try:
        root = _parse_xml(data)
    except ParseError as e:
        text = data.decode("utf-8", errors="replace") if isinstance(data, bytes) else data
        if "ServiceException" in text:
            raise ServiceException(text.strip()[:200]) from e
        logger.debug(f"Treating malformed GML as no feature: {e}")
        return None

    _raise_for_exception_report(root)

    member = _find_first(root, {"featureMember"}, GML_NAMESPACES)
    if member is None:
        return None

    children = _elements(member)
    if not children:
        return None
    feature_node = children[0]

    typename = _qualified_name(feature_node)
    fid = None
    for ns in GML_NAMESPACES:
        fid = feature_node.get(f"{{{ns}}}id")
        if fid:
            break
    fid = fid or feature_node.get("fid") or None

    props: Dict[str, str] = {}
    for child in _elements(feature_node):
        if _namespace(child) in GML_NAMESPACES:
            continue
        value = _text(child)
        if value:
            props[_local_name(child)] = value

    point = _parse_point(feature_node)
    return ParsedFeature(
        typename=typename,
        fid=fid,
        props=props,
        geometry=point,
        geojson=_point_feature(point, props) if point else None,
    )


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def parse_feature_json(body: str) -> Optional[ParsedFeature]:
    """
    Parse a JSON GetFeatureInfo response (GeoJSON FeatureCollection shape).

    typename is the part of the feature id before the first ".", fid is the
    whole id. A feature without an id counts as no feature.
    """
    try:
        data = json.loads(body)
    except (json.JSONDecodeError, TypeError) as e:
        logger.debug(f"Treating malformed JSON as no feature: {e}")
        return None

    features = data.get("features") if isinstance(data, dict) else None
    if not isinstance(features, list) or not features:
        return None

    feature = features[0]
    if not isinstance(feature, dict):
        return None

    feature_id = feature.get("id")
    if feature_id is None or str(feature_id) == "":
        return None
    feature_id = str(feature_id)

    raw_props = feature.get("properties") or {}
    props = {str(k): _stringify(v) for k, v in raw_props.items()} if isinstance(raw_props, dict) else {}

    point = None
    geojson = None
    geometry = feature.get("geometry")
    if isinstance(geometry, dict) and geometry.get("type"):
        geojson = {"type": "Feature", "geometry": geometry, "properties": dict(props)}
        coords = geometry.get("coordinates")
        if geometry.get("type") == "Point" and isinstance(coords, list) and len(coords) >= 2:
            try:
                point = (float(coords[0]), float(coords[1]))
            except (TypeError, ValueError):
                logger.debug(f"Unparseable JSON point: {str(coords)[:100]}")

    return ParsedFeature(
        typename=feature_id.split(".", 1)[0],
        fid=feature_id,
        props=props,
        geometry=point,
        geojson=geojson,
    )


def parse_feature_response(body: str, content_type: Optional[str] = None) -> Optional[ParsedFeature]:
    """
    Parse any WMS/WFS feature response body.

    Args:
        body: Response text
        content_type: Response Content-Type header, if known

    Returns:
        ParsedFeature or None ("no feature")

    Raises:
        ServiceException: If the upstream returned an exception report,
            plain or base64 encoded
    """
    kind = classify_content(body, content_type)
    if kind == ContentKind.JSON:
        return parse_feature_json(body)
    if kind == ContentKind.BASE64_XML:
        return parse_feature_xml(_decode_base64_xml(body))
    return parse_feature_xml(body)


# ============================================================================
# ZWS LAYER LIST
# ============================================================================

def has_layer_list_marker(body: str) -> bool:
    """True when the body carries a <GetLayerList> element."""
    return bool(body) and _LAYER_LIST_MARKER.search(body) is not None


def parse_layer_list(body: Union[str, bytes]) -> List[LayerDescriptor]:
    """
    Parse a ZWS GetLayerList response.

    Every Layer element becomes a LayerDescriptor from its first Name and
    Title descendants; layers without a name are dropped.

    Raises:
        ParseError: On malformed XML
    """
    root = _parse_xml(body)

    layers: List[LayerDescriptor] = []
    for layer in root.iter(tag=etree.Element):
        if _local_name(layer) != "Layer":
            continue
        name_node = _find_first(layer, {"Name"})
        title_node = _find_first(layer, {"Title"})
        name = _text(name_node) if name_node is not None else ""
        if not name:
            continue
        title = _text(title_node) if title_node is not None else ""
        layers.append(LayerDescriptor(name=name, title=title))
    return layers
