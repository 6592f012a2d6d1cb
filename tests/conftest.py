"""
Shared fixtures for feature discovery tests.

The upstream is faked with httpx.MockTransport; handlers receive the
outgoing httpx.Request and return an httpx.Response.
"""

import asyncio
import base64

import httpx
import pytest

import config as app_config
from feature_discovery import config as discovery_config_module
from feature_discovery.config import DiscoveryConfig
from feature_discovery.models import ClickEvent, CRSCode, ViewSnapshot
from feature_discovery.transport import OGCTransport

WS_URL = "http://ogc.test/ws"
ZWS_URL = "http://ogc.test/zws"

GML_NS = "http://www.opengis.net/gml"


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Isolate every test from the host environment and config singletons."""
    for name in ("OGC_USERNAME", "OGC_PASSWORD", "DISCOVERY_DEFAULT_LAYERS",
                 "DISCOVERY_REQUEST_TIMEOUT", "DISCOVERY_FALLBACK_LAYER_TITLE"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("OGC_BASE_URL", "http://ogc.test")
    app_config.get_app_config.cache_clear()
    discovery_config_module._config_cache = None
    yield
    app_config.get_app_config.cache_clear()
    discovery_config_module._config_cache = None


@pytest.fixture
def discovery_config():
    return DiscoveryConfig(
        ws_url=WS_URL,
        zws_url=ZWS_URL,
        default_layers=["openlayers:teploset", "mo:thermo", "mo:vp"],
        request_timeout_seconds=None,
        enrich_geometry=False,
        fallback_layer_name="example:demo",
    )


@pytest.fixture
def view():
    return ViewSnapshot(
        width=800,
        height=600,
        bbox=(4173000.0, 7508000.0, 4175000.0, 7510000.0),
        crs=CRSCode.WEB_MERCATOR,
    )


@pytest.fixture
def make_click(view):
    def _make(layers, coordinate=(4174000.0, 7509000.0), snapshot=None):
        return ClickEvent(coordinate=coordinate, view=snapshot or view, layers=layers)
    return _make


def mock_transport(handler, config):
    """OGCTransport backed by an httpx.MockTransport handler."""
    return OGCTransport(config, auth=None, transport=httpx.MockTransport(handler))


def run(coro):
    return asyncio.run(coro)


# ============================================================================
# RESPONSE BODIES
# ============================================================================

def gml_feature(typename="mo:vp", fid="vp.1", props=None, pos="37.5 55.7"):
    """GetFeatureInfo / GetFeature GML document with one feature member."""
    prefix, local = typename.split(":")
    props = props if props is not None else {"name": "Pipe 1"}
    prop_xml = "".join(f"<{prefix}:{k}>{v}</{prefix}:{k}>" for k, v in props.items())
    geom_xml = ""
    if pos is not None:
        geom_xml = (
            f"<{prefix}:geom><gml:Point srsName=\"EPSG:4326\">"
            f"<gml:pos>{pos}</gml:pos></gml:Point></{prefix}:geom>"
        )
    fid_attr = f' gml:id="{fid}"' if fid else ""
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f'<wfs:FeatureCollection xmlns:wfs="http://www.opengis.net/wfs" '
        f'xmlns:gml="{GML_NS}" xmlns:{prefix}="http://example.com/{prefix}">'
        f'<gml:featureMember><{typename}{fid_attr}>{prop_xml}{geom_xml}</{typename}></gml:featureMember>'
        '</wfs:FeatureCollection>'
    )


EMPTY_GML = (
    '<?xml version="1.0" encoding="UTF-8"?>'
    f'<wfs:FeatureCollection xmlns:wfs="http://www.opengis.net/wfs" xmlns:gml="{GML_NS}"/>'
)

SERVICE_EXCEPTION = (
    '<?xml version="1.0" encoding="UTF-8"?>'
    '<ServiceExceptionReport version="1.1.1">'
    '<ServiceException code="LayerNotDefined">Layer mo:missing is not defined</ServiceException>'
    '</ServiceExceptionReport>'
)


def base64_body(xml: str) -> str:
    return base64.b64encode(xml.encode("utf-8")).decode("ascii")


def layer_list_xml(*layers):
    items = "".join(
        f"<Layer><Name>{name}</Name><Title>{title}</Title></Layer>" for name, title in layers
    )
    return f'<?xml version="1.0" encoding="UTF-8"?><zwsResponse><GetLayerList>{items}</GetLayerList></zwsResponse>'
