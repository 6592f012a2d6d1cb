"""Parsing of GML, GeoJSON, exception reports and ZWS layer lists."""

import json

import pytest

from feature_discovery.exceptions import ParseError, ServiceException
from feature_discovery.parser import (
    ContentKind,
    classify_content,
    has_layer_list_marker,
    parse_feature_json,
    parse_feature_response,
    parse_feature_xml,
    parse_layer_list,
)

from conftest import EMPTY_GML, SERVICE_EXCEPTION, base64_body, gml_feature, layer_list_xml


class TestClassifyContent:

    def test_json_by_content_type(self):
        assert classify_content("{}", "application/json; charset=utf-8") == ContentKind.JSON

    def test_base64_xml(self):
        assert classify_content(base64_body(SERVICE_EXCEPTION), "text/plain") == ContentKind.BASE64_XML

    def test_plain_xml(self):
        assert classify_content(EMPTY_GML, "text/xml") == ContentKind.PLAIN_XML

    def test_signature_without_valid_base64_is_plain(self):
        assert classify_content("PD94bWw!!!", None) == ContentKind.PLAIN_XML


class TestParseFeatureXml:

    def test_point_feature(self):
        feature = parse_feature_xml(gml_feature("mo:vp", "vp.1", {"name": "Pipe 1", "diameter": "200"}))

        assert feature.typename == "mo:vp"
        assert feature.fid == "vp.1"
        assert feature.props["name"] == "Pipe 1"
        assert feature.props["diameter"] == "200"
        assert feature.geometry == (37.5, 55.7)
        assert feature.geojson["type"] == "Feature"
        assert feature.geojson["geometry"] == {"type": "Point", "coordinates": [37.5, 55.7]}
        assert feature.geojson["properties"]["name"] == "Pipe 1"

    def test_prefix_kept_in_typename(self):
        feature = parse_feature_xml(gml_feature("openlayers:teploset", "teploset.7"))
        assert feature.typename == "openlayers:teploset"

    def test_feature_without_geometry(self):
        feature = parse_feature_xml(gml_feature("mo:thermo", "thermo.3", pos=None))
        assert feature.typename == "mo:thermo"
        assert feature.geometry is None
        assert feature.geojson is None

    def test_feature_without_gml_id(self):
        feature = parse_feature_xml(gml_feature("mo:thermo", fid=None))
        assert feature.fid is None

    def test_empty_values_skipped(self):
        feature = parse_feature_xml(gml_feature("mo:vp", props={"name": "", "owner": "City"}, pos=None))
        assert feature.props == {"owner": "City"}

    def test_no_feature_member(self):
        assert parse_feature_xml(EMPTY_GML) is None

    def test_malformed_xml_is_no_feature(self):
        assert parse_feature_xml("<wfs:FeatureCollection><oops") is None

    def test_malformed_service_exception_raises(self):
        with pytest.raises(ServiceException):
            parse_feature_xml("<ServiceExceptionReport><ServiceException>broken")

    def test_service_exception_report(self):
        with pytest.raises(ServiceException) as exc_info:
            parse_feature_xml(SERVICE_EXCEPTION)

        assert exc_info.value.upstream_message == "Layer mo:missing is not defined"
        assert exc_info.value.code == "LayerNotDefined"
        assert str(exc_info.value) == "WMS Error: Layer mo:missing is not defined"

    def test_ows_exception_report(self):
        body = (
            '<?xml version="1.0" encoding="UTF-8"?>'
            '<ows:ExceptionReport xmlns:ows="http://www.opengis.net/ows/1.1" version="2.0.0">'
            '<ows:Exception exceptionCode="InvalidParameterValue">'
            '<ows:ExceptionText>Unknown typeName</ows:ExceptionText>'
            '</ows:Exception></ows:ExceptionReport>'
        )
        with pytest.raises(ServiceException) as exc_info:
            parse_feature_xml(body)
        assert exc_info.value.upstream_message == "Unknown typeName"
        assert exc_info.value.code == "InvalidParameterValue"

    def test_empty_exception_report(self):
        with pytest.raises(ServiceException) as exc_info:
            parse_feature_xml("<ServiceExceptionReport/>")
        assert exc_info.value.upstream_message == "Unknown WMS error"


class TestParseFeatureJson:

    def test_feature_collection(self):
        body = json.dumps({
            "type": "FeatureCollection",
            "features": [{
                "type": "Feature",
                "id": "thermo.12",
                "geometry": {"type": "Point", "coordinates": [37.6, 55.8]},
                "properties": {"name": "Boiler", "power": 12.5, "meta": {"a": 1}, "empty": None},
            }]
        })
        feature = parse_feature_json(body)

        assert feature.typename == "thermo"
        assert feature.fid == "thermo.12"
        assert feature.props["name"] == "Boiler"
        assert feature.props["power"] == "12.5"
        assert feature.props["meta"] == '{"a": 1}'
        assert feature.props["empty"] == ""
        assert feature.geometry == (37.6, 55.8)
        assert feature.geojson["geometry"]["coordinates"] == [37.6, 55.8]

    def test_empty_collection(self):
        assert parse_feature_json('{"type": "FeatureCollection", "features": []}') is None

    def test_feature_without_id(self):
        body = json.dumps({"features": [{"type": "Feature", "properties": {"a": 1}}]})
        assert parse_feature_json(body) is None

    def test_malformed_json(self):
        assert parse_feature_json("{not json") is None

    @pytest.mark.parametrize("coordinates", [[None, None], ["east", "north"], [[37.6], [55.8]]])
    def test_non_numeric_point_keeps_feature(self, coordinates):
        body = json.dumps({"features": [{
            "id": "thermo.12",
            "geometry": {"type": "Point", "coordinates": coordinates},
            "properties": {"name": "Boiler"},
        }]})

        feature = parse_feature_json(body)

        assert feature.fid == "thermo.12"
        assert feature.props["name"] == "Boiler"
        assert feature.geometry is None


class TestParseFeatureResponse:

    def test_dispatch_json(self):
        body = json.dumps({"features": [{"id": "vp.1", "properties": {}}]})
        feature = parse_feature_response(body, "application/json")
        assert feature.fid == "vp.1"

    def test_dispatch_gml(self):
        feature = parse_feature_response(gml_feature("mo:vp", "vp.9"), "application/vnd.ogc.gml")
        assert feature.fid == "vp.9"

    def test_service_exception_with_any_content_type(self):
        with pytest.raises(ServiceException):
            parse_feature_response(SERVICE_EXCEPTION, "application/vnd.ogc.gml")

    def test_base64_service_exception(self):
        with pytest.raises(ServiceException) as exc_info:
            parse_feature_response(base64_body(SERVICE_EXCEPTION), "text/plain")
        assert "mo:missing" in exc_info.value.upstream_message

    def test_base64_feature(self):
        feature = parse_feature_response(base64_body(gml_feature("mo:vp", "vp.5")), "text/plain")
        assert feature.fid == "vp.5"
        assert feature.geometry == (37.5, 55.7)


class TestLayerList:

    def test_marker(self):
        assert has_layer_list_marker(layer_list_xml(("a", "A")))
        assert has_layer_list_marker('<GetLayerList count="2">')
        assert not has_layer_list_marker("<html><body>Not found</body></html>")
        assert not has_layer_list_marker("")

    def test_parse(self):
        layers = parse_layer_list(layer_list_xml(("mo:region", "Регион"), ("mo:vp", "")))

        assert [layer.name for layer in layers] == ["mo:region", "mo:vp"]
        assert layers[0].title == "Регион"
        assert layers[1].label == "mo:vp"

    def test_nameless_layers_dropped(self):
        body = "<GetLayerList><Layer><Title>No name</Title></Layer><Layer><Name>x:y</Name></Layer></GetLayerList>"
        layers = parse_layer_list(body)
        assert [layer.name for layer in layers] == ["x:y"]

    def test_malformed(self):
        with pytest.raises(ParseError):
            parse_layer_list("<GetLayerList><Layer>")
