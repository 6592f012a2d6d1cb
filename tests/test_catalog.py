"""ZWS layer catalog client with its three transport strategies."""

import httpx

from feature_discovery.catalog import LayerCatalogClient

from conftest import ZWS_URL, layer_list_xml, mock_transport, run


def _strategy_of(request: httpx.Request) -> str:
    if request.method == "POST":
        return "xml_post"
    if request.url.path.endswith("/GetLayerList"):
        return "rest"
    return "query_param"


def _fetch(handler, config):
    async def scenario():
        client = LayerCatalogClient(config, transport=mock_transport(handler, config))
        try:
            return await client.fetch_layers()
        finally:
            await client.transport.close()
    return run(scenario())


class TestFetchLayers:

    def test_rest_short_circuits(self, discovery_config):
        calls = []

        def handler(request):
            calls.append(_strategy_of(request))
            return httpx.Response(200, text=layer_list_xml(("mo:region", "Регион")))

        layers = _fetch(handler, discovery_config)

        assert calls == ["rest"]
        assert [(layer.name, layer.title) for layer in layers] == [("mo:region", "Регион")]

    def test_falls_through_to_xml_post(self, discovery_config):
        calls = []

        def handler(request):
            strategy = _strategy_of(request)
            calls.append(strategy)
            if strategy == "rest":
                return httpx.Response(404, text="Not Found")
            assert request.headers["SOAPAction"] == "GetLayerList"
            assert b"<GetLayerList/>" in request.content
            return httpx.Response(200, text=layer_list_xml(("mo:vp", "Водопроводная сеть")))

        layers = _fetch(handler, discovery_config)

        assert calls == ["rest", "xml_post"]
        assert layers[0].name == "mo:vp"

    def test_answer_without_marker_tries_next(self, discovery_config):
        calls = []

        def handler(request):
            strategy = _strategy_of(request)
            calls.append(strategy)
            if strategy == "query_param":
                assert request.url.params["Action"] == "GetLayerList"
                return httpx.Response(200, text=layer_list_xml(("a:b", "AB")))
            return httpx.Response(200, text="<html>login</html>")

        layers = _fetch(handler, discovery_config)

        assert calls == ["rest", "xml_post", "query_param"]
        assert layers[0].name == "a:b"

    def test_all_strategies_fail_returns_single_fallback(self, discovery_config):
        def handler(request):
            if _strategy_of(request) == "rest":
                raise httpx.ConnectError("connection refused", request=request)
            if _strategy_of(request) == "xml_post":
                return httpx.Response(500, text="boom")
            return httpx.Response(200, text="<GetLayerList><Layer>")

        layers = _fetch(handler, discovery_config)

        assert len(layers) == 1
        assert layers[0].name == "example:demo"
        assert layers[0].title == "example:demo"

    def test_empty_list_is_not_success(self, discovery_config):
        def handler(request):
            return httpx.Response(200, text=layer_list_xml())

        layers = _fetch(handler, discovery_config)
        assert [layer.name for layer in layers] == ["example:demo"]

    def test_fallback_title_configurable(self, discovery_config):
        config = discovery_config.model_copy(update={"fallback_layer_title": "Демо слой"})

        def handler(request):
            return httpx.Response(503)

        layers = _fetch(handler, config)
        assert layers[0].title == "Демо слой"
        assert layers[0].label == "Демо слой"

    def test_requests_target_zws(self, discovery_config):
        urls = []

        def handler(request):
            urls.append(str(request.url))
            return httpx.Response(503)

        _fetch(handler, discovery_config)
        assert urls == [
            f"{ZWS_URL}/GetLayerList",
            ZWS_URL,
            f"{ZWS_URL}?Action=GetLayerList",
        ]
