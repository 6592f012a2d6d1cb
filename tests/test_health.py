"""Health checks against a faked upstream."""

import httpx

from health import HealthStatus, get_detailed_health, get_public_health

from conftest import layer_list_xml


def _upstream(wms_status=200, zws_body=None):
    def handler(request):
        if request.url.path.endswith("/ws"):
            return httpx.Response(wms_status, text="<WMT_MS_Capabilities/>")
        if zws_body is None:
            return httpx.Response(404)
        return httpx.Response(200, text=zws_body)
    return httpx.MockTransport(handler)


class TestPublicHealth:

    def test_healthy(self):
        result = get_public_health(transport=_upstream())
        assert result["status"] == HealthStatus.HEALTHY.value
        assert "timestamp" in result
        assert "checks" not in result

    def test_unhealthy_when_wms_down(self):
        result = get_public_health(transport=_upstream(wms_status=503))
        assert result["status"] == HealthStatus.UNHEALTHY.value


class TestDetailedHealth:

    def test_healthy(self):
        result = get_detailed_health(transport=_upstream(zws_body=layer_list_xml(("a:b", "AB"))))

        assert result["status"] == HealthStatus.HEALTHY.value
        assert result["checks"]["wms"]["status"] == "pass"
        assert result["checks"]["zws_catalog"]["status"] == "pass"
        assert result["checks"]["configuration"]["status"] == "pass"

    def test_degraded_without_catalog(self):
        result = get_detailed_health(transport=_upstream())

        assert result["status"] == HealthStatus.DEGRADED.value
        assert result["checks"]["zws_catalog"]["status"] == "fail"

    def test_unreachable_upstream(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        result = get_detailed_health(transport=httpx.MockTransport(handler))

        assert result["status"] == HealthStatus.UNHEALTHY.value
        assert "ConnectError" in result["checks"]["wms"]["message"]
