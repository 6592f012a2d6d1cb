# ============================================================================
# CLAUDE CONTEXT - HEALTH CHECK MODULE
# ============================================================================
# STATUS: Core Infrastructure - Health Monitoring
# PURPOSE: Health checks of the upstream OGC endpoints for APIM integration
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: get_public_health, get_detailed_health, get_app_identity, HealthStatus
# DEPENDENCIES: httpx (sync), config, feature_discovery.config, util_logger
# PATTERNS: Two-tier health checks (public/detailed) for APIM
# ============================================================================

"""
Health Check Module for the feature discovery service

Provides two-tier health monitoring:

1. Public Health (/api/health):
   - Minimal response for external callers
   - Returns only status and timestamp
   - Always returns 200 (status in body indicates health)

2. Detailed Health (/api/health/detailed):
   - WMS/WFS endpoint reachability with latency
   - ZWS layer catalog reachability
   - Discovery configuration summary
   - Returns 503 if unhealthy

The WMS/WFS endpoint is critical: without it no click can be resolved.
The ZWS catalog is not; the layer selector degrades to its fallback layer.

Usage:
    from health import get_public_health, get_detailed_health

    result = get_public_health()
    # {"status": "healthy", "timestamp": "2026-10-19T12:00:00Z"}
"""

import time
import uuid
import httpx
from enum import Enum
from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Optional, Dict, Any

from config import get_upstream_auth
from feature_discovery.config import get_discovery_config
from feature_discovery.parser import has_layer_list_marker
from util_logger import LoggerFactory, ComponentType

# Create module logger
logger = LoggerFactory.create_logger(ComponentType.SERVICE, "HealthService")

APP_NAME = "feature-discovery"
APP_DESCRIPTION = "WMS/WFS click-to-feature discovery service"


# ============================================================================
# Health Status Enum
# ============================================================================

class HealthStatus(str, Enum):
    """Health status values."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"      # Non-critical components failing
    UNHEALTHY = "unhealthy"    # Critical components failing


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class CheckResult:
    """Result of a single health check."""
    status: str              # "pass" or "fail"
    latency_ms: float        # Time taken for check
    message: str             # Human-readable status message
    details: Optional[Dict[str, Any]] = None  # Additional details

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, excluding None values."""
        result = {
            "status": self.status,
            "latency_ms": round(self.latency_ms, 2),
            "message": self.message
        }
        if self.details:
            result["details"] = self.details
        return result


def get_app_identity() -> Dict[str, str]:
    return {"name": APP_NAME, "description": APP_DESCRIPTION}


def _client(timeout_seconds: float, transport: Optional[httpx.BaseTransport]) -> httpx.Client:
    auth = get_upstream_auth()
    return httpx.Client(
        timeout=httpx.Timeout(timeout_seconds),
        follow_redirects=True,
        auth=httpx.BasicAuth(*auth) if auth else None,
        transport=transport
    )


# ============================================================================
# Health Check Functions
# ============================================================================

def check_wms_endpoint(
    timeout_seconds: float = 5.0,
    transport: Optional[httpx.BaseTransport] = None
) -> CheckResult:
    """
    Check the WMS/WFS endpoint with a GetCapabilities request.

    This is a critical check - failure means UNHEALTHY status.

    Args:
        timeout_seconds: Request timeout in seconds
        transport: Optional httpx transport (tests pass httpx.MockTransport)

    Returns:
        CheckResult with reachability and latency
    """
    start_time = time.perf_counter()
    config = get_discovery_config()

    try:
        with _client(timeout_seconds, transport) as client:
            response = client.get(
                config.ws_url,
                params={"SERVICE": "WMS", "VERSION": "1.1.1", "REQUEST": "GetCapabilities"}
            )
        latency_ms = (time.perf_counter() - start_time) * 1000

        if response.status_code >= 400:
            return CheckResult(
                status="fail",
                latency_ms=latency_ms,
                message=f"WMS endpoint returned HTTP {response.status_code}",
                details={"url": config.ws_url, "status_code": response.status_code}
            )

        return CheckResult(
            status="pass",
            latency_ms=latency_ms,
            message="WMS endpoint reachable",
            details={"url": config.ws_url, "status_code": response.status_code}
        )

    except httpx.HTTPError as e:
        latency_ms = (time.perf_counter() - start_time) * 1000
        logger.error(f"WMS endpoint check failed: {e}")

        return CheckResult(
            status="fail",
            latency_ms=latency_ms,
            message=f"WMS endpoint unreachable: {type(e).__name__}",
            details={"url": config.ws_url, "error": str(e)}
        )


def check_zws_catalog(
    timeout_seconds: float = 5.0,
    transport: Optional[httpx.BaseTransport] = None
) -> CheckResult:
    """
    Check the ZWS layer catalog via its REST GetLayerList route.

    Non-critical - failure means DEGRADED status.
    """
    start_time = time.perf_counter()
    config = get_discovery_config()
    url = f"{config.zws_url}/GetLayerList"

    try:
        with _client(timeout_seconds, transport) as client:
            response = client.get(url, headers={"Accept": "text/xml"})
        latency_ms = (time.perf_counter() - start_time) * 1000

        if response.status_code < 400 and has_layer_list_marker(response.text):
            return CheckResult(
                status="pass",
                latency_ms=latency_ms,
                message="ZWS layer list available",
                details={"url": url}
            )

        return CheckResult(
            status="fail",
            latency_ms=latency_ms,
            message="ZWS answered without a layer list; selector uses fallback layer",
            details={"url": url, "status_code": response.status_code}
        )

    except httpx.HTTPError as e:
        latency_ms = (time.perf_counter() - start_time) * 1000
        logger.warning(f"ZWS catalog check failed: {e}")

        return CheckResult(
            status="fail",
            latency_ms=latency_ms,
            message=f"ZWS catalog unreachable: {type(e).__name__}",
            details={"url": url, "error": str(e)}
        )


def check_configuration() -> CheckResult:
    """Summarize the effective discovery configuration."""
    start_time = time.perf_counter()
    config = get_discovery_config()

    return CheckResult(
        status="pass",
        latency_ms=(time.perf_counter() - start_time) * 1000,
        message=f"{len(config.default_layers)} default layers",
        details={
            "default_layers": config.default_layers,
            "known_layers": len(config.known_layers),
            "request_timeout_seconds": config.request_timeout_seconds,
            "enrich_geometry": config.enrich_geometry
        }
    )


# ============================================================================
# Main Entry Points
# ============================================================================

def get_public_health(transport: Optional[httpx.BaseTransport] = None) -> Dict[str, Any]:
    """
    Get minimal health status for public endpoint.

    Returns only status and timestamp - no internal details.

    Returns:
        Dict with status and timestamp only
    """
    start_time = time.perf_counter()

    wms_result = check_wms_endpoint(timeout_seconds=3.0, transport=transport)

    if wms_result.status == "pass":
        status = HealthStatus.HEALTHY
    else:
        status = HealthStatus.UNHEALTHY

    total_duration = (time.perf_counter() - start_time) * 1000

    logger.info("Public health check completed", extra={
        'custom_dimensions': {
            'status': status.value,
            'duration_ms': round(total_duration, 2),
            'check_type': 'public'
        }
    })

    return {
        "status": status.value,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


def get_detailed_health(transport: Optional[httpx.BaseTransport] = None) -> Dict[str, Any]:
    """
    Get detailed health status for APIM probes and operations.

    SECURITY NOTE: Block this endpoint from external access via APIM policy.

    Returns:
        Dict with full health metrics
    """
    start_time = time.perf_counter()
    request_id = str(uuid.uuid4())[:8]

    checks = {}
    critical_failures = []
    non_critical_failures = []

    # Critical: WMS/WFS endpoint
    wms_result = check_wms_endpoint(transport=transport)
    checks["wms"] = wms_result.to_dict()
    if wms_result.status == "fail":
        critical_failures.append("wms")

    # Non-critical: ZWS catalog
    zws_result = check_zws_catalog(transport=transport)
    checks["zws_catalog"] = zws_result.to_dict()
    if zws_result.status == "fail":
        non_critical_failures.append("zws_catalog")

    checks["configuration"] = check_configuration().to_dict()

    if critical_failures:
        status = HealthStatus.UNHEALTHY
    elif non_critical_failures:
        status = HealthStatus.DEGRADED
    else:
        status = HealthStatus.HEALTHY

    total_duration = (time.perf_counter() - start_time) * 1000

    logger.info("Detailed health check completed", extra={
        'custom_dimensions': {
            'status': status.value,
            'duration_ms': round(total_duration, 2),
            'check_type': 'detailed',
            'request_id': request_id,
            'critical_failures': critical_failures,
            'non_critical_failures': non_critical_failures,
            'wms_latency_ms': wms_result.latency_ms
        }
    })

    return {
        "status": status.value,
        "app": APP_NAME,
        "description": APP_DESCRIPTION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "request_id": request_id,
        "checks": checks,
        "total_duration_ms": round(total_duration, 2)
    }
