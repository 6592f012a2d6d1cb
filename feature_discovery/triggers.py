# ============================================================================
# CLAUDE CONTEXT - FEATURE DISCOVERY TRIGGERS
# ============================================================================
# STATUS: Trigger Layer - HTTP handlers for click-to-feature discovery
# PURPOSE: Azure Functions HTTP triggers for identify and layer catalog endpoints
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: get_discovery_triggers (returns list of trigger configurations)
# INTERFACES: Azure Functions HttpRequest/HttpResponse
# PYDANTIC_MODELS: IdentifyRequest (for validation)
# DEPENDENCIES: azure.functions, json, pydantic, .coordinator, .catalog
# PATTERNS: Trigger Pattern, Factory Pattern (get_discovery_triggers)
# ENTRY_POINTS: Function App route registration via get_discovery_triggers()
# ============================================================================

"""
Feature Discovery HTTP Triggers (ASYNC VERSION).

Endpoints:
- POST /api/discovery/identify - Resolve a map click to a feature
- GET /api/discovery/layers - ZWS layer list (never empty)
- GET /api/discovery/known-layers - Configured WMS layer catalog

Each identify request gets its own DiscoveryCoordinator and upstream
transport. The HTTP caller is the UI collaborator: it holds the result and
decides what to show; a later request from the same map simply replaces
what it shows.

Integration:
    In function_app.py:

    from feature_discovery import get_discovery_triggers

    for trigger in get_discovery_triggers():
        ...
"""

import azure.functions as func
import json
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from util_logger import LoggerFactory, ComponentType, log_exceptions

from .catalog import LayerCatalogClient
from .config import DiscoveryConfig, get_discovery_config
from .coordinator import DiscoveryCoordinator
from .models import DiscoveryStatus, IdentifyRequest
from .transport import OGCTransport

logger = LoggerFactory.create_logger(ComponentType.TRIGGER, "DiscoveryTriggers")

ERROR_STATUSES = frozenset({DiscoveryStatus.SERVICE_ERROR, DiscoveryStatus.TRANSPORT_ERROR})


# ============================================================================
# TRIGGER REGISTRY FUNCTION
# ============================================================================

def get_discovery_triggers() -> List[Dict[str, Any]]:
    """
    Get list of feature discovery trigger configurations for function_app.py.

    Returns:
        List of dicts with keys:
        - route: URL route pattern
        - methods: List of HTTP methods
        - handler: Async trigger handler
    """
    return [
        {
            'route': 'discovery/identify',
            'methods': ['POST'],
            'handler': IdentifyTrigger().handle
        },
        {
            'route': 'discovery/layers',
            'methods': ['GET'],
            'handler': LayerListTrigger().handle
        },
        {
            'route': 'discovery/known-layers',
            'methods': ['GET'],
            'handler': KnownLayersTrigger().handle
        },
    ]


# ============================================================================
# BASE TRIGGER CLASS
# ============================================================================

class BaseDiscoveryTrigger:
    """
    Base class for feature discovery triggers.

    Args:
        config: Discovery configuration (singleton if not provided)
        http_transport: Optional httpx transport handed to every upstream
            client (tests pass httpx.MockTransport)
    """

    def __init__(
        self,
        config: Optional[DiscoveryConfig] = None,
        http_transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self._config = config
        self._http_transport = http_transport

    @property
    def config(self) -> DiscoveryConfig:
        # Resolved lazily so registering routes does not read the environment
        return self._config or get_discovery_config()

    def _open_transport(self) -> OGCTransport:
        return OGCTransport(self.config, transport=self._http_transport)

    def _json_response(self, data: Any, status_code: int = 200) -> func.HttpResponse:
        """Create JSON response; Pydantic models are dumped without None fields."""
        if hasattr(data, 'model_dump'):
            data = data.model_dump(mode='json', exclude_none=True)

        return func.HttpResponse(
            body=json.dumps(data, indent=2, ensure_ascii=False),
            status_code=status_code,
            mimetype="application/json"
        )

    def _error_response(
        self,
        message: str,
        status_code: int = 400,
        error_type: str = "BadRequest"
    ) -> func.HttpResponse:
        """Create JSON error response."""
        return func.HttpResponse(
            body=json.dumps({"error": message, "error_type": error_type}),
            status_code=status_code,
            mimetype="application/json"
        )


# ============================================================================
# ENDPOINT TRIGGERS
# ============================================================================

class IdentifyTrigger(BaseDiscoveryTrigger):
    """
    Click identification trigger.

    Endpoint: POST /api/discovery/identify

    Body:
        coordinate: [x, y] in `crs`
        crs: "EPSG:3857" (default) or "EPSG:4326"
        view: {"width": px, "height": px, "bbox": [minx, miny, maxx, maxy]}
        layers: candidate layers (optional, defaults to DISCOVERY_DEFAULT_LAYERS)

    Returns:
        200 with the outcome for found / not_found
        502 with the outcome when the upstream reported errors only
        400 for an invalid body
    """

    async def handle(self, req: func.HttpRequest) -> func.HttpResponse:
        try:
            body = req.get_json()
        except ValueError:
            return self._error_response("Request body must be JSON")

        try:
            request = IdentifyRequest.model_validate(body)
            click = request.to_click(self.config.default_layers)
        except ValidationError as e:
            return self._error_response(
                f"Invalid identify request: {e.errors(include_url=False)}",
                error_type="ValidationError"
            )
        except ValueError as e:
            return self._error_response(str(e))

        transport = self._open_transport()
        coordinator = DiscoveryCoordinator(self.config, transport=transport)
        try:
            outcome = await coordinator.identify(click)
        except Exception as e:
            logger.exception(f"Error resolving click: {e}")
            return self._error_response(
                f"Internal server error: {str(e)}",
                status_code=500,
                error_type="InternalServerError"
            )
        finally:
            await transport.close()

        logger.info(
            f"Identify {click.coordinate} ({click.crs.value}) on {len(click.layers)} layers: {outcome.status.value}"
        )
        status_code = 502 if outcome.status in ERROR_STATUSES else 200
        return self._json_response(outcome, status_code=status_code)


class LayerListTrigger(BaseDiscoveryTrigger):
    """
    ZWS layer list trigger.

    Endpoint: GET /api/discovery/layers

    Always 200: the catalog client degrades to the fallback layer.
    """

    @log_exceptions(ComponentType.TRIGGER, "LayerListTrigger")
    async def handle(self, req: func.HttpRequest) -> func.HttpResponse:
        transport = self._open_transport()
        client = LayerCatalogClient(self.config, transport=transport)
        try:
            layers = await client.fetch_layers()
        finally:
            await transport.close()

        return self._json_response({
            "layers": [
                {"name": layer.name, "title": layer.title, "label": layer.label}
                for layer in layers
            ],
            "count": len(layers)
        })


class KnownLayersTrigger(BaseDiscoveryTrigger):
    """
    Configured WMS layer catalog for the layer selector.

    Endpoint: GET /api/discovery/known-layers
    """

    @log_exceptions(ComponentType.TRIGGER, "KnownLayersTrigger")
    async def handle(self, req: func.HttpRequest) -> func.HttpResponse:
        config = self.config
        return self._json_response({
            "layers": [
                {"name": name, "title": title}
                for name, title in config.known_layers.items()
            ],
            "default_layers": list(config.default_layers)
        })
