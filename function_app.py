# ============================================================================
# CLAUDE CONTEXT - AZURE FUNCTIONS ENTRY POINT
# ============================================================================
# STATUS: Core Infrastructure - Function App Entry Point
# PURPOSE: Main entry point for Azure Functions runtime with the feature discovery API
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: app (FunctionApp instance)
# DEPENDENCIES: azure-functions, feature_discovery, health
# ============================================================================

"""
Azure Functions Entry Point for the feature discovery service

Registers the HTTP triggers:
    - Feature discovery: 3 endpoints
        - POST /api/discovery/identify - Resolve a map click to a feature
        - GET /api/discovery/layers - ZWS layer list
        - GET /api/discovery/known-layers - Configured WMS layers
    - Health checks: 2 endpoints
        - /api/health - Public (minimal response for external callers)
        - /api/health/detailed - Internal (full checks for APIM probes)

Deployment:
    - Local: func start
    - Azure: func azure functionapp publish <app-name> --python --build remote
"""

import azure.functions as func
import json
import logging

from config import validate_configuration

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Initialize Azure Function App
app = func.FunctionApp()

# ============================================================================
# Feature Discovery API - 3 Endpoints
# ============================================================================

try:
    from feature_discovery import get_discovery_triggers

    logger.info("Registering feature discovery endpoints...")

    discovery_triggers = get_discovery_triggers()

    # Click identification
    @app.route(route="discovery/identify", methods=["POST"], auth_level=func.AuthLevel.ANONYMOUS)
    async def discovery_identify(req: func.HttpRequest) -> func.HttpResponse:
        return await discovery_triggers[0]['handler'](req)

    # ZWS layer list
    @app.route(route="discovery/layers", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
    async def discovery_layers(req: func.HttpRequest) -> func.HttpResponse:
        return await discovery_triggers[1]['handler'](req)

    # Configured WMS layers
    @app.route(route="discovery/known-layers", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
    async def discovery_known_layers(req: func.HttpRequest) -> func.HttpResponse:
        return await discovery_triggers[2]['handler'](req)

    logger.info("✅ Feature discovery API registered successfully (3 endpoints)")

except ImportError as e:
    logger.warning(f"⚠️ Feature discovery module not available: {e}")
    logger.warning("Feature discovery API will not be available")

# ============================================================================
# Health Check Endpoints - 2 Endpoints (Public + Detailed)
# ============================================================================

@app.route(route="health", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def health_check(req: func.HttpRequest) -> func.HttpResponse:
    """
    Public health check endpoint - minimal response for external callers.

    Always returns 200 - status in body indicates health.

    Returns:
        JSON: {"status": "healthy|unhealthy", "timestamp": "..."}
    """
    from health import get_public_health

    result = get_public_health()

    return func.HttpResponse(
        json.dumps(result, default=str),
        mimetype="application/json",
        status_code=200,
        headers={"Cache-Control": "no-cache, no-store, must-revalidate"}
    )


@app.route(route="health/detailed", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def health_detailed(req: func.HttpRequest) -> func.HttpResponse:
    """
    Detailed health check endpoint - for APIM probes and operations.

    Returns 503 if unhealthy, 200 otherwise.

    SECURITY: Block this endpoint from external access via APIM policy.
    """
    from health import get_detailed_health, HealthStatus

    result = get_detailed_health()

    # Return 503 if unhealthy, 200 otherwise (healthy or degraded)
    status_code = 503 if result["status"] == HealthStatus.UNHEALTHY.value else 200

    return func.HttpResponse(
        json.dumps(result, default=str, indent=2),
        mimetype="application/json",
        status_code=status_code,
        headers={"Cache-Control": "no-cache, no-store, must-revalidate"}
    )

# ============================================================================
# Application Startup
# ============================================================================

from health import get_app_identity
_app_identity = get_app_identity()

validate_configuration()

logger.info("="*60)
logger.info(f"{_app_identity['name']} - {_app_identity['description']}")
logger.info("="*60)
logger.info("Function App initialized successfully")
logger.info("Available endpoints:")
logger.info("  - GET /api/health - Public health check (minimal)")
logger.info("  - GET /api/health/detailed - Detailed health (APIM only)")
logger.info("")
logger.info("Feature discovery API (3 endpoints):")
logger.info("  - POST /api/discovery/identify - Resolve a map click")
logger.info("  - GET /api/discovery/layers - ZWS layer list")
logger.info("  - GET /api/discovery/known-layers - Configured WMS layers")
logger.info("="*60)
