# ============================================================================
# CLAUDE CONTEXT - AZURE FUNCTIONS ENTRY POINT
# ============================================================================
# STATUS: Core Infrastructure - Function App Entry Point
# PURPOSE: Main entry point for Azure Functions runtime with the networks map API
# EXPORTS: app (FunctionApp instance)
# DEPENDENCIES: azure-functions, networks_api, health
# ============================================================================

"""
Azure Functions Entry Point for the networks map API

Registers the HTTP triggers that serve the Airtable networks table to the
map front-end.

Endpoints (host.json sets an empty route prefix):
    - GET /networks.geojson - FeatureCollection of network polygons
    - GET /img/{record_id}/{index} - Photo attachment redirect
    - GET /image/{record_id}/{index} - Image attachment redirect
    - GET / - Liveness
    - GET /health - Detailed health (config, Airtable, URL cache)

Configuration is validated at startup; missing Airtable settings stop the
host instead of failing individual requests.

Deployment:
    - Local: func start --port $PORT
    - Azure: func azure functionapp publish <app-name> --python --build remote
"""

import json
import logging

import azure.functions as func

from config import validate_configuration
from networks_api import get_networks_triggers

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Fatal on missing AIRTABLE_TOKEN / AIRTABLE_BASE_ID / NETWORKS_TABLE_NAME
_config = validate_configuration()

# Initialize Azure Function App
app = func.FunctionApp()

# ============================================================================
# Networks Map API - 4 Endpoints
# ============================================================================

logger.info("Registering networks map endpoints...")

triggers = {trigger['name']: trigger['handler'] for trigger in get_networks_triggers(config=_config)}


@app.route(route="networks.geojson", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def networks_geojson(req: func.HttpRequest) -> func.HttpResponse:
    return triggers['networks_geojson'](req)


@app.route(route="img/{record_id}/{index}", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def photo_redirect(req: func.HttpRequest) -> func.HttpResponse:
    return triggers['photo_redirect'](req)


@app.route(route="image/{record_id}/{index}", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def image_redirect(req: func.HttpRequest) -> func.HttpResponse:
    return triggers['image_redirect'](req)


@app.route(route="", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def liveness(req: func.HttpRequest) -> func.HttpResponse:
    return triggers['liveness'](req)


logger.info("✅ Networks map API registered successfully (4 endpoints)")

# ============================================================================
# Health Check Endpoint
# ============================================================================

@app.route(route="health", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def health_detailed(req: func.HttpRequest) -> func.HttpResponse:
    """
    Detailed health check endpoint - for probes and operations.

    Returns 503 if unhealthy, 200 otherwise.
    """
    from health import get_detailed_health, HealthStatus

    result = get_detailed_health()
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

logger.info("=" * 60)
logger.info("Function App initialized successfully")
logger.info(f"Airtable table: {_config.networks_table_name}")
logger.info("Available endpoints:")
logger.info("  - GET /networks.geojson - Network polygons (GeoJSON)")
logger.info("  - GET /img/{record_id}/{index} - Photo redirect")
logger.info("  - GET /image/{record_id}/{index} - Image redirect")
logger.info("  - GET / - Liveness")
logger.info("  - GET /health - Detailed health")
logger.info("=" * 60)
