# ============================================================================
# CLAUDE CONTEXT - NETWORKS MAP API MODULE
# ============================================================================
# STATUS: Standalone Module - Airtable networks -> GeoJSON
# PURPOSE: GeoJSON feed of network polygons plus attachment image proxies
# EXPORTS: NetworksService, get_networks_service, get_networks_triggers
# DEPENDENCIES: azure-functions, pydantic, httpx (via services.airtable_client)
# ENTRY_POINTS: from networks_api import get_networks_triggers
# ============================================================================

"""
Networks Map API

Serves the Airtable networks table as a GeoJSON FeatureCollection for the
map front-end, and proxies attachment images so the map never embeds
signed URLs that expire.

Architecture:
    networks_api/
    ├── normalize.py   # Best-effort field normalization (pure functions)
    ├── models.py      # Pydantic models (GeoJSON responses)
    ├── service.py     # Feature building, attachment resolution
    └── triggers.py    # Azure Functions HTTP handlers
"""

from .service import NetworksService, get_networks_service
from .triggers import get_networks_triggers

__version__ = "1.0.0"
__all__ = [
    "NetworksService",
    "get_networks_service",
    "get_networks_triggers",
]
