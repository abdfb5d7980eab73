# ============================================================================
# CLAUDE CONTEXT - NETWORKS MAP TRIGGERS
# ============================================================================
# STATUS: Standalone HTTP Triggers - networks map endpoints
# PURPOSE: Azure Functions HTTP handlers for the GeoJSON feed and image proxies
# EXPORTS: get_networks_triggers, NetworksGeoJSONTrigger, AttachmentRedirectTrigger, LivenessTrigger
# INTERFACES: Azure Functions HttpRequest/HttpResponse
# DEPENDENCIES: azure.functions, json, .service
# SOURCE: HTTP requests from the map front-end
# PATTERNS: Trigger Pattern, Factory Pattern (get_networks_triggers)
# ============================================================================

"""
Networks Map HTTP Triggers - Azure Functions Handlers

Endpoints:
- GET /networks.geojson - FeatureCollection of every network with a polygon
- GET /img/{record_id}/{index} - 302 to a fresh URL of the Photo attachment
- GET /image/{record_id}/{index} - 302 to a fresh URL of the Image attachment
- GET / - Liveness ("OK")

Integration:
    In function_app.py:

    from networks_api import get_networks_triggers

    for trigger in get_networks_triggers():
        app.route(
            route=trigger['route'],
            methods=trigger['methods'],
            auth_level=func.AuthLevel.ANONYMOUS
        )(trigger['handler'])
"""

import azure.functions as func
import json
import re
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from config import AppConfig, get_app_config
from util_logger import LoggerFactory, ComponentType, LogContext

from .service import (
    IMAGE,
    PHOTO,
    AttachmentField,
    AttachmentNotFound,
    NetworksService,
    get_networks_service,
)

logger = LoggerFactory.create_logger(ComponentType.TRIGGER, "NetworksTriggers")

PUBLIC_CACHE_CONTROL = "public, max-age=300"
INDEX_PATTERN = re.compile(r"[0-9]+")


# ============================================================================
# TRIGGER REGISTRY FUNCTION
# ============================================================================

def get_networks_triggers(
    service: Optional[NetworksService] = None,
    config: Optional[AppConfig] = None
) -> List[Dict[str, Any]]:
    """
    Get list of networks map trigger configurations for function_app.py.

    Args:
        service: Optional service override (defaults to the process-wide one)
        config: Optional configuration override

    Returns:
        List of dicts with keys:
        - name: Unique Azure function name
        - route: URL route pattern
        - methods: List of HTTP methods
        - handler: Callable trigger handler
    """
    return [
        {
            'name': 'networks_geojson',
            'route': 'networks.geojson',
            'methods': ['GET'],
            'handler': NetworksGeoJSONTrigger(service, config).handle
        },
        {
            'name': 'photo_redirect',
            'route': 'img/{record_id}/{index}',
            'methods': ['GET'],
            'handler': AttachmentRedirectTrigger(PHOTO, service, config).handle
        },
        {
            'name': 'image_redirect',
            'route': 'image/{record_id}/{index}',
            'methods': ['GET'],
            'handler': AttachmentRedirectTrigger(IMAGE, service, config).handle
        },
        {
            'name': 'liveness',
            'route': '',
            'methods': ['GET'],
            'handler': LivenessTrigger().handle
        },
    ]


# ============================================================================
# BASE TRIGGER CLASS
# ============================================================================

class BaseNetworksTrigger:
    """
    Base class for networks map triggers.

    Provides common functionality:
    - Lazy service lookup (configuration is read on first request)
    - Base URL extraction from request
    - JSON / redirect response formatting
    """

    def __init__(
        self,
        service: Optional[NetworksService] = None,
        config: Optional[AppConfig] = None
    ):
        self._service = service
        self._config = config

    @property
    def config(self) -> AppConfig:
        if self._config is None:
            self._config = get_app_config()
        return self._config

    @property
    def service(self) -> NetworksService:
        if self._service is None:
            self._service = get_networks_service()
        return self._service

    def _cors_headers(self) -> Dict[str, str]:
        return {"Access-Control-Allow-Origin": self.config.cors_allow_origin}

    def _get_base_url(self, req: func.HttpRequest) -> str:
        """
        Extract base URL for proxy links.

        Order: PUBLIC_BASE_URL, X-Forwarded-* headers, request URL,
        then http://localhost:<PORT>.
        """
        config = self.config

        if config.public_base_url:
            return config.public_base_url.rstrip("/")

        parsed = urlparse(req.url or "")
        proto = req.headers.get("x-forwarded-proto") or parsed.scheme or "https"
        host = req.headers.get("x-forwarded-host") or req.headers.get("host") or parsed.netloc
        if host:
            # X-Forwarded-Proto may carry a list ("https,http")
            return f"{proto.split(',')[0].strip()}://{host.split(',')[0].strip()}"

        return f"http://localhost:{config.port}"

    def _json_response(
        self,
        data: Any,
        status_code: int = 200,
        content_type: str = "application/json",
        headers: Optional[Dict[str, str]] = None
    ) -> func.HttpResponse:
        """
        Create JSON HTTP response.

        Args:
            data: Data to serialize (dict or Pydantic model)
            status_code: HTTP status code
            content_type: Response content type
            headers: Extra response headers

        Returns:
            Azure Functions HttpResponse
        """
        if hasattr(data, 'model_dump'):
            data = data.model_dump(mode='json')

        return func.HttpResponse(
            body=json.dumps(data),
            status_code=status_code,
            mimetype=content_type,
            headers=headers
        )

    def _error_response(self, message: str, status_code: int = 400) -> func.HttpResponse:
        """Create JSON error response."""
        return self._json_response({"error": message}, status_code=status_code)

    def _redirect_response(self, location: str) -> func.HttpResponse:
        return func.HttpResponse(
            status_code=302,
            headers={
                "Location": location,
                "Cache-Control": PUBLIC_CACHE_CONTROL
            }
        )


# ============================================================================
# ENDPOINT TRIGGERS
# ============================================================================

class NetworksGeoJSONTrigger(BaseNetworksTrigger):
    """
    FeatureCollection trigger (main endpoint).

    Endpoint: GET /networks.geojson

    Either the whole collection or a single 500 error; never a partial one.
    """

    def handle(self, req: func.HttpRequest) -> func.HttpResponse:
        try:
            base_url = self._get_base_url(req)
            collection = self.service.build_feature_collection(base_url)

            logger.info(f"Networks feed served ({len(collection.features)} features)")

            return self._json_response(
                collection,
                content_type="application/geo+json",
                headers={"Cache-Control": PUBLIC_CACHE_CONTROL, **self._cors_headers()}
            )

        except Exception as e:
            logger.error(f"Error building networks feed: {e}", exc_info=True)
            return self._error_response(str(e), status_code=500)


class AttachmentRedirectTrigger(BaseNetworksTrigger):
    """
    Image proxy trigger for one attachment field.

    Endpoints:
        GET /img/{record_id}/{index}    (Photo)
        GET /image/{record_id}/{index}  (Image)

    Responses: 302 to the resolved URL, 400 bad index, 404 missing
    attachment, 500 upstream failure.
    """

    def __init__(
        self,
        attachment: AttachmentField,
        service: Optional[NetworksService] = None,
        config: Optional[AppConfig] = None
    ):
        super().__init__(service, config)
        self.attachment = attachment

    @staticmethod
    def parse_index(raw: Optional[str]) -> Optional[int]:
        """Parse a plain ASCII digit string into an index, or None when invalid."""
        if raw is None or not INDEX_PATTERN.fullmatch(raw):
            return None
        return int(raw)

    def handle(self, req: func.HttpRequest) -> func.HttpResponse:
        record_id = req.route_params.get('record_id')
        index = self.parse_index(req.route_params.get('index'))

        if not record_id or index is None:
            return self._error_response("Bad index", status_code=400)

        log_context = LogContext(
            request_id=req.headers.get('x-request-id'),
            route=f"{self.attachment.route_segment}/{{record_id}}/{{index}}",
            record_id=record_id,
            field_name=self.attachment.field_name
        )
        log_extra = {'custom_dimensions': log_context.to_dict()}

        try:
            url = self.service.resolve_attachment(self.attachment, record_id, index)
            return self._redirect_response(url)

        except AttachmentNotFound as e:
            logger.warning(f"{self.attachment.label} proxy miss for {record_id}[{index}]: {e}", extra=log_extra)
            return self._error_response(str(e), status_code=404)
        except Exception as e:
            logger.error(
                f"{self.attachment.label} proxy error for {record_id}[{index}]: {e}",
                exc_info=True,
                extra=log_extra
            )
            return self._error_response("Image proxy error", status_code=500)


class LivenessTrigger(BaseNetworksTrigger):
    """
    Liveness trigger.

    Endpoint: GET /

    Static - no upstream call.
    """

    def handle(self, req: func.HttpRequest) -> func.HttpResponse:
        return func.HttpResponse("OK", status_code=200, mimetype="text/plain")
