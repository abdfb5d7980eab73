# ============================================================================
# CLAUDE CONTEXT - NETWORKS MAP SERVICE
# ============================================================================
# STATUS: Service Layer - Feature building and attachment resolution
# PURPOSE: Orchestrate Airtable fetch -> normalization -> GeoJSON
# EXPORTS: NetworksService, AttachmentField, AttachmentNotFound, get_networks_service
# DEPENDENCIES: services.airtable_client, services.url_cache, .normalize, .models
# PATTERNS: Service Layer, Facade Pattern
# ENTRY_POINTS: service = get_networks_service(); service.build_feature_collection(base_url)
# ============================================================================

"""
Networks Map Service - Business Logic Layer

Builds the FeatureCollection served to the map, and resolves individual
attachment slots for the image proxy routes.

Attachment fields come in two flavours:
- real Airtable attachment arrays: the Feature gets proxy URLs
  (``{base}/img/{record_id}/{index}``) because the signed upstream URLs
  expire before the map's cached copy does
- anything else (URL strings, lookups, JSON strings): URLs are extracted
  with collect_photo_urls and embedded directly

Records whose polygon does not parse are left out of the collection.
"""

from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Iterable, List, Optional

from config import AppConfig, get_app_config
from services.airtable_client import AirtableClient, AirtableRecord
from services.url_cache import UrlCache, attachment_cache_key
from util_logger import LoggerFactory, ComponentType

from .models import (
    MAX_ATTACHMENT_SLOTS,
    NetworkFeature,
    NetworkFeatureCollection,
    NetworkProperties,
    pad_slots,
)
from .normalize import (
    collect_photo_urls,
    first_present,
    is_attachment_array,
    normalize_leaders,
    normalize_text_field,
    parse_geometry,
    pick_attachment_url,
)

logger = LoggerFactory.create_logger(ComponentType.SERVICE, "NetworksService")


# ============================================================================
# UPSTREAM FIELD NAMES
# ============================================================================

POLYGON_FIELD = "Polygon"
NAME_FIELD = "Network Name"
LEADERS_FIELD = "Network Leaders Names"
STATUS_FIELD = "Status"
COUNTY_FIELD = "County"
TAGS_FIELD = "Tags"
CHURCH_COUNT_FIELD = "Number of Churches"
UNITY_LEAD_FIELD = "Unity Lead"

# Spellings seen across revisions of the base; tried in this order
CONTACT_EMAIL_FIELDS = ("contact email", "Contact Email", "Contact email")


@dataclass(frozen=True)
class AttachmentField:
    """An attachment column and the proxy route that serves it."""
    field_name: str
    route_segment: str
    property_prefix: str
    label: str


PHOTO = AttachmentField(field_name="Photo", route_segment="img", property_prefix="photo", label="Photo")
IMAGE = AttachmentField(field_name="Image", route_segment="image", property_prefix="image", label="Image")


class AttachmentNotFound(LookupError):
    """No attachment at the index, or the attachment has no usable URL."""


# ============================================================================
# SERVICE
# ============================================================================

class NetworksService:
    """
    Business logic service for the networks map.

    Args:
        client: Airtable client
        table_name: Networks table name
        url_cache: Cache of resolved attachment URLs
        view: Optional Airtable view used for listing
        page_size: Records per list page
    """

    def __init__(
        self,
        client: AirtableClient,
        table_name: str,
        url_cache: UrlCache,
        view: Optional[str] = None,
        page_size: int = 100
    ):
        self.client = client
        self.table_name = table_name
        self.url_cache = url_cache
        self.view = view
        self.page_size = page_size

    @classmethod
    def from_config(cls, config: AppConfig) -> "NetworksService":
        return cls(
            client=AirtableClient.from_config(config),
            table_name=config.networks_table_name,
            url_cache=UrlCache(ttl_seconds=config.image_cache_ttl_seconds),
            view=config.airtable_view_name,
            page_size=config.airtable_page_size
        )

    # ========================================================================
    # FEATURE COLLECTION
    # ========================================================================

    def build_feature_collection(self, base_url: str) -> NetworkFeatureCollection:
        """
        Fetch every network record and build the FeatureCollection.

        Raises:
            AirtableError: If any upstream page fails (no partial result)
        """
        records = self.client.list_records(
            self.table_name,
            view=self.view,
            page_size=self.page_size
        )
        collection = self.build_features(records, base_url)

        dropped = len(records) - len(collection.features)
        logger.info(
            f"Built {len(collection.features)} features from {len(records)} records "
            f"({dropped} without geometry)"
        )
        return collection

    def build_features(self, records: Iterable[AirtableRecord], base_url: str) -> NetworkFeatureCollection:
        """Build features for already fetched records, skipping those without geometry."""
        features = []
        for record in records:
            feature = self.build_feature(record, base_url)
            if feature is not None:
                features.append(feature)
        return NetworkFeatureCollection(features=features)

    def build_feature(self, record: AirtableRecord, base_url: str) -> Optional[NetworkFeature]:
        """
        Build one Feature, or None when the polygon field has no usable geometry.
        """
        fields = record.fields or {}
        geometry = parse_geometry(fields.get(POLYGON_FIELD))
        if geometry is None:
            logger.debug(f"Skipping record {record.id}: no geometry")
            return None

        name = fields.get(NAME_FIELD)
        church_count = fields.get(CHURCH_COUNT_FIELD)

        properties = NetworkProperties(
            id=record.id,
            name=name if name is not None else "",
            leaders=normalize_leaders(fields.get(LEADERS_FIELD)),
            contact_email=normalize_text_field(first_present(fields, CONTACT_EMAIL_FIELDS)),
            status=normalize_text_field(fields.get(STATUS_FIELD)),
            county=normalize_text_field(fields.get(COUNTY_FIELD)),
            tags=normalize_text_field(fields.get(TAGS_FIELD)),
            number_of_churches=church_count if church_count is not None else "",
            unity_lead=normalize_text_field(fields.get(UNITY_LEAD_FIELD)),
            **pad_slots(self.attachment_urls(record, PHOTO, base_url), PHOTO.property_prefix),
            **pad_slots(self.attachment_urls(record, IMAGE, base_url), IMAGE.property_prefix),
        )

        return NetworkFeature(geometry=geometry, properties=properties)

    def attachment_urls(self, record: AirtableRecord, attachment: AttachmentField, base_url: str) -> List[str]:
        """
        Resolve up to six URLs for an attachment field.

        Attachment arrays become proxy URLs; every other shape is flattened.
        """
        value = (record.fields or {}).get(attachment.field_name)

        if is_attachment_array(value):
            base = base_url.rstrip("/")
            return [
                f"{base}/{attachment.route_segment}/{record.id}/{index}"
                for index in range(min(len(value), MAX_ATTACHMENT_SLOTS))
            ]

        return collect_photo_urls(value)[:MAX_ATTACHMENT_SLOTS]

    # ========================================================================
    # IMAGE PROXY
    # ========================================================================

    def resolve_attachment(self, attachment: AttachmentField, record_id: str, index: int) -> str:
        """
        Return a fresh URL for one attachment slot.

        Served from the URL cache while the entry is alive; otherwise the
        record is re-fetched and the result cached with a new TTL.

        Raises:
            AttachmentNotFound: No attachment at index, or no usable URL
            AirtableError: Upstream failure
        """
        cache_key = attachment_cache_key(attachment.field_name, record_id, index)
        cached = self.url_cache.get(cache_key)
        if cached:
            logger.debug(f"URL cache hit: {cache_key}")
            return cached

        record = self.client.get_record(self.table_name, record_id)
        value = record.fields.get(attachment.field_name)
        attachments: List[Any] = value if isinstance(value, list) else []

        item = attachments[index] if index < len(attachments) else None
        # Empty objects and lists still count as present
        if not item and not isinstance(item, (dict, list)):
            raise AttachmentNotFound(f"{attachment.label} not found")

        fresh_url = pick_attachment_url(item)
        if not fresh_url:
            raise AttachmentNotFound(f"{attachment.label} URL missing")

        self.url_cache.put(cache_key, fresh_url)
        logger.debug(f"URL cache store: {cache_key}")
        return fresh_url


@lru_cache(maxsize=1)
def get_networks_service() -> NetworksService:
    """
    Get the process-wide service (one Airtable client, one URL cache).

    Raises:
        ValidationError: If required configuration is missing
    """
    return NetworksService.from_config(get_app_config())
