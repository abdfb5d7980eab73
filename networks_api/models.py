# ============================================================================
# CLAUDE CONTEXT - NETWORKS MAP MODELS
# ============================================================================
# STATUS: Standalone Models - GeoJSON response models for the networks map
# PURPOSE: Fixed-width Feature properties and FeatureCollection envelope
# EXPORTS: NetworkProperties, NetworkFeature, NetworkFeatureCollection, MAX_ATTACHMENT_SLOTS
# INTERFACES: Pydantic BaseModel
# DEPENDENCIES: pydantic, typing
# SOURCE: GeoJSON RFC 7946
# PATTERNS: Data Transfer Objects (DTOs)
# ============================================================================

"""
Networks Map Pydantic Models

Every Feature carries the same property keys so the map front-end can bind
popups without existence checks: six photo slots, six image slots, their
counts, and the text properties (empty strings when the data is absent).
"""

from typing import Any, Dict, List, Literal, Sequence

from pydantic import BaseModel, Field

MAX_ATTACHMENT_SLOTS = 6


def pad_slots(urls: Sequence[str], prefix: str) -> Dict[str, Any]:
    """
    Spread up to six URLs over ``<prefix>1..<prefix>6`` plus ``<prefix>_count``.

    Missing slots are empty strings; the count is the number of non-empty slots.
    """
    kept = list(urls)[:MAX_ATTACHMENT_SLOTS]
    slots: Dict[str, Any] = {
        f"{prefix}{i + 1}": (kept[i] if i < len(kept) else "") or ""
        for i in range(MAX_ATTACHMENT_SLOTS)
    }
    slots[f"{prefix}_count"] = sum(1 for url in kept if url)
    return slots


class NetworkProperties(BaseModel):
    """Flat property mapping of one network Feature."""
    id: str = Field(description="Upstream record ID")
    name: Any = Field(default="", description="Network name (passed through)")
    leaders: str = Field(default="", description="Comma joined leader names")
    contact_email: str = ""
    status: str = ""
    county: str = ""
    tags: str = ""
    number_of_churches: Any = ""
    unity_lead: str = ""

    photo1: str = ""
    photo2: str = ""
    photo3: str = ""
    photo4: str = ""
    photo5: str = ""
    photo6: str = ""
    photo_count: int = Field(default=0, ge=0, le=MAX_ATTACHMENT_SLOTS)

    image1: str = ""
    image2: str = ""
    image3: str = ""
    image4: str = ""
    image5: str = ""
    image6: str = ""
    image_count: int = Field(default=0, ge=0, le=MAX_ATTACHMENT_SLOTS)


class NetworkFeature(BaseModel):
    """GeoJSON Feature for one network polygon."""
    type: Literal["Feature"] = "Feature"
    geometry: Dict[str, Any] = Field(description="GeoJSON geometry, passed through")
    properties: NetworkProperties


class NetworkFeatureCollection(BaseModel):
    """GeoJSON FeatureCollection served at /networks.geojson."""
    type: Literal["FeatureCollection"] = "FeatureCollection"
    features: List[NetworkFeature] = Field(default_factory=list)
