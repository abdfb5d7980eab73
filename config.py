# ============================================================================
# CLAUDE CONTEXT - APPLICATION CONFIGURATION
# ============================================================================
# STATUS: Core Infrastructure - Configuration Management
# PURPOSE: Centralized configuration for the Airtable-backed networks map API
# EXPORTS: AppConfig, get_app_config, validate_configuration
# DEPENDENCIES: pydantic-settings
# SOURCE: Environment variables, optional .env file
# PATTERNS: Singleton pattern for config via lru_cache
# ============================================================================

"""
Application Configuration Module

Provides centralized configuration management including:
- Airtable credentials and table selection
- Image proxy cache TTL
- Public base URL override for proxy links

Environment Variables:
    Required:
    - AIRTABLE_TOKEN: Personal access token (bearer auth)
    - AIRTABLE_BASE_ID: Base identifier (appXXXXXXXXXXXXXX)
    - NETWORKS_TABLE_NAME: Table holding the network polygons

    Optional:
    - AIRTABLE_VIEW_NAME: Named view used to filter the listing
    - PORT: Local listen port (default: 3000)
    - AIRTABLE_API_URL: API root (default: https://api.airtable.com/v0)
    - AIRTABLE_PAGE_SIZE: Records per list page (default: 100)
    - AIRTABLE_TIMEOUT_SECONDS: Upstream request timeout (default: 30)
    - IMAGE_CACHE_TTL_SECONDS: Resolved attachment URL lifetime (default: 480)
    - PUBLIC_BASE_URL: Base URL for proxy links (default: auto-detect)
    - CORS_ALLOW_ORIGIN: Access-Control-Allow-Origin value (default: *)

A missing required value is fatal at startup (see validate_configuration).

Usage:
    from config import get_app_config

    config = get_app_config()
    client = AirtableClient.from_config(config)
"""

import logging
from typing import Optional
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# ============================================================================
# Application Configuration
# ============================================================================

class AppConfig(BaseSettings):
    """
    Application-wide configuration loaded from environment variables.

    Attributes:
        airtable_token: Airtable personal access token
        airtable_base_id: Airtable base identifier
        networks_table_name: Table holding network records
        airtable_view_name: Optional view filter for listing
        port: Local listen port (also used for the localhost base URL fallback)
        image_cache_ttl_seconds: TTL for resolved attachment URLs
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Airtable
    airtable_token: str = Field(..., description="Airtable personal access token")
    airtable_base_id: str = Field(..., description="Airtable base ID")
    networks_table_name: str = Field(..., description="Networks table name")
    airtable_view_name: Optional[str] = Field(default=None, description="Optional view name")
    airtable_api_url: str = Field(
        default="https://api.airtable.com/v0",
        description="Airtable REST API root"
    )
    airtable_page_size: int = Field(default=100, ge=1, le=100, description="Records per page")
    airtable_timeout_seconds: float = Field(default=30.0, gt=0, description="Upstream timeout")

    # HTTP surface
    port: int = Field(default=3000, description="Local listen port")
    public_base_url: Optional[str] = Field(
        default=None,
        description="Base URL for proxy links (auto-detected if not set)"
    )
    cors_allow_origin: str = Field(default="*", description="Access-Control-Allow-Origin")

    # Image proxy
    image_cache_ttl_seconds: int = Field(
        default=8 * 60,
        ge=1,
        description="Lifetime of a resolved attachment URL"
    )

    @field_validator("airtable_token", "airtable_base_id", "networks_table_name")
    @classmethod
    def validate_required(cls, v: str, info) -> str:
        """Ensure required Airtable fields are not empty."""
        if not v or not v.strip():
            raise ValueError(
                f"{info.field_name} is required - set {info.field_name.upper()} environment variable"
            )
        return v.strip()

    @field_validator("airtable_view_name", "public_base_url")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        """Treat empty optional values as unset."""
        if v is None or not v.strip():
            return None
        return v.strip()


@lru_cache(maxsize=1)
def get_app_config() -> AppConfig:
    """
    Get singleton application configuration instance.

    Returns:
        AppConfig: Validated configuration object

    Raises:
        ValidationError: If required environment variables are missing
    """
    return AppConfig()


# ============================================================================
# Configuration Validation
# ============================================================================

def validate_configuration() -> AppConfig:
    """
    Validate configuration on application startup.

    Returns:
        AppConfig: The validated configuration

    Raises:
        ValidationError: If configuration validation fails
    """
    try:
        config = get_app_config()
        logger.info("Configuration validation:")
        logger.info(f"  Airtable Base: {config.airtable_base_id}")
        logger.info(f"  Networks Table: {config.networks_table_name}")
        logger.info(f"  View: {config.airtable_view_name or '(none)'}")
        logger.info(f"  Image cache TTL: {config.image_cache_ttl_seconds}s")
        return config

    except Exception as e:
        logger.error(f"❌ Configuration validation failed: {e}")
        raise


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    validate_configuration()
