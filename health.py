# ============================================================================
# CLAUDE CONTEXT - HEALTH CHECK MODULE
# ============================================================================
# STATUS: Core Infrastructure - Health Monitoring
# PURPOSE: Detailed health check for operations (upstream, config, cache)
# EXPORTS: get_detailed_health, HealthStatus, CheckResult
# DEPENDENCIES: config, services.airtable_client, util_logger
# PATTERNS: Per-check results rolled up into one status
# ============================================================================

"""
Health Check Module

Liveness lives at GET / (static "OK"). This module backs GET /health, which
reports:
- configuration status (required Airtable settings present)
- Airtable reachability with latency (one record list call)
- image proxy URL cache statistics

Returns UNHEALTHY when configuration or the upstream check fails.

Usage:
    from health import get_detailed_health

    result = get_detailed_health(service)
"""

import time
from enum import Enum
from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Optional, Dict, Any

from util_logger import LoggerFactory, ComponentType

# Create module logger
logger = LoggerFactory.create_logger(ComponentType.SERVICE, "HealthService")


# ============================================================================
# Health Status Enum
# ============================================================================

class HealthStatus(str, Enum):
    """Health status values."""
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class CheckResult:
    """Result of a single health check."""
    status: str              # "pass" or "fail"
    latency_ms: float        # Time taken for check
    message: str             # Human-readable status message
    details: Optional[Dict[str, Any]] = None

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


# ============================================================================
# Health Check Functions
# ============================================================================

def check_configuration() -> CheckResult:
    """Check that the required Airtable settings load and validate."""
    start_time = time.perf_counter()

    try:
        from config import get_app_config
        config = get_app_config()
        latency_ms = (time.perf_counter() - start_time) * 1000
        return CheckResult(
            status="pass",
            latency_ms=latency_ms,
            message="Configuration loaded",
            details={
                "base_id": config.airtable_base_id,
                "table": config.networks_table_name,
                "view": config.airtable_view_name
            }
        )

    except Exception as e:
        latency_ms = (time.perf_counter() - start_time) * 1000
        logger.error(f"Configuration check failed: {e}")
        return CheckResult(
            status="fail",
            latency_ms=latency_ms,
            message=f"Configuration invalid: {type(e).__name__}",
            details={"error": str(e)}
        )


def check_airtable_connectivity(service) -> CheckResult:
    """
    Check Airtable reachability with a single one-record page.

    Args:
        service: NetworksService whose client and table are probed
    """
    start_time = time.perf_counter()

    try:
        records = service.client.iter_records(service.table_name, view=service.view, page_size=1)
        next(records, None)
        records.close()

        latency_ms = (time.perf_counter() - start_time) * 1000
        return CheckResult(
            status="pass",
            latency_ms=latency_ms,
            message="Airtable reachable",
            details={"table": service.table_name}
        )

    except Exception as e:
        latency_ms = (time.perf_counter() - start_time) * 1000
        logger.error(f"Airtable connectivity check failed: {e}")
        return CheckResult(
            status="fail",
            latency_ms=latency_ms,
            message=f"Airtable request failed: {type(e).__name__}",
            details={"error": str(e)}
        )


def check_url_cache(service) -> CheckResult:
    """Report image proxy URL cache statistics (informational)."""
    start_time = time.perf_counter()
    stats = service.url_cache.stats()
    latency_ms = (time.perf_counter() - start_time) * 1000
    return CheckResult(
        status="pass",
        latency_ms=latency_ms,
        message=f"{stats['valid_entries']} cached attachment URLs",
        details=stats
    )


# ============================================================================
# Roll-up
# ============================================================================

def get_detailed_health(service=None) -> Dict[str, Any]:
    """
    Run every check and roll the results up.

    Args:
        service: Optional NetworksService (defaults to the process-wide one)

    Returns:
        Dict with status, timestamp and per-check results
    """
    checks: Dict[str, CheckResult] = {"configuration": check_configuration()}

    if checks["configuration"].status == "pass":
        if service is None:
            from networks_api import get_networks_service
            service = get_networks_service()
        checks["airtable"] = check_airtable_connectivity(service)
        checks["url_cache"] = check_url_cache(service)

    failed = [name for name, result in checks.items() if result.status == "fail"]
    status = HealthStatus.UNHEALTHY if failed else HealthStatus.HEALTHY

    if failed:
        logger.warning(f"Health check failed: {', '.join(failed)}")

    return {
        "status": status.value,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": {name: result.to_dict() for name, result in checks.items()}
    }
