"""Tests for the detailed health check."""

from health import HealthStatus, get_detailed_health
from networks_api.service import NetworksService
from tests.conftest import FakeAirtable


def test_healthy(airtable_env, fake_airtable: FakeAirtable, service: NetworksService):
    fake_airtable.add("recAAAAAAAAAAAAAA", Polygon="{}")
    service.url_cache.put("Photo:recAAAAAAAAAAAAAA:0", "https://a.com/x.png")

    result = get_detailed_health(service)

    assert result["status"] == HealthStatus.HEALTHY.value
    assert result["checks"]["configuration"]["status"] == "pass"
    assert result["checks"]["airtable"]["status"] == "pass"
    assert result["checks"]["url_cache"]["details"]["valid_entries"] == 1
    assert fake_airtable.requests[0].url.params["pageSize"] == "1"


def test_upstream_down(airtable_env, fake_airtable: FakeAirtable, service: NetworksService):
    fake_airtable.fail_status = 401

    result = get_detailed_health(service)

    assert result["status"] == HealthStatus.UNHEALTHY.value
    assert result["checks"]["airtable"]["status"] == "fail"
    assert "error" in result["checks"]["airtable"]["details"]


def test_missing_configuration(monkeypatch, tmp_path, service: NetworksService):
    monkeypatch.chdir(tmp_path)
    for name in ("AIRTABLE_TOKEN", "AIRTABLE_BASE_ID", "NETWORKS_TABLE_NAME"):
        monkeypatch.delenv(name, raising=False)

    result = get_detailed_health(service)

    assert result["status"] == HealthStatus.UNHEALTHY.value
    assert result["checks"]["configuration"]["status"] == "fail"
    assert "airtable" not in result["checks"]
