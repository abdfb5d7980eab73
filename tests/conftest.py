"""Shared fixtures: a fake Airtable API behind httpx.MockTransport."""

import json
from typing import Any, Dict, List, Optional

import azure.functions as func
import httpx
import pytest

from config import AppConfig, get_app_config
from networks_api.service import NetworksService, get_networks_service
from services.airtable_client import AirtableClient
from services.url_cache import UrlCache

BASE_ID = "appTEST"
TABLE = "Networks"

SQUARE = {
    "type": "Polygon",
    "coordinates": [[[-85.0, 35.0], [-84.0, 35.0], [-84.0, 36.0], [-85.0, 36.0], [-85.0, 35.0]]],
}


def attachment(name: str, with_thumbnails: bool = True) -> Dict[str, Any]:
    """Airtable style attachment object."""
    att: Dict[str, Any] = {
        "id": f"att{name}",
        "url": f"https://dl.airtable.test/{name}.jpg?sig=orig",
        "filename": f"{name}.jpg",
    }
    if with_thumbnails:
        att["thumbnails"] = {
            "small": {"url": f"https://dl.airtable.test/{name}-s.jpg"},
            "large": {"url": f"https://dl.airtable.test/{name}-l.jpg"},
            "full": {"url": f"https://dl.airtable.test/{name}-f.jpg"},
        }
    return att


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: float = 1_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeAirtable:
    """In-memory Airtable table answering list and get calls."""

    def __init__(self, records: Optional[List[Dict[str, Any]]] = None):
        self.records: List[Dict[str, Any]] = records or []
        self.requests: List[httpx.Request] = []
        self.fail_status: Optional[int] = None

    def add(self, record_id: str, **fields: Any) -> Dict[str, Any]:
        record = {"id": record_id, "createdTime": "2024-01-01T00:00:00.000Z", "fields": fields}
        self.records.append(record)
        return record

    @property
    def list_calls(self) -> int:
        return sum(1 for r in self.requests if len(self._segments(r)) == 3)

    @property
    def get_calls(self) -> int:
        return sum(1 for r in self.requests if len(self._segments(r)) == 4)

    @staticmethod
    def _segments(request: httpx.Request) -> List[str]:
        # ["v0", base, table] or ["v0", base, table, record_id]
        return [s for s in request.url.path.split("/") if s]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        if self.fail_status:
            return httpx.Response(
                self.fail_status,
                json={"error": {"type": "AUTHENTICATION_REQUIRED", "message": "bad token"}},
            )

        segments = self._segments(request)
        if len(segments) == 4:
            for record in self.records:
                if record["id"] == segments[3]:
                    return httpx.Response(200, json=record)
            return httpx.Response(404, json={"error": "NOT_FOUND"})

        page_size = int(request.url.params.get("pageSize", "100"))
        start = int(request.url.params.get("offset", "0") or 0)
        page = self.records[start:start + page_size]
        body: Dict[str, Any] = {"records": page}
        if start + page_size < len(self.records):
            body["offset"] = str(start + page_size)
        return httpx.Response(200, json=body)

    def client(self) -> AirtableClient:
        return AirtableClient(
            token="test-token",
            base_id=BASE_ID,
            api_url="https://api.airtable.test/v0",
            transport=httpx.MockTransport(self.handler),
        )


@pytest.fixture(autouse=True)
def _clear_singletons():
    get_app_config.cache_clear()
    get_networks_service.cache_clear()
    yield
    get_app_config.cache_clear()
    get_networks_service.cache_clear()


@pytest.fixture
def airtable_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AIRTABLE_TOKEN", "test-token")
    monkeypatch.setenv("AIRTABLE_BASE_ID", BASE_ID)
    monkeypatch.setenv("NETWORKS_TABLE_NAME", TABLE)
    monkeypatch.delenv("AIRTABLE_VIEW_NAME", raising=False)
    monkeypatch.delenv("PUBLIC_BASE_URL", raising=False)


@pytest.fixture
def app_config() -> AppConfig:
    return AppConfig(
        _env_file=None,
        airtable_token="test-token",
        airtable_base_id=BASE_ID,
        networks_table_name=TABLE,
        public_base_url="",
    )


@pytest.fixture
def fake_airtable() -> FakeAirtable:
    return FakeAirtable()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def service(fake_airtable: FakeAirtable, clock: FakeClock) -> NetworksService:
    return NetworksService(
        client=fake_airtable.client(),
        table_name=TABLE,
        url_cache=UrlCache(ttl_seconds=480, clock=clock),
    )


def make_request(
    path: str,
    route_params: Optional[Dict[str, str]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> func.HttpRequest:
    return func.HttpRequest(
        method="GET",
        url=f"http://localhost:7071{path}",
        headers=headers or {},
        params={},
        route_params=route_params or {},
        body=b"",
    )


def response_headers(response: func.HttpResponse) -> Dict[str, str]:
    return {key.lower(): value for key, value in response.headers.items()}


def response_json(response: func.HttpResponse) -> Any:
    return json.loads(response.get_body())
