# ============================================================================
# CLAUDE CONTEXT - AIRTABLE HTTP CLIENT
# ============================================================================
# STATUS: Service Layer - Upstream tabular data source
# PURPOSE: List and fetch Airtable records over the REST API
# EXPORTS: AirtableClient, AirtableRecord, AirtableError
# DEPENDENCIES: httpx (sync)
# ============================================================================
"""
Airtable HTTP Client (SYNC).

Two calls are needed by the networks map:
- list records of a table (paginated via the ``offset`` continuation token,
  optional named view, bearer-token auth)
- get one record by ID (used by the image proxy routes)

Any non-success status is raised as AirtableError and is never retried.
The listing loop follows ``offset`` until the upstream stops returning one;
there is no page cap.

Usage:
    client = AirtableClient(token="pat...", base_id="app...")
    for record in client.iter_records("Networks", view="Map"):
        print(record.id, record.fields.get("Network Name"))
    client.close()
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional
from urllib.parse import quote

import httpx

from util_logger import LoggerFactory, ComponentType, log_exceptions

logger = LoggerFactory.create_logger(ComponentType.ADAPTER, "AirtableClient")

DEFAULT_API_URL = "https://api.airtable.com/v0"
DEFAULT_PAGE_SIZE = 100


class AirtableError(Exception):
    """Upstream transport, auth or status failure."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class AirtableRecord:
    """One upstream row: identifier plus field name -> raw JSON value."""
    id: str
    fields: Dict[str, Any] = field(default_factory=dict)
    created_time: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "AirtableRecord":
        return cls(
            id=data.get("id", ""),
            fields=data.get("fields") or {},
            created_time=data.get("createdTime")
        )


class AirtableClient:
    """
    Sync HTTP client for the Airtable REST API.

    Args:
        token: Personal access token
        base_id: Base identifier
        api_url: API root URL
        timeout: Request timeout in seconds
        transport: Optional httpx transport (tests pass httpx.MockTransport)
    """

    def __init__(
        self,
        token: str,
        base_id: str,
        api_url: str = DEFAULT_API_URL,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None
    ):
        if not token or not base_id:
            raise ValueError("AirtableClient requires token and base_id")
        self.base_id = base_id
        self.api_url = api_url.rstrip('/')
        self.timeout = timeout
        self._token = token
        self._transport = transport
        self._client: Optional[httpx.Client] = None

    @classmethod
    def from_config(cls, config) -> "AirtableClient":
        """Build a client from AppConfig."""
        return cls(
            token=config.airtable_token,
            base_id=config.airtable_base_id,
            api_url=config.airtable_api_url,
            timeout=config.airtable_timeout_seconds
        )

    def _get_client(self) -> httpx.Client:
        """Get or create sync HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(
                timeout=httpx.Timeout(self.timeout),
                headers={"Authorization": f"Bearer {self._token}"},
                transport=self._transport
            )
        return self._client

    def close(self):
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            self._client.close()

    def _table_url(self, table_name: str) -> str:
        return f"{self.api_url}/{self.base_id}/{quote(table_name, safe='')}"

    def _get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """GET and decode JSON, raising AirtableError on any failure."""
        try:
            response = self._get_client().get(url, params=params)
        except httpx.TimeoutException:
            raise AirtableError(f"Airtable timeout after {self.timeout}s", status_code=504)
        except httpx.RequestError as e:
            raise AirtableError(f"Airtable request error: {e}")

        if not response.is_success:
            raise AirtableError(
                f"Airtable error {response.status_code}: {response.text}",
                status_code=response.status_code
            )

        try:
            return response.json()
        except ValueError as e:
            raise AirtableError(f"Airtable returned invalid JSON: {e}", status_code=response.status_code)

    def iter_records(
        self,
        table_name: str,
        view: Optional[str] = None,
        page_size: int = DEFAULT_PAGE_SIZE
    ) -> Iterator[AirtableRecord]:
        """
        Yield every record of a table, page by page.

        Args:
            table_name: Table name (URL-encoded here)
            view: Optional named view
            page_size: Records per page (Airtable maximum is 100)

        Raises:
            AirtableError: On the first failing page
        """
        url = self._table_url(table_name)
        params: Dict[str, Any] = {"pageSize": page_size}
        if view:
            params["view"] = view

        offset = None
        page = 0
        while True:
            if offset:
                params["offset"] = offset

            data = self._get_json(url, params=params)
            page += 1
            records = data.get("records") or []
            logger.debug(
                f"Fetched page {page} of '{table_name}' ({len(records)} records)"
            )
            for raw in records:
                yield AirtableRecord.from_api(raw)

            offset = data.get("offset")
            if not offset:
                break

    @log_exceptions(logger=logger)
    def list_records(
        self,
        table_name: str,
        view: Optional[str] = None,
        page_size: int = DEFAULT_PAGE_SIZE
    ) -> List[AirtableRecord]:
        """Fetch all records of a table (handles pagination)."""
        records = list(self.iter_records(table_name, view=view, page_size=page_size))
        logger.info(f"Fetched {len(records)} records from '{table_name}'")
        return records

    @log_exceptions(logger=logger)
    def get_record(self, table_name: str, record_id: str) -> AirtableRecord:
        """Fetch a single record by ID."""
        url = f"{self._table_url(table_name)}/{quote(record_id, safe='')}"
        return AirtableRecord.from_api(self._get_json(url))
