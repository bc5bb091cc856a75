"""
Pytest configuration and shared fixtures.
"""

import os
import re
import sys
from pathlib import Path

# Set environment variables BEFORE any imports that might use them
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["SPREADSHEET_ID"] = "test-spreadsheet-id"
os.environ["SHEET_NAME"] = "Worksheet"

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from core.config import AppConfig, GeocodingConfig, SheetsConfig  # noqa: E402
from core.errors import CRMError  # noqa: E402
from schemas.contact_schema import column_letter_to_index, get_all_headers  # noqa: E402
from services.geocoding import CachedGeocoder, GeocodeCache, GeocodeResult  # noqa: E402
from services.sheets_client import rows_from_values  # noqa: E402

_CELL_RE = re.compile(r"^([A-Z]+)(\d+)$")

SERVICE_EMAIL = "crm-bot@test-project.iam.gserviceaccount.com"


class FakeSheetStore:
    """
    In-memory row store with the SheetsClient contract.

    ``grid`` holds raw cell values, row 0 being the header row. Every write
    is recorded so tests can assert on what reached the "network".
    """

    def __init__(self, headers=None, rows=None, sheet_name="Worksheet", error=None):
        self.sheet_name = sheet_name
        self.grid = [list(headers or [])] + [list(r) for r in (rows or [])]
        self.error = error
        self.header_writes = []
        self.batch_writes = []
        self.reads = 0

    service_account_email = SERVICE_EMAIL

    def _check(self):
        if self.error is not None:
            raise self.error

    def _set(self, row_idx, col_idx, value):
        while len(self.grid) <= row_idx:
            self.grid.append([])
        row = self.grid[row_idx]
        while len(row) <= col_idx:
            row.append("")
        row[col_idx] = value

    @property
    def headers(self):
        return self.grid[0] if self.grid else []

    def cell(self, label, row_number):
        """Value under header ``label`` in 1-based sheet row ``row_number``."""
        col = self.headers.index(label)
        row = self.grid[row_number - 1]
        return row[col] if col < len(row) else ""

    def read_sheet(self, spreadsheet_id, sheet_name):
        self._check()
        self.reads += 1
        return rows_from_values([list(r) for r in self.grid] if self.headers else [])

    def read_header_row(self, spreadsheet_id, sheet_name):
        self._check()
        return [str(h) for h in self.headers]

    def update_header_row(self, spreadsheet_id, sheet_name, start_column, labels):
        self._check()
        self.header_writes.append((start_column, list(labels)))
        for offset, label in enumerate(labels):
            self._set(0, start_column + offset, label)
        return len(labels)

    def batch_update_cells(self, spreadsheet_id, writes):
        self._check()
        if not writes:
            return 0
        self.batch_writes.append([(w.range, w.value) for w in writes])
        for write in writes:
            notation = write.range.rsplit("!", 1)[-1]
            letters, number = _CELL_RE.match(notation).groups()
            self._set(int(number) - 1, column_letter_to_index(letters), write.value)
        return len(writes)

    def list_sheets(self, spreadsheet_id):
        self._check()
        return [
            {"sheetId": 0, "title": self.sheet_name, "index": 0, "rowCount": 1000, "columnCount": 26},
            {"sheetId": 777, "title": "Archive", "index": 1, "rowCount": 1000, "columnCount": 26},
        ]

    def test_connection(self, spreadsheet_id, sheet_name):
        try:
            data = self.read_sheet(spreadsheet_id, sheet_name)
        except CRMError as e:
            return {
                "connected": False,
                "error": e.message,
                "code": e.kind,
                "serviceAccountEmail": SERVICE_EMAIL,
            }
        return {
            "connected": True,
            "spreadsheetId": spreadsheet_id,
            "sheetName": sheet_name,
            "serviceAccountEmail": SERVICE_EMAIL,
            "headers": data.headers,
            "totalRows": data.row_count,
        }


class FakeResolver:
    """Address resolver returning canned results and counting calls."""

    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.calls = []

    def geocode(self, address):
        self.calls.append(address)
        if self.error is not None:
            raise self.error
        return self.result


def current_row(**values):
    """A full-width current-format row from field labels."""
    return [values.get(label, "") for label in get_all_headers()]


@pytest.fixture
def make_store():
    return FakeSheetStore


@pytest.fixture
def make_resolver():
    return FakeResolver


@pytest.fixture
def make_row():
    return current_row


@pytest.fixture
def current_store():
    """Current-format sheet with two contacts and one blank row."""
    headers = get_all_headers()
    rows = [
        current_row(**{
            "Firstname": "Ahmad",
            "Lastname": "Bin Abu",
            "Email": "ahmad@example.com",
            "Contact phonenumber": "0123456789",
            "Zip": "50000",
            "State": "WP Kuala Lumpur",
            "Address": "1 Jalan Ampang",
            "City": "Kuala Lumpur",
        }),
        current_row(**{
            "Firstname": "Siti",
            "Contact phonenumber": "0198765432",
            "State": "Selangor",
        }),
        current_row(),
    ]
    return FakeSheetStore(headers, rows)


@pytest.fixture
def kl_result():
    return GeocodeResult(
        city="Kuala Lumpur",
        state="Wilayah Persekutuan Kuala Lumpur",
        zip="50450",
        country="Malaysia",
        lat="3.1579",
        lng="101.7116",
        formatted="Jalan Ampang, 50450 Kuala Lumpur, Malaysia",
    )


@pytest.fixture
def fake_resolver(kl_result):
    return FakeResolver(result=kl_result)


@pytest.fixture
def cached_geocoder(fake_resolver):
    return CachedGeocoder(fake_resolver, GeocodeCache(), min_interval=0)


@pytest.fixture
def app_config():
    return AppConfig(
        sheets=SheetsConfig(spreadsheet_id="test-spreadsheet-id", sheet_name="Worksheet"),
        geocoding=GeocodingConfig(api_key="test-key", min_interval_ms=0),
    )


@pytest.fixture
def app(app_config, current_store, cached_geocoder):
    """Create FastAPI test application wired to fakes."""
    from api.main import create_app

    return create_app(app_config, store=current_store, geocoder=cached_geocoder)


@pytest.fixture
def client(app):
    """Create test client."""
    from fastapi.testclient import TestClient

    return TestClient(app)
