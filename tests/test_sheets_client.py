"""Tests for the Google Sheets row store."""

import json
from unittest.mock import MagicMock

import httplib2
import pytest
from googleapiclient.errors import HttpError
from tenacity import wait_none

from core.errors import (
    PermissionDeniedError,
    SpreadsheetNotFoundError,
    TransportError,
)
from services.sheets_client import (
    CellWrite,
    SheetsClient,
    _is_transient,
    a1_range,
    render_cell,
    rows_from_values,
)

SERVICE_INFO = {"client_email": "bot@proj.iam.gserviceaccount.com"}


def http_error(status, message="boom"):
    content = json.dumps({"error": {"code": status, "message": message}}).encode("utf-8")
    return HttpError(httplib2.Response({"status": status}), content)


@pytest.fixture
def service():
    return MagicMock()


@pytest.fixture
def sheets(service):
    return SheetsClient(SERVICE_INFO, service=service)


@pytest.fixture
def no_retry_wait(monkeypatch):
    """Retry transient reads without sleeping."""
    monkeypatch.setattr(SheetsClient._get_values.retry, "wait", wait_none())


class TestRenderCell:
    """Tests for render_cell()."""

    @pytest.mark.parametrize("value,text", [
        (None, ""),
        ("abc", "abc"),
        (60123456789.0, "60123456789"),
        (50000, "50000"),
        (3.1579, "3.1579"),
        (True, "TRUE"),
        (False, "FALSE"),
    ])
    def test_render(self, value, text):
        """Integral floats never carry a decimal suffix."""
        assert render_cell(value) == text


class TestA1Range:
    """Tests for A1 notation helpers."""

    def test_quotes_sheet_name(self):
        """Sheet names are always quoted."""
        assert a1_range("Worksheet", "A1") == "'Worksheet'!A1"

    def test_escapes_apostrophe(self):
        """Apostrophes in names are doubled."""
        assert a1_range("Ali's list") == "'Ali''s list'"


class TestRowsFromValues:
    """Tests for rows_from_values()."""

    def test_empty(self):
        """An empty grid has no headers and no rows."""
        data = rows_from_values([])
        assert data.headers == []
        assert data.row_count == 0

    def test_row_index_and_padding(self):
        """Rows get their physical number and missing cells are empty."""
        data = rows_from_values([["Firstname", "Zip"], ["Ali", 50000.0], ["Siti"]])
        assert data.headers == ["Firstname", "Zip"]
        assert data.rows[0] == {"Firstname": "Ali", "Zip": "50000", "_rowIndex": 2}
        assert data.rows[1] == {"Firstname": "Siti", "Zip": "", "_rowIndex": 3}
        assert data.row_count == 2


class TestWrapError:
    """Tests for error mapping."""

    def test_not_found(self, sheets):
        """404 maps to SpreadsheetNotFoundError."""
        error = sheets.wrap_error(http_error(404, "Requested entity was not found."), "abc")
        assert isinstance(error, SpreadsheetNotFoundError)
        assert error.http_status == 404
        assert "abc" in error.message

    def test_permission_denied_names_service_account(self, sheets):
        """403 carries the service account email."""
        error = sheets.wrap_error(http_error(403, "The caller does not have permission"))
        assert isinstance(error, PermissionDeniedError)
        assert error.to_dict()["serviceAccountEmail"] == SERVICE_INFO["client_email"]

    def test_bad_sheet_name(self, sheets):
        """An unparseable range means the tab does not exist."""
        error = sheets.wrap_error(http_error(400, "Unable to parse range: 'Nope'"), "abc", "Nope")
        assert isinstance(error, SpreadsheetNotFoundError)
        assert "Nope" in error.message

    def test_other_errors_are_transport(self, sheets):
        """Anything else is a TransportError."""
        assert isinstance(sheets.wrap_error(http_error(500)), TransportError)
        assert isinstance(sheets.wrap_error(OSError("reset")), TransportError)

    def test_already_wrapped(self, sheets):
        """Taxonomy errors pass through unchanged."""
        original = TransportError("x")
        assert sheets.wrap_error(original) is original

    def test_transient_statuses(self):
        """Only rate limits and server errors are retried."""
        assert _is_transient(http_error(429))
        assert _is_transient(http_error(503))
        assert not _is_transient(http_error(404))
        assert not _is_transient(ValueError("x"))


class TestReads:
    """Tests for read operations."""

    def test_read_sheet(self, sheets, service):
        """Values are read unformatted from the quoted tab."""
        get = service.spreadsheets().values().get
        get.return_value.execute.return_value = {"values": [["Firstname"], ["Ali"]]}

        data = sheets.read_sheet("abc", "Worksheet")

        assert data.rows == [{"Firstname": "Ali", "_rowIndex": 2}]
        kwargs = get.call_args.kwargs
        assert kwargs["range"] == "'Worksheet'"
        assert kwargs["valueRenderOption"] == "UNFORMATTED_VALUE"

    def test_read_sheet_wraps_errors(self, sheets, service):
        """Transport errors surface as taxonomy errors."""
        service.spreadsheets().values().get.return_value.execute.side_effect = http_error(404)
        with pytest.raises(SpreadsheetNotFoundError):
            sheets.read_sheet("abc", "Worksheet")

    def test_transient_read_retried(self, sheets, service, no_retry_wait):
        """A transient failure is retried and then succeeds."""
        execute = service.spreadsheets().values().get.return_value.execute
        execute.side_effect = [http_error(503), {"values": [["Zip"]]}]

        assert sheets.read_header_row("abc", "Worksheet") == ["Zip"]
        assert execute.call_count == 2

    def test_not_found_not_retried(self, sheets, service, no_retry_wait):
        """Permanent failures are raised on the first attempt."""
        execute = service.spreadsheets().values().get.return_value.execute
        execute.side_effect = http_error(404)

        with pytest.raises(SpreadsheetNotFoundError):
            sheets.read_header_row("abc", "Worksheet")
        assert execute.call_count == 1

    def test_list_sheets_sorted(self, sheets, service):
        """Tabs come back in display order."""
        service.spreadsheets().get.return_value.execute.return_value = {
            "sheets": [
                {"properties": {"sheetId": 9, "title": "B", "index": 1,
                                "gridProperties": {"rowCount": 10, "columnCount": 5}}},
                {"properties": {"sheetId": 0, "title": "A", "index": 0}},
            ]
        }
        tabs = sheets.list_sheets("abc")
        assert [t["title"] for t in tabs] == ["A", "B"]
        assert tabs[1] == {"sheetId": 9, "title": "B", "index": 1, "rowCount": 10, "columnCount": 5}


class TestWrites:
    """Tests for write operations."""

    def test_update_header_row_range(self, sheets, service):
        """Labels are written into row 1 from the start column."""
        update = service.spreadsheets().values().update
        assert sheets.update_header_row("abc", "Worksheet", 26, ["Stripe id", "Affiliate code"]) == 2
        kwargs = update.call_args.kwargs
        assert kwargs["range"] == "'Worksheet'!AA1:AB1"
        assert kwargs["valueInputOption"] == "RAW"
        assert kwargs["body"] == {"values": [["Stripe id", "Affiliate code"]]}

    def test_update_header_row_noop(self, sheets, service):
        """No labels means no request."""
        assert sheets.update_header_row("abc", "Worksheet", 3, []) == 0
        service.spreadsheets().values().update.assert_not_called()

    def test_batch_update_single_request(self, sheets, service):
        """All cell writes go out in one batchUpdate."""
        batch = service.spreadsheets().values().batchUpdate
        writes = [CellWrite("'Worksheet'!A2", "Ali"), CellWrite("'Worksheet'!K3", "50000")]

        assert sheets.batch_update_cells("abc", writes) == 2

        batch.assert_called_once()
        body = batch.call_args.kwargs["body"]
        assert body["valueInputOption"] == "RAW"
        assert body["data"][1] == {"range": "'Worksheet'!K3", "values": [["50000"]]}

    def test_write_failure_not_retried(self, sheets, service):
        """Writes surface errors without retrying."""
        execute = service.spreadsheets().values().batchUpdate.return_value.execute
        execute.side_effect = http_error(503)
        with pytest.raises(TransportError):
            sheets.batch_update_cells("abc", [CellWrite("'W'!A2", "x")])
        assert execute.call_count == 1


class TestConnection:
    """Tests for test_connection()."""

    def test_success(self, sheets, service):
        """Reports headers and data row count."""
        service.spreadsheets().values().get.return_value.execute.return_value = {
            "values": [["Firstname", "Zip"], ["Ali", "1"], ["Siti", "2"]]
        }
        result = sheets.test_connection("abc", "Worksheet")
        assert result["connected"] is True
        assert result["totalRows"] == 2
        assert result["serviceAccountEmail"] == SERVICE_INFO["client_email"]

    def test_permission_failure(self, sheets, service):
        """Failures are reported, not raised."""
        service.spreadsheets().values().get.return_value.execute.side_effect = http_error(403)
        result = sheets.test_connection("abc", "Worksheet")
        assert result["connected"] is False
        assert result["code"] == "PERMISSION_DENIED"
