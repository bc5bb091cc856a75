"""
Google Sheets row store.

Treats one sheet tab as a key-value row store:
1. Read all rows keyed by header (plus the 1-based ``_rowIndex``)
2. Write header labels into row 1
3. Batch single-cell writes in one request
4. List the tabs of a spreadsheet

Transport failures are wrapped exactly once here into the ``core.errors``
taxonomy. Reads are retried on transient API errors; writes are not, since
the sheet has no idempotency key.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from googleapiclient.errors import HttpError
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from core.config import SheetsConfig, load_service_account_info
from core.errors import (
    CRMError,
    PermissionDeniedError,
    SpreadsheetNotFoundError,
    TransportError,
)
from schemas.contact_schema import HEADER_ROW, ROW_INDEX_KEY, column_index_to_letter

logger = logging.getLogger(__name__)

TRANSIENT_STATUSES = {429, 500, 502, 503, 504}


@dataclass
class SheetData:
    """All values of one tab."""
    headers: List[str] = field(default_factory=list)
    rows: List[Dict[str, Any]] = field(default_factory=list)
    row_count: int = 0


@dataclass
class CellWrite:
    """One staged single-cell write."""
    range: str
    value: Any


def quote_sheet_name(sheet_name: str) -> str:
    return "'" + sheet_name.replace("'", "''") + "'"


def a1_range(sheet_name: str, notation: str = "") -> str:
    """Full A1 range with the quoted sheet name."""
    if notation:
        return f"{quote_sheet_name(sheet_name)}!{notation}"
    return quote_sheet_name(sheet_name)


def render_cell(value: Any) -> str:
    """
    Render an unformatted cell value as text.

    Integral numbers lose the float suffix so phone numbers and postcodes
    never come back as "60123456789.0" or in scientific notation.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return repr(value)
    return str(value)


def rows_from_values(values: List[List[Any]]) -> SheetData:
    """Turn a values grid (row 1 = headers) into header-keyed rows."""
    if not values:
        return SheetData()

    headers = [render_cell(h) for h in values[0]]
    rows = []
    for offset, raw in enumerate(values[1:], start=HEADER_ROW + 1):
        row: Dict[str, Any] = {}
        for idx, header in enumerate(headers):
            row[header] = render_cell(raw[idx]) if idx < len(raw) else ""
        row[ROW_INDEX_KEY] = offset
        rows.append(row)

    return SheetData(headers=headers, rows=rows, row_count=len(rows))


def _http_status(error: HttpError) -> Optional[int]:
    status = getattr(error.resp, "status", None)
    try:
        return int(status)
    except (TypeError, ValueError):
        return None


def _is_transient(error: BaseException) -> bool:
    return isinstance(error, HttpError) and _http_status(error) in TRANSIENT_STATUSES


class SheetsClient:
    """Google Sheets API client for contact rows."""

    SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]

    def __init__(self, service_account_info: Optional[Dict[str, Any]] = None, service=None):
        self._info = service_account_info or {}
        self._service = service

    @classmethod
    def from_config(cls, config: SheetsConfig) -> "SheetsClient":
        return cls(load_service_account_info(config))

    @property
    def service_account_email(self) -> Optional[str]:
        return self._info.get("client_email")

    def _get_service(self):
        """Get or create the Sheets API service."""
        if self._service is not None:
            return self._service

        from google.oauth2 import service_account
        from googleapiclient.discovery import build

        creds = service_account.Credentials.from_service_account_info(
            self._info, scopes=self.SCOPES
        )
        self._service = build("sheets", "v4", credentials=creds, cache_discovery=False)
        return self._service

    # =========================================================================
    # Error wrapping
    # =========================================================================

    def wrap_error(
        self,
        error: Exception,
        spreadsheet_id: str = "",
        sheet_name: str = "",
    ) -> CRMError:
        """Map a raw transport failure onto the error taxonomy."""
        if isinstance(error, CRMError):
            return error

        message = str(error)

        if isinstance(error, HttpError):
            status = _http_status(error)

            if status == 404 or "Requested entity was not found" in message:
                return SpreadsheetNotFoundError(
                    f'Spreadsheet not found. Check the spreadsheet ID: "{spreadsheet_id or "(empty)"}"',
                    spreadsheet_id=spreadsheet_id,
                )

            if status == 403 or "does not have permission" in message:
                email = self.service_account_email
                return PermissionDeniedError(
                    "No permission to access this spreadsheet. Share it with the service "
                    f"account {email or '(see client_email in credentials)'} as Editor.",
                    service_account_email=email,
                )

            if status == 400 and "Unable to parse range" in message:
                return SpreadsheetNotFoundError(
                    f'Sheet "{sheet_name}" not found in spreadsheet',
                    spreadsheet_id=spreadsheet_id,
                    sheet_name=sheet_name,
                )

        return TransportError(f"Google Sheets request failed: {message}")

    def _fail(self, error: Exception, spreadsheet_id: str = "", sheet_name: str = "") -> CRMError:
        wrapped = self.wrap_error(error, spreadsheet_id, sheet_name)
        logger.warning(f"Sheets call failed ({wrapped.kind}): {error}")
        return wrapped

    # =========================================================================
    # Reads (retried on transient failures)
    # =========================================================================

    @retry(
        retry=retry_if_exception(_is_transient),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _get_values(self, spreadsheet_id: str, range_a1: str) -> List[List[Any]]:
        result = self._get_service().spreadsheets().values().get(
            spreadsheetId=spreadsheet_id,
            range=range_a1,
            valueRenderOption="UNFORMATTED_VALUE",
            dateTimeRenderOption="FORMATTED_STRING",
        ).execute()
        return result.get("values", [])

    @retry(
        retry=retry_if_exception(_is_transient),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _get_spreadsheet(self, spreadsheet_id: str) -> Dict[str, Any]:
        return self._get_service().spreadsheets().get(
            spreadsheetId=spreadsheet_id,
            fields="properties.title,sheets.properties",
        ).execute()

    def read_sheet(self, spreadsheet_id: str, sheet_name: str) -> SheetData:
        """Read the whole tab. Row 1 is the header row."""
        try:
            values = self._get_values(spreadsheet_id, a1_range(sheet_name))
        except Exception as e:
            raise self._fail(e, spreadsheet_id, sheet_name) from e

        data = rows_from_values(values)
        logger.debug(f"Read {data.row_count} rows, {len(data.headers)} headers from {sheet_name}")
        return data

    def read_header_row(self, spreadsheet_id: str, sheet_name: str) -> List[str]:
        try:
            values = self._get_values(spreadsheet_id, a1_range(sheet_name, "1:1"))
        except Exception as e:
            raise self._fail(e, spreadsheet_id, sheet_name) from e
        return [render_cell(h) for h in values[0]] if values else []

    def list_sheets(self, spreadsheet_id: str) -> List[Dict[str, Any]]:
        """Tabs of a spreadsheet in display order."""
        try:
            spreadsheet = self._get_spreadsheet(spreadsheet_id)
        except Exception as e:
            raise self._fail(e, spreadsheet_id) from e

        sheets = []
        for sheet in spreadsheet.get("sheets", []):
            props = sheet.get("properties", {})
            grid = props.get("gridProperties", {})
            sheets.append({
                "sheetId": props.get("sheetId"),
                "title": props.get("title", ""),
                "index": props.get("index", 0),
                "rowCount": grid.get("rowCount", 0),
                "columnCount": grid.get("columnCount", 0),
            })
        return sorted(sheets, key=lambda s: s["index"])

    def get_spreadsheet_title(self, spreadsheet_id: str) -> str:
        try:
            spreadsheet = self._get_spreadsheet(spreadsheet_id)
        except Exception as e:
            raise self._fail(e, spreadsheet_id) from e
        return spreadsheet.get("properties", {}).get("title", "")

    # =========================================================================
    # Writes (never retried)
    # =========================================================================

    def update_header_row(
        self,
        spreadsheet_id: str,
        sheet_name: str,
        start_column: int,
        labels: List[str],
    ) -> int:
        """Write header labels into row 1 starting at a 0-based column index."""
        if not labels:
            return 0

        start = column_index_to_letter(start_column)
        end = column_index_to_letter(start_column + len(labels) - 1)
        try:
            self._get_service().spreadsheets().values().update(
                spreadsheetId=spreadsheet_id,
                range=a1_range(sheet_name, f"{start}{HEADER_ROW}:{end}{HEADER_ROW}"),
                valueInputOption="RAW",
                body={"values": [list(labels)]},
            ).execute()
        except Exception as e:
            raise self._fail(e, spreadsheet_id, sheet_name) from e

        logger.info(f"Wrote {len(labels)} header(s) at {start}{HEADER_ROW} in {sheet_name}")
        return len(labels)

    def batch_update_cells(self, spreadsheet_id: str, writes: List[CellWrite]) -> int:
        """Submit all staged single-cell writes as one batchUpdate."""
        if not writes:
            return 0

        body = {
            "valueInputOption": "RAW",
            "data": [{"range": w.range, "values": [[w.value]]} for w in writes],
        }
        try:
            self._get_service().spreadsheets().values().batchUpdate(
                spreadsheetId=spreadsheet_id,
                body=body,
            ).execute()
        except Exception as e:
            raise self._fail(e, spreadsheet_id) from e

        logger.info(f"Batch updated {len(writes)} cell(s)")
        return len(writes)

    # =========================================================================
    # Diagnostics
    # =========================================================================

    def test_connection(self, spreadsheet_id: str, sheet_name: str) -> Dict[str, Any]:
        """Read the tab and report the outcome without raising."""
        try:
            data = self.read_sheet(spreadsheet_id, sheet_name)
        except CRMError as e:
            return {
                "connected": False,
                "error": e.message,
                "code": e.kind,
                "serviceAccountEmail": self.service_account_email,
            }

        return {
            "connected": True,
            "spreadsheetId": spreadsheet_id,
            "sheetName": sheet_name,
            "serviceAccountEmail": self.service_account_email,
            "headers": data.headers,
            "totalRows": data.row_count,
        }
