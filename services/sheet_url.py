"""Google Sheets URL parsing for the import-from-URL flow."""

import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

SHEETS_URL_PREFIX = "https://docs.google.com/spreadsheets/"

_ID_RE = re.compile(r"/spreadsheets/d/([a-zA-Z0-9_-]+)")
_GID_RE = re.compile(r"[?&#]gid=(\d+)")


@dataclass
class SheetUrl:
    valid: bool
    spreadsheet_id: str = ""
    gid: Optional[int] = None
    error: str = ""
    code: str = ""


def parse_sheet_url(url: Optional[str]) -> SheetUrl:
    """Extract spreadsheet id and optional tab gid from a Google Sheets link."""
    trimmed = (url or "").strip()

    if not trimmed.startswith(SHEETS_URL_PREFIX):
        if "drive.google.com" in trimmed or ".xlsx" in trimmed or ".xls" in trimmed:
            return SheetUrl(
                valid=False,
                error="This is an Excel file. Open it in Google Drive and use "
                      "File > Save as Google Sheets first.",
                code="EXCEL_FILE",
            )
        return SheetUrl(
            valid=False,
            error="Paste a valid Google Sheets URL, e.g. "
                  "https://docs.google.com/spreadsheets/d/xxx/edit",
            code="INVALID_URL",
        )

    id_match = _ID_RE.search(trimmed)
    if not id_match:
        return SheetUrl(
            valid=False,
            error="Could not extract a spreadsheet ID from this URL.",
            code="NO_ID",
        )

    gid_match = _GID_RE.search(trimmed)
    return SheetUrl(
        valid=True,
        spreadsheet_id=id_match.group(1),
        gid=int(gid_match.group(1)) if gid_match else None,
    )


def select_sheet(sheets: List[Dict[str, Any]], gid: Optional[int] = None) -> Optional[Dict[str, Any]]:
    """Tab whose sheetId matches gid, else the first tab."""
    if not sheets:
        return None
    if gid is not None:
        for sheet in sheets:
            if sheet.get("sheetId") == gid:
                return sheet
    return sheets[0]
