"""
Contact service - the per-request pipeline over one sheet tab.

Every call re-reads the sheet: there is no cache of sheet contents between
requests. Two concurrent edits to the same cell race at the Sheets API
(last write wins); that boundary is outside this service.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from core.errors import RowNotFoundError
from schemas.contact_schema import ROW_INDEX_KEY
from services import sheet_writer
from services.csv_export import export_filename, render_contacts_csv
from services.header_resolver import HeaderResolution, detect_columns, resolve_headers
from services.row_normalizer import ContactRecord, normalize_row, normalize_rows
from services.sheets_client import SheetData
from services.stats import compute_stats
from services.validator import ValidationResult, validate_contact

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 200

SEARCH_FIELDS = [
    "firstname",
    "lastname",
    "email",
    "contact_phone",
    "address",
    "city",
    "state",
    "zip",
    "company_name",
    "phonenumber",
    "email_address",
]


@dataclass
class UpdateOutcome:
    """Result of an edit: validation failures, or the write plus derived statuses."""
    validation: ValidationResult
    write: Optional[sheet_writer.UpdateResult] = None
    statuses: Dict[int, str] = field(default_factory=dict)
    missing_rows: List[int] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.validation.valid

    def to_dict(self) -> Dict[str, Any]:
        if not self.ok:
            return {
                "success": False,
                "errors": list(self.validation.errors),
                "fieldErrors": dict(self.validation.field_errors),
            }
        data = {"success": True}
        if self.write is not None:
            data.update(self.write.to_dict())
        data["statuses"] = {str(row): status for row, status in self.statuses.items()}
        if self.missing_rows:
            data["missingRows"] = list(self.missing_rows)
        return data


def clamp_paging(page: Any, limit: Any) -> Tuple[int, int]:
    """page >= 1, limit in 1..200; unparseable values fall back to defaults."""
    try:
        page = int(page)
    except (TypeError, ValueError):
        page = 1
    try:
        limit = int(limit)
    except (TypeError, ValueError):
        limit = DEFAULT_PAGE_SIZE
    return max(1, page), min(MAX_PAGE_SIZE, max(1, limit))


def matches_search(record: ContactRecord, term: str) -> bool:
    return any(term in (record.fields.get(key) or "").lower() for key in SEARCH_FIELDS)


class ContactService:
    """Read, edit, sync and export contacts of one sheet tab."""

    def __init__(self, store, spreadsheet_id: str, sheet_name: str):
        self.store = store
        self.spreadsheet_id = spreadsheet_id
        self.sheet_name = sheet_name

    def _read(self) -> Tuple[SheetData, HeaderResolution]:
        data = self.store.read_sheet(self.spreadsheet_id, self.sheet_name)
        return data, resolve_headers(data.headers)

    def load(self) -> List[ContactRecord]:
        """Normalized contacts in row order, empty rows dropped."""
        data, resolution = self._read()
        return normalize_rows(data.rows, resolution)

    def list_contacts(
        self,
        page: Any = 1,
        limit: Any = DEFAULT_PAGE_SIZE,
        search: Optional[str] = None,
    ) -> Dict[str, Any]:
        page, limit = clamp_paging(page, limit)
        records = self.load()

        term = (search or "").strip().lower()
        if term:
            records = [r for r in records if matches_search(r, term)]

        total = len(records)
        start = (page - 1) * limit
        return {
            "data": [r.to_dict() for r in records[start:start + limit]],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "totalPages": math.ceil(total / limit),
            },
        }

    def get_stats(self) -> Dict[str, Any]:
        return compute_stats(self.load())

    # =========================================================================
    # Edits
    # =========================================================================

    def _records_by_row(self) -> Dict[int, ContactRecord]:
        """Every data row, empty ones included, keyed by row number."""
        data, resolution = self._read()
        return {
            int(raw[ROW_INDEX_KEY]): normalize_row(raw, resolution)
            for raw in data.rows
        }

    def update_contact(self, row: int, data: Dict[str, Any]) -> UpdateOutcome:
        """
        Validate and write a partial update for one row.

        Raises RowNotFoundError when the row is not in the current sheet.
        The returned status is derived from the merged record; it is not
        written to the sheet.
        """
        validation = validate_contact(data)
        outcome = UpdateOutcome(validation=validation)
        if not validation.valid:
            return outcome

        records = self._records_by_row()
        record = records.get(row)
        if record is None:
            raise RowNotFoundError(row)

        record.apply_updates(validation.cleaned)
        outcome.write = sheet_writer.update_rows(
            self.store,
            self.spreadsheet_id,
            self.sheet_name,
            [{"row": row, **sheet_writer.canonical_only(validation.cleaned)}],
        )
        outcome.statuses[row] = record.status
        return outcome

    def bulk_update(self, ids: List[int], updates: Dict[str, Any]) -> UpdateOutcome:
        """
        Apply the same update object to every listed row.

        Ids that are not data rows in the current sheet are reported in
        ``missing_rows`` and not written.
        """
        validation = validate_contact(updates)
        outcome = UpdateOutcome(validation=validation)
        if not validation.valid:
            return outcome

        records = self._records_by_row()
        targets = []
        for row_id in ids:
            record = records.get(row_id)
            if record is None:
                outcome.missing_rows.append(row_id)
                continue
            record.apply_updates(validation.cleaned)
            outcome.statuses[row_id] = record.status
            targets.append(row_id)

        if outcome.missing_rows:
            logger.warning(f"Bulk update: rows not in sheet {outcome.missing_rows}")

        if not targets:
            return outcome

        outcome.write = sheet_writer.update_rows(
            self.store,
            self.spreadsheet_id,
            self.sheet_name,
            sheet_writer.expand_bulk_update(targets, validation.cleaned),
        )
        return outcome

    # =========================================================================
    # Sync / export / preview
    # =========================================================================

    def sync_columns(self, include_rows: bool = True) -> sheet_writer.SyncResult:
        records = self.load() if include_rows else None
        return sheet_writer.sync_columns(
            self.store, self.spreadsheet_id, self.sheet_name, records
        )

    def export_csv(self, today: Optional[date] = None) -> Tuple[str, str, int]:
        """Returns (filename, csv text, row count)."""
        records = self.load()
        return export_filename(today), render_contacts_csv(records), len(records)

    def preview(self, rows: int = 10) -> Dict[str, Any]:
        data, resolution = self._read()
        sample = data.rows[:rows]
        return {
            "headers": data.headers,
            "totalRows": data.row_count,
            "format": "legacy" if resolution.legacy else "current",
            "mapping": resolution.to_dict()["mapping"],
            "detectedColumns": sorted(detect_columns(data.headers)),
            "preview": sample,
            "records": [normalize_row(raw, resolution).to_dict() for raw in sample],
        }
