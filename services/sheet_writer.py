"""
Sheet Write-Back Engine.

Two write paths, both driven by the live header row (never a fixed layout):

(a) sync_columns: append canonical headers missing from the sheet, then
    optionally fill those new columns for each record. Existing columns
    are never touched and a second run is a no-op.

(b) update_rows: targeted single-cell writes for per-row and bulk edits,
    all staged and sent as one batch.

``store`` is any row store with the ``SheetsClient`` contract.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from schemas.contact_schema import (
    RowHandle,
    column_index_to_letter,
    get_all_headers,
    get_column_by_key,
    get_column_by_label,
)
from services.row_normalizer import ContactRecord
from services.sheets_client import CellWrite, a1_range

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    added_headers: List[str] = field(default_factory=list)
    start_column: str = ""
    rows_written: int = 0
    cells_written: int = 0

    @property
    def message(self) -> str:
        if not self.added_headers:
            return "All canonical columns already exist in the sheet."
        return f"{len(self.added_headers)} column(s) added."

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "addedHeaders": list(self.added_headers),
            "startColumn": self.start_column,
            "rowsWritten": self.rows_written,
            "cellsWritten": self.cells_written,
        }


@dataclass
class UpdateResult:
    updated_rows: int = 0
    cells_updated: int = 0
    added_headers: List[str] = field(default_factory=list)
    skipped_rows: List[Any] = field(default_factory=list)
    timestamp: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": f"{self.updated_rows} row(s) updated.",
            "updatedRows": self.updated_rows,
            "cellsUpdated": self.cells_updated,
            "addedHeaders": list(self.added_headers),
            "skippedRows": list(self.skipped_rows),
            "timestamp": self.timestamp,
        }


def compute_missing_headers(existing_headers: Iterable[str]) -> List[str]:
    """Canonical labels not present in the sheet (trimmed exact match), in schema order."""
    present = {str(h).strip() for h in existing_headers}
    return [label for label in get_all_headers() if label not in present]


def build_column_index(headers: List[str]) -> Dict[str, int]:
    """Header label -> 0-based column index. First occurrence wins."""
    index: Dict[str, int] = {}
    for idx, raw in enumerate(headers):
        header = str(raw).strip()
        if header and header not in index:
            index[header] = idx
    return index


def _append_missing(store, spreadsheet_id: str, sheet_name: str, headers: List[str]):
    """Append missing canonical headers after the last header. Returns (added, start_idx)."""
    missing = compute_missing_headers(headers)
    start_idx = len(headers)
    if missing:
        store.update_header_row(spreadsheet_id, sheet_name, start_idx, missing)
        logger.info(
            f"Appended {len(missing)} missing header(s) at column "
            f"{column_index_to_letter(start_idx)}"
        )
    return missing, start_idx


# =============================================================================
# (a) COLUMN APPEND
# =============================================================================

def sync_columns(
    store,
    spreadsheet_id: str,
    sheet_name: str,
    records: Optional[List[ContactRecord]] = None,
) -> SyncResult:
    """
    Append missing canonical columns and fill them from records.

    Only the newly added columns are written, one cell per non-empty value.
    """
    headers = store.read_header_row(spreadsheet_id, sheet_name)
    missing, start_idx = _append_missing(store, spreadsheet_id, sheet_name, headers)

    result = SyncResult(
        added_headers=missing,
        start_column=column_index_to_letter(start_idx),
    )
    if not missing:
        logger.debug("Sync: no missing headers")
        return result

    if not records:
        return result

    writes: List[CellWrite] = []
    rows_touched = set()
    for record in records:
        if not record.row.is_data_row:
            continue
        for offset, label in enumerate(missing):
            col = get_column_by_label(label)
            value = record.fields.get(col.key, "") if col else ""
            if value == "":
                continue
            letter = column_index_to_letter(start_idx + offset)
            writes.append(CellWrite(a1_range(sheet_name, f"{letter}{record.row}"), value))
            rows_touched.add(record.row.number)

    result.cells_written = store.batch_update_cells(spreadsheet_id, writes)
    result.rows_written = len(rows_touched)
    logger.info(
        f"Sync: added {len(missing)} column(s), wrote {result.cells_written} cell(s) "
        f"in {result.rows_written} row(s)"
    )
    return result


# =============================================================================
# (b) TARGETED CELL UPDATES
# =============================================================================

def _row_number(value: Any) -> Optional[int]:
    if isinstance(value, RowHandle):
        return value.number
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def update_rows(
    store,
    spreadsheet_id: str,
    sheet_name: str,
    updates: List[Dict[str, Any]],
) -> UpdateResult:
    """
    Write ``[{row, field: value, ...}]`` updates as single-cell writes.

    Missing canonical headers are appended before any column is resolved.
    Rows below 2 are skipped, non-canonical keys are ignored, and all cells
    go out in one batch.
    """
    headers = store.read_header_row(spreadsheet_id, sheet_name)
    missing, start_idx = _append_missing(store, spreadsheet_id, sheet_name, headers)

    column_index = build_column_index(headers)
    for offset, label in enumerate(missing):
        column_index[label] = start_idx + offset

    result = UpdateResult(
        added_headers=missing,
        timestamp=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
    )

    writes: List[CellWrite] = []
    staged_values: Dict[str, Any] = {}
    conflicts: List[str] = []
    for update in updates:
        row = _row_number(update.get("row"))
        if row is None or not RowHandle(row).is_data_row:
            result.skipped_rows.append(update.get("row"))
            continue

        staged = 0
        for key, value in update.items():
            if key == "row":
                continue
            col = get_column_by_key(key)
            if col is None:
                continue
            letter = column_index_to_letter(column_index[col.label])
            cell = f"{letter}{row}"
            value = "" if value is None else value
            if cell in staged_values and staged_values[cell] != value:
                conflicts.append(cell)
            staged_values[cell] = value
            writes.append(CellWrite(a1_range(sheet_name, cell), value))
            staged += 1

        if staged:
            result.updated_rows += 1

    if result.skipped_rows:
        logger.warning(f"Skipped invalid row numbers: {result.skipped_rows}")
    if conflicts:
        # Batch order decides; the last update for a cell wins
        logger.warning(f"Conflicting values for the same cell, last one kept: {conflicts}")

    result.cells_updated = store.batch_update_cells(spreadsheet_id, writes)
    logger.info(f"Updated {result.updated_rows} row(s), {result.cells_updated} cell(s)")
    return result


def canonical_only(data: Dict[str, Any]) -> Dict[str, Any]:
    """Drop keys that are not canonical fields (id, status, _meta, unknown)."""
    return {k: v for k, v in data.items() if get_column_by_key(k) is not None}


def expand_bulk_update(ids: Iterable[Any], updates: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Bulk request shape -> one update object per row, identical field values."""
    fields = canonical_only(updates)
    return [{"row": row_id, **fields} for row_id in ids]
