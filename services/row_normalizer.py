"""
Row Normalizer - turn raw sheet rows into canonical contact records.

Per row:
1. Start from all 42 fields set to "".
2. Apply every header mapping (direct, split, fallback, copy, meta).
3. Legacy sheets: fill format defaults (country) where still empty.
4. Apply the smart-copy rules once, filling empty targets only.
5. Derive the completeness status.

Records are rebuilt on every read and never cached.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from schemas.contact_schema import (
    COLUMN_GROUPS,
    COLUMNS,
    REQUIRED_FOR_COMPLETE,
    ROW_INDEX_KEY,
    RowHandle,
    get_column_keys,
    get_columns_by_group,
)
from services.header_resolver import HeaderResolution, MappingKind

logger = logging.getLogger(__name__)

STATUS_COMPLETE = "Lengkap"
STATUS_INCOMPLETE = "Tidak Lengkap"

# Source field -> fields to fill when empty
SMART_COPY_RULES: Dict[str, List[str]] = {
    "contact_phone": ["phonenumber"],
    "phonenumber": ["contact_phone"],
    "city": ["billing_city", "shipping_city"],
    "state": ["billing_state", "shipping_state"],
    "zip": ["billing_zip", "shipping_zip"],
    "country": ["billing_country", "shipping_country"],
    "address": ["billing_street", "shipping_street"],
    "email": ["email_address"],
}

# Applied to legacy-format sheets only
LEGACY_FORMAT_DEFAULTS: Dict[str, str] = {
    "country": "Malaysia",
}

# A row with none of these is treated as an empty sheet row
IDENTITY_FIELDS = ("firstname", "lastname", "contact_phone", "email")

_NAME_MARKERS = {"bin", "binti"}


def empty_fields() -> Dict[str, str]:
    """All canonical keys initialized to empty string."""
    return {key: "" for key in get_column_keys()}


def is_complete(fields: Dict[str, Any]) -> bool:
    """Completeness predicate shared by row badges and aggregate stats."""
    return all(fields.get(key) for key in REQUIRED_FOR_COMPLETE)


def completeness_status(fields: Dict[str, Any]) -> str:
    return STATUS_COMPLETE if is_complete(fields) else STATUS_INCOMPLETE


@dataclass
class ContactRecord:
    """Canonical contact built from one sheet row."""
    row: RowHandle
    fields: Dict[str, str] = field(default_factory=empty_fields)
    meta: Dict[str, str] = field(default_factory=dict)
    status: str = STATUS_INCOMPLETE

    @property
    def id(self) -> int:
        return self.row.number

    def refresh_status(self) -> str:
        self.status = completeness_status(self.fields)
        return self.status

    def is_empty(self) -> bool:
        return not any(self.fields.get(key) for key in IDENTITY_FIELDS)

    def apply_updates(self, updates: Dict[str, Any]) -> None:
        """Overlay canonical-field updates and recompute status."""
        for key, value in updates.items():
            if key in self.fields:
                self.fields[key] = "" if value is None else str(value)
        self.refresh_status()

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"id": self.row.number}
        data.update(self.fields)
        data["status"] = self.status
        data["_meta"] = dict(self.meta)
        return data


# =============================================================================
# NAME SPLITTING
# =============================================================================

def capitalize_words(text: str) -> str:
    """Uppercase the first letter of every whitespace-delimited word."""
    return " ".join(word[:1].upper() + word[1:] for word in text.split())


def split_full_name(full_name: Optional[str]) -> Dict[str, str]:
    """
    Split a full name into firstname/lastname.

    Malay patronymics keep the "bin"/"binti" marker with the last name:
    "Ahmad Bin Abu" -> ("Ahmad", "Bin Abu"). The marker must be a whole
    token from the second word onward. Otherwise the first word is the
    first name and the rest is the last name.
    """
    words = (full_name or "").split()
    if not words:
        return {"firstname": "", "lastname": ""}
    if len(words) == 1:
        return {"firstname": capitalize_words(words[0]), "lastname": ""}

    for index in range(1, len(words)):
        if words[index].lower() in _NAME_MARKERS:
            return {
                "firstname": capitalize_words(" ".join(words[:index])),
                "lastname": capitalize_words(" ".join(words[index:])),
            }

    return {
        "firstname": capitalize_words(words[0]),
        "lastname": capitalize_words(" ".join(words[1:])),
    }


# =============================================================================
# POST-MAPPING RULES
# =============================================================================

def apply_legacy_defaults(fields: Dict[str, str]) -> None:
    for key, default in LEGACY_FORMAT_DEFAULTS.items():
        if not fields.get(key):
            fields[key] = default


def apply_smart_copy(fields: Dict[str, str]) -> Dict[str, str]:
    """
    Propagate values into empty sibling fields.

    Only empty targets are filled, so a second pass never changes anything.
    Returns the mapping of fields that were filled.
    """
    filled = {}
    for source, targets in SMART_COPY_RULES.items():
        value = fields.get(source)
        if not value:
            continue
        for target in targets:
            if not fields.get(target):
                fields[target] = value
                filled[target] = value
    return filled


def group_completeness(fields: Dict[str, Any]) -> Dict[str, Dict[str, int]]:
    """Filled/total/percentage per semantic group."""
    result = {}
    for group in COLUMN_GROUPS:
        cols = get_columns_by_group(group)
        filled = sum(1 for col in cols if fields.get(col.key))
        total = len(cols)
        result[group] = {
            "filled": filled,
            "total": total,
            "pct": round(filled / total * 100) if total else 0,
        }
    return result


# =============================================================================
# NORMALIZATION
# =============================================================================

def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def normalize_row(raw_row: Dict[str, Any], resolution: HeaderResolution) -> ContactRecord:
    """Map one raw sheet row (header -> value, plus ``_rowIndex``) to a record."""
    record = ContactRecord(row=RowHandle(int(raw_row.get(ROW_INDEX_KEY) or 0)))
    fields = record.fields
    fallbacks = []

    for header, value in raw_row.items():
        if header == ROW_INDEX_KEY:
            continue
        mapping = resolution.get(str(header).strip())
        if mapping is None:
            continue

        text = _cell_text(value)

        if mapping.kind == MappingKind.META:
            record.meta[mapping.field] = text
        elif mapping.kind == MappingKind.SPLIT:
            parts = split_full_name(text)
            first_key, second_key = mapping.targets
            fields[first_key] = parts["firstname"]
            fields[second_key] = parts["lastname"]
        elif mapping.kind == MappingKind.FALLBACK:
            fallbacks.append((mapping.field, text))
        elif mapping.kind == MappingKind.COPY:
            fields[mapping.field] = text
            for sibling in mapping.targets:
                if not fields.get(sibling):
                    fields[sibling] = text
        else:
            fields[mapping.field] = text

    # Aliases only fill what the primary columns left empty, whatever the column order
    for key, text in fallbacks:
        if not fields.get(key):
            fields[key] = text

    if resolution.legacy:
        apply_legacy_defaults(fields)

    apply_smart_copy(fields)
    record.refresh_status()
    return record


def normalize_rows(
    raw_rows: Iterable[Dict[str, Any]],
    resolution: HeaderResolution,
    include_empty: bool = False,
) -> List[ContactRecord]:
    """Normalize all rows, dropping rows with no identity fields unless asked."""
    records = []
    skipped = 0
    for raw in raw_rows:
        record = normalize_row(raw, resolution)
        if not include_empty and record.is_empty():
            skipped += 1
            continue
        records.append(record)

    if skipped:
        logger.debug(f"Skipped {skipped} empty rows")
    return records


def records_by_row(records: Iterable[ContactRecord]) -> Dict[int, ContactRecord]:
    return {record.id: record for record in records}


__all__ = [
    "COLUMNS",
    "ContactRecord",
    "ROW_INDEX_KEY",
    "STATUS_COMPLETE",
    "STATUS_INCOMPLETE",
    "SMART_COPY_RULES",
    "LEGACY_FORMAT_DEFAULTS",
    "apply_legacy_defaults",
    "apply_smart_copy",
    "capitalize_words",
    "completeness_status",
    "empty_fields",
    "group_completeness",
    "is_complete",
    "normalize_row",
    "normalize_rows",
    "records_by_row",
    "split_full_name",
]
