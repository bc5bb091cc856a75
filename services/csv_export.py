"""
CSV export of normalized contacts.

Output is spreadsheet-friendly:
- UTF-8 BOM so Excel picks the right encoding
- ``#`` (row number), the 42 labels, then ``Status``
- CRLF line endings
- Phone numbers, postcodes and tax IDs stay text: a bare digit run of
  length >= 3 in a text-forced column is written as ="value"
"""

import csv
import io
import re
from datetime import date
from typing import Iterable, Optional

from schemas.contact_schema import COLUMNS
from services.row_normalizer import ContactRecord

BOM = "\ufeff"
CSV_MEDIA_TYPE = "text/csv; charset=utf-8"

_DIGIT_RUN_RE = re.compile(r"^\d{3,}$", re.ASCII)


def force_text(value: str) -> str:
    """Wrap a bare digit run as a literal formula so readers keep leading zeros."""
    if _DIGIT_RUN_RE.match(value):
        return f'="{value}"'
    return value


def csv_header() -> list:
    return ["#"] + [col.label for col in COLUMNS] + ["Status"]


def render_contacts_csv(records: Iterable[ContactRecord]) -> str:
    output = io.StringIO()
    writer = csv.writer(output, lineterminator="\r\n")
    writer.writerow(csv_header())

    for record in records:
        row = [record.id]
        for col in COLUMNS:
            value = record.fields.get(col.key, "")
            row.append(force_text(value) if col.force_text else value)
        row.append(record.status)
        writer.writerow(row)

    return BOM + output.getvalue()


def export_filename(today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"CRM_Export_{today.isoformat()}.csv"
