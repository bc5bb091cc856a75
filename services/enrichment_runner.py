"""
Full-sheet reprocessing - geocode every contact and fill empty location fields.

Runs as a generator of progress events so the HTTP layer can stream them:

    start  {run_id, total}
    row    {index, id, status, updates}     one per record, in row order
    flush  {rows, cells}                    after each chunk write
    done   {run_id, total, counts, rows_updated, cells_updated}

Row statuses: geocoded, cached, skipped, not_found, error.
The postcode cache is cleared at the start of every run. There is no
cancellation token; the consumer stops iterating when the client goes away,
and closing the generator writes whatever updates were already staged.
"""

import logging
from typing import Any, Dict, Iterator, List, Optional

from core.errors import TransportError
from core.logging_config import generate_run_id
from services.geocoding import CachedGeocoder, GeocodeResult, build_full_address
from services.header_resolver import resolve_headers
from services.row_normalizer import normalize_rows
from services.sheet_writer import update_rows
from services.validator import validate_state

logger = logging.getLogger(__name__)

# Location fields a geocode result may fill (record key -> result attribute)
LOCATION_FIELDS = {
    "city": "city",
    "state": "state",
    "zip": "zip",
    "country": "country",
    "longitude": "lng",
    "latitude": "lat",
}

ROW_STATUSES = ("geocoded", "cached", "skipped", "not_found", "error")

DEFAULT_CHUNK_SIZE = 50


def needs_location(fields: Dict[str, str]) -> bool:
    return any(not fields.get(key) for key in LOCATION_FIELDS)


def location_updates(fields: Dict[str, str], result: GeocodeResult) -> Dict[str, str]:
    """Values from a geocode result for location fields that are still empty."""
    updates = {}
    for key, attr in LOCATION_FIELDS.items():
        if fields.get(key):
            continue
        value = getattr(result, attr) or ""
        if not value:
            continue
        if key == "state":
            checked = validate_state(value)
            if not checked.valid:
                logger.debug(f"Geocoded state not recognized: {value}")
                continue
            value = checked.value
        updates[key] = value
    return updates


def reprocess_contacts(
    store,
    spreadsheet_id: str,
    sheet_name: str,
    geocoder: CachedGeocoder,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    run_id: Optional[str] = None,
) -> Iterator[Dict[str, Any]]:
    run_id = run_id or generate_run_id()
    geocoder.cache.clear()

    data = store.read_sheet(spreadsheet_id, sheet_name)
    records = normalize_rows(data.rows, resolve_headers(data.headers))
    total = len(records)

    logger.info(f"[{run_id}] Reprocessing {total} contacts in {sheet_name}")
    yield {"event": "start", "run_id": run_id, "total": total}

    counts = {status: 0 for status in ROW_STATUSES}
    pending: List[Dict[str, Any]] = []
    rows_updated = 0
    cells_updated = 0

    try:
        for index, record in enumerate(records, start=1):
            updates: Dict[str, str] = {}
            error = None
            address = build_full_address(record.fields)

            if not address or not needs_location(record.fields):
                status = "skipped"
            else:
                try:
                    result, from_cache = geocoder.geocode(address, record.fields.get("zip", ""))
                except TransportError as e:
                    status = "error"
                    error = e.message
                else:
                    if result is None:
                        status = "not_found"
                    else:
                        status = "cached" if from_cache else "geocoded"
                        updates = location_updates(record.fields, result)
                        if updates:
                            pending.append({"row": record.id, **updates})

            counts[status] += 1
            event = {
                "event": "row",
                "index": index,
                "total": total,
                "id": record.id,
                "status": status,
                "updates": updates,
            }
            if error:
                event["error"] = error
            yield event

            if len(pending) >= chunk_size:
                written = update_rows(store, spreadsheet_id, sheet_name, pending)
                rows_updated += written.updated_rows
                cells_updated += written.cells_updated
                pending = []
                yield {"event": "flush", "rows": written.updated_rows, "cells": written.cells_updated}
    except GeneratorExit:
        # Consumer went away; rows already geocoded still get written
        if pending:
            written = update_rows(store, spreadsheet_id, sheet_name, pending)
            logger.info(
                f"[{run_id}] Reprocess stopped early, wrote {written.updated_rows} staged row(s)"
            )
        raise

    if pending:
        written = update_rows(store, spreadsheet_id, sheet_name, pending)
        rows_updated += written.updated_rows
        cells_updated += written.cells_updated
        yield {"event": "flush", "rows": written.updated_rows, "cells": written.cells_updated}

    logger.info(
        f"[{run_id}] Reprocess done: {counts}, {rows_updated} row(s), {cells_updated} cell(s) written"
    )
    yield {
        "event": "done",
        "run_id": run_id,
        "total": total,
        "counts": counts,
        "rows_updated": rows_updated,
        "cells_updated": cells_updated,
        "cache": geocoder.cache.stats(),
    }
