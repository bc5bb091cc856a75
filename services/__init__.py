"""Services for the contact enrichment pipeline."""

from services.header_resolver import HeaderMapping, HeaderResolution, MappingKind, resolve_headers
from services.row_normalizer import ContactRecord, normalize_row, normalize_rows
from services.validator import FieldResult, ValidationResult, validate_contact
from services.sheets_client import CellWrite, SheetData, SheetsClient
from services.sheet_writer import SyncResult, UpdateResult, sync_columns, update_rows
from services.stats import compute_stats
from services.geocoding import CachedGeocoder, GeocodeCache, GeocodeResult, GoogleGeocoder
from services.contact_service import ContactService

__all__ = [
    # Header mapping
    "HeaderMapping",
    "HeaderResolution",
    "MappingKind",
    "resolve_headers",
    # Normalization
    "ContactRecord",
    "normalize_row",
    "normalize_rows",
    # Validation
    "FieldResult",
    "ValidationResult",
    "validate_contact",
    # Google Sheets
    "CellWrite",
    "SheetData",
    "SheetsClient",
    "SyncResult",
    "UpdateResult",
    "sync_columns",
    "update_rows",
    # Stats
    "compute_stats",
    # Geocoding
    "CachedGeocoder",
    "GeocodeCache",
    "GeocodeResult",
    "GoogleGeocoder",
    # Pipeline
    "ContactService",
]
