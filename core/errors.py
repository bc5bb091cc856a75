"""Error taxonomy for sheet and infrastructure failures.

Data problems (bad postcode, unknown state, ...) are never raised: they come
back as structured validation results. Only infrastructure failures use
exceptions, and each one carries a machine-readable ``kind`` so the caller
can render a specific message.
"""
from typing import Any, Dict, Optional


class CRMError(Exception):
    """Base class for infrastructure errors surfaced to the request boundary."""

    kind = "UNKNOWN"
    http_status = 500

    def __init__(self, message: str, kind: Optional[str] = None, **details: Any):
        super().__init__(message)
        self.message = message
        if kind:
            self.kind = kind
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        data = {"success": False, "error": self.message, "code": self.kind}
        data.update(self.details)
        return data


class ConfigurationError(CRMError):
    """Raised when configuration is invalid or missing."""
    kind = "CONFIGURATION_ERROR"
    http_status = 500


class SpreadsheetNotFoundError(CRMError):
    """Spreadsheet id or sheet name does not resolve."""
    kind = "SPREADSHEET_NOT_FOUND"
    http_status = 404


class PermissionDeniedError(CRMError):
    """The service account has no access to the spreadsheet."""
    kind = "PERMISSION_DENIED"
    http_status = 403

    def __init__(self, message: str, service_account_email: Optional[str] = None):
        super().__init__(message, serviceAccountEmail=service_account_email)
        self.service_account_email = service_account_email


class RowNotFoundError(CRMError):
    """Edit target row is missing from the current sheet snapshot."""
    kind = "ROW_NOT_FOUND"
    http_status = 404

    def __init__(self, row: int):
        super().__init__(f"Row {row} not found in sheet", row=row)
        self.row = row


class TransportError(CRMError):
    """Network or API failure from the row store or address resolver."""
    kind = "TRANSPORT_ERROR"
    http_status = 502
