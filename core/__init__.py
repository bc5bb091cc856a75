"""Core modules for configuration, errors and logging."""

from core.config import (
    AppConfig,
    GeocodingConfig,
    SheetsConfig,
    get_config,
    load_config_from_env,
    load_service_account_info,
    reset_config,
)
from core.errors import (
    ConfigurationError,
    CRMError,
    PermissionDeniedError,
    RowNotFoundError,
    SpreadsheetNotFoundError,
    TransportError,
)
from core.logging_config import (
    LogContext,
    clear_context,
    generate_run_id,
    set_context,
    setup_logging,
)

__all__ = [
    "AppConfig",
    "SheetsConfig",
    "GeocodingConfig",
    "load_config_from_env",
    "load_service_account_info",
    "get_config",
    "reset_config",
    "CRMError",
    "ConfigurationError",
    "SpreadsheetNotFoundError",
    "PermissionDeniedError",
    "RowNotFoundError",
    "TransportError",
    "setup_logging",
    "LogContext",
    "generate_run_id",
    "set_context",
    "clear_context",
]
