"""Centralized configuration management with validation."""
import base64
import binascii
import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from core.errors import ConfigurationError

PLACEHOLDER_SPREADSHEET_ID = "your_google_spreadsheet_id_here"


def _mask_secret(value: str, visible_chars: int = 4) -> str:
    """Mask a secret value for logging, showing only first few chars."""
    if not value:
        return "<empty>"
    if len(value) <= visible_chars:
        return "*" * len(value)
    return value[:visible_chars] + "*" * (len(value) - visible_chars)


@dataclass
class SheetsConfig:
    """Google Sheets configuration."""
    spreadsheet_id: str = ""
    sheet_name: str = "Worksheet"
    credentials_b64: str = ""  # base64-encoded service account JSON
    credentials_file: str = "credentials.json"

    def validate(self) -> List[str]:
        """Validate sheets configuration, return list of errors."""
        errors = []
        if not self.spreadsheet_id or self.spreadsheet_id == PLACEHOLDER_SPREADSHEET_ID:
            errors.append("SPREADSHEET_ID is required")
        if not self.sheet_name:
            errors.append("SHEET_NAME must not be empty")
        if not self.credentials_b64 and not Path(self.credentials_file).exists():
            errors.append(
                f"GOOGLE_CREDENTIALS or a credentials file ({self.credentials_file}) is required"
            )
        return errors

    def __repr__(self) -> str:
        return (f"SheetsConfig(spreadsheet_id={self.spreadsheet_id}, sheet_name={self.sheet_name}, "
                f"credentials_b64={_mask_secret(self.credentials_b64)}, "
                f"credentials_file={self.credentials_file})")


@dataclass
class GeocodingConfig:
    """Google Maps Geocoding configuration."""
    api_key: str = ""
    region: str = "my"
    min_interval_ms: int = 100  # 10 requests/sec
    timeout: float = 10.0

    def validate(self) -> List[str]:
        """Validate geocoding configuration, return list of errors."""
        errors = []
        if not self.api_key:
            errors.append("GOOGLE_MAPS_API_KEY is required")
        if self.min_interval_ms < 0:
            errors.append("GEOCODE_MIN_INTERVAL_MS must not be negative")
        return errors

    def __repr__(self) -> str:
        return (f"GeocodingConfig(api_key={_mask_secret(self.api_key)}, region={self.region}, "
                f"min_interval_ms={self.min_interval_ms})")


@dataclass
class AppConfig:
    """Main application configuration."""
    sheets: SheetsConfig = field(default_factory=SheetsConfig)
    geocoding: GeocodingConfig = field(default_factory=GeocodingConfig)

    # Runtime settings
    log_level: str = "INFO"
    log_format: str = "text"  # "json" or "text"
    cors_origins: List[str] = field(default_factory=lambda: ["*"])

    def validate(self, require_sheets: bool = True, require_geocoding: bool = False) -> None:
        """Validate all configuration, raise ConfigurationError if invalid."""
        errors = []

        if require_sheets:
            errors.extend(self.sheets.validate())
        if require_geocoding:
            errors.extend(self.geocoding.validate())

        if errors:
            raise ConfigurationError("Configuration errors:\n  - " + "\n  - ".join(errors))

    def __repr__(self) -> str:
        return (f"AppConfig(\n  sheets={self.sheets},\n  geocoding={self.geocoding},\n  "
                f"log_level={self.log_level}, log_format={self.log_format}\n)")


def load_service_account_info(config: SheetsConfig) -> Dict[str, Any]:
    """
    Resolve service account credentials.

    Priority:
    1. GOOGLE_CREDENTIALS (base64-encoded JSON)
    2. Credentials file on disk

    Raises:
        ConfigurationError: credentials missing (CREDENTIALS_NOT_FOUND) or
            not decodable (CREDENTIALS_INVALID)
    """
    if config.credentials_b64:
        try:
            decoded = base64.b64decode(config.credentials_b64, validate=True).decode("utf-8")
            return json.loads(decoded)
        except (binascii.Error, UnicodeDecodeError, ValueError) as e:
            raise ConfigurationError(
                f"GOOGLE_CREDENTIALS is not valid base64-encoded JSON: {e}",
                kind="CREDENTIALS_INVALID",
            ) from e

    creds_path = Path(config.credentials_file)
    if creds_path.exists():
        try:
            return json.loads(creds_path.read_text(encoding="utf-8"))
        except ValueError as e:
            raise ConfigurationError(
                f"Credentials file {creds_path} is not valid JSON: {e}",
                kind="CREDENTIALS_INVALID",
            ) from e

    raise ConfigurationError(
        "Google credentials not found. Set GOOGLE_CREDENTIALS (base64 JSON) "
        f"or place {config.credentials_file} in the project root.",
        kind="CREDENTIALS_NOT_FOUND",
    )


def load_config_from_env() -> AppConfig:
    """Load configuration from environment variables."""

    # Load .env file if present
    load_dotenv()

    origins = os.getenv("CORS_ORIGINS", "*")

    config = AppConfig(
        sheets=SheetsConfig(
            spreadsheet_id=os.getenv("SPREADSHEET_ID", ""),
            sheet_name=os.getenv("SHEET_NAME", "Worksheet"),
            credentials_b64=os.getenv("GOOGLE_CREDENTIALS", ""),
            credentials_file=os.getenv("GOOGLE_CREDENTIALS_FILE", "credentials.json"),
        ),
        geocoding=GeocodingConfig(
            api_key=os.getenv("GOOGLE_MAPS_API_KEY", ""),
            region=os.getenv("GEOCODE_REGION", "my"),
            min_interval_ms=int(os.getenv("GEOCODE_MIN_INTERVAL_MS", "100")),
            timeout=float(os.getenv("GEOCODE_TIMEOUT", "10")),
        ),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        log_format=os.getenv("LOG_FORMAT", "text"),
        cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
    )

    return config


# Singleton config instance
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = load_config_from_env()
    return _config


def reset_config() -> None:
    """Reset the global configuration (for testing)."""
    global _config
    _config = None
