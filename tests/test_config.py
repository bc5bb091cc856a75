"""Tests for configuration module."""

import base64
import json
import os
from unittest.mock import patch

import pytest

from core.config import (
    AppConfig,
    ConfigurationError,
    GeocodingConfig,
    SheetsConfig,
    _mask_secret,
    load_config_from_env,
    load_service_account_info,
)


def _b64(payload) -> str:
    return base64.b64encode(json.dumps(payload).encode("utf-8")).decode("ascii")


class TestMaskSecret:
    """Tests for secret masking utility."""

    def test_mask_normal_secret(self):
        """Test masking of normal length secret."""
        assert _mask_secret("abcdefghij") == "abcd******"

    def test_mask_short_secret(self):
        """Test masking of short secret."""
        assert _mask_secret("abc") == "***"

    def test_mask_empty_secret(self):
        """Test masking of empty secret."""
        assert _mask_secret("") == "<empty>"

    def test_repr_hides_api_key(self):
        """API key should not appear in repr."""
        config = GeocodingConfig(api_key="AIzaSecretKey123")
        assert "AIzaSecretKey123" not in repr(config)
        assert "AIza" in repr(config)


class TestSheetsConfig:
    """Tests for SheetsConfig validation."""

    def test_valid_config_with_b64_credentials(self):
        """Spreadsheet id plus base64 credentials is valid."""
        config = SheetsConfig(spreadsheet_id="abc123", credentials_b64=_b64({"a": 1}))
        assert config.validate() == []

    def test_placeholder_id_counts_as_missing(self):
        """The .env template placeholder is not a real id."""
        config = SheetsConfig(
            spreadsheet_id="your_google_spreadsheet_id_here",
            credentials_b64=_b64({"a": 1}),
        )
        assert any("SPREADSHEET_ID" in e for e in config.validate())

    def test_missing_credentials(self, tmp_path):
        """No env credentials and no file is an error."""
        config = SheetsConfig(
            spreadsheet_id="abc123",
            credentials_file=str(tmp_path / "missing.json"),
        )
        assert any("GOOGLE_CREDENTIALS" in e for e in config.validate())


class TestAppConfig:
    """Tests for AppConfig validation."""

    def test_validate_collects_all_errors(self, tmp_path):
        """All problems are reported at once."""
        config = AppConfig(
            sheets=SheetsConfig(credentials_file=str(tmp_path / "none.json")),
            geocoding=GeocodingConfig(),
        )
        with pytest.raises(ConfigurationError) as exc:
            config.validate(require_sheets=True, require_geocoding=True)
        message = str(exc.value)
        assert "SPREADSHEET_ID" in message
        assert "GOOGLE_MAPS_API_KEY" in message

    def test_geocoding_optional_by_default(self):
        """Sheets-only validation ignores a missing Maps key."""
        config = AppConfig(sheets=SheetsConfig(spreadsheet_id="x", credentials_b64=_b64({})))
        config.validate()


class TestServiceAccountInfo:
    """Tests for credential resolution."""

    def test_env_base64_wins(self, tmp_path):
        """Base64 env credentials are used before the file."""
        creds_file = tmp_path / "credentials.json"
        creds_file.write_text(json.dumps({"client_email": "file@x.iam"}))
        config = SheetsConfig(
            credentials_b64=_b64({"client_email": "env@x.iam"}),
            credentials_file=str(creds_file),
        )
        assert load_service_account_info(config)["client_email"] == "env@x.iam"

    def test_file_fallback(self, tmp_path):
        """Credentials file is read when no env value is set."""
        creds_file = tmp_path / "credentials.json"
        creds_file.write_text(json.dumps({"client_email": "file@x.iam"}))
        config = SheetsConfig(credentials_file=str(creds_file))
        assert load_service_account_info(config)["client_email"] == "file@x.iam"

    def test_invalid_base64(self):
        """Garbage in GOOGLE_CREDENTIALS is CREDENTIALS_INVALID."""
        config = SheetsConfig(credentials_b64="not base64 !!!")
        with pytest.raises(ConfigurationError) as exc:
            load_service_account_info(config)
        assert exc.value.kind == "CREDENTIALS_INVALID"

    def test_base64_of_non_json(self):
        """Valid base64 that is not JSON is CREDENTIALS_INVALID."""
        config = SheetsConfig(credentials_b64=base64.b64encode(b"hello").decode())
        with pytest.raises(ConfigurationError) as exc:
            load_service_account_info(config)
        assert exc.value.kind == "CREDENTIALS_INVALID"

    def test_not_found(self, tmp_path):
        """Nothing configured is CREDENTIALS_NOT_FOUND."""
        config = SheetsConfig(credentials_file=str(tmp_path / "nope.json"))
        with pytest.raises(ConfigurationError) as exc:
            load_service_account_info(config)
        assert exc.value.kind == "CREDENTIALS_NOT_FOUND"
        assert exc.value.http_status == 500


class TestLoadConfigFromEnv:
    """Tests for environment loading."""

    def test_reads_values(self):
        """Environment variables populate the config."""
        env = {
            "SPREADSHEET_ID": "sheet-1",
            "SHEET_NAME": "Contacts",
            "GOOGLE_MAPS_API_KEY": "key",
            "GEOCODE_MIN_INTERVAL_MS": "250",
            "LOG_LEVEL": "debug",
            "CORS_ORIGINS": "http://localhost:5173, http://example.com",
        }
        with patch.dict(os.environ, env, clear=False):
            config = load_config_from_env()

        assert config.sheets.spreadsheet_id == "sheet-1"
        assert config.sheets.sheet_name == "Contacts"
        assert config.geocoding.api_key == "key"
        assert config.geocoding.min_interval_ms == 250
        assert config.log_level == "DEBUG"
        assert config.cors_origins == ["http://localhost:5173", "http://example.com"]

    def test_defaults(self):
        """Unset values fall back to defaults."""
        with patch.dict(os.environ, {}, clear=True), patch("core.config.load_dotenv"):
            config = load_config_from_env()

        assert config.sheets.sheet_name == "Worksheet"
        assert config.geocoding.region == "my"
        assert config.geocoding.min_interval_ms == 100
        assert config.cors_origins == ["*"]
