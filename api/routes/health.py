"""Health check and schema endpoints."""
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from api.deps import get_app_config
from core.config import AppConfig
from schemas.contact_schema import get_schema_info

router = APIRouter()

# Version info - updated on build/deploy
APP_VERSION = "1.0.0"
BUILD_TIME = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    build_time: str
    checks: Dict[str, Any]


@router.get("/health", response_model=HealthResponse)
async def health_check(config: AppConfig = Depends(get_app_config)):
    """
    Health check endpoint.

    Reports configuration status for:
    - Google Sheets (spreadsheet id, credentials)
    - Geocoding (API key)

    Never touches the network.
    """
    sheets_errors = config.sheets.validate()
    geocoding_errors = config.geocoding.validate()

    checks = {
        "sheets": {
            "status": "ok" if not sheets_errors else "not_configured",
            "errors": sheets_errors,
            "sheet_name": config.sheets.sheet_name,
        },
        "geocoding": {
            "status": "ok" if not geocoding_errors else "not_configured",
            "errors": geocoding_errors,
        },
    }

    return HealthResponse(
        status="healthy" if not sheets_errors else "degraded",
        version=APP_VERSION,
        build_time=BUILD_TIME,
        checks=checks,
    )


@router.get("/columns")
async def get_columns():
    """The 42-column schema, groups and state list for the UI."""
    return {"success": True, **get_schema_info()}
