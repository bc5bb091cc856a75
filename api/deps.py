"""FastAPI dependencies.

The row store, geocoder and geocode cache live on ``app.state`` and are
created once per app. Tests replace them with fakes before the first request.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Query, Request

from core.config import AppConfig
from core.errors import ConfigurationError
from core.logging_config import set_context
from services.contact_service import ContactService
from services.geocoding import CachedGeocoder, GeocodeCache, GoogleGeocoder
from services.sheets_client import SheetsClient

logger = logging.getLogger(__name__)


@dataclass
class SheetTarget:
    spreadsheet_id: str
    sheet_name: str


def get_app_config(request: Request) -> AppConfig:
    return request.app.state.config


def get_store(request: Request):
    """Row store for this app, built from credentials on first use."""
    state = request.app.state
    if state.store is None:
        state.store = SheetsClient.from_config(state.config.sheets)
        logger.info(f"Sheets client ready ({state.store.service_account_email})")
    return state.store


async def get_sheet_target(
    spreadsheet_id: Optional[str] = Query(None, alias="spreadsheetId"),
    sheet_name: Optional[str] = Query(None, alias="sheetName"),
    config: AppConfig = Depends(get_app_config),
) -> SheetTarget:
    """Query parameters override the configured spreadsheet and tab."""
    target = SheetTarget(
        spreadsheet_id=spreadsheet_id or config.sheets.spreadsheet_id,
        sheet_name=sheet_name or config.sheets.sheet_name,
    )
    if not target.spreadsheet_id:
        raise ConfigurationError("SPREADSHEET_ID is not configured")
    set_context(spreadsheet_id=target.spreadsheet_id, sheet_name=target.sheet_name)
    return target


def get_contact_service(
    target: SheetTarget = Depends(get_sheet_target),
    store=Depends(get_store),
) -> ContactService:
    return ContactService(store, target.spreadsheet_id, target.sheet_name)


def get_geocode_cache(request: Request) -> GeocodeCache:
    return request.app.state.geocode_cache


def get_geocoder(request: Request) -> CachedGeocoder:
    """Cache-first geocoder; requires GOOGLE_MAPS_API_KEY unless a fake is installed."""
    state = request.app.state
    if state.geocoder is None:
        config = state.config.geocoding
        if not config.api_key:
            raise ConfigurationError("GOOGLE_MAPS_API_KEY is not configured")
        state.geocoder = CachedGeocoder(
            GoogleGeocoder.from_config(config),
            state.geocode_cache,
            min_interval=config.min_interval_ms / 1000.0,
        )
    return state.geocoder
