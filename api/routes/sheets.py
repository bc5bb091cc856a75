"""Raw sheet access, column sync and connection test."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from api.deps import SheetTarget, get_app_config, get_contact_service, get_sheet_target, get_store
from core.config import PLACEHOLDER_SPREADSHEET_ID, AppConfig
from services.contact_service import ContactService

logger = logging.getLogger(__name__)

router = APIRouter()


class SheetWriteRequest(BaseModel):
    """Options for the column sync."""
    include_rows: bool = Field(True, alias="includeRows", description="Fill new columns from existing data")

    class Config:
        populate_by_name = True


@router.get("/sheets/data")
def read_sheet_data(
    target: SheetTarget = Depends(get_sheet_target),
    store=Depends(get_store),
):
    """Raw rows keyed by header, with ``_rowIndex``."""
    data = store.read_sheet(target.spreadsheet_id, target.sheet_name)
    return {"success": True, "headers": data.headers, "data": data.rows, "rowCount": data.row_count}


@router.post("/sheets/write")
def write_missing_columns(
    options: Optional[SheetWriteRequest] = None,
    service: ContactService = Depends(get_contact_service),
):
    """
    Append canonical columns missing from the sheet.

    Existing columns are never touched; running it twice adds nothing.
    """
    include_rows = options.include_rows if options is not None else True
    result = service.sync_columns(include_rows=include_rows)
    return {"success": True, **result.to_dict()}


@router.get("/sheets/list")
def list_sheets(
    target: SheetTarget = Depends(get_sheet_target),
    store=Depends(get_store),
):
    """Tabs of the spreadsheet."""
    sheets = store.list_sheets(target.spreadsheet_id)
    return {"success": True, "spreadsheetId": target.spreadsheet_id, "sheets": sheets}


@router.get("/test-connection")
def test_connection(
    request: Request,
    spreadsheet_id: Optional[str] = Query(None, alias="spreadsheetId"),
    sheet_name: Optional[str] = Query(None, alias="sheetName"),
    config: AppConfig = Depends(get_app_config),
):
    """Read the configured tab and report headers, row count and service account."""
    spreadsheet_id = spreadsheet_id or config.sheets.spreadsheet_id
    sheet_name = sheet_name or config.sheets.sheet_name

    if not spreadsheet_id or spreadsheet_id == PLACEHOLDER_SPREADSHEET_ID:
        return JSONResponse(
            status_code=400,
            content={
                "success": False,
                "connected": False,
                "error": "SPREADSHEET_ID is not configured. Set it in .env to your Google spreadsheet ID.",
                "code": "CONFIGURATION_ERROR",
            },
        )

    store = get_store(request)
    result = store.test_connection(spreadsheet_id, sheet_name)
    logger.info(f"Connection test for {spreadsheet_id}: connected={result['connected']}")
    if not result["connected"]:
        status = 500
        if result.get("code") == "PERMISSION_DENIED":
            status = 403
        elif result.get("code") == "SPREADSHEET_NOT_FOUND":
            status = 404
        return JSONResponse(status_code=status, content={"success": False, **result})

    return {
        "success": True,
        **result,
        "message": f"Connected. {result['totalRows']} data row(s) found.",
    }
