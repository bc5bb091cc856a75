"""Import preview from a Google Sheets link."""
import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from api.deps import get_store
from services.contact_service import ContactService
from services.sheet_url import parse_sheet_url, select_sheet

logger = logging.getLogger(__name__)

router = APIRouter()

PREVIEW_ROWS = 10


class ImportFromUrlRequest(BaseModel):
    url: str = Field(..., description="https://docs.google.com/spreadsheets/d/<id>/edit#gid=<gid>")


class SelectSheetRequest(BaseModel):
    spreadsheet_id: str = Field(..., alias="spreadsheetId")
    sheet_name: str = Field(..., alias="sheetName")

    class Config:
        populate_by_name = True


@router.post("/from-url")
def import_from_url(request: ImportFromUrlRequest, store=Depends(get_store)):
    """
    Resolve a Sheets link to a tab and preview it.

    The tab is picked by the link's gid, else the first tab.
    """
    if not request.url.strip():
        raise HTTPException(status_code=400, detail="url is required")

    parsed = parse_sheet_url(request.url)
    if not parsed.valid:
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": parsed.error, "code": parsed.code},
        )

    sheets = store.list_sheets(parsed.spreadsheet_id)
    if not sheets:
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": "This spreadsheet has no sheets."},
        )

    selected = select_sheet(sheets, parsed.gid)
    logger.info(f"Import preview: {parsed.spreadsheet_id} / {selected['title']}")

    service = ContactService(store, parsed.spreadsheet_id, selected["title"])
    return {
        "success": True,
        "spreadsheetId": parsed.spreadsheet_id,
        "sheets": sheets,
        "selectedSheet": selected,
        "serviceAccountEmail": getattr(store, "service_account_email", None),
        **service.preview(PREVIEW_ROWS),
    }


@router.post("/select-sheet")
def select_import_sheet(request: SelectSheetRequest, store=Depends(get_store)):
    """Preview another tab of an already resolved spreadsheet."""
    service = ContactService(store, request.spreadsheet_id, request.sheet_name)
    return {
        "success": True,
        "spreadsheetId": request.spreadsheet_id,
        "sheetName": request.sheet_name,
        **service.preview(PREVIEW_ROWS),
    }
