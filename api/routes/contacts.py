"""Contact list, edit and statistics endpoints.

Every request re-reads the sheet; the row number is the contact id.
"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from api.deps import get_contact_service
from schemas.contact_schema import RowHandle
from services.contact_service import DEFAULT_PAGE_SIZE, ContactService

router = APIRouter()


class BulkUpdateRequest(BaseModel):
    """Same field values applied to every listed row."""
    ids: List[int] = Field(..., description="Sheet row numbers")
    updates: Dict[str, Any] = Field(..., description="Field key -> new value")


def _outcome_response(outcome, message: str):
    if not outcome.ok:
        return JSONResponse(status_code=400, content=outcome.to_dict())
    return {**outcome.to_dict(), "message": message}


@router.get("/contacts")
def list_contacts(
    page: int = Query(1),
    limit: int = Query(DEFAULT_PAGE_SIZE),
    search: Optional[str] = Query(None),
    service: ContactService = Depends(get_contact_service),
):
    """
    List normalized contacts.

    Empty rows are dropped. ``limit`` is clamped to 1..200 and ``search``
    matches names, email, phones, address, city, state, postcode and company.
    """
    return {"success": True, **service.list_contacts(page, limit, search)}


@router.put("/contacts/bulk")
def bulk_update_contacts(
    request: BulkUpdateRequest,
    service: ContactService = Depends(get_contact_service),
):
    """Apply one update object to many rows in a single batch write."""
    if not request.ids:
        raise HTTPException(status_code=400, detail="ids[] is required")
    if not request.updates:
        raise HTTPException(status_code=400, detail="updates is required")

    outcome = service.bulk_update(request.ids, request.updates)
    return _outcome_response(outcome, f"{len(outcome.statuses)} contact(s) updated.")


@router.put("/contacts/{contact_id}")
def update_contact(
    contact_id: int,
    data: Dict[str, Any] = Body(...),
    service: ContactService = Depends(get_contact_service),
):
    """Validate and write any subset of the 42 fields for one row."""
    if not RowHandle(contact_id).is_data_row:
        raise HTTPException(status_code=400, detail="Invalid contact id")
    if not data:
        raise HTTPException(status_code=400, detail="No data to update")

    outcome = service.update_contact(contact_id, data)
    return _outcome_response(outcome, f"Contact row {contact_id} updated.")


@router.get("/stats")
def get_stats(service: ContactService = Depends(get_contact_service)):
    """Completion counts, per-group averages, per-field fill rates and per-state counts."""
    return {"success": True, **service.get_stats()}
