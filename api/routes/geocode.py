"""Geocoding and full-sheet reprocessing endpoints."""
import json
import logging
from typing import Any, AsyncIterator, Dict

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel
from starlette.concurrency import iterate_in_threadpool

from api.deps import SheetTarget, get_geocode_cache, get_geocoder, get_sheet_target, get_store
from core.errors import CRMError
from services.enrichment_runner import DEFAULT_CHUNK_SIZE, reprocess_contacts
from services.geocoding import CachedGeocoder, GeocodeCache

logger = logging.getLogger(__name__)

router = APIRouter()


class GeocodeRequest(BaseModel):
    address: str
    postcode: str = ""


def format_sse(event: Dict[str, Any]) -> str:
    """One server-sent event frame."""
    return f"event: {event['event']}\ndata: {json.dumps(event, ensure_ascii=False)}\n\n"


@router.post("/geocode")
def geocode_address(
    request: GeocodeRequest,
    geocoder: CachedGeocoder = Depends(get_geocoder),
):
    """Resolve one free-text address to city, state, postcode and coordinates."""
    if not request.address.strip():
        raise HTTPException(status_code=400, detail="address is required")

    result, from_cache = geocoder.geocode(request.address, request.postcode.strip())
    if result is None:
        return {
            "success": False,
            "error": "No geocoding result for this address.",
            "address": request.address,
        }

    return {"success": True, "data": result.to_dict(), "fromCache": from_cache}


@router.get("/geocode/cache-stats")
def cache_stats(cache: GeocodeCache = Depends(get_geocode_cache)):
    return {"success": True, **cache.stats()}


@router.get("/enrichment/reprocess")
async def reprocess(
    request: Request,
    chunk_size: int = Query(DEFAULT_CHUNK_SIZE, alias="chunkSize", ge=1, le=500),
    target: SheetTarget = Depends(get_sheet_target),
    store=Depends(get_store),
    geocoder: CachedGeocoder = Depends(get_geocoder),
):
    """
    Geocode every contact and fill empty location fields.

    Streams progress as text/event-stream. Closing the connection stops the
    run after the current row.
    """
    events = reprocess_contacts(
        store,
        target.spreadsheet_id,
        target.sheet_name,
        geocoder,
        chunk_size=chunk_size,
    )

    async def stream() -> AsyncIterator[str]:
        try:
            async for event in iterate_in_threadpool(events):
                if await request.is_disconnected():
                    logger.info("Client disconnected, stopping reprocess")
                    break
                yield format_sse(event)
        except CRMError as e:
            # Headers are already sent; report the failure as a final event
            logger.warning(f"Reprocess aborted: {e.kind}: {e.message}")
            yield format_sse({"event": "error", **e.to_dict()})
        finally:
            events.close()

    return StreamingResponse(
        stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
