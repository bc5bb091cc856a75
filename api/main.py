"""FastAPI app for the contact enrichment CRM.

Run with: uvicorn api.main:app --reload --port 3001 (or the crm-server script)

Endpoints (all under /api):
- /health, /columns - Service status and the 42-column schema
- /contacts, /contacts/{id}, /contacts/bulk - List and edit contacts
- /stats - Completion statistics
- /export/csv - Download all contacts as CSV
- /sheets/data, /sheets/write, /sheets/list - Raw sheet access and column sync
- /import/from-url, /import/select-sheet - Import preview from a Sheets link
- /test-connection - Check credentials and sharing
- /geocode, /geocode/cache-stats, /enrichment/reprocess - Address enrichment
"""
import argparse
import logging
import sys
import uuid
from pathlib import Path
from typing import Optional

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from core.config import AppConfig, get_config
from core.errors import CRMError
from core.logging_config import clear_context, set_context, setup_logging
from services.geocoding import GeocodeCache

from api.routes import contacts, export, geocode, health, import_sheet, sheets

logger = logging.getLogger(__name__)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Middleware that adds a unique request ID to each request.

    - Uses the client's X-Request-ID or generates one
    - Sets it in the logging context for the request
    - Adds X-Request-ID header to responses
    """
    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())[:8]

        clear_context()
        set_context(request_id=request_id)
        request.state.request_id = request_id

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


async def crm_error_handler(request: Request, exc: CRMError) -> JSONResponse:
    """Infrastructure failures -> one message plus a machine-readable code."""
    logger.warning(f"{request.method} {request.url.path} failed: {exc.kind}: {exc.message}")
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


def create_app(
    config: Optional[AppConfig] = None,
    store=None,
    geocoder=None,
    geocode_cache: Optional[GeocodeCache] = None,
) -> FastAPI:
    """
    Build the app.

    ``store`` and ``geocoder`` default to lazily created Google clients;
    tests pass fakes here.
    """
    config = config or get_config()

    app = FastAPI(
        title="Contact Enrichment CRM",
        description="Google Sheets backed contact import, validation and enrichment",
        version=health.APP_VERSION,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    app.state.config = config
    app.state.store = store
    app.state.geocoder = geocoder
    if geocode_cache is None:
        geocode_cache = getattr(geocoder, "cache", None)
    app.state.geocode_cache = geocode_cache if geocode_cache is not None else GeocodeCache()

    app.add_middleware(RequestIDMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Total-Rows"],
    )

    app.add_exception_handler(CRMError, crm_error_handler)

    app.include_router(health.router, prefix="/api", tags=["Health"])
    app.include_router(contacts.router, prefix="/api", tags=["Contacts"])
    app.include_router(export.router, prefix="/api/export", tags=["Export"])
    app.include_router(sheets.router, prefix="/api", tags=["Sheets"])
    app.include_router(import_sheet.router, prefix="/api/import", tags=["Import"])
    app.include_router(geocode.router, prefix="/api", tags=["Geocoding"])

    return app


def _build_default_app() -> FastAPI:
    config = get_config()
    setup_logging(config.log_level, config.log_format)
    return create_app(config)


app = _build_default_app()


def main():
    parser = argparse.ArgumentParser(description="Contact Enrichment CRM API server")
    parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    parser.add_argument("--port", type=int, default=3001, help="Port to listen on")
    parser.add_argument("--reload", action="store_true", help="Reload on code changes")
    args = parser.parse_args()

    import uvicorn

    uvicorn.run("api.main:app", host=args.host, port=args.port, reload=args.reload)


if __name__ == "__main__":
    main()
