"""CSV export endpoint."""
from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from api.deps import get_contact_service
from services.contact_service import ContactService
from services.csv_export import CSV_MEDIA_TYPE

router = APIRouter()


@router.get("/csv")
def export_csv(service: ContactService = Depends(get_contact_service)):
    """
    Download all contacts as CSV.

    No pagination: every non-empty row is included.
    """
    filename, content, total = service.export_csv()

    return StreamingResponse(
        iter([content]),
        media_type=CSV_MEDIA_TYPE,
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "X-Total-Rows": str(total),
        },
    )
