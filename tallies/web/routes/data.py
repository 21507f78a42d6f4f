"""Data API Routes - Backup export/import and text summary.

Endpoints:
- GET  /api/data/export            - Download all counters as a JSON backup
- POST /api/data/import?mode=...   - Import a JSON backup (merge | replace)
- GET  /api/data/summary           - Plain-text summary for sharing
"""

import logging
from typing import Any

from fastapi import APIRouter, HTTPException, UploadFile
from fastapi.responses import Response

from tallies.core.session import get_session
from tallies.core.transfer import (
    EXPORT_MEDIA_TYPE,
    IMPORT_MODES,
    MODE_MERGE,
    SUMMARY_MEDIA_TYPE,
    ImportValidationError,
    export_filename,
    parse_import,
    share_message,
)

logger = logging.getLogger(__name__)

router = APIRouter()

# Upload size limit
MAX_IMPORT_BYTES = 5 * 1024 * 1024


@router.get("/export")
async def export_counters() -> Response:
    """Export all counters as a downloadable JSON file."""
    content = get_session().export_text()
    filename = export_filename()
    logger.info("Exporting counters as %s", filename)
    return Response(
        content=content.encode("utf-8"),
        media_type=EXPORT_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/import")
async def import_counters(file: UploadFile, mode: str = MODE_MERGE) -> dict[str, Any]:
    """Import counters from an uploaded backup file.

    Nothing is applied unless the whole file validates.

    Args:
        file: Uploaded JSON file.
        mode: "merge" (same id: imported wins) or "replace".

    Returns:
        Success message with imported and total counts.

    Raises:
        HTTPException: If mode, file type, encoding or content is invalid.
    """
    if mode not in IMPORT_MODES:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid mode '{mode}'. Must be one of: {', '.join(IMPORT_MODES)}",
        )

    if not file.filename or not file.filename.endswith(".json"):
        raise HTTPException(status_code=400, detail="File must be a .json file")

    if file.content_type and file.content_type not in (
        "application/json",
        "text/json",
        "text/plain",
        "application/octet-stream",
    ):
        raise HTTPException(
            status_code=400,
            detail=f"Invalid content type: {file.content_type}. Expected application/json",
        )

    content = await file.read()
    if len(content) > MAX_IMPORT_BYTES:
        raise HTTPException(status_code=400, detail="File too large (max 5MB)")

    try:
        incoming = parse_import(content.decode("utf-8"))
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="File must be UTF-8 encoded")
    except ImportValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    result = get_session().import_counters(incoming, mode)
    logger.info("Imported %d counters from '%s' (%s)", len(incoming), file.filename, mode)

    return {
        "message": f"Imported {len(incoming)} counters",
        "mode": mode,
        "imported": len(incoming),
        "total": len(result),
    }


@router.get("/summary")
async def counter_summary() -> Response:
    """Plain-text summary of all counters."""
    message = share_message(get_session().repository.get_all())
    return Response(content=message, media_type=SUMMARY_MEDIA_TYPE)
