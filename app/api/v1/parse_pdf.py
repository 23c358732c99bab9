from __future__ import annotations

import logging

from fastapi import APIRouter, File, UploadFile, status
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.services.pdf_service import PdfExtractionError, extract_text_from_pdf

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/parse-pdf")
async def parse_pdf(file: UploadFile | None = File(default=None)):
    if file is None:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": "No file provided"})

    content = await file.read()
    if len(content) > settings.max_upload_bytes:
        limit_mb = settings.max_upload_bytes // (1024 * 1024)
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": f"File is too large. Maximum allowed size is {limit_mb} MB."},
        )

    try:
        text = extract_text_from_pdf(content)
    except PdfExtractionError as exc:
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc)})
    except Exception as exc:  # noqa: BLE001 - parser internals raise arbitrary errors
        logger.exception("pdf_parse_error filename=%s", file.filename)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "An error occurred while parsing the PDF.", "details": str(exc)},
        )

    return {"text": text}
