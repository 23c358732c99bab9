from __future__ import annotations

import logging
from io import BytesIO

from pypdf import PdfReader
from pypdf.errors import PyPdfError

logger = logging.getLogger(__name__)

PDF_MAGIC = b"%PDF-"


class PdfExtractionError(ValueError):
    def __init__(self, message: str, *, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


def validate_pdf_signature(content: bytes) -> None:
    if not content.startswith(PDF_MAGIC):
        raise PdfExtractionError("File signature does not match .pdf content.")


def extract_text_from_pdf(content: bytes) -> str:
    """Return the raw text layer of a PDF upload.

    Raises ``PdfExtractionError`` (400) when the file is not a PDF or holds no
    extractable text, which usually means a scanned or protected document.
    """
    if not content:
        raise PdfExtractionError("No file provided")
    validate_pdf_signature(content)

    try:
        reader = PdfReader(BytesIO(content))
        page_chunks: list[str] = []
        for page in reader.pages:
            page_text = page.extract_text() or ""
            if page_text.strip():
                page_chunks.append(page_text)
    except PyPdfError as exc:
        logger.warning("pdf_parse_failed bytes=%s: %s", len(content), exc)
        raise PdfExtractionError(
            "Failed to extract text. The PDF might be scanned or protected.",
        ) from exc

    text = "\n\n".join(page_chunks)
    if not text.strip():
        raise PdfExtractionError("Failed to extract text. The PDF might be scanned or protected.")
    return text
