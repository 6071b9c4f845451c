"""
File processor service for extracting text from uploaded office documents.
Supports: PDF and Word (.docx). PowerPoint uploads are accepted but their
text is not extracted yet.
"""

import io
from pathlib import Path

from app.core.config import settings
from app.core.exceptions import ExtractionError, ValidationError
from app.core.logging_config import get_logger

# Document processing
import PyPDF2
from docx import Document as WordDocument

PDF_MIME = "application/pdf"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
PPTX_MIME = "application/vnd.openxmlformats-officedocument.presentationml.presentation"

ALLOWED_CONTENT_TYPES = {PDF_MIME, DOCX_MIME, PPTX_MIME}

logger = get_logger(__name__)


def validate_content_type(content_type: str | None) -> None:
    """Reject anything that is not a PDF, DOCX or PPTX upload."""
    if content_type not in ALLOWED_CONTENT_TYPES:
        logger.warning(f"Rejected upload with content type: {content_type}")
        raise ValidationError("Invalid file type. Only PDF, DOCX, and PPTX files are allowed.")


def extract_text_from_pdf(file_content: bytes) -> str:
    """Extract text from PDF file."""
    try:
        pdf_reader = PyPDF2.PdfReader(io.BytesIO(file_content))
        text_parts = []
        page_count = len(pdf_reader.pages)
        logger.debug(f"Processing PDF with {page_count} pages")
        for page in pdf_reader.pages:
            text = page.extract_text()
            if text:
                text_parts.append(text)
        logger.debug(f"Extracted text from {len(text_parts)} pages")
        return "\n\n".join(text_parts)
    except Exception as e:
        logger.error(f"PDF extraction failed: {str(e)}")
        raise ExtractionError(f"Failed to extract text from PDF: {str(e)}")


def extract_text_from_docx(file_content: bytes) -> str:
    """Extract text from Word document (.docx)."""
    try:
        doc = WordDocument(io.BytesIO(file_content))
        text_parts = [p.text for p in doc.paragraphs if p.text.strip()]
        # Also extract from tables
        for table in doc.tables:
            for row in table.rows:
                row_text = [cell.text.strip() for cell in row.cells if cell.text.strip()]
                if row_text:
                    text_parts.append(" | ".join(row_text))
        return "\n\n".join(text_parts)
    except Exception as e:
        logger.error(f"DOCX extraction failed: {str(e)}")
        raise ExtractionError(f"Failed to extract text from Word document: {str(e)}")


def extract_text(file_path: str | Path, content_type: str) -> str:
    """
    Extract plain text from a stored upload.

    Args:
        file_path: Path of the transient copy of the upload
        content_type: Declared MIME type of the upload

    Returns:
        Extracted text, possibly empty. Presentations always yield ``""``.

    Raises:
        ValidationError: If the content type is not supported
        ExtractionError: If the file cannot be read or parsed
    """
    validate_content_type(content_type)
    logger.info(f"Extracting text: {Path(file_path).name} ({content_type})")

    if content_type == PPTX_MIME:
        logger.info("Presentation text extraction is not supported; returning no text")
        return ""

    try:
        file_content = Path(file_path).read_bytes()
    except OSError as e:
        logger.error(f"Could not read upload {file_path}: {e}")
        raise ExtractionError(f"Failed to read uploaded file: {e}")

    if content_type == PDF_MIME:
        return extract_text_from_pdf(file_content)
    return extract_text_from_docx(file_content)


def get_supported_formats() -> dict:
    """Return information about supported file formats."""
    return {
        "contentTypes": sorted(ALLOWED_CONTENT_TYPES),
        "extensions": [".pdf", ".docx", ".pptx"],
        "textExtraction": [".pdf", ".docx"],
        "maxFileSizeMb": settings.max_upload_size_mb,
    }
