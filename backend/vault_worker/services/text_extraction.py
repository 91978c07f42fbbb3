"""
Document Loader

Extracts plain text from stored documents so they can be classified.
Supports PDFs, Word documents, Excel workbooks and plain text formats.

Usage:
    loader = DocumentLoader()
    text = loader.load(file_content, "application/pdf")
    sample = get_content_sample(text)
"""

import io
import logging
from typing import Callable, Dict, Optional

import PyPDF2
from docx import Document
from openpyxl import load_workbook

from vault_worker.core.config import settings

logger = logging.getLogger(__name__)

DOCX_MIMETYPES = {
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/msword",
}
XLSX_MIMETYPES = {
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-excel",
}
TEXT_MIMETYPES = {"text/plain", "text/csv", "text/markdown"}

LOADABLE_MIMETYPES = {"application/pdf"} | DOCX_MIMETYPES | XLSX_MIMETYPES | TEXT_MIMETYPES


def is_mimetype_supported(mimetype: str) -> bool:
    """Whether the pipeline can classify files of this type (images or loadable documents)."""
    return mimetype.startswith("image/") or mimetype in LOADABLE_MIMETYPES


def limit_words(text: str, max_words: int) -> str:
    """Truncate text to at most ``max_words`` whitespace-separated words."""
    if not text:
        return ""
    words = text.split()
    if len(words) <= max_words:
        return " ".join(words)
    return " ".join(words[:max_words])


def get_content_sample(text: str, max_words: Optional[int] = None) -> str:
    """Return the bounded prefix of a document used for classification.

    Args:
        text: Full extracted text
        max_words: Word budget (defaults to settings.CONTENT_SAMPLE_WORDS)

    Returns:
        Whitespace-normalized sample, empty if the text has no words
    """
    return limit_words(text, max_words or settings.CONTENT_SAMPLE_WORDS)


def _decode_text(file_content: bytes) -> str:
    try:
        return file_content.decode("utf-8")
    except UnicodeDecodeError:
        logger.warning("Text is not valid UTF-8; decoding as latin-1")
        return file_content.decode("latin-1", errors="ignore")


def _read_pdf(file_content: bytes) -> str:
    """
    Join the text of every PDF page that has any.

    A page that cannot be read is skipped, so a scanned (image-only) PDF
    comes back as an empty string instead of an error.
    """
    reader = PyPDF2.PdfReader(io.BytesIO(file_content))
    pages = []
    for number, page in enumerate(reader.pages, start=1):
        try:
            page_text = page.extract_text() or ""
        except Exception as e:
            logger.warning(f"Skipping unreadable PDF page {number}: {e}")
            continue
        if page_text.strip():
            pages.append(page_text)
    return "\n\n".join(pages)


def _read_docx(file_content: bytes) -> str:
    document = Document(io.BytesIO(file_content))
    blocks = [paragraph.text for paragraph in document.paragraphs if paragraph.text.strip()]

    # Invoices keep line items in tables; one line per row
    for table in document.tables:
        for row in table.rows:
            cells = [cell.text.strip() for cell in row.cells]
            if any(cells):
                blocks.append("\t".join(cells))

    return "\n".join(blocks)


def _read_xlsx(file_content: bytes) -> str:
    workbook = load_workbook(io.BytesIO(file_content), read_only=True, data_only=True)
    try:
        lines = []
        for sheet in workbook.worksheets:
            lines.append(f"Sheet: {sheet.title}")
            for row in sheet.iter_rows(values_only=True):
                values = [str(value) for value in row if value is not None]
                if values:
                    lines.append("\t".join(values))
        return "\n".join(lines)
    finally:
        workbook.close()


class DocumentLoader:
    """Turn PDF, DOCX, XLSX and text uploads into plain text for classification."""

    def __init__(self):
        self._readers: Dict[str, Callable[[bytes], str]] = {"application/pdf": _read_pdf}
        self._readers.update({mimetype: _read_docx for mimetype in DOCX_MIMETYPES})
        self._readers.update({mimetype: _read_xlsx for mimetype in XLSX_MIMETYPES})
        self._readers.update({mimetype: _decode_text for mimetype in TEXT_MIMETYPES})

    def load(self, file_content: bytes, mime_type: str, filename: str = "") -> str:
        """
        Extract text from a file based on its MIME type.

        Args:
            file_content: Raw bytes of the file
            mime_type: MIME type of the file (e.g., 'application/pdf')
            filename: Optional filename for logging purposes

        Returns:
            Extracted text, possibly empty

        Raises:
            ValueError: If the MIME type is not supported or the file is unreadable
        """
        reader = self._readers.get(mime_type)
        if reader is None:
            raise ValueError(f"Unsupported MIME type: {mime_type}")

        try:
            text = reader(file_content)
        except Exception as e:
            logger.error(f"Could not read {filename or 'file'} as {mime_type}: {e}")
            raise ValueError(f"Failed to extract text from {mime_type}: {e}") from e

        logger.info(f"Extracted {len(text)} chars from {filename or 'file'} ({mime_type})")
        return text
