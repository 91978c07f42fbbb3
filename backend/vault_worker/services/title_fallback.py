"""Deterministic titles for documents the classifier could not name."""
import logging
from datetime import date
from pathlib import PurePosixPath
from typing import Optional

logger = logging.getLogger(__name__)

SUMMARY_EXCERPT_CHARS = 50
KEYWORD_SAMPLE_CHARS = 2000

# Ordered; first label whose keyword appears wins
TYPE_KEYWORDS = (
    ("Invoice", ("invoice", "bill", "amount due", "payment due")),
    ("Receipt", ("receipt",)),
    ("Contract", ("contract", "agreement")),
    ("Report", ("report",)),
)


def derive_type_label(text: str, default: str) -> str:
    """Pick a document type label from keywords in ``text``."""
    lowered = (text or "").lower()
    for label, keywords in TYPE_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return label
    return default


def build_fallback_title(
    file_name: str,
    content: Optional[str] = None,
    summary: Optional[str] = None,
    document_date: Optional[date] = None,
    default_type: str = "Document",
) -> str:
    """Compose ``"{type} - {summary excerpt or file name} - {date}"``.

    Args:
        file_name: Storage path or file name of the document
        content: Extracted text, if any
        summary: Classifier summary, if any
        document_date: Classifier date, if any
        default_type: Label used when no keyword matches ("Document" or "Image")

    Returns:
        A non-empty title
    """
    sample = f"{(content or '')[:KEYWORD_SAMPLE_CHARS]} {summary or ''}"
    title = derive_type_label(sample, default_type)

    summary = (summary or "").strip()
    if summary:
        excerpt = summary[:SUMMARY_EXCERPT_CHARS]
        if len(summary) > SUMMARY_EXCERPT_CHARS:
            excerpt = f"{excerpt.rstrip()}..."
        title = f"{title} - {excerpt}"
    else:
        stem = PurePosixPath(file_name).stem
        if stem:
            title = f"{title} - {stem}"

    if document_date:
        title = f"{title} - {document_date.isoformat()}"

    logger.warning(
        f"Classifier returned no title for {file_name}; using fallback '{title}' "
        f"(content length {len(content or '')}, has summary {bool(summary)}, has date {bool(document_date)})"
    )
    return title
