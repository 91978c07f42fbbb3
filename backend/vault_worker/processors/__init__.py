"""Job processors, one per pipeline stage."""
from vault_worker.processors.classify_document import ClassifyDocumentProcessor
from vault_worker.processors.classify_image import ClassifyImageProcessor
from vault_worker.processors.cleanup_stale_documents import CleanupStaleDocumentsProcessor
from vault_worker.processors.embed_document_tags import EmbedDocumentTagsProcessor
from vault_worker.processors.process_document import ProcessDocumentProcessor

__all__ = [
    "ProcessDocumentProcessor",
    "ClassifyDocumentProcessor",
    "ClassifyImageProcessor",
    "EmbedDocumentTagsProcessor",
    "CleanupStaleDocumentsProcessor",
]
