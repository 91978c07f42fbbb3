"""Database models package."""
from vault_worker.db.models.document import Document, ProcessingStatus
from vault_worker.db.models.document_tag import DocumentTagAssignment
from vault_worker.db.models.tag import Tag
from vault_worker.db.models.tag_embedding import TagEmbedding

__all__ = [
    "Document",
    "ProcessingStatus",
    "Tag",
    "TagEmbedding",
    "DocumentTagAssignment",
]
