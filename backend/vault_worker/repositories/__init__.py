"""Repository layer for database access."""
from vault_worker.repositories.base_repository import BaseRepository
from vault_worker.repositories.document_repository import DocumentRepository
from vault_worker.repositories.tag_repository import TagRepository

__all__ = [
    "BaseRepository",
    "DocumentRepository",
    "TagRepository",
]
