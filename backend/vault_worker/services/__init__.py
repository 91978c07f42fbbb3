"""Services package for pipeline logic and external integrations."""

from vault_worker.services.storage_service import StorageService
from vault_worker.services.text_extraction import DocumentLoader

__all__ = ["StorageService", "DocumentLoader"]
