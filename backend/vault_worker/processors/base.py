"""Shared plumbing for pipeline processors."""
import logging
from typing import Callable, Optional, Sequence

from vault_worker.core.config import settings
from vault_worker.core.errors import NonRetryableError
from vault_worker.core.timeout import with_timeout
from vault_worker.repositories.document_repository import DocumentRepository
from vault_worker.services.storage_service import StorageService

logger = logging.getLogger(__name__)

# (percent, message) -> None
ProgressCallback = Callable[[int, str], None]


class ProgressMilestones:
    STARTED = 5
    FETCHED = 20
    PROCESSING = 40
    HALFWAY = 50
    CLASSIFIED = 80
    COMPLETED = 100


class BaseProcessor:
    """Base class holding the document repository and progress reporting."""

    def __init__(self, documents: DocumentRepository, progress: Optional[ProgressCallback] = None):
        self.documents = documents
        self._progress = progress

    def report_progress(self, percent: int, message: str) -> None:
        if self._progress is None:
            return
        try:
            self._progress(percent, message)
        except Exception as e:
            logger.debug(f"Progress callback failed at {percent}%: {e}")

    async def mark_failed(self, team_id: str, path_tokens: Sequence[str]) -> None:
        """Move a document to ``failed`` while an error is already propagating.

        A failure here is logged so that the original error is the one re-raised.
        """
        try:
            await self.documents.rollback()
            await self.documents.mark_failed_by_path(team_id, path_tokens)
        except Exception as e:
            logger.error(f"Could not mark {'/'.join(path_tokens)} as failed for team {team_id}: {e}")


class StorageMixin:
    """Timeout-guarded blob download shared by processors that read files."""

    storage: StorageService

    async def download(self, file_name: str) -> bytes:
        """Download a blob or raise ``NonRetryableError`` when it does not exist."""
        data = await with_timeout(
            self.storage.download(file_name),
            settings.FILE_DOWNLOAD_TIMEOUT,
            f"File download timed out after {settings.FILE_DOWNLOAD_TIMEOUT}s",
        )
        if data is None:
            raise NonRetryableError(f"File not found: {file_name}")
        return data
