"""Stale document sweeper."""
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional

from vault_worker.core.config import settings
from vault_worker.repositories.document_repository import DocumentRepository

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CleanupStaleDocumentsProcessor:
    """Fail documents that stayed ``pending`` longer than the stale threshold."""

    def __init__(
        self,
        documents: DocumentRepository,
        clock: Callable[[], datetime] = _utcnow,
        stale_minutes: Optional[int] = None,
        batch_size: Optional[int] = None,
    ):
        self.documents = documents
        self.clock = clock
        self.stale_minutes = settings.STALE_DOCUMENT_MINUTES if stale_minutes is None else stale_minutes
        self.batch_size = settings.STALE_DOCUMENT_BATCH_SIZE if batch_size is None else batch_size

    async def process(self) -> Dict[str, int]:
        cutoff = self.clock() - timedelta(minutes=self.stale_minutes)
        try:
            stale_ids = await self.documents.find_stale_pending(cutoff, self.batch_size)
            if not stale_ids:
                logger.info("No stale documents found")
                return {"stale_documents_found": 0, "documents_marked_failed": 0}

            marked = await self.documents.mark_failed_if_pending(stale_ids)
            logger.info(
                f"Marked {marked} of {len(stale_ids)} stale documents as failed "
                f"(pending since before {cutoff.isoformat()})"
            )
            return {"stale_documents_found": len(stale_ids), "documents_marked_failed": marked}
        except Exception as e:
            logger.error(f"Stale document cleanup failed: {e}")
            raise
