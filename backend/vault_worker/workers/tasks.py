"""
Celery Tasks for the Document Pipeline

Each task builds its collaborators, opens an async database session and
runs one processor. Transient failures are retried with exponential
backoff; ``NonRetryableError`` fails the task immediately.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List

from celery import Task
from sqlalchemy.ext.asyncio import AsyncSession

from vault_worker.core.celery_app import celery_app
from vault_worker.core.config import settings
from vault_worker.core.database import AsyncSessionLocal
from vault_worker.core.errors import NonRetryableError
from vault_worker.processors.base import ProgressCallback
from vault_worker.processors.classify_document import ClassifyDocumentProcessor
from vault_worker.processors.classify_image import ClassifyImageProcessor
from vault_worker.processors.cleanup_stale_documents import CleanupStaleDocumentsProcessor
from vault_worker.processors.embed_document_tags import EmbedDocumentTagsProcessor
from vault_worker.processors.process_document import ProcessDocumentProcessor
from vault_worker.repositories.document_repository import DocumentRepository
from vault_worker.repositories.tag_repository import TagRepository
from vault_worker.services.classification_service import ClassificationService
from vault_worker.services.embedding_service import EmbeddingService
from vault_worker.services.job_dispatcher import JobDispatcher
from vault_worker.services.storage_service import StorageService

logger = logging.getLogger(__name__)


def progress_reporter(task: Task) -> ProgressCallback:
    """Forward processor progress to the task's result backend state."""

    def report(percent: int, message: str) -> None:
        task.update_state(state="PROCESSING", meta={"progress": percent, "status": message})

    return report


def retry_countdown(retries: int) -> int:
    """Exponential backoff in seconds, capped at ten minutes."""
    return min(60 * (2**retries), 600)


def run_job(task: Task, job: Callable[[AsyncSession], Awaitable[Any]]) -> Any:
    """
    Run ``job`` inside a fresh async session, applying the retry policy.

    Args:
        task: The bound Celery task
        job: Coroutine function receiving the session

    Returns:
        Whatever ``job`` returns
    """

    async def runner():
        async with AsyncSessionLocal() as session:
            return await job(session)

    try:
        return asyncio.run(runner())
    except NonRetryableError as e:
        logger.error(f"{task.name} failed permanently ({e.reason}): {e}")
        raise
    except Exception as e:
        logger.error(f"{task.name} failed (attempt {task.request.retries + 1}): {e}")
        raise task.retry(exc=e, countdown=retry_countdown(task.request.retries))


@celery_app.task(bind=True, name="process-document", max_retries=settings.JOB_MAX_RETRIES)
def process_document_task(self: Task, mimetype: str, file_path: List[str], team_id: str) -> None:
    """Resolve, load and route one uploaded file."""

    async def job(session: AsyncSession) -> None:
        storage = StorageService()
        try:
            processor = ProcessDocumentProcessor(
                DocumentRepository(session),
                storage,
                JobDispatcher(),
                progress=progress_reporter(self),
            )
            await processor.process(mimetype, file_path, team_id)
        finally:
            await storage.aclose()

    return run_job(self, job)


@celery_app.task(bind=True, name="classify-document", max_retries=settings.JOB_MAX_RETRIES)
def classify_document_task(self: Task, content: str, file_name: str, team_id: str) -> str:
    """Classify a document from its content sample."""

    async def job(session: AsyncSession) -> str:
        processor = ClassifyDocumentProcessor(
            DocumentRepository(session),
            ClassificationService(),
            JobDispatcher(),
            progress=progress_reporter(self),
        )
        return await processor.process(content, file_name, team_id)

    return run_job(self, job)


@celery_app.task(bind=True, name="classify-image", max_retries=settings.JOB_MAX_RETRIES)
def classify_image_task(self: Task, file_name: str, team_id: str) -> str:
    """Classify an image document."""

    async def job(session: AsyncSession) -> str:
        storage = StorageService()
        try:
            processor = ClassifyImageProcessor(
                DocumentRepository(session),
                storage,
                ClassificationService(),
                JobDispatcher(),
                progress=progress_reporter(self),
            )
            return await processor.process(file_name, team_id)
        finally:
            await storage.aclose()

    return run_job(self, job)


@celery_app.task(bind=True, name="embed-document-tags", max_retries=settings.JOB_MAX_RETRIES)
def embed_document_tags_task(self: Task, document_id: str, team_id: str, tags: List[str]) -> Dict[str, int]:
    """Embed, upsert and assign a document's tags."""

    async def job(session: AsyncSession) -> Dict[str, int]:
        processor = EmbedDocumentTagsProcessor(
            DocumentRepository(session),
            TagRepository(session),
            EmbeddingService(),
            progress=progress_reporter(self),
        )
        return await processor.process(document_id, team_id, tags)

    return run_job(self, job)


@celery_app.task(bind=True, name="cleanup-stale-documents", max_retries=settings.JOB_MAX_RETRIES)
def cleanup_stale_documents_task(self: Task) -> Dict[str, int]:
    """Fail documents stuck in ``pending``; scheduled by beat."""

    async def job(session: AsyncSession) -> Dict[str, int]:
        return await CleanupStaleDocumentsProcessor(DocumentRepository(session)).process()

    return run_job(self, job)
