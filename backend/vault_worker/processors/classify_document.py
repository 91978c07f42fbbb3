"""
Document Classification Processor

Classifies a text sample, fills in a title when the classifier gives none,
persists the result and hands any tags to the embedding stage.
"""

import logging
from typing import Optional

from vault_worker.core.celery_app import DOCUMENTS_QUEUE
from vault_worker.core.config import settings
from vault_worker.core.errors import DocumentNotFoundError
from vault_worker.core.timeout import with_timeout
from vault_worker.db.models.document import ProcessingStatus
from vault_worker.processors.base import BaseProcessor, ProgressCallback, ProgressMilestones
from vault_worker.repositories.document_repository import DocumentRepository
from vault_worker.services.classification_service import ClassificationResult, ClassificationService
from vault_worker.services.job_dispatcher import JobDispatcher
from vault_worker.services.language import map_language
from vault_worker.services.text_extraction import limit_words
from vault_worker.services.title_fallback import build_fallback_title

logger = logging.getLogger(__name__)


class ClassificationProcessor(BaseProcessor):
    """Persistence and dispatch shared by the document and image variants."""

    default_type = "Document"

    def __init__(
        self,
        documents: DocumentRepository,
        classifier: ClassificationService,
        dispatcher: JobDispatcher,
        progress: Optional[ProgressCallback] = None,
    ):
        super().__init__(documents, progress)
        self.classifier = classifier
        self.dispatcher = dispatcher

    async def classify_with_timeout(self, operation):
        return await with_timeout(
            operation,
            settings.AI_CLASSIFICATION_TIMEOUT,
            f"Classification timed out after {settings.AI_CLASSIFICATION_TIMEOUT}s",
        )

    async def persist(
        self,
        result: ClassificationResult,
        file_name: str,
        team_id: str,
        content: Optional[str] = None,
    ) -> str:
        """
        Write a classification onto the document and dispatch tag embedding.

        Args:
            result: Classifier output
            file_name: Storage path of the document ("team/dir/file.pdf")
            team_id: Owning team
            content: Text to store on the document, if any

        Returns:
            The document ID

        Raises:
            DocumentNotFoundError: No document exists at ``file_name`` for the team
        """
        path_tokens = file_name.split("/")

        title = (result.title or "").strip()
        if not title:
            title = build_fallback_title(
                file_name,
                content=content,
                summary=result.summary,
                document_date=result.date,
                default_type=self.default_type,
            )

        fields = {
            "title": title,
            "summary": result.summary,
            "date": result.date,
            "language": map_language(result.language),
        }
        if content:
            fields["content"] = limit_words(content, settings.DOCUMENT_CONTENT_MAX_WORDS)
        if not result.tags:
            fields["processing_status"] = ProcessingStatus.COMPLETED

        rows = await self.documents.update_by_path(team_id, path_tokens, **fields)
        if not rows:
            raise DocumentNotFoundError(f"No document found at {file_name} for team {team_id}")

        document_id = rows[0].id
        if not document_id:
            raise DocumentNotFoundError(f"Document update for {file_name} returned no id")

        self.report_progress(ProgressMilestones.CLASSIFIED, "Classification saved")

        if result.tags:
            await self.dispatcher.enqueue(
                "embed-document-tags",
                {"document_id": document_id, "team_id": team_id, "tags": list(result.tags)},
                DOCUMENTS_QUEUE,
            )
            logger.info(f"Dispatched {len(result.tags)} tags of {file_name} for embedding")
        else:
            self.report_progress(ProgressMilestones.COMPLETED, "Document completed")

        logger.info(f"Classified {file_name} as '{title}' (document {document_id})")
        return document_id


class ClassifyDocumentProcessor(ClassificationProcessor):
    """Classify a document from a text sample."""

    async def process(self, content: str, file_name: str, team_id: str) -> str:
        """
        Args:
            content: Content sample produced by process-document
            file_name: Storage path of the document
            team_id: Owning team

        Returns:
            The document ID
        """
        logger.info(f"Classifying document {file_name} ({len(content)} chars)")
        try:
            result = await self.classify_with_timeout(self.classifier.classify_document(content))
            return await self.persist(result, file_name, team_id, content=content)
        except Exception as e:
            logger.error(f"Document classification failed for {file_name} (team {team_id}): {e}")
            await self.mark_failed(team_id, file_name.split("/"))
            raise
