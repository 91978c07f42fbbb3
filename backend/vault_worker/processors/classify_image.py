"""Image classification processor."""
import logging
from typing import Optional

from vault_worker.processors.base import ProgressCallback, ProgressMilestones, StorageMixin
from vault_worker.processors.classify_document import ClassificationProcessor
from vault_worker.repositories.document_repository import DocumentRepository
from vault_worker.services.classification_service import ClassificationService
from vault_worker.services.file_type import detect_file_type
from vault_worker.services.image_processing import JPEG_MIMETYPE
from vault_worker.services.job_dispatcher import JobDispatcher
from vault_worker.services.storage_service import StorageService

logger = logging.getLogger(__name__)


class ClassifyImageProcessor(StorageMixin, ClassificationProcessor):
    """Classify an image straight from its bytes in storage."""

    default_type = "Image"

    def __init__(
        self,
        documents: DocumentRepository,
        storage: StorageService,
        classifier: ClassificationService,
        dispatcher: JobDispatcher,
        progress: Optional[ProgressCallback] = None,
    ):
        super().__init__(documents, classifier, dispatcher, progress)
        self.storage = storage

    async def process(self, file_name: str, team_id: str) -> str:
        """Download, classify and persist one image; returns the document ID."""
        logger.info(f"Classifying image {file_name}")
        try:
            content = await self.download(file_name)
            self.report_progress(ProgressMilestones.FETCHED, "Image downloaded")

            # HEIC uploads were overwritten with JPEG bytes by process-document
            detection = detect_file_type(content)
            mimetype = detection.mimetype if detection.detected else JPEG_MIMETYPE

            result = await self.classify_with_timeout(self.classifier.classify_image(content, mimetype))
            return await self.persist(result, file_name, team_id, content=result.content)
        except Exception as e:
            logger.error(f"Image classification failed for {file_name} (team {team_id}): {e}")
            await self.mark_failed(team_id, file_name.split("/"))
            raise
