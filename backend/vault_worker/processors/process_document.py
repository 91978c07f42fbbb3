"""
Document Ingest Processor

Entry point of the pipeline for a freshly uploaded file:

1. Resolve the file's real type (HEIC conversion, magic-byte sniffing)
2. Hand images to image classification
3. Extract and sample text from documents, then hand the sample to
   document classification
"""

import logging
import time
from dataclasses import dataclass
from typing import List, Optional, Sequence

from vault_worker.core.celery_app import DOCUMENTS_QUEUE
from vault_worker.core.config import settings
from vault_worker.core.errors import (
    DocumentLoadError,
    ImageConversionError,
    OperationTimeoutError,
    UnsupportedFileTypeError,
)
from vault_worker.core.executor import run_blocking
from vault_worker.core.timeout import with_timeout
from vault_worker.db.models.document import ProcessingStatus
from vault_worker.processors.base import BaseProcessor, ProgressCallback, ProgressMilestones, StorageMixin
from vault_worker.repositories.document_repository import DocumentRepository
from vault_worker.services.file_type import GENERIC_MIMETYPE, FileKind, detect_file_type
from vault_worker.services.image_processing import JPEG_MIMETYPE, ImageNormalizer
from vault_worker.services.job_dispatcher import JobDispatcher
from vault_worker.services.storage_service import StorageService
from vault_worker.services.text_extraction import DocumentLoader, get_content_sample, is_mimetype_supported

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedInput:
    """A blob together with the MIME type it was resolved to."""

    mimetype: str
    content: bytes

    @property
    def is_image(self) -> bool:
        return self.mimetype.startswith("image/")


class ProcessDocumentProcessor(StorageMixin, BaseProcessor):
    """Resolve, load and route one uploaded file."""

    def __init__(
        self,
        documents: DocumentRepository,
        storage: StorageService,
        dispatcher: JobDispatcher,
        loader: Optional[DocumentLoader] = None,
        normalizer: Optional[ImageNormalizer] = None,
        progress: Optional[ProgressCallback] = None,
    ):
        super().__init__(documents, progress)
        self.storage = storage
        self.dispatcher = dispatcher
        self.loader = loader or DocumentLoader()
        self.normalizer = normalizer or ImageNormalizer(storage)

    async def process(self, mimetype: str, file_path: List[str], team_id: str) -> None:
        """
        Process one uploaded file.

        Args:
            mimetype: MIME type declared at upload
            file_path: Path tokens of the stored blob
            team_id: Owning team

        Raises:
            Exception: Any failure after the document was marked ``failed``
        """
        start_time = time.monotonic()
        file_name = "/".join(file_path)
        logger.info(f"Starting process-document for {file_name} (team {team_id}, {mimetype})")
        self.report_progress(ProgressMilestones.STARTED, "Processing started")

        await self.dispatcher.notify(
            "document_uploaded",
            {"team_id": team_id, "file_name": file_name, "file_path": list(file_path), "mimetype": mimetype},
        )

        try:
            resolved = await self._resolve_input(mimetype, file_name, file_path, team_id)
            if resolved is None:
                return

            if not is_mimetype_supported(resolved.mimetype):
                raise UnsupportedFileTypeError(resolved.mimetype, file_name)

            if resolved.is_image:
                logger.info(f"Triggering image classification for {file_name}")
                await self.dispatcher.enqueue(
                    "classify-image", {"file_name": file_name, "team_id": team_id}, DOCUMENTS_QUEUE
                )
                return

            text = await self._load_text(resolved, file_name)
            self.report_progress(ProgressMilestones.HALFWAY, "Document parsed")

            if not text.strip():
                logger.warning(f"Document {file_name} loaded but has no extractable content")

            sample = get_content_sample(text)
            if not sample:
                logger.info(f"Content sample for {file_name} is empty; completing without classification")
                await self.documents.update_by_path(
                    team_id, file_path, processing_status=ProcessingStatus.COMPLETED
                )
                return

            await self.dispatcher.enqueue(
                "classify-document",
                {"content": sample, "file_name": file_name, "team_id": team_id},
                DOCUMENTS_QUEUE,
            )
            await self.dispatcher.notify(
                "document_processed",
                {
                    "team_id": team_id,
                    "file_name": file_name,
                    "file_path": list(file_path),
                    "mimetype": mimetype,
                    "content_length": len(text),
                    "sample_length": len(sample),
                },
            )
            self.report_progress(ProgressMilestones.COMPLETED, "Classification dispatched")

            logger.info(
                f"process-document completed for {file_name}: {len(text)} chars, "
                f"sample {len(sample)} chars, {time.monotonic() - start_time:.2f}s"
            )

        except Exception as e:
            logger.error(f"Document processing failed for {file_name} (team {team_id}): {e}")
            await self.mark_failed(team_id, file_path)
            raise

    async def _resolve_input(
        self, mimetype: str, file_name: str, file_path: Sequence[str], team_id: str
    ) -> Optional[ResolvedInput]:
        """Fetch the blob and settle its MIME type.

        Returns:
            The resolved input, or None when the document reached a terminal
            state here and nothing further should run
        """
        content = await self.download(file_name)
        self.report_progress(ProgressMilestones.FETCHED, "File downloaded")

        if FileKind.from_mimetype(mimetype) is FileKind.HEIC:
            return await self._convert_heic(content, file_name, file_path, team_id)

        resolved = ResolvedInput(mimetype, content)
        if mimetype == GENERIC_MIMETYPE:
            return await self._sniff(resolved, file_name, file_path, team_id)
        return resolved

    async def _convert_heic(
        self, content: bytes, file_name: str, file_path: Sequence[str], team_id: str
    ) -> Optional[ResolvedInput]:
        size_mb = len(content) / (1024 * 1024)
        logger.info(f"Converting HEIC {file_name} to JPEG ({size_mb:.2f}MB)")

        if len(content) > settings.HEIC_MAX_FILE_SIZE:
            logger.warning(
                f"HEIC {file_name} is too large for classification ({size_mb:.2f}MB > "
                f"{settings.HEIC_MAX_FILE_SIZE / (1024 * 1024):.0f}MB); completing with file name"
            )
            await self.documents.update_by_path(
                team_id,
                file_path,
                title=file_path[-1] if file_path else "Large HEIC Image",
                summary=f"Large image ({size_mb:.2f}MB) - AI classification skipped",
                processing_status=ProcessingStatus.COMPLETED,
            )
            return None

        try:
            converted = await self.normalizer.normalize(content, file_name)
        except (ImageConversionError, OperationTimeoutError) as e:
            logger.error(f"HEIC conversion failed for {file_name} (team {team_id}); completing with file name: {e}")
            await self.documents.update_by_path(
                team_id,
                file_path,
                title=file_path[-1] if file_path else "HEIC Image",
                summary="HEIC conversion failed - original file preserved",
                processing_status=ProcessingStatus.COMPLETED,
            )
            return None

        self.report_progress(ProgressMilestones.PROCESSING, "HEIC converted to JPEG")
        return ResolvedInput(JPEG_MIMETYPE, converted)

    async def _sniff(
        self, resolved: ResolvedInput, file_name: str, file_path: Sequence[str], team_id: str
    ) -> Optional[ResolvedInput]:
        try:
            detection = detect_file_type(resolved.content)
        except Exception as e:
            logger.error(f"File type detection failed for {file_name}; assuming PDF: {e}")
            content = await self.download(file_name)
            return ResolvedInput("application/pdf", content)

        if detection.detected:
            logger.info(f"Detected {detection.mimetype} for {GENERIC_MIMETYPE} upload {file_name}")
            return ResolvedInput(detection.mimetype, detection.buffer)

        logger.warning(
            f"Could not detect type of {GENERIC_MIMETYPE} upload {file_name} "
            f"(header {resolved.content[:8].hex()}); marking failed"
        )
        await self.documents.mark_failed_by_path(team_id, file_path)
        return None

    async def _load_text(self, resolved: ResolvedInput, file_name: str) -> str:
        start_time = time.monotonic()
        try:
            text = await with_timeout(
                run_blocking(self.loader.load, resolved.content, resolved.mimetype, file_name),
                settings.DOCUMENT_PARSE_TIMEOUT,
                f"Document parsing timed out after {settings.DOCUMENT_PARSE_TIMEOUT}s",
            )
        except OperationTimeoutError:
            raise
        except Exception as e:
            raise DocumentLoadError(
                f"Failed to load {file_name} as {resolved.mimetype}; the file may be corrupt or unsupported: {e}"
            ) from e

        text = text or ""
        logger.info(
            f"Parsed {file_name}: {len(text)} chars in {time.monotonic() - start_time:.2f}s"
        )
        return text
