"""Tests for the process-document processor."""
from unittest.mock import MagicMock, patch

import pytest

from vault_worker.core.errors import DocumentLoadError, NonRetryableError, UnsupportedFileTypeError
from vault_worker.db.models.document import ProcessingStatus
from vault_worker.processors.process_document import ProcessDocumentProcessor, ResolvedInput
from vault_worker.services.image_processing import ImageNormalizer

JPEG_BYTES = b"\xff\xd8\xff\xe0\x00\x10JFIF\x00converted"


@pytest.fixture
def loader():
    loader = MagicMock()
    loader.load.return_value = "Invoice 2024-001 from Acme. Amount due 1200 SEK."
    return loader


@pytest.fixture
def progress():
    return MagicMock()


@pytest.fixture
def make_processor(documents, storage, dispatcher, loader, progress):
    def factory(**overrides):
        kwargs = {"loader": loader, "progress": progress}
        kwargs.update(overrides)
        return ProcessDocumentProcessor(documents, storage, dispatcher, **kwargs)

    return factory


class TestResolvedInput:
    def test_is_image(self):
        assert ResolvedInput("image/png", b"").is_image
        assert not ResolvedInput("application/pdf", b"").is_image

    def test_immutable(self):
        resolved = ResolvedInput("application/pdf", b"%PDF")

        with pytest.raises(AttributeError):
            resolved.mimetype = "image/png"


class TestHeicUpload:
    @pytest.mark.asyncio
    async def test_converts_uploads_and_dispatches_image_classification(
        self, documents, storage, dispatcher, make_processor, sent_jobs
    ):
        documents.add("doc-1", "team1", ["team1", "photo.heic"])
        storage.objects["team1/photo.heic"] = b"\x00\x00\x00\x18ftypheic"
        normalizer = ImageNormalizer(storage)
        processor = make_processor(normalizer=normalizer)

        with patch.object(normalizer, "convert_heic_to_jpeg", return_value=JPEG_BYTES) as convert:
            await processor.process("image/heic", ["team1", "photo.heic"], "team1")

        convert.assert_called_once()
        assert storage.uploads == [("team1/photo.heic", JPEG_BYTES, "image/jpeg", True)]
        assert sent_jobs() == [
            ("classify-image", {"file_name": "team1/photo.heic", "team_id": "team1"}, "documents")
        ]
        assert documents.docs["doc-1"].processing_status == ProcessingStatus.PENDING

    @pytest.mark.asyncio
    async def test_large_heic_completes_without_classification(
        self, documents, storage, make_processor, sent_jobs, monkeypatch
    ):
        from vault_worker.core.config import settings

        monkeypatch.setattr(settings, "HEIC_MAX_FILE_SIZE", 16)
        documents.add("doc-1", "team1", ["team1", "big.heic"])
        storage.objects["team1/big.heic"] = b"x" * 64
        normalizer = MagicMock()
        processor = make_processor(normalizer=normalizer)

        await processor.process("image/heic", ["team1", "big.heic"], "team1")

        doc = documents.docs["doc-1"]
        assert doc.processing_status == ProcessingStatus.COMPLETED
        assert doc.title == "big.heic"
        assert "AI classification skipped" in doc.summary
        normalizer.normalize.assert_not_called()
        assert sent_jobs() == []

    @pytest.mark.asyncio
    async def test_corrupt_heic_completes_with_file_name(self, documents, storage, make_processor, sent_jobs):
        documents.add("doc-1", "team1", ["team1", "broken.heic"])
        storage.objects["team1/broken.heic"] = b"\x00\x00\x00\x18ftypheic-truncated"
        processor = make_processor(normalizer=ImageNormalizer(storage))

        await processor.process("image/heic", ["team1", "broken.heic"], "team1")

        doc = documents.docs["doc-1"]
        assert doc.processing_status == ProcessingStatus.COMPLETED
        assert doc.title == "broken.heic"
        assert doc.summary == "HEIC conversion failed - original file preserved"
        assert storage.uploads == []
        assert sent_jobs() == []


class TestOctetStream:
    @pytest.mark.asyncio
    async def test_unrecognizable_marks_failed_without_raising(
        self, documents, storage, make_processor, sent_jobs
    ):
        documents.add("doc-1", "team1", ["team1", "blob.bin"])
        storage.objects["team1/blob.bin"] = b"\x00\x01\x02\x03 no signature here"

        await make_processor().process("application/octet-stream", ["team1", "blob.bin"], "team1")

        assert documents.docs["doc-1"].processing_status == ProcessingStatus.FAILED
        assert sent_jobs() == []

    @pytest.mark.asyncio
    async def test_detected_pdf_is_loaded_as_pdf(self, documents, storage, loader, make_processor, sent_jobs):
        documents.add("doc-1", "team1", ["team1", "scan"])
        storage.objects["team1/scan"] = b"%PDF-1.4 fake"

        await make_processor().process("application/octet-stream", ["team1", "scan"], "team1")

        assert loader.load.call_args.args[1] == "application/pdf"
        assert [job[0] for job in sent_jobs()] == ["classify-document"]

    @pytest.mark.asyncio
    async def test_detected_image_goes_to_image_classification(
        self, documents, storage, loader, make_processor, sent_jobs
    ):
        documents.add("doc-1", "team1", ["team1", "upload"])
        storage.objects["team1/upload"] = b"\x89PNG\r\n\x1a\n rest"

        await make_processor().process("application/octet-stream", ["team1", "upload"], "team1")

        loader.load.assert_not_called()
        assert [job[0] for job in sent_jobs()] == ["classify-image"]

    @pytest.mark.asyncio
    async def test_detection_error_assumes_pdf(self, documents, storage, loader, make_processor):
        documents.add("doc-1", "team1", ["team1", "odd"])
        storage.objects["team1/odd"] = b"something"

        with patch(
            "vault_worker.processors.process_document.detect_file_type", side_effect=RuntimeError("boom")
        ):
            await make_processor().process("application/octet-stream", ["team1", "odd"], "team1")

        assert storage.downloads == ["team1/odd", "team1/odd"]
        assert loader.load.call_args.args[1] == "application/pdf"


class TestDocumentFlow:
    @pytest.mark.asyncio
    async def test_pdf_dispatches_classification_with_sample(
        self, documents, storage, make_processor, sent_jobs, sent_notifications, progress
    ):
        documents.add("doc-1", "team1", ["team1", "inv.pdf"])
        storage.objects["team1/inv.pdf"] = b"%PDF-1.4"

        await make_processor().process("application/pdf", ["team1", "inv.pdf"], "team1")

        assert sent_jobs() == [
            (
                "classify-document",
                {
                    "content": "Invoice 2024-001 from Acme. Amount due 1200 SEK.",
                    "file_name": "team1/inv.pdf",
                    "team_id": "team1",
                },
                "documents",
            )
        ]
        assert [n["type"] for n in sent_notifications()] == ["document_uploaded", "document_processed"]
        assert sent_notifications()[1]["sample_length"] > 0
        progress.assert_any_call(100, "Classification dispatched")

    @pytest.mark.asyncio
    async def test_empty_content_returns_without_classification(
        self, documents, storage, loader, make_processor, sent_jobs
    ):
        documents.add("doc-1", "team1", ["team1", "scan.pdf"])
        storage.objects["team1/scan.pdf"] = b"%PDF-1.4"
        loader.load.return_value = ""

        await make_processor().process("application/pdf", ["team1", "scan.pdf"], "team1")

        assert sent_jobs() == []
        assert documents.docs["doc-1"].processing_status != ProcessingStatus.FAILED

    @pytest.mark.asyncio
    async def test_notification_failure_does_not_stop_pipeline(
        self, documents, storage, celery_mock, make_processor, sent_jobs
    ):
        def send_task(name, kwargs=None, queue=None):
            if name == "notification":
                raise ConnectionError("notifications broker down")
            return MagicMock(id="job-2")

        celery_mock.send_task.side_effect = send_task
        documents.add("doc-1", "team1", ["team1", "inv.pdf"])
        storage.objects["team1/inv.pdf"] = b"%PDF-1.4"

        await make_processor().process("application/pdf", ["team1", "inv.pdf"], "team1")

        assert [job[0] for job in sent_jobs()] == ["classify-document"]
        assert documents.docs["doc-1"].processing_status == ProcessingStatus.PENDING


class TestFailures:
    @pytest.mark.asyncio
    async def test_unsupported_type_marks_failed_and_raises(self, documents, storage, make_processor, sent_jobs):
        documents.add("doc-1", "team1", ["team1", "archive.zip"])
        storage.objects["team1/archive.zip"] = b"PK\x03\x04"

        with pytest.raises(UnsupportedFileTypeError):
            await make_processor().process("application/zip", ["team1", "archive.zip"], "team1")

        assert documents.docs["doc-1"].processing_status == ProcessingStatus.FAILED
        assert sent_jobs() == []

    @pytest.mark.asyncio
    async def test_missing_file_is_not_retryable(self, documents, make_processor):
        documents.add("doc-1", "team1", ["team1", "gone.pdf"])

        with pytest.raises(NonRetryableError, match="File not found"):
            await make_processor().process("application/pdf", ["team1", "gone.pdf"], "team1")

        assert documents.docs["doc-1"].processing_status == ProcessingStatus.FAILED

    @pytest.mark.asyncio
    async def test_loader_error_is_wrapped(self, documents, storage, loader, make_processor):
        documents.add("doc-1", "team1", ["team1", "broken.docx"])
        storage.objects["team1/broken.docx"] = b"PK\x03\x04"
        loader.load.side_effect = ValueError("File is not a zip file")
        mimetype = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

        with pytest.raises(DocumentLoadError, match="corrupt or unsupported") as exc_info:
            await make_processor().process(mimetype, ["team1", "broken.docx"], "team1")

        assert isinstance(exc_info.value.__cause__, ValueError)
        assert documents.docs["doc-1"].processing_status == ProcessingStatus.FAILED
        assert documents.rollbacks == 1
