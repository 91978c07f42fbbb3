"""Exceptions raised by the document pipeline.

Retry policy keys off these types: ``NonRetryableError`` and its
subclasses stop the Celery retry loop, everything else is retried with
backoff.
"""
from typing import Optional


class ProcessingError(Exception):
    """Base class for pipeline failures."""


class OperationTimeoutError(ProcessingError, TimeoutError):
    """An external call exceeded its time budget."""

    def __init__(self, message: str, timeout: Optional[float] = None):
        super().__init__(message)
        self.timeout = timeout


class NonRetryableError(ProcessingError):
    """Input that will fail the same way on every attempt."""

    def __init__(self, message: str, reason: str = "validation"):
        super().__init__(message)
        self.reason = reason


class UnsupportedFileTypeError(NonRetryableError):
    """The resolved MIME type cannot be classified."""

    def __init__(self, mimetype: str, file_name: str):
        super().__init__(f"Unsupported file type {mimetype} for {file_name}", reason="unsupported")
        self.mimetype = mimetype
        self.file_name = file_name


class ImageConversionError(ProcessingError):
    """HEIC to JPEG conversion failed."""

    stage = "convert"

    def __init__(self, message: str, file_name: str = ""):
        super().__init__(message)
        self.file_name = file_name


class EmptyImageError(ImageConversionError):
    stage = "read"


class ImageDecodeError(ImageConversionError):
    stage = "decode"


class EmptyDecodedImageError(ImageConversionError):
    stage = "decoded"


class ImageEncodeError(ImageConversionError):
    stage = "encode"


class ImageUploadError(ImageConversionError):
    stage = "upload"


class DocumentLoadError(ProcessingError):
    """Text extraction failed; the file may be corrupt or unsupported."""


class DocumentNotFoundError(ProcessingError):
    """An update that must touch a document row matched nothing."""


class EmbeddingMismatchError(ProcessingError):
    """The embedder returned a different number of vectors than requested."""


class PersistenceError(ProcessingError):
    """An upsert affected no rows where rows were required."""
