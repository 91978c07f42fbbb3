"""
HEIC Normalization

Converts HEIC uploads (typically phone photos of receipts) to JPEG and
writes the result back over the original object, so every later stage
only ever sees a JPEG.
"""

import io
import logging
from typing import Optional

import pillow_heif
from PIL import Image, ImageOps

from vault_worker.core.config import settings
from vault_worker.core.errors import (
    EmptyDecodedImageError,
    EmptyImageError,
    ImageDecodeError,
    ImageEncodeError,
    ImageUploadError,
)
from vault_worker.core.executor import run_blocking
from vault_worker.core.timeout import with_timeout
from vault_worker.services.storage_service import StorageService

logger = logging.getLogger(__name__)

pillow_heif.register_heif_opener()

JPEG_MIMETYPE = "image/jpeg"


class ImageNormalizer:
    """Decode, orient, downscale and re-encode HEIC images as JPEG."""

    def __init__(self, storage: StorageService, max_dimension: Optional[int] = None):
        """Initialize the normalizer.

        Args:
            storage: Storage used to write the converted image back
            max_dimension: Longest allowed edge in pixels (defaults to settings.HEIC_MAX_DIMENSION)
        """
        self.storage = storage
        self.max_dimension = max_dimension or settings.HEIC_MAX_DIMENSION

    def convert_heic_to_jpeg(self, buffer: bytes, file_name: str = "") -> bytes:
        """Convert HEIC bytes to JPEG bytes.

        Args:
            buffer: HEIC-encoded image
            file_name: Used for diagnostics only

        Returns:
            JPEG-encoded image, longest edge at most ``max_dimension``

        Raises:
            EmptyImageError: The source buffer is empty
            ImageDecodeError: The HEIC data is corrupt or unsupported
            EmptyDecodedImageError: Decoding produced no pixels
            ImageEncodeError: Resizing or JPEG encoding failed
        """
        if not buffer:
            logger.error(f"HEIC conversion aborted for {file_name}: source buffer is empty")
            raise EmptyImageError("HEIC source buffer is empty", file_name)

        try:
            image = Image.open(io.BytesIO(buffer))
            image.load()
        except Exception as e:
            logger.error(
                f"HEIC decode failed for {file_name} ({len(buffer)} bytes, "
                f"header {bytes(buffer[:12]).hex()}): {e}"
            )
            raise ImageDecodeError(f"Failed to decode HEIC image: {e}", file_name) from e

        width, height = image.size
        if width == 0 or height == 0:
            logger.error(f"HEIC decode for {file_name} produced an empty image ({width}x{height})")
            raise EmptyDecodedImageError("Decoded HEIC image has no pixels", file_name)

        try:
            image = ImageOps.exif_transpose(image)
            image.thumbnail((self.max_dimension, self.max_dimension), Image.Resampling.LANCZOS)
            if image.mode != "RGB":
                image = image.convert("RGB")

            output = io.BytesIO()
            image.save(output, format="JPEG", quality=100)
            converted = output.getvalue()
        except Exception as e:
            logger.error(f"JPEG encode failed for {file_name} ({width}x{height}, mode {image.mode}): {e}")
            raise ImageEncodeError(f"Failed to resize or encode image: {e}", file_name) from e

        if not converted:
            raise ImageEncodeError("JPEG encoder produced no data", file_name)

        logger.info(
            f"Converted HEIC {file_name}: {width}x{height} -> {image.size[0]}x{image.size[1]}, "
            f"{len(buffer)} -> {len(converted)} bytes"
        )
        return converted

    async def normalize(self, buffer: bytes, file_name: str) -> bytes:
        """Convert a HEIC blob and overwrite it in storage at the same path.

        Args:
            buffer: HEIC-encoded image
            file_name: Storage path of the blob

        Returns:
            The JPEG bytes that were uploaded

        Raises:
            ImageUploadError: Storage rejected the converted image
            OperationTimeoutError: Conversion or upload exceeded its budget
        """
        converted = await with_timeout(
            run_blocking(self.convert_heic_to_jpeg, buffer, file_name),
            settings.IMAGE_CONVERSION_TIMEOUT,
            f"HEIC conversion timed out after {settings.IMAGE_CONVERSION_TIMEOUT}s",
        )

        stored = await with_timeout(
            self.storage.upload(file_name, converted, content_type=JPEG_MIMETYPE, upsert=True),
            settings.FILE_UPLOAD_TIMEOUT,
            f"File upload timed out after {settings.FILE_UPLOAD_TIMEOUT}s",
        )
        if not stored:
            logger.error(f"Upload of converted image failed for {file_name} ({len(converted)} bytes)")
            raise ImageUploadError("Failed to upload converted image", file_name)

        return converted
