"""Tests for HEIC normalization."""
import io
import threading
from unittest.mock import patch

import pytest
from PIL import Image

from vault_worker.core.errors import (
    EmptyImageError,
    ImageDecodeError,
    ImageEncodeError,
    ImageUploadError,
    OperationTimeoutError,
)
from vault_worker.services.image_processing import JPEG_MIMETYPE, ImageNormalizer


def make_png(width: int, height: int, mode: str = "RGBA") -> bytes:
    output = io.BytesIO()
    Image.new(mode, (width, height), color=(200, 30, 30, 255) if mode == "RGBA" else 128).save(
        output, format="PNG"
    )
    return output.getvalue()


class RejectingStorage:
    async def upload(self, path, content, content_type, upsert=False):
        return None


class TestConvertHeicToJpeg:
    @pytest.fixture
    def normalizer(self, storage):
        return ImageNormalizer(storage, max_dimension=100)

    def test_downscales_and_encodes_jpeg(self, normalizer):
        converted = normalizer.convert_heic_to_jpeg(make_png(400, 200), "team1/photo.heic")

        image = Image.open(io.BytesIO(converted))
        assert image.format == "JPEG"
        assert image.mode == "RGB"
        assert max(image.size) == 100
        assert image.size == (100, 50)

    def test_small_image_not_upscaled(self, normalizer):
        converted = normalizer.convert_heic_to_jpeg(make_png(40, 30, mode="L"), "team1/small.heic")

        assert Image.open(io.BytesIO(converted)).size == (40, 30)

    def test_empty_buffer(self, normalizer):
        with pytest.raises(EmptyImageError) as exc_info:
            normalizer.convert_heic_to_jpeg(b"", "team1/empty.heic")

        assert exc_info.value.stage == "read"
        assert exc_info.value.file_name == "team1/empty.heic"

    def test_corrupt_buffer(self, normalizer):
        with pytest.raises(ImageDecodeError) as exc_info:
            normalizer.convert_heic_to_jpeg(b"\x00\x00\x00\x18ftypheic-not-really", "team1/bad.heic")

        assert exc_info.value.stage == "decode"

    def test_encode_failure(self, normalizer):
        with patch("vault_worker.services.image_processing.ImageOps.exif_transpose", side_effect=OSError("boom")):
            with pytest.raises(ImageEncodeError) as exc_info:
                normalizer.convert_heic_to_jpeg(make_png(10, 10), "team1/photo.heic")

        assert exc_info.value.stage == "encode"


class TestNormalize:
    @pytest.mark.asyncio
    async def test_overwrites_original_path_as_jpeg(self, storage):
        normalizer = ImageNormalizer(storage, max_dimension=100)

        converted = await normalizer.normalize(make_png(300, 300), "team1/photo.heic")

        assert len(storage.uploads) == 1
        path, content, content_type, upsert = storage.uploads[0]
        assert path == "team1/photo.heic"
        assert content == converted
        assert content_type == JPEG_MIMETYPE
        assert upsert is True

    @pytest.mark.asyncio
    async def test_rejected_upload(self):
        normalizer = ImageNormalizer(RejectingStorage(), max_dimension=100)

        with pytest.raises(ImageUploadError) as exc_info:
            await normalizer.normalize(make_png(20, 20), "team1/photo.heic")

        assert exc_info.value.stage == "upload"

    @pytest.mark.asyncio
    async def test_conversion_runs_off_the_event_loop_under_budget(self, storage, monkeypatch):
        from vault_worker.core.config import settings

        monkeypatch.setattr(settings, "IMAGE_CONVERSION_TIMEOUT", 0.1)
        release = threading.Event()
        normalizer = ImageNormalizer(storage)

        try:
            with patch.object(normalizer, "convert_heic_to_jpeg", side_effect=lambda *args: release.wait(5)):
                with pytest.raises(OperationTimeoutError, match="HEIC conversion timed out"):
                    await normalizer.normalize(b"\x00\x00\x00\x18ftypheic", "team1/photo.heic")
        finally:
            release.set()

        assert storage.uploads == []
