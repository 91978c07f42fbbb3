"""
File Type Detection

Identifies uploads declared as a generic ``application/octet-stream`` by
looking at their leading magic bytes.

Usage:
    result = detect_file_type(buffer)
    if result.detected:
        mimetype = result.mimetype
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

GENERIC_MIMETYPE = "application/octet-stream"


class FileKind(str, Enum):
    """File formats the pipeline distinguishes."""

    PDF = "pdf"
    JPEG = "jpeg"
    PNG = "png"
    GIF = "gif"
    WEBP = "webp"
    HEIC = "heic"
    UNKNOWN = "unknown"

    @property
    def mimetype(self) -> Optional[str]:
        return _MIMETYPES.get(self)

    @classmethod
    def from_mimetype(cls, mimetype: str) -> "FileKind":
        """Map a declared MIME type onto a kind; anything unrecognised is UNKNOWN."""
        normalized = (mimetype or "").split(";")[0].strip().lower()
        normalized = _ALIASES.get(normalized, normalized)
        for kind, value in _MIMETYPES.items():
            if value == normalized:
                return kind
        return cls.UNKNOWN


_MIMETYPES = {
    FileKind.PDF: "application/pdf",
    FileKind.JPEG: "image/jpeg",
    FileKind.PNG: "image/png",
    FileKind.GIF: "image/gif",
    FileKind.WEBP: "image/webp",
    FileKind.HEIC: "image/heic",
}

_ALIASES = {
    "image/jpg": "image/jpeg",
    "image/heif": "image/heic",
}

# Ordered; first match wins. ``None`` marks a wildcard byte.
_SIGNATURES: Tuple[Tuple[FileKind, Tuple[Optional[int], ...]], ...] = (
    (FileKind.PDF, tuple(b"%PDF")),
    (FileKind.JPEG, (0xFF, 0xD8, 0xFF)),
    (FileKind.PNG, (0x89, 0x50, 0x4E, 0x47)),
    (FileKind.GIF, tuple(b"GIF87a")),
    (FileKind.GIF, tuple(b"GIF89a")),
    (FileKind.WEBP, tuple(b"RIFF") + (None, None, None, None) + tuple(b"WEBP")),
)

MIN_SIGNATURE_LENGTH = 4


@dataclass(frozen=True)
class DetectionResult:
    """Outcome of magic-byte detection; ``buffer`` is always the input bytes."""

    kind: FileKind
    buffer: bytes

    @property
    def detected(self) -> bool:
        return self.kind is not FileKind.UNKNOWN

    @property
    def mimetype(self) -> Optional[str]:
        return self.kind.mimetype


def _matches(buffer: bytes, signature: Tuple[Optional[int], ...]) -> bool:
    if len(buffer) < len(signature):
        return False
    return all(expected is None or buffer[i] == expected for i, expected in enumerate(signature))


def detect_file_type(buffer: bytes) -> DetectionResult:
    """Detect a file's format from its leading bytes.

    Args:
        buffer: File content (only the first bytes are inspected)

    Returns:
        DetectionResult with ``kind`` UNKNOWN when nothing matched
    """
    data = bytes(buffer or b"")
    if len(data) < MIN_SIGNATURE_LENGTH:
        return DetectionResult(FileKind.UNKNOWN, data)

    for kind, signature in _SIGNATURES:
        if _matches(data, signature):
            return DetectionResult(kind, data)

    return DetectionResult(FileKind.UNKNOWN, data)
