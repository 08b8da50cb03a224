"""
Data model shared by every tool workflow.

SourceFile holds a validated file read into memory, PreviewArtifact is a
releasable preview handle, TransformResult is the single output of a
conversion and HistoryRecord is one persisted compression entry.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

_SIZE_UNITS = ("Bytes", "KB", "MB", "GB")


def format_file_size(size: int) -> str:
    """
    Format a byte count for display.

    Args:
        size: Number of bytes

    Returns:
        "0 Bytes" for zero, otherwise the value in base-1024 units with at
        most two decimals and trailing zeros dropped, e.g. "1.5 KB"
    """
    if size <= 0:
        return "0 Bytes"
    value = float(size)
    index = 0
    while value >= 1024 and index < len(_SIZE_UNITS) - 1:
        value /= 1024
        index += 1
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text} {_SIZE_UNITS[index]}"


@dataclass
class SourceFile:
    """A validated input file held in memory."""

    name: str
    path: Path
    size: int
    mime_type: str
    data: bytes = field(repr=False)

    @property
    def stem(self) -> str:
        return Path(self.name).stem

    @property
    def formatted_size(self) -> str:
        return format_file_size(self.size)


class ArtifactKind(Enum):
    """Where a preview lives."""

    DATA_URL = "data_url"  # inline base64 payload
    FILE = "file"  # temporary file on disk


@dataclass(eq=False)
class PreviewArtifact:
    """
    A preview handle that must be released when no longer displayed.

    release() is idempotent; after it the payload is gone and, for FILE
    artifacts, the temporary file has been removed.
    """

    kind: ArtifactKind
    payload: str | Path | None
    page_index: int | None = None
    released: bool = False

    def release(self) -> None:
        if self.released:
            return
        if self.kind is ArtifactKind.FILE and isinstance(self.payload, Path):
            try:
                self.payload.unlink(missing_ok=True)
            except OSError as e:
                logger.warning(f"Could not remove preview file {self.payload}: {e}")
        self.payload = None
        self.released = True


class ResultKind(Enum):
    PDF = "pdf"
    IMAGES = "images"
    DOCX = "docx"


@dataclass(frozen=True)
class RenderedImage:
    """One encoded page image produced by PDF to image conversion."""

    name: str
    data: bytes = field(repr=False)
    page_number: int  # 1-based
    mime_type: str = "image/jpeg"


@dataclass(frozen=True)
class TransformResult:
    """
    The single output of a successful conversion.

    Results are immutable so that exporting one any number of times can
    never change it. Image results carry their pages in ``images`` and an
    empty ``data``.
    """

    name: str
    data: bytes = field(repr=False)
    mime_type: str
    kind: ResultKind
    page_count: int = 0
    images: tuple[RenderedImage, ...] = ()
    source_name: str = ""
    original_size: int | None = None

    @property
    def size(self) -> int:
        if self.images:
            return sum(len(image.data) for image in self.images)
        return len(self.data)

    @property
    def formatted_size(self) -> str:
        return format_file_size(self.size)


@dataclass
class ImageItem:
    """An image queued for JPG to PDF, with its user-applied rotation."""

    source: SourceFile
    preview: PreviewArtifact | None = None
    rotation: int = 0
    id: str = field(default_factory=lambda: uuid.uuid4().hex)


class CompressionMethod(Enum):
    LOSSLESS = "lossless"
    BALANCED = "balanced"
    AGGRESSIVE = "aggressive"


@dataclass
class CompressionSettings:
    """Knobs for PDF compression."""

    image_quality: int = 70
    image_scale: float = 0.75
    compression_method: CompressionMethod = CompressionMethod.BALANCED
    title: str = ""
    author: str = ""

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "image_quality": self.image_quality,
            "image_scale": self.image_scale,
            "compression_method": self.compression_method.value,
        }
        if self.title:
            data["title"] = self.title
        if self.author:
            data["author"] = self.author
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CompressionSettings:
        return cls(
            image_quality=int(data["image_quality"]),
            image_scale=float(data["image_scale"]),
            compression_method=CompressionMethod(data["compression_method"]),
            title=data.get("title", ""),
            author=data.get("author", ""),
        )


def compression_ratio(original_size: int, compressed_size: int) -> str:
    """Percent saved, one decimal. Negative when the output grew."""
    if original_size <= 0:
        return "0.0"
    return f"{(1 - compressed_size / original_size) * 100:.1f}"


@dataclass(frozen=True)
class HistoryRecord:
    """One compression history entry, serialized with camelCase keys."""

    file_name: str
    original_size: int
    compressed_size: int
    date: str
    compression_ratio: str

    @classmethod
    def create(cls, file_name: str, original_size: int, compressed_size: int) -> HistoryRecord:
        return cls(
            file_name=file_name,
            original_size=original_size,
            compressed_size=compressed_size,
            date=datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            compression_ratio=compression_ratio(original_size, compressed_size),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "fileName": self.file_name,
            "originalSize": self.original_size,
            "compressedSize": self.compressed_size,
            "date": self.date,
            "compressionRatio": self.compression_ratio,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HistoryRecord:
        return cls(
            file_name=data["fileName"],
            original_size=int(data["originalSize"]),
            compressed_size=int(data["compressedSize"]),
            date=data["date"],
            compression_ratio=data["compressionRatio"],
        )
