"""
Input file validation and QMimeData parsing.

Every candidate file is checked against the active tool's allow-list and
size ceiling before anything is read. A batch never fails as a whole: each
rejected file yields exactly one ValidationError for its first violated
constraint and the remaining files go on.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import unquote

from PySide6.QtCore import QMimeData, QMimeDatabase

from .errors import ErrorCode, ValidationError
from .models import format_file_size
from .tools import Tool, ToolSpec, get_tool_spec

logger = logging.getLogger(__name__)

UNKNOWN_MIME_TYPE = "application/octet-stream"


@dataclass
class BatchValidation:
    """Outcome of validating a selection of files."""

    accepted: list[Path] = field(default_factory=list)
    errors: list[ValidationError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def detect_mime_type(path: Path) -> str:
    """
    Detect a file's MIME type using Qt's MIME database.

    Args:
        path: File to inspect

    Returns:
        MIME type name, or application/octet-stream when it cannot be determined
    """
    try:
        mime_type = QMimeDatabase().mimeTypeForFile(str(path))
        name = mime_type.name()
    except RuntimeError as e:
        logger.debug(f"MIME detection failed for {path}: {e}")
        return UNKNOWN_MIME_TYPE
    return name or UNKNOWN_MIME_TYPE


def _is_allowed_type(path: Path, spec: ToolSpec) -> bool:
    if path.suffix.lower() in spec.extensions:
        return True
    return detect_mime_type(path) in spec.mime_types


def validate_file(path: Path, tool: Tool | str) -> Path:
    """
    Validate a single file for a tool.

    Constraints are checked in order: the path is an existing regular file,
    it is not empty, its extension or MIME type is accepted, and it does
    not exceed the tool's size ceiling.

    Args:
        path: Candidate file
        tool: Tool (or slug) whose constraints apply

    Returns:
        The resolved path

    Raises:
        ValidationError: For the first constraint the file violates
    """
    spec = get_tool_spec(tool)
    path = Path(path)
    name = path.name

    try:
        if not path.is_file():
            raise ValidationError(
                code=ErrorCode.FILE_NOT_FOUND,
                user_message="File not found",
                file_name=name,
                technical_message=f"Not a regular file: {path}",
            )
        size = path.stat().st_size
    except OSError as e:
        raise ValidationError(
            code=ErrorCode.FILE_NOT_FOUND,
            user_message="File cannot be accessed",
            file_name=name,
            technical_message=str(e),
        ) from e

    if size == 0:
        raise ValidationError(code=ErrorCode.FILE_EMPTY, user_message="File is empty", file_name=name)

    if not _is_allowed_type(path, spec):
        extensions = ", ".join(sorted(spec.extensions))
        raise ValidationError(
            code=ErrorCode.UNSUPPORTED_TYPE,
            user_message=f"File type not supported. Please upload {spec.accept_label.lower()} ({extensions})",
            file_name=name,
        )

    if size > spec.max_size:
        raise ValidationError(
            code=ErrorCode.FILE_TOO_LARGE,
            user_message=f"File too large. Maximum size is {format_file_size(spec.max_size)}",
            file_name=name,
            context={"size": size, "max_size": spec.max_size},
        )

    return path.resolve()


def validate_batch(paths: list[Path], tool: Tool | str) -> BatchValidation:
    """
    Validate a selection, keeping selection order.

    Args:
        paths: Candidate files in the order the user picked them
        tool: Tool (or slug) whose constraints apply

    Returns:
        BatchValidation with accepted paths and one error per rejected file
    """
    outcome = BatchValidation()
    for path in paths:
        try:
            outcome.accepted.append(validate_file(path, tool))
        except ValidationError as e:
            logger.info(f"Rejected {Path(path).name}: {e.user_message}")
            outcome.errors.append(e)
    return outcome


def extract_local_paths_from_mimedata(mime: QMimeData) -> list[Path]:
    """
    Extract local file paths from a drag-and-drop payload.

    Handles URL decoding and deduplication, and skips non-local URLs,
    directories and paths that no longer exist.

    Args:
        mime: QMimeData object from drag-and-drop operation

    Returns:
        List of unique local file paths in drop order

    Raises:
        ValueError: If mime data doesn't contain URLs
    """
    if not mime.hasUrls():
        raise ValueError("QMimeData does not contain URLs")

    paths: list[Path] = []
    seen_paths: set[str] = set()

    for url in mime.urls():
        if not url.isLocalFile():
            continue

        try:
            path = Path(unquote(url.toLocalFile())).resolve()
            if path.is_dir() or not path.exists():
                continue
        except (OSError, ValueError):
            continue

        key = str(path)
        if key not in seen_paths:
            seen_paths.add(key)
            paths.append(path)

    return paths
