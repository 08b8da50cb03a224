"""
Reading validated files into memory.

Reads are chunked so a cancel token set from another thread aborts the
read between chunks. Every failure surfaces as ReadError for that file.
"""

from __future__ import annotations

import base64
import logging
import threading
from pathlib import Path

from .errors import ErrorCode, ReadError
from .models import SourceFile
from .validation import detect_mime_type

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


def read_bytes(path: Path, cancel: threading.Event | None = None) -> bytes:
    """
    Read a file's full contents.

    Args:
        path: File to read
        cancel: Optional token; when set the read is aborted

    Returns:
        The file bytes

    Raises:
        ReadError: If the file cannot be read or the read was aborted
    """
    path = Path(path)
    chunks: list[bytes] = []
    try:
        with path.open("rb") as handle:
            while True:
                if cancel is not None and cancel.is_set():
                    raise ReadError(
                        code=ErrorCode.READ_ABORTED,
                        user_message="File reading aborted",
                        file_name=path.name,
                        retriable=True,
                    )
                chunk = handle.read(CHUNK_SIZE)
                if not chunk:
                    break
                chunks.append(chunk)
    except PermissionError as e:
        raise ReadError(
            code=ErrorCode.PERMISSION_DENIED,
            user_message="Permission denied while reading file",
            file_name=path.name,
            technical_message=str(e),
            retriable=False,
        ) from e
    except OSError as e:
        raise ReadError(
            code=ErrorCode.READ_FAILED,
            user_message="Failed to read file",
            file_name=path.name,
            technical_message=str(e),
        ) from e

    return b"".join(chunks)


def to_data_url(data: bytes, mime_type: str) -> str:
    """Encode bytes as a base64 ``data:`` URL."""
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def read_as_data_url(path: Path, mime_type: str | None = None, cancel: threading.Event | None = None) -> str:
    """
    Read a file and encode it as a data URL.

    Raises:
        ReadError: If the file cannot be read or the read was aborted
    """
    path = Path(path)
    return to_data_url(read_bytes(path, cancel), mime_type or detect_mime_type(path))


def load_source_file(path: Path, mime_type: str | None = None, cancel: threading.Event | None = None) -> SourceFile:
    """
    Read a validated file into a SourceFile.

    Args:
        path: File to load
        mime_type: Known MIME type, detected when omitted
        cancel: Optional abort token

    Returns:
        SourceFile holding the bytes

    Raises:
        ReadError: If the file cannot be read or the read was aborted
    """
    path = Path(path)
    data = read_bytes(path, cancel)
    source = SourceFile(
        name=path.name,
        path=path,
        size=len(data),
        mime_type=mime_type or detect_mime_type(path),
        data=data,
    )
    logger.debug(f"Loaded {source.name} ({source.formatted_size}, {source.mime_type})")
    return source
