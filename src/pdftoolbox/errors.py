"""
Centralized error taxonomy for PDF Toolbox.

Every failure a tool workflow can report is one of four kinds: validation
(per file, batch continues), read (per file, batch continues), transform
(the workflow returns to upload) and export (the result stays valid). Config
and system errors cover everything around them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class ErrorType(Enum):
    """Error type categories for consistent error handling."""

    VALIDATION = "validation"
    READ = "read"
    TRANSFORM = "transform"
    EXPORT = "export"
    CONFIG = "config"
    SYSTEM = "system"


class ErrorCode(Enum):
    """Specific error codes for common scenarios."""

    # Validation errors
    FILE_NOT_FOUND = "FILE_NOT_FOUND"
    FILE_EMPTY = "FILE_EMPTY"
    UNSUPPORTED_TYPE = "UNSUPPORTED_TYPE"
    FILE_TOO_LARGE = "FILE_TOO_LARGE"
    INVALID_INPUT = "INVALID_INPUT"
    NOTHING_SELECTED = "NOTHING_SELECTED"

    # Read errors
    READ_FAILED = "READ_FAILED"
    READ_ABORTED = "READ_ABORTED"
    PERMISSION_DENIED = "PERMISSION_DENIED"

    # Transform errors
    PDF_CORRUPT = "PDF_CORRUPT"
    PDF_ENCRYPTED = "PDF_ENCRYPTED"
    IMAGE_CORRUPT = "IMAGE_CORRUPT"
    RENDER_FAILED = "RENDER_FAILED"
    CONVERSION_FAILED = "CONVERSION_FAILED"

    # Export errors
    DOWNLOAD_FAILED = "DOWNLOAD_FAILED"
    SHARE_FAILED = "SHARE_FAILED"
    PRINT_FAILED = "PRINT_FAILED"
    NO_RESULT = "NO_RESULT"

    # Configuration errors
    CONFIG_INVALID = "CONFIG_INVALID"
    CONFIG_PARSE_ERROR = "CONFIG_PARSE_ERROR"

    # System errors
    OS_ERROR = "OS_ERROR"
    MEMORY_ERROR = "MEMORY_ERROR"
    TIMEOUT = "TIMEOUT"
    INVALID_STATE = "INVALID_STATE"

    # Generic
    UNKNOWN = "UNKNOWN"


class ErrorSeverity(Enum):
    """Error severity levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass
class BaseAppError(Exception):
    """
    Base application error with comprehensive metadata.

    This is the root of all custom application errors, providing
    structured information for consistent error handling and user feedback.
    """

    type: ErrorType
    code: ErrorCode
    user_message: str
    technical_message: str | None = None
    severity: ErrorSeverity = ErrorSeverity.MEDIUM
    retriable: bool = False
    context: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        """Return user-friendly error message."""
        return self.user_message

    def __repr__(self) -> str:
        """Return detailed error representation for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"type={self.type.value}, "
            f"code={self.code.value}, "
            f"message='{self.user_message}'"
            f")"
        )

    @property
    def file_name(self) -> str | None:
        """Name of the file the error belongs to, if any."""
        return self.context.get("file_name")

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "type": self.type.value,
            "code": self.code.value,
            "user_message": self.user_message,
            "technical_message": self.technical_message,
            "severity": self.severity.value,
            "retriable": self.retriable,
            "context": self.context,
        }


def _with_file(context: dict[str, Any] | None, file_name: str | None) -> dict[str, Any]:
    context = dict(context or {})
    if file_name:
        context["file_name"] = file_name
    return context


class ValidationError(BaseAppError):
    """A candidate file or user input was rejected."""

    def __init__(
        self,
        code: ErrorCode,
        user_message: str,
        file_name: str | None = None,
        technical_message: str | None = None,
        severity: ErrorSeverity = ErrorSeverity.LOW,
        retriable: bool = False,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(
            type=ErrorType.VALIDATION,
            code=code,
            user_message=user_message,
            technical_message=technical_message,
            severity=severity,
            retriable=retriable,
            context=_with_file(context, file_name),
        )


class ReadError(BaseAppError):
    """A file could not be decoded into memory."""

    def __init__(
        self,
        code: ErrorCode,
        user_message: str,
        file_name: str | None = None,
        technical_message: str | None = None,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        retriable: bool = True,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(
            type=ErrorType.READ,
            code=code,
            user_message=user_message,
            technical_message=technical_message,
            severity=severity,
            retriable=retriable,
            context=_with_file(context, file_name),
        )


class TransformError(BaseAppError):
    """A conversion failed; partial output has been discarded."""

    def __init__(
        self,
        code: ErrorCode,
        user_message: str,
        file_name: str | None = None,
        technical_message: str | None = None,
        severity: ErrorSeverity = ErrorSeverity.HIGH,
        retriable: bool = True,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(
            type=ErrorType.TRANSFORM,
            code=code,
            user_message=user_message,
            technical_message=technical_message,
            severity=severity,
            retriable=retriable,
            context=_with_file(context, file_name),
        )


class ExportError(BaseAppError):
    """Download, share or print failed. The result remains usable."""

    def __init__(
        self,
        code: ErrorCode,
        user_message: str,
        file_name: str | None = None,
        technical_message: str | None = None,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        retriable: bool = True,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(
            type=ErrorType.EXPORT,
            code=code,
            user_message=user_message,
            technical_message=technical_message,
            severity=severity,
            retriable=retriable,
            context=_with_file(context, file_name),
        )


class ConfigError(BaseAppError):
    """Configuration related errors."""

    def __init__(
        self,
        code: ErrorCode,
        user_message: str,
        technical_message: str | None = None,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        retriable: bool = False,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(
            type=ErrorType.CONFIG,
            code=code,
            user_message=user_message,
            technical_message=technical_message,
            severity=severity,
            retriable=retriable,
            context=context or {},
        )


class SystemError(BaseAppError):
    """System related errors."""

    def __init__(
        self,
        code: ErrorCode,
        user_message: str,
        technical_message: str | None = None,
        severity: ErrorSeverity = ErrorSeverity.HIGH,
        retriable: bool = False,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(
            type=ErrorType.SYSTEM,
            code=code,
            user_message=user_message,
            technical_message=technical_message,
            severity=severity,
            retriable=retriable,
            context=context or {},
        )


# Exception mapping configuration
_EXCEPTION_MAPPING: dict[type[Exception], tuple[ErrorType, ErrorCode, str]] = {
    FileNotFoundError: (ErrorType.READ, ErrorCode.FILE_NOT_FOUND, "File not found"),
    PermissionError: (ErrorType.READ, ErrorCode.PERMISSION_DENIED, "Permission denied"),
    OSError: (ErrorType.SYSTEM, ErrorCode.OS_ERROR, "System error occurred"),
    ValueError: (ErrorType.VALIDATION, ErrorCode.INVALID_INPUT, "Invalid input provided"),
    TimeoutError: (ErrorType.SYSTEM, ErrorCode.TIMEOUT, "Operation timed out"),
    MemoryError: (ErrorType.SYSTEM, ErrorCode.MEMORY_ERROR, "Insufficient memory"),
}


def map_exception(exc: Exception, context: dict[str, Any] | None = None) -> BaseAppError:
    """
    Map a built-in exception to a custom application error.

    Args:
        exc: The exception to map
        context: Optional context information

    Returns:
        BaseAppError instance with appropriate type and metadata
    """
    context = context or {}

    if isinstance(exc, BaseAppError):
        return exc

    exc_type = type(exc)
    if exc_type in _EXCEPTION_MAPPING:
        error_type, error_code, default_message = _EXCEPTION_MAPPING[exc_type]
        user_message = str(exc) if str(exc) else default_message
        technical = f"{exc_type.__name__}: {exc}"

        if error_type == ErrorType.READ:
            return ReadError(code=error_code, user_message=user_message, technical_message=technical, context=context)
        if error_type == ErrorType.VALIDATION:
            return ValidationError(
                code=error_code, user_message=user_message, technical_message=technical, context=context
            )
        return SystemError(code=error_code, user_message=user_message, technical_message=technical, context=context)

    logger.warning(f"Unknown exception type: {exc_type.__name__}: {exc}")
    return SystemError(
        code=ErrorCode.UNKNOWN,
        user_message="An unexpected error occurred",
        technical_message=f"{exc_type.__name__}: {exc}",
        context=context,
    )


def from_exception(exc: Exception, context: dict[str, Any] | None = None) -> BaseAppError:
    """
    Convert any exception to a BaseAppError.

    This is an alias for map_exception for convenience.
    """
    return map_exception(exc, context)
