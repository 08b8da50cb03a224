"""
Centralized error reporting and logging setup for PDF Toolbox.

The ErrorHandler singleton normalizes exceptions into BaseAppError instances,
writes them to a rotating log file in the app data directory and re-emits
them as a Qt signal so the window can raise a toast.
"""

from __future__ import annotations

import logging
import logging.handlers
import sys
import threading
import traceback
from typing import Any, ClassVar

from PySide6.QtCore import QObject, Signal

from .config import get_app_data_dir
from .errors import BaseAppError, ErrorSeverity, from_exception

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
ERROR_LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | code=%(app_code)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_SENSITIVE_KEYS = ("password", "token", "secret", "key")
# Context keys that are always kept readable
_SAFE_KEYS = ("file_name",)

_SEVERITY_LEVELS = {
    ErrorSeverity.LOW: logging.INFO,
    ErrorSeverity.MEDIUM: logging.WARNING,
    ErrorSeverity.HIGH: logging.ERROR,
    ErrorSeverity.CRITICAL: logging.CRITICAL,
}


class ErrorHandler(QObject):
    """
    Centralized error handler with logging and user message translation.

    Per-file validation and read problems arrive here as ready-made
    BaseAppError instances through report(); unexpected exceptions come
    through handle() and are mapped first. Both paths log with the error
    code and emit errorOccurred.
    """

    # Emitted for every reported error (thread-safe, queued across threads)
    errorOccurred = Signal(object)  # BaseAppError

    _instance: ClassVar[ErrorHandler | None] = None
    _logger: ClassVar[logging.Logger | None] = None

    def __new__(cls) -> ErrorHandler:
        """Ensure singleton pattern."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self) -> None:
        if hasattr(self, "_initialized"):
            return

        super().__init__()
        self._initialized = True
        self._original_excepthook = sys.excepthook
        self._original_threading_excepthook = threading.excepthook

        self._setup_logging()

    def capture(self, exception: Exception, context: dict[str, Any] | None = None) -> BaseAppError:
        """
        Normalize an exception into a BaseAppError without reporting it.

        Args:
            exception: The exception to capture
            context: Optional context information

        Returns:
            BaseAppError with normalized metadata
        """
        safe_context = self._sanitize_context(context or {})
        app_error = from_exception(exception, safe_context)
        if safe_context and app_error.context is not safe_context:
            for key, value in safe_context.items():
                app_error.context.setdefault(key, value)

        if not app_error.technical_message:
            app_error.technical_message = f"{type(exception).__name__}: {exception}"

        if "traceback" not in app_error.context:
            tb_str = traceback.format_exc()
            if tb_str == "NoneType: None\n":
                tb_str = f"{type(exception).__name__}: {exception}\n"
            app_error.context["traceback"] = tb_str

        return app_error

    def handle(self, exception: Exception, context: dict[str, Any] | None = None) -> BaseAppError:
        """
        Capture, log and emit an exception.

        Args:
            exception: The exception to handle
            context: Optional context information

        Returns:
            BaseAppError for further processing

        Raises:
            SystemExit, KeyboardInterrupt: re-raised untouched
        """
        if isinstance(exception, SystemExit | KeyboardInterrupt):
            raise exception

        app_error = self.capture(exception, context)
        self._log(app_error, exc_info=exception)
        self.errorOccurred.emit(app_error)
        return app_error

    def report(self, app_error: BaseAppError) -> BaseAppError:
        """Log and emit an error that is already an application error."""
        self._log(app_error)
        self.errorOccurred.emit(app_error)
        return app_error

    def to_user_message(self, app_error: BaseAppError) -> str:
        """
        Generate the text shown in a toast for an error.

        Args:
            app_error: The error to convert

        Returns:
            User-friendly message, prefixed with the file name when known
        """
        message = app_error.user_message
        if app_error.file_name and app_error.file_name not in message:
            message = f"{app_error.file_name}: {message}"
        if app_error.retriable:
            message += " You can try again."
        return message

    def _log(self, app_error: BaseAppError, exc_info: BaseException | None = None) -> None:
        if not self._logger:
            return
        level = _SEVERITY_LEVELS.get(app_error.severity, logging.ERROR)
        self._logger.log(
            level,
            f"[{app_error.code.value}] {app_error.user_message}",
            extra={
                "app_code": app_error.code.value,
                "error_type": app_error.type.value,
                "severity": app_error.severity.value,
                "retriable": app_error.retriable,
            },
            exc_info=exc_info,
        )

    def _setup_logging(self) -> None:
        """Set up rotating file logging in the app data directory."""
        try:
            logs_dir = get_app_data_dir() / "logs"
            logs_dir.mkdir(parents=True, exist_ok=True)

            ErrorHandler._logger = logging.getLogger("pdftoolbox.errors")
            ErrorHandler._logger.setLevel(logging.DEBUG)
            ErrorHandler._logger.propagate = False

            if not ErrorHandler._logger.handlers:
                file_handler = logging.handlers.RotatingFileHandler(
                    logs_dir / "app.log",
                    maxBytes=5_242_880,  # 5MB
                    backupCount=5,
                    encoding="utf-8",
                )
                formatter = logging.Formatter(ERROR_LOG_FORMAT, datefmt=DATE_FORMAT)
                file_handler.setFormatter(formatter)
                ErrorHandler._logger.addHandler(file_handler)

                if __debug__:
                    console_handler = logging.StreamHandler()
                    console_handler.setFormatter(formatter)
                    console_handler.setLevel(logging.WARNING)
                    ErrorHandler._logger.addHandler(console_handler)

        except OSError as e:
            logging.basicConfig(level=logging.ERROR)
            logging.error(f"Failed to setup error logging: {e}")

    def _sanitize_context(self, context: dict[str, Any]) -> dict[str, Any]:
        """
        Redact sensitive keys and truncate long values.

        Args:
            context: Raw context dictionary

        Returns:
            Sanitized context dictionary
        """
        safe_context: dict[str, Any] = {}
        max_items = 20

        for index, (key, value) in enumerate(context.items()):
            if index >= max_items:
                safe_context["..."] = f"({len(context) - max_items} more items truncated)"
                break

            if key in _SAFE_KEYS:
                safe_context[key] = value
            elif any(sensitive in key.lower() for sensitive in _SENSITIVE_KEYS):
                safe_context[key] = "[REDACTED]"
            elif isinstance(value, str):
                safe_context[key] = value if len(value) <= 200 else value[:200] + "..."
            elif isinstance(value, bytes):
                safe_context[key] = f"<{len(value)} bytes>"
            else:
                try:
                    safe_context[key] = repr(value)[:200]
                except Exception:
                    safe_context[key] = "[REPR_FAILED]"

        return safe_context

    def install_hooks(self) -> None:
        """Install exception hooks for unhandled exceptions."""

        def exception_hook(exc_type: type[BaseException], exc_value: BaseException, exc_traceback: Any) -> None:
            if issubclass(exc_type, KeyboardInterrupt) or not isinstance(exc_value, Exception):
                self._original_excepthook(exc_type, exc_value, exc_traceback)
                return
            try:
                self.handle(exc_value, {"source": "sys.excepthook"})
            except Exception:
                self._original_excepthook(exc_type, exc_value, exc_traceback)

        def threading_exception_hook(args: threading.ExceptHookArgs) -> None:
            if not isinstance(args.exc_value, Exception):
                self._original_threading_excepthook(args)
                return
            try:
                self.handle(
                    args.exc_value,
                    {
                        "source": "threading.excepthook",
                        "thread": args.thread.name if args.thread else "unknown",
                    },
                )
            except Exception:
                self._original_threading_excepthook(args)

        sys.excepthook = exception_hook
        threading.excepthook = threading_exception_hook

    def restore_hooks(self) -> None:
        """Restore original exception hooks."""
        sys.excepthook = self._original_excepthook
        threading.excepthook = self._original_threading_excepthook


def get_error_handler() -> ErrorHandler:
    """Return the singleton ErrorHandler."""
    return ErrorHandler()


def setup_error_handling() -> ErrorHandler:
    """
    Set up global error handling for the application.

    This should be called once during application startup.

    Returns:
        The configured ErrorHandler instance
    """
    handler = get_error_handler()
    handler.install_hooks()
    return handler


def init_logging(level: str | int = logging.INFO) -> None:
    """
    Initialize logging configuration.

    Args:
        level: Root log level, either a logging constant or a name such as "DEBUG"
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    get_error_handler()

    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=DATE_FORMAT)
    logging.getLogger().setLevel(level)
