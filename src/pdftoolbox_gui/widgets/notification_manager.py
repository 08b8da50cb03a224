"""
Notification management for the PDF Toolbox window.

Every reported error and every finished job ends up here. Notifications are
shown as message boxes while the window is active and as system tray
messages while it is minimized or in the background.
"""

import contextlib
import logging
import sys
from pathlib import Path
from time import monotonic
from typing import Any

from PySide6.QtCore import QObject
from PySide6.QtGui import QIcon
from PySide6.QtWidgets import QApplication, QMessageBox, QSystemTrayIcon, QWidget

from ..utils.fs import open_in_file_manager


class NotificationManager(QObject):
    """
    Unified toast-style notifications for the application.

    Identical notifications within a short window are shown once, and a job
    id is notified at most once per outcome.
    """

    def __init__(self, parent: QWidget | None = None) -> None:
        """
        Initialize the notification manager.

        Args:
            parent: Parent widget (typically main window)
        """
        super().__init__(parent)
        self._parent_widget = parent
        self._logger = logging.getLogger(__name__)

        self._system_tray: QSystemTrayIcon | None = None
        self._tray_available = False

        self._notification_cache: dict[tuple[Any, ...], float] = {}
        self._debounce_ttl = 3.0  # seconds

        self._notified_jobs: dict[str, str] = {}  # job_id -> status

        self._test_mode = self._detect_test_mode()
        if not self._test_mode:
            self._init_system_tray()

    def _init_system_tray(self) -> None:
        if QSystemTrayIcon.isSystemTrayAvailable():
            self._system_tray = QSystemTrayIcon(self)

            app_instance = QApplication.instance()
            app_icon = app_instance.windowIcon() if app_instance and hasattr(app_instance, "windowIcon") else QIcon()
            if not app_icon.isNull():
                self._system_tray.setIcon(app_icon)

            self._system_tray.setToolTip("PDF Toolbox")
            self._system_tray.show()
            self._tray_available = True
            self._logger.debug("System tray initialized")
        else:
            self._logger.debug("System tray not available")

    def _detect_test_mode(self) -> bool:
        return "pytest" in sys.modules or hasattr(sys, "_called_from_test")

    @property
    def test_mode(self) -> bool:
        return self._test_mode

    def notify(
        self, status: str, title: str, message: str, output_path: str | None = None, job_id: str | None = None
    ) -> bool:
        """
        Show a notification to the user.

        Args:
            status: Notification status ('success', 'error', 'warning', 'info')
            title: Notification title
            message: Notification message
            output_path: Optional folder offered through an "Open Folder" action
            job_id: Optional job identifier for de-duplication

        Returns:
            False if the notification was suppressed as a duplicate
        """
        if job_id and status in ("success", "error", "warning"):
            if job_id in self._notified_jobs:
                self._logger.debug(f"Job {job_id} already notified with outcome: {self._notified_jobs[job_id]}")
                return False
            self._notified_jobs[job_id] = status

        debounce_key = (job_id, status, title, message, output_path)
        if self._should_debounce(debounce_key):
            self._logger.debug(f"Debouncing notification: {title}")
            return False
        self._notification_cache[debounce_key] = monotonic()

        # In test mode, just log the notification instead of showing UI
        if self._test_mode:
            self._logger.info(f"TEST NOTIFICATION [{status}] {title}: {message} (output_path={output_path})")
            return True

        if self._should_use_system_tray():
            self._show_tray_notification(status, title, message, output_path)
        else:
            self._show_message_box(status, title, message, output_path)
        return True

    def _should_debounce(self, key: tuple[Any, ...]) -> bool:
        if key not in self._notification_cache:
            return False

        age = monotonic() - self._notification_cache[key]
        if age > self._debounce_ttl:
            del self._notification_cache[key]
            return False
        return True

    def _should_use_system_tray(self) -> bool:
        if not self._tray_available or not self._system_tray:
            return False
        if self._parent_widget:
            return self._parent_widget.isMinimized() or not self._parent_widget.isActiveWindow()
        return False

    def _show_message_box(self, status: str, title: str, message: str, output_path: str | None = None) -> None:
        if not self._parent_widget:
            self._logger.warning("No parent widget for message box")
            return

        msg_box = QMessageBox(self._parent_widget)
        msg_box.setWindowTitle(title)
        msg_box.setText(message)

        icon_map = {
            "success": QMessageBox.Icon.Information,
            "error": QMessageBox.Icon.Critical,
            "warning": QMessageBox.Icon.Warning,
            "info": QMessageBox.Icon.Information,
        }
        msg_box.setIcon(icon_map.get(status, QMessageBox.Icon.Information))

        ok_button = msg_box.addButton(QMessageBox.StandardButton.Ok)
        msg_box.setDefaultButton(ok_button)

        open_folder_button = None
        if output_path and Path(output_path).exists():
            open_folder_button = msg_box.addButton("Open Folder", QMessageBox.ButtonRole.ActionRole)

        msg_box.exec()

        if open_folder_button and msg_box.clickedButton() == open_folder_button and output_path:
            open_in_file_manager(Path(output_path), self._parent_widget)

    def _show_tray_notification(self, status: str, title: str, message: str, output_path: str | None = None) -> None:
        if not self._system_tray:
            self._show_message_box(status, title, message, output_path)
            return

        icon_map = {
            "success": QSystemTrayIcon.MessageIcon.Information,
            "error": QSystemTrayIcon.MessageIcon.Critical,
            "warning": QSystemTrayIcon.MessageIcon.Warning,
            "info": QSystemTrayIcon.MessageIcon.Information,
        }
        tray_icon = icon_map.get(status, QSystemTrayIcon.MessageIcon.Information)

        tray_message = message
        if output_path and Path(output_path).exists():
            tray_message += "\nClick to open folder"
            with contextlib.suppress(TypeError, RuntimeError):
                self._system_tray.messageClicked.disconnect()
            self._system_tray.messageClicked.connect(
                lambda: open_in_file_manager(Path(output_path), self._parent_widget)
            )

        self._system_tray.showMessage(title, tray_message, tray_icon, 5000)

    def cleanup(self) -> None:
        """Clean up resources."""
        if self._system_tray:
            self._system_tray.hide()
            self._system_tray = None

        self._notification_cache.clear()
        self._notified_jobs.clear()
