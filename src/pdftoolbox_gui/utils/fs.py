"""Cross-platform file system utilities for GUI operations.

Folders are opened in the native file manager after a download, and files
are handed to the system viewer when printing directly is not possible.
"""

import logging
import platform
import subprocess
from pathlib import Path

from PySide6.QtCore import QUrl
from PySide6.QtGui import QDesktopServices
from PySide6.QtWidgets import QMessageBox, QWidget

logger = logging.getLogger(__name__)


def _open_local(path: Path) -> bool:
    """Open a local path with Qt, falling back to the platform's opener."""
    abs_path = path.resolve()

    try:
        if QDesktopServices.openUrl(QUrl.fromLocalFile(str(abs_path))):
            logger.debug(f"Opened {abs_path} using QDesktopServices")
            return True
        logger.warning(f"QDesktopServices.openUrl returned False for {abs_path}")
    except Exception as e:
        logger.warning(f"QDesktopServices.openUrl failed for {abs_path}: {e}")

    system = platform.system().lower()
    try:
        if system == "windows":
            subprocess.run(["explorer", str(abs_path)], check=False)
            return True
        if system == "darwin":
            subprocess.run(["open", str(abs_path)], check=False)
            return True
        if system == "linux":
            result = subprocess.run(["xdg-open", str(abs_path)], check=False, capture_output=True)
            if result.returncode == 0:
                return True
            logger.warning(f"xdg-open failed with return code {result.returncode}")
    except (subprocess.SubprocessError, FileNotFoundError) as e:
        logger.error(f"Platform-specific fallback failed for {abs_path}: {e}")

    return False


def open_in_file_manager(path: Path, parent: QWidget | None = None) -> bool:
    """Open a folder in the OS-native file manager.

    Args:
        path: The directory path to open. Must be an existing directory.
        parent: Optional parent widget for error dialogs.

    Returns:
        True if the folder was successfully opened, False otherwise.
    """
    if not path.is_dir():
        logger.warning(f"Cannot open non-directory path in file manager: {path}")
        return False

    if _open_local(path):
        return True

    _show_open_error("Cannot Open Folder", "Failed to open folder in file manager", path, parent)
    return False


def open_with_system_viewer(path: Path, parent: QWidget | None = None) -> bool:
    """Open a file in its default application, e.g. to print it from there.

    Args:
        path: An existing file.
        parent: Optional parent widget for error dialogs.

    Returns:
        True if the file was handed to a viewer, False otherwise.
    """
    if not path.is_file():
        logger.warning(f"Cannot open missing file: {path}")
        return False

    if _open_local(path):
        return True

    _show_open_error("Cannot Open File", "Failed to open the file in its default application", path, parent)
    return False


def _show_open_error(title: str, text: str, path: Path, parent: QWidget | None = None) -> None:
    if parent is None:
        return

    msg_box = QMessageBox(parent)
    msg_box.setIcon(QMessageBox.Icon.Warning)
    msg_box.setWindowTitle(title)
    msg_box.setText(text)
    msg_box.setDetailedText(
        f"The location may be on an unmounted drive or you may not have "
        f"the necessary permissions.\n\nYou can find it at:\n{path}"
    )
    msg_box.setStandardButtons(QMessageBox.StandardButton.Ok)
    msg_box.exec()
