"""
Drag-and-drop widget for choosing input files.
"""

from pathlib import Path

from PySide6.QtCore import QSize, Qt, QTimer, Signal
from PySide6.QtGui import QDragEnterEvent, QDragLeaveEvent, QDragMoveEvent, QDropEvent, QKeyEvent, QMouseEvent
from PySide6.QtWidgets import QApplication, QLabel, QSizePolicy, QWidget

from pdftoolbox.tools import ToolSpec
from pdftoolbox.validation import extract_local_paths_from_mimedata


class DropZone(QLabel):
    """
    Drop target for a tool's input files.

    The zone only checks that the payload holds local files; type and size
    checks belong to the session so that every rejected file gets its own
    error. Clicking the zone or pressing Enter asks the page to browse.
    """

    filesDropped = Signal(list)  # list[Path] in drop order
    dropRejected = Signal(str)  # message
    clicked = Signal()

    STATE_NORMAL = "normal"
    STATE_HOVER = "hover"
    STATE_REJECT = "reject"
    STATE_DISABLED = "disabled"

    def __init__(self, spec: ToolSpec, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self._spec = spec
        self._current_state = self.STATE_NORMAL

        self.setAcceptDrops(True)
        self.setObjectName("dropZone")
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)
        self.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Preferred)
        self.setMinimumSize(300, 140)
        self.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.setWordWrap(True)

        self.setAccessibleName(f"{spec.accept_label} drop zone")
        self.setAccessibleDescription(self._hint())
        self.setToolTip(self._hint())

        self._update_appearance()

    def _extensions(self) -> str:
        return ", ".join(sorted(self._spec.extensions))

    def _hint(self) -> str:
        noun = "files" if self._spec.multiple else "a file"
        return f"Drop {noun} here or click to browse. Supported: {self._extensions()}"

    def _idle_text(self) -> str:
        return f"📄 Drop {self._spec.accept_label.lower()} here or click to browse\n\nSupported: {self._extensions()}"

    def _update_appearance(self) -> None:
        if self._current_state == self.STATE_NORMAL:
            self.setStyleSheet(self._stylesheet("palette(mid)", "rgba(128, 128, 128, 20)", "palette(window-text)"))
            self.setText(self._idle_text())
        elif self._current_state == self.STATE_HOVER:
            self.setStyleSheet(self._stylesheet("palette(highlight)", "rgba(0, 120, 212, 30)", "palette(window-text)"))
            self.setText("📄 Release to add")
        elif self._current_state == self.STATE_REJECT:
            # text is set by the rejection handler
            self.setStyleSheet(self._stylesheet("#d32f2f", "rgba(211, 47, 47, 20)", "#d32f2f"))
        else:
            self.setStyleSheet(self._stylesheet("palette(mid)", "transparent", "palette(mid)"))
            self.setText("Working...")

        self._restore_cursor()
        self.style().unpolish(self)
        self.style().polish(self)

    def _stylesheet(self, border: str, background: str, color: str) -> str:
        return f"""
            QLabel#dropZone {{
                border: 2px dashed {border};
                border-radius: 12px;
                background-color: {background};
                color: {color};
                font-size: 14px;
                padding: 24px;
            }}
        """

    def _restore_cursor(self) -> None:
        while QApplication.overrideCursor():
            QApplication.restoreOverrideCursor()

    def _set_state(self, state: str) -> None:
        if self._current_state != state:
            self._current_state = state
            self._update_appearance()

    def state(self) -> str:
        return self._current_state

    def _reset_to_normal_delayed(self) -> None:
        QTimer.singleShot(3000, self._reset_after_reject)

    def _reset_after_reject(self) -> None:
        if self._current_state == self.STATE_REJECT:
            self._set_state(self.STATE_NORMAL)

    def setEnabled(self, enabled: bool) -> None:
        """Disable drops while a job runs."""
        super().setEnabled(enabled)
        self.setAcceptDrops(enabled)
        if not enabled:
            self._set_state(self.STATE_DISABLED)
        elif self._current_state == self.STATE_DISABLED:
            self._set_state(self.STATE_NORMAL)

    # Drag and drop event handlers

    def _local_paths(self, event: QDragEnterEvent | QDropEvent) -> list[Path]:
        if not event.mimeData().hasUrls():
            return []
        return extract_local_paths_from_mimedata(event.mimeData())

    def dragEnterEvent(self, event: QDragEnterEvent) -> None:
        if self._local_paths(event):
            event.acceptProposedAction()
            self._set_state(self.STATE_HOVER)
            QApplication.setOverrideCursor(Qt.CursorShape.DragCopyCursor)
            return
        event.ignore()

    def dragMoveEvent(self, event: QDragMoveEvent) -> None:
        if event.mimeData().hasUrls():
            event.acceptProposedAction()
        else:
            event.ignore()

    def dragLeaveEvent(self, event: QDragLeaveEvent) -> None:
        self._set_state(self.STATE_NORMAL)
        event.accept()

    def dropEvent(self, event: QDropEvent) -> None:
        try:
            paths = self._local_paths(event)
            if not paths:
                self.reject("No local files in the drop")
                event.ignore()
                return
            self._set_state(self.STATE_NORMAL)
            event.acceptProposedAction()
            self.filesDropped.emit(paths)
        finally:
            self._restore_cursor()

    def reject(self, message: str) -> None:
        """Show a rejection message for a few seconds."""
        self._set_state(self.STATE_REJECT)
        self.setText(f"❌ {message}")
        self.dropRejected.emit(message)
        self._reset_to_normal_delayed()

    # Keyboard and mouse accessibility

    def keyPressEvent(self, event: QKeyEvent) -> None:
        if event.key() in (Qt.Key.Key_Return, Qt.Key.Key_Enter, Qt.Key.Key_Space):
            self.clicked.emit()
        else:
            super().keyPressEvent(event)

    def mouseReleaseEvent(self, event: QMouseEvent) -> None:
        if event.button() == Qt.MouseButton.LeftButton and self.isEnabled():
            self.clicked.emit()
        super().mouseReleaseEvent(event)

    def sizeHint(self) -> QSize:
        return QSize(400, 180)

    def minimumSizeHint(self) -> QSize:
        return QSize(300, 140)
