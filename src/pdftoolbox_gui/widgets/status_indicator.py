"""
Status indicator widget showing where a tool page's workflow is.
"""

from enum import Enum

from PySide6.QtWidgets import QHBoxLayout, QLabel, QWidget

from pdftoolbox.workflow import Complete, Processing, Selection, WorkflowState

BORDER_COLOR = "#dee2e6"


class StatusState(Enum):
    """Status indicator states with accessible colors and descriptions."""

    UPLOAD = ("Ready", "Waiting for files", "#6c757d")
    PROCESSING = ("Working", "A job is in progress", "#fd7e14")
    SELECTION = ("Review", "Files are ready to convert", "#0d6efd")
    COMPLETE = ("Done", "The result is ready", "#198754")
    ERROR = ("Error", "The last job failed", "#dc3545")

    def __init__(self, display_name: str, description: str, color: str) -> None:
        self.display_name = display_name
        self.description = description
        self.color = color

    @classmethod
    def from_workflow(cls, state: WorkflowState) -> "StatusState":
        if isinstance(state, Processing):
            return cls.PROCESSING
        if isinstance(state, Selection):
            return cls.SELECTION
        if isinstance(state, Complete):
            return cls.COMPLETE
        return cls.UPLOAD


class StatusIndicatorWidget(QWidget):
    """
    Widget for displaying the current workflow status.

    Shows a colored dot and status text with accessibility support.
    """

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self._current_state = StatusState.UPLOAD
        self._setup_ui()

    def _setup_ui(self) -> None:
        self.setObjectName("statusIndicator")
        self.setAccessibleName("Tool status")

        layout = QHBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(8)

        self.status_dot = QLabel()
        self.status_dot.setFixedSize(12, 12)
        self.status_dot.setAccessibleName("Status indicator dot")
        layout.addWidget(self.status_dot)

        self.status_text = QLabel()
        self.status_text.setAccessibleName("Status text")
        layout.addWidget(self.status_text)
        layout.addStretch()

        self.set_status(StatusState.UPLOAD)

    def set_status(self, state: StatusState) -> None:
        self._current_state = state

        self.status_dot.setStyleSheet(
            f"""
            QLabel {{
                border-radius: 6px;
                background-color: {state.color};
                border: 1px solid {BORDER_COLOR};
            }}
        """
        )
        self.status_text.setText(state.display_name)

        self.status_dot.setAccessibleDescription(f"Status: {state.display_name}")
        self.status_text.setAccessibleDescription(state.description)
        self.setToolTip(f"{state.display_name}: {state.description}")

    def get_status(self) -> StatusState:
        return self._current_state
