"""
Main window for the PDF Toolbox application.

A navigation list on the left chooses the tool and a stacked widget on the
right shows that tool's page. Errors reported anywhere in the application
arrive through the ErrorHandler signal and are shown as notifications.
"""

import logging

from PySide6.QtCore import Qt
from PySide6.QtGui import QAction, QCloseEvent, QKeySequence
from PySide6.QtWidgets import QHBoxLayout, QListWidget, QListWidgetItem, QMainWindow, QStackedWidget, QWidget

from pdftoolbox.config_manager import ConfigManager
from pdftoolbox.error_handler import get_error_handler
from pdftoolbox.errors import BaseAppError, ErrorType
from pdftoolbox.export import clear_share_dir
from pdftoolbox.presets import DEFAULT_PRESET, PresetManager
from pdftoolbox.sessions import ToolSession, create_session
from pdftoolbox.tools import COMING_SOON, TOOLS, Tool
from pdftoolbox.transforms import PdfPageOptions

from .tool_page import ToolPage
from .widgets.notification_manager import NotificationManager

logger = logging.getLogger(__name__)

ERROR_TITLES = {
    ErrorType.VALIDATION: "File Rejected",
    ErrorType.READ: "Could Not Read File",
    ErrorType.TRANSFORM: "Conversion Failed",
    ErrorType.EXPORT: "Export Failed",
    ErrorType.CONFIG: "Settings Problem",
    ErrorType.SYSTEM: "Error",
}


class MainWindow(QMainWindow):
    """
    Main application window.

    Holds one ToolPage per tool; each page keeps its own session, so
    switching tools never loses work in progress.
    """

    def __init__(
        self, config_manager: ConfigManager | None = None, sessions: dict[Tool, ToolSession] | None = None
    ) -> None:
        """
        Initialize the main window.

        Args:
            config_manager: Settings store; a default one is created when omitted
            sessions: Pre-built sessions by tool, mainly for tests
        """
        super().__init__()
        self.config_manager = config_manager or ConfigManager()
        self.error_handler = get_error_handler()
        self.notification_manager = NotificationManager(self)

        self.setWindowTitle("PDF Toolbox")
        self.resize(1000, 760)

        central = QWidget()
        layout = QHBoxLayout(central)

        self.nav_list = QListWidget()
        self.nav_list.setObjectName("toolNavigation")
        self.nav_list.setAccessibleName("Tools")
        self.nav_list.setFixedWidth(200)
        layout.addWidget(self.nav_list)

        self.stack = QStackedWidget()
        layout.addWidget(self.stack, 1)
        self.setCentralWidget(central)

        self.pages: dict[str, ToolPage] = {}
        sessions = sessions or {}
        for spec in TOOLS.values():
            session = sessions.get(spec.tool) or self._create_session(spec.tool)
            page = ToolPage(session, self.config_manager, self)
            page.notificationRequested.connect(self._on_notification)
            self.pages[spec.slug] = page
            self.stack.addWidget(page)

            entry = QListWidgetItem(spec.title)
            entry.setData(Qt.ItemDataRole.UserRole, spec.slug)
            entry.setToolTip(spec.description)
            self.nav_list.addItem(entry)

        for slug, title in COMING_SOON:
            entry = QListWidgetItem(f"{title} (coming soon)")
            entry.setData(Qt.ItemDataRole.UserRole, slug)
            entry.setFlags(entry.flags() & ~Qt.ItemFlag.ItemIsEnabled & ~Qt.ItemFlag.ItemIsSelectable)
            self.nav_list.addItem(entry)

        self.nav_list.currentItemChanged.connect(self._on_nav_changed)
        self.error_handler.errorOccurred.connect(self._on_error_occurred)
        self._setup_shortcuts()

        self.select_tool(self.config_manager.get_last_tool())

    def _create_session(self, tool: Tool) -> ToolSession:
        config = self.config_manager
        if tool is Tool.JPG_TO_PDF:
            try:
                options = PdfPageOptions(
                    page_size=config.get("page_size"),
                    orientation=config.get("orientation"),
                    margin_mm=config.get("margin_mm"),
                    fit_to_page=config.get("fit_to_page"),
                )
            except ValueError as e:
                logger.warning(f"Ignoring stored page options: {e}")
                options = PdfPageOptions()
            return create_session(tool, options=options)
        if tool is Tool.PDF_TO_JPG:
            return create_session(tool, preview_scale=config.get("preview_scale"), output_scale=config.get("output_scale"))
        if tool is Tool.COMPRESS_PDF:
            manager = PresetManager()
            preset = config.get("default_preset")
            if not manager.preset_exists(preset):
                logger.warning(f"Preset '{preset}' no longer exists, using {DEFAULT_PRESET}")
                preset = DEFAULT_PRESET
            return create_session(tool, preset_manager=manager, preset=preset)
        return create_session(tool)

    def _setup_shortcuts(self) -> None:
        browse_action = QAction(self)
        browse_action.setShortcut(QKeySequence("Ctrl+O"))
        browse_action.triggered.connect(lambda: self.current_page().browse())
        self.addAction(browse_action)

        convert_action = QAction(self)
        convert_action.setShortcut(QKeySequence("Ctrl+Return"))
        convert_action.triggered.connect(lambda: self.current_page().convert())
        self.addAction(convert_action)

    # -- navigation --------------------------------------------------------

    def current_page(self) -> ToolPage:
        page = self.stack.currentWidget()
        assert isinstance(page, ToolPage)
        return page

    def select_tool(self, slug: str) -> None:
        """Show a tool's page; unknown slugs fall back to the first tool."""
        if slug not in self.pages:
            logger.warning(f"Unknown tool '{slug}', showing the first tool")
            slug = next(iter(self.pages))

        for row in range(self.nav_list.count()):
            if self.nav_list.item(row).data(Qt.ItemDataRole.UserRole) == slug:
                self.nav_list.setCurrentRow(row)
                break
        self.stack.setCurrentWidget(self.pages[slug])

    def _on_nav_changed(self, current: QListWidgetItem | None, _previous: QListWidgetItem | None) -> None:
        if current is None:
            return
        slug = current.data(Qt.ItemDataRole.UserRole)
        page = self.pages.get(slug)
        if page is None:
            return
        self.stack.setCurrentWidget(page)
        self.config_manager.set_last_tool(slug)

    # -- notifications -----------------------------------------------------

    def _on_error_occurred(self, error: BaseAppError) -> None:
        status = "warning" if error.type is ErrorType.VALIDATION else "error"
        title = ERROR_TITLES.get(error.type, "Error")
        self.notification_manager.notify(status, title, self.error_handler.to_user_message(error))

    def _on_notification(self, status: str, title: str, message: str, output_path: str) -> None:
        self.notification_manager.notify(status, title, message, output_path or None)

    def closeEvent(self, event: QCloseEvent) -> None:
        """Wait for running jobs, release previews and drop staged copies before closing."""
        for page in self.pages.values():
            page.shutdown()
        clear_share_dir()

        try:
            self.error_handler.errorOccurred.disconnect(self._on_error_occurred)
        except (TypeError, RuntimeError):
            logger.debug("Error signal already disconnected.")

        self.notification_manager.cleanup()
        event.accept()
