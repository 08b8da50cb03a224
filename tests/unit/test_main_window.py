"""
Tests for the MainWindow class.
"""

from unittest.mock import patch

import pytest
from PySide6.QtCore import Qt

from pdftoolbox.errors import ErrorCode, TransformError, ValidationError
from pdftoolbox.sessions import CompressSession
from pdftoolbox.tools import COMING_SOON, TOOLS, Tool
from pdftoolbox_gui.main_window import MainWindow
from pdftoolbox_gui.tool_page import ToolPage


JOB_TIMEOUT = 15000


@pytest.fixture
def make_window(qtbot, config_manager, history, preset_manager):
    windows = []

    def _make() -> MainWindow:
        sessions = {Tool.COMPRESS_PDF: CompressSession(history=history, preset_manager=preset_manager)}
        window = MainWindow(config_manager, sessions=sessions)
        qtbot.addWidget(window)
        windows.append(window)
        return window

    yield _make

    # Let finished workers be cleaned up and deleted before the widgets go
    for window in windows:
        for page in window.pages.values():
            qtbot.waitUntil(lambda page=page: page.controller.current_worker is None, timeout=JOB_TIMEOUT)
            page.shutdown()
    qtbot.wait(50)


class TestMainWindowInitialization:
    """Test MainWindow initialization and setup."""

    def test_window_properties(self, make_window):
        """Test that window properties are set correctly."""
        window = make_window()

        assert window.windowTitle() == "PDF Toolbox"
        assert window.size().width() == 1000
        assert window.size().height() == 760

    def test_one_page_per_tool(self, make_window):
        """Test that every tool gets its own page."""
        window = make_window()

        assert list(window.pages) == [spec.slug for spec in TOOLS.values()]
        assert window.stack.count() == len(TOOLS)
        assert all(isinstance(page, ToolPage) for page in window.pages.values())

    def test_injected_session_used(self, make_window, history):
        """Test that a pre-built session is used instead of a new one."""
        window = make_window()

        assert window.pages["compress-pdf"].session.history is history

    def test_navigation_lists_coming_soon_disabled(self, make_window):
        """Test that upcoming tools are listed but cannot be selected."""
        window = make_window()

        assert window.nav_list.count() == len(TOOLS) + len(COMING_SOON)
        for row in range(len(TOOLS), window.nav_list.count()):
            entry = window.nav_list.item(row)
            assert entry.text().endswith("(coming soon)")
            assert not entry.flags() & Qt.ItemFlag.ItemIsEnabled

    def test_default_tool_shown(self, make_window):
        """Test that the first tool is shown on a fresh start."""
        window = make_window()

        assert window.current_page() is window.pages["jpg-to-pdf"]
        assert window.nav_list.currentRow() == 0


class TestMainWindowNavigation:
    """Test switching between tools."""

    def test_select_tool_persists_choice(self, make_window, config_manager):
        """Test that selecting a tool shows its page and remembers it."""
        window = make_window()

        window.select_tool("pdf-to-word")

        assert window.current_page() is window.pages["pdf-to-word"]
        assert config_manager.get_last_tool() == "pdf-to-word"

    def test_nav_click_switches_page(self, make_window):
        """Test that changing the navigation row switches the page."""
        window = make_window()

        window.nav_list.setCurrentRow(1)

        assert window.current_page() is window.pages["pdf-to-jpg"]

    def test_unknown_tool_falls_back(self, make_window):
        """Test that an unknown slug shows the first tool."""
        window = make_window()
        window.select_tool("pdf-to-word")

        window.select_tool("merge-pdf")

        assert window.current_page() is window.pages["jpg-to-pdf"]

    def test_last_tool_restored(self, make_window, config_manager):
        """Test that the tool open at last close is shown again."""
        config_manager.set_last_tool("compress-pdf")

        window = make_window()

        assert window.current_page() is window.pages["compress-pdf"]

    def test_sessions_survive_switching(self, qtbot, make_window, make_image):
        """Test that work on one tool is kept while another is shown."""
        window = make_window()
        page = window.pages["jpg-to-pdf"]
        with qtbot.waitSignal(page.controller.jobFinished, timeout=JOB_TIMEOUT):
            page.add_files([make_image("a.jpg")])
        qtbot.waitUntil(lambda: page.controller.current_worker is None, timeout=JOB_TIMEOUT)

        window.select_tool("compress-pdf")
        window.select_tool("jpg-to-pdf")

        assert [item.source.name for item in page.session.items] == ["a.jpg"]


class TestMainWindowNotifications:
    """Test that errors and page events become notifications."""

    def test_validation_error_shown_as_warning(self, make_window):
        """Test that a rejected file is shown as a warning toast."""
        window = make_window()
        error = ValidationError(code=ErrorCode.FILE_EMPTY, user_message="File is empty", file_name="a.jpg")

        with patch.object(window.notification_manager, "notify") as mock_notify:
            window.error_handler.errorOccurred.emit(error)

        mock_notify.assert_called_once_with("warning", "File Rejected", "a.jpg: File is empty")

    def test_transform_error_shown_as_error(self, make_window):
        """Test that a failed conversion is shown as an error toast."""
        window = make_window()
        error = TransformError(code=ErrorCode.PDF_CORRUPT, user_message="The PDF is damaged")

        with patch.object(window.notification_manager, "notify") as mock_notify:
            window.error_handler.errorOccurred.emit(error)

        status, title, message = mock_notify.call_args[0]
        assert status == "error"
        assert title == "Conversion Failed"
        assert message.startswith("The PDF is damaged")

    def test_page_notification_forwarded(self, make_window):
        """Test that a page's notification reaches the notification manager."""
        window = make_window()

        with patch.object(window.notification_manager, "notify") as mock_notify:
            window.pages["jpg-to-pdf"].notificationRequested.emit("success", "Download complete", "Saved a.pdf", "/tmp/out")

        mock_notify.assert_called_once_with("success", "Download complete", "Saved a.pdf", "/tmp/out")

    def test_empty_output_path_passed_as_none(self, make_window):
        """Test that an empty output folder is passed on as None."""
        window = make_window()

        with patch.object(window.notification_manager, "notify") as mock_notify:
            window.pages["jpg-to-pdf"].notificationRequested.emit("info", "Ready to share", "Copied", "")

        mock_notify.assert_called_once_with("info", "Ready to share", "Copied", None)


class TestMainWindowClose:
    """Test shutdown on close."""

    def test_close_shuts_down_pages(self, make_window):
        """Test that closing waits for every page and stops listening for errors."""
        window = make_window()
        window.show()

        with patch.object(ToolPage, "shutdown") as mock_shutdown, patch.object(
            window.notification_manager, "cleanup"
        ) as mock_cleanup, patch("pdftoolbox_gui.main_window.clear_share_dir") as mock_clear:
            window.close()

        assert mock_shutdown.call_count == len(TOOLS)
        mock_cleanup.assert_called_once()
        mock_clear.assert_called_once_with()

        with patch.object(window.notification_manager, "notify") as mock_notify:
            window.error_handler.errorOccurred.emit(ValidationError(code=ErrorCode.FILE_EMPTY, user_message="x"))
        mock_notify.assert_not_called()
