"""
Tests for ToolPage.

Jobs run on the page's worker thread, so every action that starts one is
wrapped in waitSignal on the controller's jobFinished signal, followed by a
short wait so the finished worker is deleted before the page is.
"""

from unittest.mock import Mock, patch

import pytest
from PySide6.QtGui import QGuiApplication

from pdftoolbox.errors import ErrorCode, ValidationError
from pdftoolbox.export import PrintOutcome, ShareOutcome
from pdftoolbox.sessions import CompressSession, create_session
from pdftoolbox.tools import Tool
from pdftoolbox.workflow import Complete, Selection, Upload
from pdftoolbox_gui.tool_page import ToolPage
from pdftoolbox_gui.widgets.status_indicator import StatusState

JOB_TIMEOUT = 15000


def wait_for_cleanup(qtbot, page):
    qtbot.waitUntil(lambda: page.controller.current_worker is None, timeout=JOB_TIMEOUT)
    # process the worker's deleteLater
    qtbot.wait(50)


@pytest.fixture
def make_page(qtbot, config_manager):
    pages = []

    def _make(session) -> ToolPage:
        page = ToolPage(session, config_manager)
        qtbot.addWidget(page)
        pages.append(page)
        return page

    yield _make

    for page in pages:
        wait_for_cleanup(qtbot, page)
        page.shutdown()


def run_job(qtbot, page, action, *args):
    with qtbot.waitSignal(page.controller.jobFinished, timeout=JOB_TIMEOUT):
        started = action(*args)
    wait_for_cleanup(qtbot, page)
    return started


class TestToolPageImages:
    """Test the JPG to PDF page."""

    def test_initial_state(self, make_page):
        """Test that a fresh page waits for files."""
        page = make_page(create_session(Tool.JPG_TO_PDF))

        assert page.title_label.text() == "JPG to PDF"
        assert page.item_list.count() == 0
        assert not page.convert_button.isEnabled()
        assert not page.start_over_button.isEnabled()
        assert page.browse_button.isEnabled()
        assert page.result_box.isHidden()
        assert page.status_indicator.get_status() is StatusState.UPLOAD

    def test_add_files_shows_items(self, qtbot, make_page, make_image):
        """Test that accepted images are listed and conversion becomes possible."""
        page = make_page(create_session(Tool.JPG_TO_PDF))
        paths = [make_image("a.jpg"), make_image("b.png", color="blue")]

        assert run_job(qtbot, page, page.add_files, paths)

        assert isinstance(page.session.state, Selection)
        assert page.item_list.count() == 2
        assert page.item_list.item(0).text() == "a.jpg"
        assert page.convert_button.isEnabled()
        assert page.start_over_button.isEnabled()
        assert page.status_indicator.get_status() is StatusState.SELECTION

    def test_add_files_ignored_while_busy(self, qtbot, make_page, make_image):
        """Test that a second add is refused while a job is running."""
        page = make_page(create_session(Tool.JPG_TO_PDF))

        with qtbot.waitSignal(page.controller.jobFinished, timeout=JOB_TIMEOUT):
            assert page.add_files([make_image("a.jpg")])
            assert not page.add_files([make_image("b.jpg")])
        wait_for_cleanup(qtbot, page)

        assert [item.source.name for item in page.session.items] == ["a.jpg"]

    def test_add_empty_list(self, make_page):
        """Test that adding nothing starts no job."""
        page = make_page(create_session(Tool.JPG_TO_PDF))

        assert not page.add_files([])
        assert not page.controller.is_running()

    def test_rejected_file_reported(self, qtbot, make_page, tmp_path):
        """Test that an invalid file is reported and the drop zone shows the rejection."""
        page = make_page(create_session(Tool.JPG_TO_PDF))
        text_file = tmp_path / "notes.txt"
        text_file.write_text("not an image")
        handler = Mock()

        with patch("pdftoolbox_gui.tool_page.get_error_handler", return_value=handler):
            run_job(qtbot, page, page.add_files, [text_file])

        handler.report.assert_called_once()
        error = handler.report.call_args[0][0]
        assert isinstance(error, ValidationError)
        assert error.code == ErrorCode.UNSUPPORTED_TYPE
        assert isinstance(page.session.state, Upload)
        assert page.drop_zone.state() == page.drop_zone.STATE_REJECT
        assert page.status_indicator.get_status() is StatusState.ERROR
        assert page.start_over_button.isEnabled()

    def test_rotate_move_remove(self, qtbot, make_page, make_image):
        """Test that the item buttons edit the selected image."""
        page = make_page(create_session(Tool.JPG_TO_PDF))
        run_job(qtbot, page, page.add_files, [make_image("a.jpg"), make_image("b.jpg")])

        page.item_list.setCurrentRow(0)
        page.rotate_selected(90)
        assert page.session.items[0].rotation == 90

        page.move_selected(1)
        assert [item.source.name for item in page.session.items] == ["b.jpg", "a.jpg"]

        page.item_list.setCurrentRow(0)
        page.remove_selected()
        assert [item.source.name for item in page.session.items] == ["a.jpg"]

        page.item_list.setCurrentRow(0)
        page.remove_selected()
        assert isinstance(page.session.state, Upload)
        assert not page.convert_button.isEnabled()

    def test_page_options_applied(self, make_page, config_manager):
        """Test that changing the options updates the session and the stored defaults."""
        page = make_page(create_session(Tool.JPG_TO_PDF))

        page.orientation_combo.setCurrentIndex(page.orientation_combo.findData("landscape"))
        page.margin_spin.setValue(20)

        assert page.session.options.orientation == "landscape"
        assert page.session.options.margin_mm == 20
        assert config_manager.get("orientation") == "landscape"
        assert config_manager.get("margin_mm") == 20

    def test_convert_and_download(self, qtbot, make_page, make_image, tmp_path):
        """Test that converting shows the result and download saves it to the output folder."""
        page = make_page(create_session(Tool.JPG_TO_PDF))
        run_job(qtbot, page, page.add_files, [make_image("a.jpg")])

        assert run_job(qtbot, page, page.convert)

        assert isinstance(page.session.state, Complete)
        assert not page.result_box.isHidden()
        assert page.result_label.text().startswith("converted_")
        assert not page.convert_button.isEnabled()
        assert page.status_indicator.get_status() is StatusState.COMPLETE

        notifications = Mock()
        page.notificationRequested.connect(notifications)
        path = page.download_result()

        assert path is not None
        assert path.parent == tmp_path / "out"
        assert path.read_bytes().startswith(b"%PDF")
        notifications.assert_called_once()
        assert notifications.call_args[0][0] == "success"

    def test_start_over_clears_everything(self, qtbot, make_page, make_image):
        """Test that start over returns to an empty upload state."""
        page = make_page(create_session(Tool.JPG_TO_PDF))
        run_job(qtbot, page, page.add_files, [make_image("a.jpg")])
        run_job(qtbot, page, page.convert)

        page.start_over()

        assert isinstance(page.session.state, Upload)
        assert page.session.result is None
        assert page.item_list.count() == 0
        assert page.result_box.isHidden()
        assert not page.start_over_button.isEnabled()

    def test_result_from_before_start_over_ignored(self, qtbot, make_page, make_image):
        """Test that a job finishing after start over leaves the page empty."""
        page = make_page(create_session(Tool.JPG_TO_PDF))

        with qtbot.waitSignal(page.controller.jobFinished, timeout=JOB_TIMEOUT):
            page.add_files([make_image("a.jpg")])
            page.start_over()
        wait_for_cleanup(qtbot, page)

        assert page.session.items == []
        assert page.item_list.count() == 0


class TestToolPageResultActions:
    """Test share and print on a completed page."""

    @pytest.fixture
    def completed_page(self, qtbot, make_page, make_image):
        page = make_page(create_session(Tool.JPG_TO_PDF))
        run_job(qtbot, page, page.add_files, [make_image("a.jpg")])
        run_job(qtbot, page, page.convert)
        return page

    def test_actions_without_result(self, make_page):
        """Test that result actions do nothing before a conversion."""
        page = make_page(create_session(Tool.JPG_TO_PDF))

        assert page.download_result() is None
        assert page.share_result() is None
        assert page.print_result() is None

    def test_share_copies_link(self, completed_page):
        """Test that sharing copies a file URI to the clipboard."""
        outcome = completed_page.share_result()

        assert outcome is ShareOutcome.COPIED
        assert QGuiApplication.clipboard().text().startswith("file://")

    def test_print_falls_back_to_viewer(self, completed_page):
        """Test that printing opens the viewer when no printer is available."""
        with patch("pdftoolbox_gui.tool_page.printing_available", return_value=False), patch(
            "pdftoolbox_gui.tool_page.open_with_system_viewer", return_value=True
        ) as mock_open:
            outcome = completed_page.print_result()

        assert outcome is PrintOutcome.OPENED
        mock_open.assert_called_once()
        assert mock_open.call_args[0][0].suffix == ".pdf"

    def test_print_uses_printer(self, completed_page):
        """Test that printing sends the PDF bytes to the print dialog."""
        with patch("pdftoolbox_gui.tool_page.printing_available", return_value=True), patch(
            "pdftoolbox_gui.tool_page.print_pdf", return_value=True
        ) as mock_print:
            outcome = completed_page.print_result()

        assert outcome is PrintOutcome.PRINTED
        assert mock_print.call_args[0][0].startswith(b"%PDF")


class TestToolPagePages:
    """Test the PDF to JPG page selection."""

    def test_pages_listed_and_selected(self, qtbot, make_page, make_pdf):
        """Test that every page is listed and checked after loading."""
        page = make_page(create_session(Tool.PDF_TO_JPG, preview_scale=0.2))

        run_job(qtbot, page, page.add_files, [make_pdf(pages=3)])

        assert page.item_list.count() == 3
        assert page.item_list.item(2).text() == "Page 3"
        assert page.session.selected_pages == [0, 1, 2]
        assert page.convert_button.isEnabled()

    def test_select_none_and_all(self, qtbot, make_page, make_pdf):
        """Test that select none disables conversion and select all restores it."""
        page = make_page(create_session(Tool.PDF_TO_JPG, preview_scale=0.2))
        run_job(qtbot, page, page.add_files, [make_pdf(pages=2)])

        page.select_no_pages()
        assert page.session.selected_pages == []
        assert not page.convert_button.isEnabled()

        page.select_all_pages()
        assert page.session.selected_pages == [0, 1]
        assert page.convert_button.isEnabled()

    def test_apply_page_range(self, qtbot, make_page, make_pdf):
        """Test that a typed range replaces the selection."""
        page = make_page(create_session(Tool.PDF_TO_JPG, preview_scale=0.2))
        run_job(qtbot, page, page.add_files, [make_pdf(pages=4)])

        page.page_range_edit.setText("2-3")
        page.apply_page_range()

        assert page.session.selected_pages == [1, 2]

    def test_invalid_page_range_reported(self, qtbot, make_page, make_pdf):
        """Test that a bad range is reported and keeps the selection."""
        page = make_page(create_session(Tool.PDF_TO_JPG, preview_scale=0.2))
        run_job(qtbot, page, page.add_files, [make_pdf(pages=2)])
        handler = Mock()

        page.page_range_edit.setText("5")
        with patch("pdftoolbox_gui.tool_page.get_error_handler", return_value=handler):
            page.apply_page_range()

        handler.report.assert_called_once()
        assert page.session.selected_pages == [0, 1]

    def test_convert_selected_pages(self, qtbot, make_page, make_pdf):
        """Test that only the checked pages are converted."""
        page = make_page(create_session(Tool.PDF_TO_JPG, preview_scale=0.2, output_scale=0.5))
        run_job(qtbot, page, page.add_files, [make_pdf(pages=3)])
        page.session.toggle_page(1)

        run_job(qtbot, page, page.convert)

        result = page.session.result
        assert result is not None
        assert [image.page_number for image in result.images] == [1, 3]
        assert "2 image(s)" in page.result_label.text()


class TestToolPageCompress:
    """Test the Compress PDF page."""

    def test_convert_records_history(self, qtbot, make_page, make_pdf, history, preset_manager):
        """Test that a compression shows up in the history list."""
        page = make_page(CompressSession(history=history, preset_manager=preset_manager))
        assert page.history_list.count() == 0

        run_job(qtbot, page, page.add_files, [make_pdf(with_image=True)])
        page.title_edit.setText("Quarterly")
        run_job(qtbot, page, page.convert)

        assert page.session.settings.title == "Quarterly"
        assert page.history_list.count() == 1
        assert page.history_list.item(0).text().startswith("doc.pdf")

        page.clear_history()
        assert page.history_list.count() == 0

    def test_apply_preset(self, make_page, history, preset_manager, config_manager):
        """Test that picking a preset updates the settings and the stored default."""
        page = make_page(CompressSession(history=history, preset_manager=preset_manager))

        page.preset_combo.setCurrentText("Small Size")

        assert page.session.preset_name == "Small Size"
        assert config_manager.get("default_preset") == "Small Size"

    def test_save_preset(self, make_page, history, preset_manager):
        """Test that the current settings can be saved under a new name."""
        page = make_page(CompressSession(history=history, preset_manager=preset_manager))

        with patch("pdftoolbox_gui.tool_page.QInputDialog.getText", return_value=("Mine", True)):
            page.save_preset()

        assert preset_manager.preset_exists("Mine")
        assert page.preset_combo.findText("Mine") >= 0
        assert page.preset_combo.currentText() == "Mine"


class TestToolPageDocuments:
    """Test the Word and PDF document pages."""

    def test_word_to_pdf(self, qtbot, make_page, make_docx):
        """Test that a Word document converts to a PDF result."""
        page = make_page(create_session(Tool.WORD_TO_PDF))
        run_job(qtbot, page, page.add_files, [make_docx()])

        assert page.item_list.count() == 1
        assert page.item_list.item(0).text().startswith("report.docx")

        run_job(qtbot, page, page.convert)

        assert page.session.result.name == "report.pdf"

    def test_pdf_to_word_lists_page_count(self, qtbot, make_page, make_pdf):
        """Test that a loaded PDF shows its page count."""
        page = make_page(create_session(Tool.PDF_TO_WORD))
        run_job(qtbot, page, page.add_files, [make_pdf(pages=3)])

        assert "3 page(s)" in page.item_list.item(0).text()

    def test_shutdown_releases_session(self, qtbot, make_page, make_pdf):
        """Test that shutdown drops the loaded document."""
        page = make_page(create_session(Tool.PDF_TO_WORD))
        run_job(qtbot, page, page.add_files, [make_pdf()])

        page.shutdown()

        assert page.session.items == []
        assert isinstance(page.session.state, Upload)
