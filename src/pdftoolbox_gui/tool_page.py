"""
One page of the main window per tool.

A ToolPage shows its session's workflow: the drop zone and browse button
while waiting for files, a progress bar while a job runs, the reviewable
items and tool options in selection, and the result actions once complete.
Jobs run on the page's ToolController so the window stays responsive;
input is disabled while one is running.
"""

import base64
import logging
from pathlib import Path

from PySide6.QtCore import QSize, QStandardPaths, Qt, Signal
from PySide6.QtGui import QFont, QGuiApplication, QIcon, QPixmap, QTransform
from PySide6.QtWidgets import (
    QCheckBox,
    QComboBox,
    QFileDialog,
    QFormLayout,
    QGroupBox,
    QHBoxLayout,
    QInputDialog,
    QLabel,
    QLineEdit,
    QListView,
    QListWidget,
    QListWidgetItem,
    QProgressBar,
    QPushButton,
    QSpinBox,
    QStyle,
    QVBoxLayout,
    QWidget,
)

from pdftoolbox.config_manager import ConfigManager
from pdftoolbox.error_handler import get_error_handler
from pdftoolbox.errors import BaseAppError, ExportError
from pdftoolbox.export import PrintOutcome, ShareOutcome, download, print_result, share
from pdftoolbox.models import ArtifactKind, PreviewArtifact, TransformResult, format_file_size
from pdftoolbox.presets import BUILTIN_PRESETS, PresetError
from pdftoolbox.sessions import CompressSession, ImagesToPdfSession, PdfToImagesSession, ToolSession
from pdftoolbox.threading import Job, ToolController
from pdftoolbox.tools import Tool
from pdftoolbox.transforms import IMAGE_QUALITY_CHOICES, PAGE_SIZES, PdfPageOptions
from pdftoolbox.workflow import Complete, Processing, Selection, Upload, WorkflowError

from .printing import print_pdf, printing_available
from .utils.fs import open_with_system_viewer
from .widgets.drop_zone import DropZone
from .widgets.status_indicator import StatusIndicatorWidget, StatusState

logger = logging.getLogger(__name__)

THUMBNAIL_SIZE = QSize(120, 120)

PAGE_SIZE_LABELS = {"a4": "A4", "letter": "Letter", "legal": "Legal"}
QUALITY_LABELS = {1.0: "High", 0.8: "Medium", 0.6: "Low"}
IMAGE_FORMAT_LABELS = {"jpeg": "JPG", "png": "PNG", "webp": "WEBP"}


def artifact_pixmap(artifact: PreviewArtifact | None, rotation: int = 0) -> QPixmap | None:
    """Decode an inline preview into a pixmap, rotated clockwise by rotation degrees."""
    if artifact is None or artifact.released or artifact.kind is not ArtifactKind.DATA_URL:
        return None

    _, _, encoded = str(artifact.payload).partition(",")
    pixmap = QPixmap()
    if not pixmap.loadFromData(base64.b64decode(encoded)):
        return None
    if rotation:
        pixmap = pixmap.transformed(QTransform().rotate(rotation))
    return pixmap


class ToolPage(QWidget):
    """Input, review, options, conversion and result actions for one tool."""

    notificationRequested = Signal(str, str, str, str)  # status, title, message, output folder
    workflowChanged = Signal(object)  # WorkflowState, may be emitted from the worker thread

    def __init__(self, session: ToolSession, config_manager: ConfigManager, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.session = session
        self.spec = session.spec
        self.config_manager = config_manager
        self.controller = ToolController(self)

        self._last_error: BaseAppError | None = None
        # bumped on start over so results of jobs started before it are ignored
        self._epoch = 0
        self._job_epoch = 0

        self._setup_ui()
        self._connect_signals()
        self.session.workflow.subscribe(self.workflowChanged.emit)
        self._refresh()

    @property
    def tool(self) -> Tool:
        return self.spec.tool

    # -- layout ------------------------------------------------------------

    def _setup_ui(self) -> None:
        self.setObjectName(f"toolPage-{self.spec.slug}")
        layout = QVBoxLayout(self)
        layout.setSpacing(12)

        header = QHBoxLayout()
        self.title_label = QLabel(self.spec.title)
        title_font = QFont(self.title_label.font())
        title_font.setPointSize(title_font.pointSize() + 6)
        title_font.setBold(True)
        self.title_label.setFont(title_font)
        header.addWidget(self.title_label)
        header.addStretch()
        self.status_indicator = StatusIndicatorWidget()
        header.addWidget(self.status_indicator)
        layout.addLayout(header)

        self.description_label = QLabel(self.spec.description)
        self.description_label.setWordWrap(True)
        layout.addWidget(self.description_label)

        self.drop_zone = DropZone(self.spec)
        layout.addWidget(self.drop_zone)

        browse_row = QHBoxLayout()
        self.browse_button = QPushButton("Browse...")
        self.browse_button.setToolTip(f"Choose {self.spec.accept_label.lower()} (Ctrl+O)")
        browse_row.addWidget(self.browse_button)
        browse_row.addStretch()
        layout.addLayout(browse_row)

        self.progress_bar = QProgressBar()
        self.progress_bar.setRange(0, 100)
        self.progress_bar.setAccessibleName("Progress")
        self.progress_status = QLabel()
        layout.addWidget(self.progress_bar)
        layout.addWidget(self.progress_status)

        self.item_list = QListWidget()
        self.item_list.setAccessibleName("Selected files")
        if self.tool in (Tool.JPG_TO_PDF, Tool.PDF_TO_JPG):
            self.item_list.setViewMode(QListView.ViewMode.IconMode)
            self.item_list.setIconSize(THUMBNAIL_SIZE)
            self.item_list.setResizeMode(QListView.ResizeMode.Adjust)
            self.item_list.setMovement(QListView.Movement.Static)
            self.item_list.setSpacing(8)
        layout.addWidget(self.item_list, 1)

        self.item_buttons: list[QPushButton] = []
        self._build_item_controls(layout)

        self.options_box = QGroupBox("Options")
        options_form = QFormLayout(self.options_box)
        self._build_options(options_form)
        self.options_box.setVisible(options_form.rowCount() > 0)
        layout.addWidget(self.options_box)

        actions = QHBoxLayout()
        self.convert_button = QPushButton("Compress" if self.tool is Tool.COMPRESS_PDF else "Convert")
        self.convert_button.setDefault(True)
        self.convert_button.setToolTip("Start the conversion (Ctrl+Return)")
        self.start_over_button = QPushButton("Start over")
        actions.addWidget(self.convert_button)
        actions.addWidget(self.start_over_button)
        actions.addStretch()
        layout.addLayout(actions)

        self.result_box = QGroupBox("Result")
        result_layout = QHBoxLayout(self.result_box)
        self.result_label = QLabel()
        self.download_button = QPushButton("Download")
        self.share_button = QPushButton("Share")
        self.print_button = QPushButton("Print")
        result_layout.addWidget(self.result_label, 1)
        result_layout.addWidget(self.download_button)
        result_layout.addWidget(self.share_button)
        result_layout.addWidget(self.print_button)
        layout.addWidget(self.result_box)

        self.history_box: QGroupBox | None = None
        if isinstance(self.session, CompressSession):
            self._build_history(layout)

    def _build_item_controls(self, layout: QVBoxLayout) -> None:
        row = QHBoxLayout()
        if self.tool is Tool.JPG_TO_PDF:
            self.rotate_left_button = QPushButton("Rotate left")
            self.rotate_right_button = QPushButton("Rotate right")
            self.move_up_button = QPushButton("Move earlier")
            self.move_down_button = QPushButton("Move later")
            self.remove_button = QPushButton("Remove")
            self.item_buttons = [
                self.rotate_left_button,
                self.rotate_right_button,
                self.move_up_button,
                self.move_down_button,
                self.remove_button,
            ]
        elif self.tool is Tool.PDF_TO_JPG:
            self.select_all_button = QPushButton("Select all")
            self.select_none_button = QPushButton("Select none")
            self.page_range_edit = QLineEdit()
            self.page_range_edit.setPlaceholderText("Pages, e.g. 1,3-5")
            self.page_range_edit.setAccessibleName("Page range")
            self.apply_range_button = QPushButton("Apply")
            self.item_buttons = [self.select_all_button, self.select_none_button, self.apply_range_button]
            row.addWidget(self.select_all_button)
            row.addWidget(self.select_none_button)
            row.addWidget(self.page_range_edit)
            row.addWidget(self.apply_range_button)
            row.addStretch()
            layout.addLayout(row)
            return
        else:
            return

        for button in self.item_buttons:
            row.addWidget(button)
        row.addStretch()
        layout.addLayout(row)

    def _build_options(self, form: QFormLayout) -> None:
        if isinstance(self.session, ImagesToPdfSession):
            options = self.session.options
            self.page_size_combo = QComboBox()
            for key in PAGE_SIZES:
                self.page_size_combo.addItem(PAGE_SIZE_LABELS.get(key, key), key)
            self.page_size_combo.setCurrentIndex(self.page_size_combo.findData(options.page_size))

            self.orientation_combo = QComboBox()
            self.orientation_combo.addItem("Portrait", "portrait")
            self.orientation_combo.addItem("Landscape", "landscape")
            self.orientation_combo.setCurrentIndex(self.orientation_combo.findData(options.orientation))

            self.margin_spin = QSpinBox()
            self.margin_spin.setRange(0, 50)
            self.margin_spin.setSuffix(" mm")
            self.margin_spin.setValue(options.margin_mm)

            self.fit_checkbox = QCheckBox("Fit images to page")
            self.fit_checkbox.setChecked(options.fit_to_page)

            self.quality_combo = QComboBox()
            for quality in sorted(IMAGE_QUALITY_CHOICES, reverse=True):
                self.quality_combo.addItem(QUALITY_LABELS.get(quality, str(quality)), quality)
            self.quality_combo.setCurrentIndex(max(0, self.quality_combo.findData(options.quality)))

            form.addRow("Page size:", self.page_size_combo)
            form.addRow("Orientation:", self.orientation_combo)
            form.addRow("Margin:", self.margin_spin)
            form.addRow("", self.fit_checkbox)
            form.addRow("Image quality:", self.quality_combo)

        elif isinstance(self.session, PdfToImagesSession):
            self.format_combo = QComboBox()
            for key, label in IMAGE_FORMAT_LABELS.items():
                self.format_combo.addItem(label, key)
            self.format_combo.setCurrentIndex(self.format_combo.findData(self.session.image_format))
            form.addRow("Image format:", self.format_combo)

        elif isinstance(self.session, CompressSession):
            self.preset_combo = QComboBox()
            self.preset_combo.setAccessibleName("Compression preset")
            self._populate_presets()
            self.save_preset_button = QPushButton("Save as preset...")
            preset_row = QHBoxLayout()
            preset_row.addWidget(self.preset_combo, 1)
            preset_row.addWidget(self.save_preset_button)

            self.title_edit = QLineEdit(self.session.settings.title)
            self.title_edit.setPlaceholderText("Document title (optional)")
            self.author_edit = QLineEdit(self.session.settings.author)
            self.author_edit.setPlaceholderText("Author (optional)")

            form.addRow("Preset:", preset_row)
            form.addRow("Title:", self.title_edit)
            form.addRow("Author:", self.author_edit)

    def _build_history(self, layout: QVBoxLayout) -> None:
        self.history_box = QGroupBox("Recent compressions")
        history_layout = QVBoxLayout(self.history_box)
        self.history_list = QListWidget()
        self.history_list.setAccessibleName("Compression history")
        self.clear_history_button = QPushButton("Clear history")
        history_layout.addWidget(self.history_list)
        history_layout.addWidget(self.clear_history_button, 0, Qt.AlignmentFlag.AlignRight)
        layout.addWidget(self.history_box)
        self.refresh_history()

    def _connect_signals(self) -> None:
        self.drop_zone.filesDropped.connect(self.add_files)
        self.drop_zone.clicked.connect(self.browse)
        self.browse_button.clicked.connect(self.browse)
        self.convert_button.clicked.connect(self.convert)
        self.start_over_button.clicked.connect(self.start_over)
        self.download_button.clicked.connect(self.download_result)
        self.share_button.clicked.connect(self.share_result)
        self.print_button.clicked.connect(self.print_result)

        self.workflowChanged.connect(self._refresh)
        self.controller.progressChanged.connect(self._on_progress)
        self.controller.jobCompleted.connect(self._on_job_completed)
        self.controller.jobFailed.connect(self._on_job_failed)
        self.controller.jobFinished.connect(self._refresh)

        if self.tool is Tool.JPG_TO_PDF:
            self.rotate_left_button.clicked.connect(lambda: self.rotate_selected(-90))
            self.rotate_right_button.clicked.connect(lambda: self.rotate_selected(90))
            self.move_up_button.clicked.connect(lambda: self.move_selected(-1))
            self.move_down_button.clicked.connect(lambda: self.move_selected(1))
            self.remove_button.clicked.connect(self.remove_selected)
            for widget in (self.page_size_combo, self.orientation_combo, self.quality_combo):
                widget.currentIndexChanged.connect(self._apply_page_options)
            self.margin_spin.valueChanged.connect(self._apply_page_options)
            self.fit_checkbox.toggled.connect(self._apply_page_options)
        elif self.tool is Tool.PDF_TO_JPG:
            self.item_list.itemChanged.connect(self._on_page_item_changed)
            self.select_all_button.clicked.connect(self.select_all_pages)
            self.select_none_button.clicked.connect(self.select_no_pages)
            self.apply_range_button.clicked.connect(self.apply_page_range)
            self.page_range_edit.returnPressed.connect(self.apply_page_range)
            self.format_combo.currentIndexChanged.connect(self._apply_image_format)
        elif self.tool is Tool.COMPRESS_PDF:
            self.preset_combo.currentTextChanged.connect(self.apply_preset)
            self.save_preset_button.clicked.connect(self.save_preset)
            self.clear_history_button.clicked.connect(self.clear_history)
        else:
            self.item_list.itemDoubleClicked.connect(self._open_document_preview)

    # -- state -------------------------------------------------------------

    def is_busy(self) -> bool:
        return self.controller.is_running() or isinstance(self.session.state, Processing)

    def _refresh(self, *_: object) -> None:
        state = self.session.state
        busy = self.is_busy()
        editable = not busy and isinstance(state, Upload | Selection)
        has_items = bool(self.session.items)

        self.drop_zone.setEnabled(editable)
        self.browse_button.setEnabled(editable)
        self.options_box.setEnabled(editable)
        self.item_list.setEnabled(editable)
        for button in self.item_buttons:
            button.setEnabled(editable and has_items)
        self.convert_button.setEnabled(editable and self.session.can_convert)
        self.start_over_button.setEnabled(has_items or not isinstance(state, Upload) or self._last_error is not None)

        processing = isinstance(state, Processing)
        self.progress_bar.setVisible(processing)
        self.progress_status.setVisible(processing)
        if processing:
            self.progress_bar.setValue(state.progress)
            self.progress_status.setText(state.message)

        if isinstance(state, Upload) and self._last_error is not None:
            self.status_indicator.set_status(StatusState.ERROR)
        else:
            self.status_indicator.set_status(StatusState.from_workflow(state))

        result = self.session.result if isinstance(state, Complete) else None
        self.result_box.setVisible(result is not None)
        if result is not None:
            self._show_result(result)

        if not busy:
            self._populate_items()

    def _show_result(self, result: TransformResult) -> None:
        details = result.formatted_size
        if result.images:
            details = f"{len(result.images)} image(s), {details}"
        elif result.original_size:
            details = f"{format_file_size(result.original_size)} → {details}"
        self.result_label.setText(f"{result.name} ({details})")

    def _selected_item_id(self) -> str | None:
        current = self.item_list.currentItem()
        return current.data(Qt.ItemDataRole.UserRole) if current else None

    def _fallback_icon(self) -> QIcon:
        return self.style().standardIcon(QStyle.StandardPixmap.SP_FileIcon)

    def _populate_items(self) -> None:
        selected_id = self._selected_item_id()
        self.item_list.blockSignals(True)
        try:
            self.item_list.clear()
            if isinstance(self.session, ImagesToPdfSession):
                for item in self.session.items:
                    pixmap = artifact_pixmap(item.preview, item.rotation)
                    entry = QListWidgetItem(QIcon(pixmap) if pixmap else self._fallback_icon(), item.source.name)
                    entry.setData(Qt.ItemDataRole.UserRole, item.id)
                    entry.setToolTip(f"{item.source.name} ({item.source.formatted_size}), rotated {item.rotation}°")
                    self.item_list.addItem(entry)
                    if item.id == selected_id:
                        self.item_list.setCurrentItem(entry)
            elif isinstance(self.session, PdfToImagesSession):
                document = self.session.document
                selected = set(self.session.selected_pages)
                for index, preview in enumerate(document.previews if document else []):
                    pixmap = artifact_pixmap(preview)
                    entry = QListWidgetItem(QIcon(pixmap) if pixmap else self._fallback_icon(), f"Page {index + 1}")
                    entry.setFlags(entry.flags() | Qt.ItemFlag.ItemIsUserCheckable)
                    entry.setCheckState(Qt.CheckState.Checked if index in selected else Qt.CheckState.Unchecked)
                    entry.setData(Qt.ItemDataRole.UserRole, index)
                    self.item_list.addItem(entry)
            else:
                for item in self.session.items:
                    pixmap = artifact_pixmap(item.preview)
                    text = f"{item.source.name}\n{item.source.formatted_size}"
                    if item.page_count:
                        text += f", {item.page_count} page(s)"
                    entry = QListWidgetItem(QIcon(pixmap) if pixmap else self._fallback_icon(), text)
                    self.item_list.addItem(entry)
        finally:
            self.item_list.blockSignals(False)

    # -- jobs --------------------------------------------------------------

    def _start_job(self, kind: str, job: Job) -> bool:
        self._job_epoch = self._epoch
        started = self.controller.start(kind, job)
        self._refresh()
        return started

    def add_files(self, paths: list[Path]) -> bool:
        """Validate, read and preview files on the worker thread."""
        paths = [Path(path) for path in paths]
        if not paths:
            return False
        if self.is_busy() or not isinstance(self.session.state, Upload | Selection):
            logger.info(f"{self.spec.slug}: ignoring {len(paths)} file(s) while busy")
            return False
        self._last_error = None
        generation = self.session.workflow.generation
        return self._start_job("add_files", lambda progress: self.session.add_files(paths, progress, generation))

    def browse(self) -> None:
        """Open a file dialog and add the chosen files."""
        if not self.browse_button.isEnabled():
            return

        start_dir = self.config_manager.get_last_open_dir() or QStandardPaths.writableLocation(
            QStandardPaths.StandardLocation.DocumentsLocation
        )
        caption = f"Select {self.spec.accept_label}"
        if self.spec.multiple:
            chosen, _ = QFileDialog.getOpenFileNames(self, caption, start_dir, self.spec.file_dialog_filter())
        else:
            path, _ = QFileDialog.getOpenFileName(self, caption, start_dir, self.spec.file_dialog_filter())
            chosen = [path] if path else []

        if chosen:
            self.config_manager.set_last_open_dir(str(Path(chosen[0]).parent))
            self.add_files([Path(path) for path in chosen])

    def convert(self) -> bool:
        """Run the tool's conversion on the worker thread."""
        if self.is_busy() or not self.session.can_convert:
            return False
        if isinstance(self.session, CompressSession):
            self.session.settings.title = self.title_edit.text().strip()
            self.session.settings.author = self.author_edit.text().strip()
        self._last_error = None
        generation = self.session.workflow.generation
        return self._start_job("convert", lambda progress: self.session.convert(progress, generation))

    def start_over(self) -> None:
        """Drop every input and result. A running job finishes but is ignored."""
        self._epoch += 1
        self._last_error = None
        self.session.start_over()
        self._refresh()
        if isinstance(self.session, PdfToImagesSession):
            self.page_range_edit.clear()

    def _on_progress(self, percent: int, message: str) -> None:
        self.progress_bar.setValue(percent)
        if message:
            self.progress_status.setText(message)

    def _on_job_completed(self, kind: str, value: object) -> None:
        if self._job_epoch != self._epoch:
            logger.debug(f"{self.spec.slug}: dropping {kind} result from before start over")
            return

        if kind == "add_files":
            errors = list(value or [])
            for error in errors:
                self._report(error)
            if errors and not self.session.items:
                self.drop_zone.reject(errors[0].user_message)
            return

        if value is None:
            return
        result: TransformResult = value
        for error in self.session.errors:
            self._report(error)
        self.notificationRequested.emit("success", "Conversion complete", f"{result.name} is ready", "")
        if self.history_box is not None:
            self.refresh_history()

    def _on_job_failed(self, kind: str, error: BaseAppError) -> None:
        if self._job_epoch != self._epoch:
            logger.debug(f"{self.spec.slug}: dropping {kind} failure from before start over")
            return
        self._report(error)

    def _report(self, error: BaseAppError) -> None:
        self._last_error = error
        get_error_handler().report(error)

    # -- item editing ------------------------------------------------------

    def rotate_selected(self, degrees: int) -> None:
        item_id = self._selected_item_id()
        if item_id is None or not isinstance(self.session, ImagesToPdfSession):
            return
        try:
            self.session.rotate(item_id, degrees)
        except WorkflowError as e:
            self._report(e)
        self._populate_items()

    def move_selected(self, offset: int) -> None:
        item_id = self._selected_item_id()
        if item_id is None or not isinstance(self.session, ImagesToPdfSession):
            return
        try:
            self.session.move(item_id, self.item_list.currentRow() + offset)
        except WorkflowError as e:
            self._report(e)
        self._populate_items()

    def remove_selected(self) -> None:
        item_id = self._selected_item_id()
        if item_id is None or not isinstance(self.session, ImagesToPdfSession):
            return
        try:
            self.session.remove(item_id)
        except WorkflowError as e:
            self._report(e)
        self._refresh()

    def _apply_page_options(self, *_: object) -> None:
        if not isinstance(self.session, ImagesToPdfSession):
            return
        options = PdfPageOptions(
            page_size=self.page_size_combo.currentData(),
            orientation=self.orientation_combo.currentData(),
            margin_mm=self.margin_spin.value(),
            fit_to_page=self.fit_checkbox.isChecked(),
            quality=self.quality_combo.currentData(),
        )
        self.session.options = options
        self.config_manager.set("page_size", options.page_size)
        self.config_manager.set("orientation", options.orientation)
        self.config_manager.set("margin_mm", options.margin_mm)
        self.config_manager.set("fit_to_page", options.fit_to_page)

    # -- page selection ----------------------------------------------------

    def _on_page_item_changed(self, entry: QListWidgetItem) -> None:
        if not isinstance(self.session, PdfToImagesSession):
            return
        index = entry.data(Qt.ItemDataRole.UserRole)
        checked = entry.checkState() == Qt.CheckState.Checked
        if checked != (index in self.session.selected_pages):
            self.session.toggle_page(index)
        self.convert_button.setEnabled(not self.is_busy() and self.session.can_convert)

    def select_all_pages(self) -> None:
        if isinstance(self.session, PdfToImagesSession):
            self.session.select_all()
            self._refresh()

    def select_no_pages(self) -> None:
        if isinstance(self.session, PdfToImagesSession):
            self.session.select_none()
            self._refresh()

    def apply_page_range(self) -> None:
        if not isinstance(self.session, PdfToImagesSession) or not self.session.page_count:
            return
        try:
            self.session.select_range(self.page_range_edit.text())
        except BaseAppError as e:
            self._report(e)
            return
        self._refresh()

    def _apply_image_format(self, *_: object) -> None:
        if isinstance(self.session, PdfToImagesSession):
            self.session.image_format = self.format_combo.currentData()

    # -- compression -------------------------------------------------------

    def _populate_presets(self) -> None:
        session = self.session
        assert isinstance(session, CompressSession)
        names = session.preset_manager.list_presets() if session.preset_manager else list(BUILTIN_PRESETS)
        self.preset_combo.blockSignals(True)
        self.preset_combo.clear()
        self.preset_combo.addItems(names)
        self.preset_combo.setCurrentText(session.preset_name)
        self.preset_combo.blockSignals(False)

    def apply_preset(self, name: str) -> None:
        if not name or not isinstance(self.session, CompressSession):
            return
        try:
            self.session.apply_preset(name)
        except PresetError as e:
            self._report(e)
            return
        self.config_manager.set("default_preset", name)

    def save_preset(self) -> None:
        session = self.session
        if not isinstance(session, CompressSession) or session.preset_manager is None:
            return
        name, accepted = QInputDialog.getText(self, "Save Preset", "Preset name:")
        if not accepted or not name.strip():
            return
        try:
            session.preset_manager.save_preset(name, session.settings, overwrite=True)
        except PresetError as e:
            self._report(e)
            return
        session.preset_name = name.strip()
        self._populate_presets()

    def refresh_history(self) -> None:
        """Show the stored compression history, newest first."""
        if not isinstance(self.session, CompressSession):
            return
        self.history_list.clear()
        for record in self.session.history.load():
            self.history_list.addItem(
                f"{record.file_name}: {format_file_size(record.original_size)} → "
                f"{format_file_size(record.compressed_size)} ({record.compression_ratio}% smaller), {record.date[:10]}"
            )

    def clear_history(self) -> None:
        if isinstance(self.session, CompressSession):
            try:
                self.session.history.clear()
            except BaseAppError as e:
                self._report(e)
            self.refresh_history()

    def _open_document_preview(self, entry: QListWidgetItem) -> None:
        document = self.session.items[0] if self.session.items else None
        preview = getattr(document, "preview", None)
        if preview is not None and preview.kind is ArtifactKind.FILE and not preview.released:
            open_with_system_viewer(Path(preview.payload), self)

    # -- result actions ----------------------------------------------------

    def _output_dir(self) -> Path:
        return Path(self.config_manager.get("output_dir"))

    def download_result(self) -> Path | None:
        """Save the result into the output folder."""
        result = self.session.result
        if result is None:
            return None
        directory = self._output_dir()
        try:
            path = download(result, directory)
        except ExportError as e:
            self._report(e)
            return None
        self.notificationRequested.emit("success", "Download complete", f"Saved {path.name}", str(directory))
        return path

    def share_result(self) -> ShareOutcome | None:
        """Share the result, falling back to the clipboard and then to a download."""
        result = self.session.result
        if result is None:
            return None
        clipboard = QGuiApplication.clipboard()
        try:
            outcome = share(result, clipboard=clipboard.setText, fallback_dir=self._output_dir())
        except ExportError as e:
            self._report(e)
            return None

        if outcome is ShareOutcome.COPIED:
            self.notificationRequested.emit("info", "Ready to share", "A link to the file was copied to the clipboard", "")
        elif outcome is ShareOutcome.DOWNLOADED:
            self.notificationRequested.emit(
                "info", "Saved instead", "Sharing isn't available, so the file was saved", str(self._output_dir())
            )
        return outcome

    def print_result(self) -> PrintOutcome | None:
        """Print the result, or open it in the system viewer when that is not possible."""
        result = self.session.result
        if result is None:
            return None

        def print_document(data: bytes) -> bool:
            return print_pdf(data, self)

        try:
            outcome = print_result(
                result,
                print_document if printing_available() else None,
                lambda path: open_with_system_viewer(path, self),
            )
        except ExportError as e:
            self._report(e)
            return None

        if outcome is PrintOutcome.OPENED:
            self.notificationRequested.emit("info", "Opened for printing", f"{result.name} was opened in your viewer", "")
        return outcome

    def shutdown(self) -> None:
        """Wait for a running job and release every preview."""
        self.controller.shutdown()
        self.session.start_over()
