"""
Tool sessions: the orchestration of one tool page.

A session owns the inputs, previews and result of one tool and drives its
Workflow. Sessions are plain Python and synchronous; the Qt layer runs
add_files() and convert() on a worker thread and may call start_over() from
the GUI thread at any time, which is why state changes happen under a lock
and finished jobs check their generation before touching state.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .config import OUTPUT_SCALE, PREVIEW_SCALE
from .errors import BaseAppError, ErrorCode, ReadError, TransformError, ValidationError, from_exception
from .file_reader import load_source_file
from .history import CompressionHistory
from .media import normalize_rotation
from .models import CompressionSettings, HistoryRecord, ImageItem, PreviewArtifact, SourceFile, TransformResult
from .page_utils import parse_page_range
from .presets import DEFAULT_PRESET, PresetManager, builtin_preset
from .preview import ArtifactRegistry, document_preview, image_preview, pdf_page_count, render_pdf_pages
from .tools import Tool, get_tool_spec
from .transforms import PdfPageOptions, compress_pdf, images_to_pdf, pdf_to_images, pdf_to_word, word_to_pdf
from .validation import validate_batch
from .workflow import Processing, Selection, Upload, Workflow, WorkflowError, WorkflowState

logger = logging.getLogger(__name__)

# (percent, message)
SessionProgress = Callable[[int, str], None]

THUMBNAIL_SCALE = 0.5


@dataclass
class DocumentItem:
    """A single loaded document with its preview."""

    source: SourceFile
    preview: PreviewArtifact | None = None
    page_count: int | None = None


@dataclass
class PdfPages:
    """A loaded PDF with one preview per page."""

    source: SourceFile
    previews: list[PreviewArtifact] = field(default_factory=list)

    @property
    def page_count(self) -> int:
        return len(self.previews)


class ToolSession:
    """
    Base session: validate, read and preview inputs, then convert them.

    Subclasses provide _prepare (turn a SourceFile into a reviewable item),
    _accept (merge newly prepared items) and _transform (produce the result).
    """

    tool: Tool

    def __init__(self) -> None:
        self.spec = get_tool_spec(self.tool)
        self.workflow = Workflow(self.spec.slug)
        self.registry = ArtifactRegistry()
        self.errors: list[BaseAppError] = []
        self._result: TransformResult | None = None
        self._items: list[Any] = []
        self._lock = threading.RLock()
        self.cancel_event = threading.Event()

    # -- state -------------------------------------------------------------

    @property
    def state(self) -> WorkflowState:
        return self.workflow.state

    @property
    def result(self) -> TransformResult | None:
        return self._result

    @property
    def items(self) -> list[Any]:
        return list(self._items)

    @property
    def can_convert(self) -> bool:
        return bool(self._items) and isinstance(self.state, Upload | Selection)

    # -- operations --------------------------------------------------------

    def add_files(
        self, paths: Sequence[Path], progress: SessionProgress | None = None, generation: int | None = None
    ) -> list[BaseAppError]:
        """
        Validate, read and preview a selection of files.

        Rejected or unreadable files produce one error each and do not stop
        the others. If anything was accepted the workflow moves to
        selection, otherwise it returns to upload.

        Args:
            paths: Files in selection order
            progress: Called with (percent, message)
            generation: Workflow generation the job was queued under

        Returns:
            One error per file that could not be added

        Raises:
            WorkflowError: If the workflow cannot accept files right now
            BaseAppError: If the batch itself fails; the workflow is back in
                upload with the earlier items kept
        """
        with self._lock:
            generation = self.workflow.begin("Processing files...", generation)
            self.cancel_event.clear()

        prepared: list[Any] = []
        try:
            batch = validate_batch(list(paths), self.tool)
            errors: list[BaseAppError] = list(batch.errors)
            accepted = batch.accepted if self.spec.multiple else batch.accepted[:1]
            if len(batch.accepted) > len(accepted):
                logger.info(f"{self.spec.slug}: only the first file is used, ignoring {len(batch.accepted) - 1} more")

            total = len(accepted)
            for index, path in enumerate(accepted):

                def report(done: int, count: int, index: int = index, name: str = path.name) -> None:
                    fraction = (index + (done / count if count else 1)) / total
                    self._progress(generation, round(fraction * 100), f"Processing {name}...", progress)

                try:
                    source = load_source_file(path, cancel=self.cancel_event)
                    prepared.append(self._prepare(source, report))
                except (ReadError, TransformError) as e:
                    logger.warning(f"{self.spec.slug}: could not add {path.name}: {e.user_message}")
                    errors.append(e)
                except Exception as e:
                    logger.exception(f"{self.spec.slug}: unexpected error adding {path.name}")
                    errors.append(from_exception(e, {"workflow": self.spec.slug, "file_name": path.name}))
                report(1, 1)
        except Exception as e:
            error = from_exception(e, {"workflow": self.spec.slug, "operation": "add_files"})
            with self._lock:
                self._discard(prepared)
                if self.workflow.fail(generation, self._items):
                    self.errors = [error]
            if error is e:
                raise
            raise error from e

        with self._lock:
            self.errors = errors
            if not self.workflow.is_current(generation):
                self._discard(prepared)
                return errors
            self._accept(prepared)
            if self._items:
                self.workflow.to_selection(generation, self._items)
            else:
                self.workflow.fail(generation)
        return errors

    def convert(self, progress: SessionProgress | None = None, generation: int | None = None) -> TransformResult | None:
        """
        Run the tool's transform on the current items.

        Returns:
            The result, or None if the session was started over meanwhile

        Raises:
            BaseAppError: If the transform fails, as a TransformError or as
                the mapped unexpected error; the workflow is back in upload
                with the items kept
            WorkflowError: If there is nothing to convert
        """
        with self._lock:
            if not self.can_convert:
                raise WorkflowError(
                    "Nothing to convert", context={"workflow": self.spec.slug, "state": self.state.name}
                )
            self._check_ready()
            items = list(self._items)
            generation = self.workflow.begin(self._converting_message(), generation)

        def report(done: int, total: int) -> None:
            self._progress(generation, round(done / total * 100) if total else 100, None, progress)

        try:
            result = self._transform(items, report)
        except Exception as e:
            error = from_exception(e, {"workflow": self.spec.slug, "operation": "convert"})
            with self._lock:
                if not self.workflow.fail(generation, items):
                    return None
                self.errors = [error]
            if error is e:
                raise
            raise error from e

        with self._lock:
            if not self.workflow.complete(generation, result):
                return None
            self._result = result
            self.errors = []
            self._on_result(result, items)
        logger.info(f"{self.spec.slug}: produced {result.name} ({result.formatted_size})")
        return result

    def start_over(self) -> None:
        """Drop every input, preview and result and return to upload."""
        with self._lock:
            self.cancel_event.set()
            self.registry.release_all()
            self._items = []
            self._result = None
            self.errors = []
            self._reset_tool_state()
            self.workflow.reset()

    # -- helpers -----------------------------------------------------------

    def _progress(self, generation: int, percent: int, message: str | None, callback: SessionProgress | None) -> None:
        with self._lock:
            if not self.workflow.progress(generation, percent, message):
                return
            state = self.workflow.state
        if callback and isinstance(state, Processing):
            callback(state.progress, state.message)

    def _discard(self, prepared: list[Any]) -> None:
        for item in prepared:
            for artifact in self._artifacts_of(item):
                self.registry.release(artifact)

    def _artifacts_of(self, item: Any) -> list[PreviewArtifact]:
        preview = getattr(item, "preview", None)
        return [preview] if preview is not None else []

    def _require_editable(self) -> None:
        if not isinstance(self.state, Upload | Selection):
            raise WorkflowError(
                f"Cannot edit items while in {self.state.name} state", context={"workflow": self.spec.slug}
            )

    def _notify_selection(self) -> None:
        self.workflow.update_selection(self._items)

    def _converting_message(self) -> str:
        return "Converting..."

    def _check_ready(self) -> None:
        """Raise if the current items cannot be converted."""

    def _reset_tool_state(self) -> None:
        """Clear subclass state on start over."""

    def _on_result(self, result: TransformResult, items: list[Any]) -> None:
        """Hook called under the lock once per applied result, with the items it was made from."""

    # -- subclass API ------------------------------------------------------

    def _prepare(self, source: SourceFile, report: Callable[[int, int], None]) -> Any:
        raise NotImplementedError

    def _accept(self, prepared: list[Any]) -> None:
        raise NotImplementedError

    def _transform(self, items: list[Any], report: Callable[[int, int], None]) -> TransformResult:
        raise NotImplementedError


class ImagesToPdfSession(ToolSession):
    """JPG to PDF: several images, reorderable and rotatable, into one PDF."""

    tool = Tool.JPG_TO_PDF

    def __init__(self, options: PdfPageOptions | None = None) -> None:
        super().__init__()
        self.options = options or PdfPageOptions()

    def _prepare(self, source: SourceFile, report: Callable[[int, int], None]) -> ImageItem:
        return ImageItem(source=source, preview=self.registry.add(image_preview(source)))

    def _accept(self, prepared: list[Any]) -> None:
        self._items.extend(prepared)

    def _find(self, item_id: str) -> int:
        for index, item in enumerate(self._items):
            if item.id == item_id:
                return index
        raise KeyError(item_id)

    def rotate(self, item_id: str, degrees: int = 90) -> int:
        """
        Rotate one image by a multiple of 90 degrees, clockwise for positive values.

        Returns:
            The item's new rotation in [0, 360)
        """
        if degrees % 90:
            raise ValueError(f"Rotation must be a multiple of 90 degrees: {degrees}")
        with self._lock:
            self._require_editable()
            item = self._items[self._find(item_id)]
            item.rotation = normalize_rotation(item.rotation + degrees)
            self._notify_selection()
            return item.rotation

    def move(self, item_id: str, new_index: int) -> None:
        """Move one image to a new position in the page order."""
        with self._lock:
            self._require_editable()
            item = self._items.pop(self._find(item_id))
            new_index = max(0, min(len(self._items), new_index))
            self._items.insert(new_index, item)
            self._notify_selection()

    def remove(self, item_id: str) -> None:
        """Remove one image; removing the last one returns to upload."""
        with self._lock:
            self._require_editable()
            item = self._items.pop(self._find(item_id))
            if item.preview is not None:
                self.registry.release(item.preview)
            self._notify_selection()

    def _converting_message(self) -> str:
        return "Creating PDF..."

    def _transform(self, items: list[Any], report: Callable[[int, int], None]) -> TransformResult:
        return images_to_pdf(items, self.options, report)


class PdfToImagesSession(ToolSession):
    """PDF to JPG: one PDF, page previews, a page selection."""

    tool = Tool.PDF_TO_JPG

    def __init__(self, preview_scale: float = PREVIEW_SCALE, output_scale: float = OUTPUT_SCALE) -> None:
        super().__init__()
        self.preview_scale = preview_scale
        self.output_scale = output_scale
        self.image_format = "jpeg"
        self._selected: set[int] = set()

    @property
    def document(self) -> PdfPages | None:
        return self._items[0] if self._items else None

    @property
    def page_count(self) -> int:
        return self.document.page_count if self.document else 0

    @property
    def selected_pages(self) -> list[int]:
        """Selected 0-based page indices, ascending."""
        return sorted(self._selected)

    @property
    def can_convert(self) -> bool:
        return super().can_convert and bool(self._selected)

    def _prepare(self, source: SourceFile, report: Callable[[int, int], None]) -> PdfPages:
        previews = render_pdf_pages(source.data, self.preview_scale, progress=report, file_name=source.name)
        return PdfPages(source=source, previews=self.registry.extend(previews))

    def _artifacts_of(self, item: Any) -> list[PreviewArtifact]:
        return list(item.previews)

    def _accept(self, prepared: list[Any]) -> None:
        if not prepared:
            return
        for previous in self._items:
            for artifact in previous.previews:
                self.registry.release(artifact)
        self._items = [prepared[0]]
        self._selected = set(range(prepared[0].page_count))

    def _reset_tool_state(self) -> None:
        self._selected = set()

    def _check_bounds(self, index: int) -> None:
        if not 0 <= index < self.page_count:
            raise IndexError(f"Page index {index} out of range (0-{self.page_count - 1})")

    def toggle_page(self, index: int) -> bool:
        """Flip one page's selection. Returns whether it is now selected."""
        with self._lock:
            self._check_bounds(index)
            if index in self._selected:
                self._selected.discard(index)
                return False
            self._selected.add(index)
            return True

    def select_all(self) -> None:
        with self._lock:
            self._selected = set(range(self.page_count))

    def select_none(self) -> None:
        with self._lock:
            self._selected = set()

    def select_range(self, page_spec: str) -> list[int]:
        """
        Select pages from a spec like "1,3-5" (1-based).

        Raises:
            ValidationError: If the range is malformed or past the last page
        """
        pages = parse_page_range(page_spec, self.page_count)
        with self._lock:
            self._selected = {page - 1 for page in pages}
            return self.selected_pages

    def _check_ready(self) -> None:
        if not self._selected:
            raise ValidationError(code=ErrorCode.NOTHING_SELECTED, user_message="Select at least one page to convert")

    def _converting_message(self) -> str:
        return "Converting pages..."

    def _transform(self, items: list[Any], report: Callable[[int, int], None]) -> TransformResult:
        document = items[0]
        return pdf_to_images(
            document.source, self.selected_pages, scale=self.output_scale, fmt=self.image_format, progress=report
        )


class DocumentSession(ToolSession):
    """Base for single-document tools."""

    @property
    def document(self) -> DocumentItem | None:
        return self._items[0] if self._items else None

    def _prepare(self, source: SourceFile, report: Callable[[int, int], None]) -> DocumentItem:
        if source.path.suffix.lower() == ".pdf" or source.mime_type == "application/pdf":
            page_count = pdf_page_count(source.data, source.name)
            thumbnails = render_pdf_pages(source.data, THUMBNAIL_SCALE, pages=[0], file_name=source.name)
            report(1, 1)
            return DocumentItem(source=source, preview=self.registry.add(thumbnails[0]), page_count=page_count)
        preview = self.registry.add(document_preview(source.data, source.name))
        report(1, 1)
        return DocumentItem(source=source, preview=preview)

    def _accept(self, prepared: list[Any]) -> None:
        if not prepared:
            return
        for previous in self._items:
            if previous.preview is not None:
                self.registry.release(previous.preview)
        self._items = [prepared[0]]


class WordToPdfSession(DocumentSession):
    tool = Tool.WORD_TO_PDF

    def _transform(self, items: list[Any], report: Callable[[int, int], None]) -> TransformResult:
        return word_to_pdf(items[0].source, report)


class PdfToWordSession(DocumentSession):
    tool = Tool.PDF_TO_WORD

    def _transform(self, items: list[Any], report: Callable[[int, int], None]) -> TransformResult:
        return pdf_to_word(items[0].source, report)


class CompressSession(DocumentSession):
    """Compress PDF: settings from presets, one history record per result."""

    tool = Tool.COMPRESS_PDF

    def __init__(
        self,
        history: CompressionHistory | None = None,
        preset_manager: PresetManager | None = None,
        preset: str = DEFAULT_PRESET,
    ) -> None:
        super().__init__()
        self.history = history or CompressionHistory()
        self.preset_manager = preset_manager
        self.preset_name = preset
        self.settings: CompressionSettings = self._load_preset(preset)

    def _load_preset(self, name: str) -> CompressionSettings:
        if self.preset_manager is not None:
            return self.preset_manager.load_preset(name)
        return builtin_preset(name)

    def apply_preset(self, name: str) -> CompressionSettings:
        """
        Switch to a named preset, keeping the title and author already entered.

        Raises:
            PresetError: If the preset does not exist
        """
        settings = self._load_preset(name)
        settings.title = self.settings.title
        settings.author = self.settings.author
        self.settings = settings
        self.preset_name = name
        return settings

    def _converting_message(self) -> str:
        return "Compressing PDF..."

    def _transform(self, items: list[Any], report: Callable[[int, int], None]) -> TransformResult:
        return compress_pdf(items[0].source, self.settings, report)

    def _on_result(self, result: TransformResult, items: list[DocumentItem]) -> None:
        document = items[0]
        original_size = result.original_size if result.original_size is not None else document.source.size
        record = HistoryRecord.create(document.source.name, original_size, result.size)
        try:
            self.history.add(record)
        except BaseAppError as e:
            # the compressed file is still valid without its history entry
            logger.warning(f"Could not record compression history: {e.technical_message or e}")
            self.errors.append(e)


SESSION_TYPES: dict[Tool, type[ToolSession]] = {
    Tool.JPG_TO_PDF: ImagesToPdfSession,
    Tool.PDF_TO_JPG: PdfToImagesSession,
    Tool.WORD_TO_PDF: WordToPdfSession,
    Tool.PDF_TO_WORD: PdfToWordSession,
    Tool.COMPRESS_PDF: CompressSession,
}


def create_session(tool: Tool | str, **kwargs: Any) -> ToolSession:
    """Build the session for a tool or slug."""
    spec = get_tool_spec(tool)
    return SESSION_TYPES[spec.tool](**kwargs)
