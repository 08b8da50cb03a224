"""
Tool catalog: slugs, accepted inputs and size ceilings.

The slug is both the navigation key of a tool page and the value stored
under the ``last_tool`` setting.
"""

from dataclasses import dataclass
from enum import Enum

from .config import DOCUMENT_SIZE_LIMIT, IMAGE_SIZE_LIMIT


class Tool(Enum):
    JPG_TO_PDF = "jpg-to-pdf"
    PDF_TO_JPG = "pdf-to-jpg"
    WORD_TO_PDF = "word-to-pdf"
    PDF_TO_WORD = "pdf-to-word"
    COMPRESS_PDF = "compress-pdf"


@dataclass(frozen=True)
class ToolSpec:
    tool: Tool
    title: str
    description: str
    mime_types: frozenset[str]
    extensions: frozenset[str]
    max_size: int
    multiple: bool
    accept_label: str

    @property
    def slug(self) -> str:
        return self.tool.value

    def file_dialog_filter(self) -> str:
        patterns = " ".join(f"*{ext}" for ext in sorted(self.extensions))
        return f"{self.accept_label} ({patterns})"


IMAGE_MIME_TYPES = frozenset(
    {"image/jpeg", "image/png", "image/gif", "image/webp", "image/bmp", "image/tiff"}
)
IMAGE_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".gif", ".webp", ".bmp", ".tif", ".tiff"})

PDF_MIME_TYPES = frozenset({"application/pdf"})
PDF_EXTENSIONS = frozenset({".pdf"})

WORD_MIME_TYPES = frozenset(
    {
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "application/rtf",
        "text/rtf",
        "application/vnd.oasis.opendocument.text",
    }
)
WORD_EXTENSIONS = frozenset({".doc", ".docx", ".rtf", ".odt"})

DOCX_MIME_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


TOOLS: dict[Tool, ToolSpec] = {
    Tool.JPG_TO_PDF: ToolSpec(
        tool=Tool.JPG_TO_PDF,
        title="JPG to PDF",
        description="Combine images into a single PDF. Reorder and rotate before converting.",
        mime_types=IMAGE_MIME_TYPES,
        extensions=IMAGE_EXTENSIONS,
        max_size=IMAGE_SIZE_LIMIT,
        multiple=True,
        accept_label="Images",
    ),
    Tool.PDF_TO_JPG: ToolSpec(
        tool=Tool.PDF_TO_JPG,
        title="PDF to JPG",
        description="Turn selected PDF pages into high-resolution JPG images.",
        mime_types=PDF_MIME_TYPES,
        extensions=PDF_EXTENSIONS,
        max_size=DOCUMENT_SIZE_LIMIT,
        multiple=False,
        accept_label="PDF files",
    ),
    Tool.WORD_TO_PDF: ToolSpec(
        tool=Tool.WORD_TO_PDF,
        title="Word to PDF",
        description="Convert Word documents to PDF.",
        mime_types=WORD_MIME_TYPES,
        extensions=WORD_EXTENSIONS,
        max_size=DOCUMENT_SIZE_LIMIT,
        multiple=False,
        accept_label="Word documents",
    ),
    Tool.PDF_TO_WORD: ToolSpec(
        tool=Tool.PDF_TO_WORD,
        title="PDF to Word",
        description="Extract the text of a PDF into an editable DOCX file.",
        mime_types=PDF_MIME_TYPES,
        extensions=PDF_EXTENSIONS,
        max_size=DOCUMENT_SIZE_LIMIT,
        multiple=False,
        accept_label="PDF files",
    ),
    Tool.COMPRESS_PDF: ToolSpec(
        tool=Tool.COMPRESS_PDF,
        title="Compress PDF",
        description="Reduce PDF file size while keeping it readable.",
        mime_types=PDF_MIME_TYPES,
        extensions=PDF_EXTENSIONS,
        max_size=DOCUMENT_SIZE_LIMIT,
        multiple=False,
        accept_label="PDF files",
    ),
}

# Shown in navigation, not selectable yet
COMING_SOON: tuple[tuple[str, str], ...] = (
    ("merge-pdf", "Merge PDF"),
    ("annotate-pdf", "Annotate PDF"),
    ("sign-pdf", "Sign PDF"),
)


def get_tool_spec(tool: Tool | str) -> ToolSpec:
    """
    Look up a tool by enum member or slug.

    Raises:
        ValueError: If the slug is unknown
    """
    if isinstance(tool, str):
        tool = Tool(tool)
    return TOOLS[tool]
