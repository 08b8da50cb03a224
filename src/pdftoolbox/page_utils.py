"""
Page range parsing and formatting for page selection.
"""

import re

from .errors import ErrorCode, ValidationError

# Page range pattern for validation
PAGE_RANGE_PATTERN = re.compile(r"^(\d+(\s*-\s*\d+)?)(\s*,\s*\d+(\s*-\s*\d+)?)*$")


def _invalid(message: str, page_spec: str) -> ValidationError:
    return ValidationError(
        code=ErrorCode.INVALID_INPUT,
        user_message=message,
        context={"field": "pages", "value": page_spec},
    )


def parse_page_range(page_spec: str, page_count: int | None = None) -> list[int]:
    """
    Parse a page range specification into page numbers.

    Args:
        page_spec: Page specification like "1,3,5-10,15"
        page_count: When given, pages beyond it are rejected

    Returns:
        Sorted, de-duplicated page numbers (1-based)

    Raises:
        ValidationError: If the page specification is invalid
    """
    page_spec = page_spec.strip()
    if not page_spec:
        raise _invalid("Page specification cannot be empty", page_spec)

    if not PAGE_RANGE_PATTERN.match(page_spec):
        raise _invalid("Invalid page range format. Use comma-separated numbers and ranges (e.g., '1,3,5-10')", page_spec)

    pages: set[int] = set()
    for part in page_spec.split(","):
        if "-" in part:
            start, end = (int(value) for value in part.split("-", 1))
            if start > end:
                raise _invalid(f"Invalid range: {start}-{end} (start > end)", page_spec)
            pages.update(range(start, end + 1))
        else:
            pages.add(int(part))

    if 0 in pages:
        raise _invalid("Page numbers must be positive", page_spec)
    if page_count is not None and max(pages) > page_count:
        raise _invalid(f"Page {max(pages)} is beyond the last page ({page_count})", page_spec)

    return sorted(pages)


def format_page_range(pages: list[int]) -> str:
    """
    Collapse page numbers into the compact form parse_page_range accepts.

    [1, 2, 3, 5] becomes "1-3,5".
    """
    parts: list[str] = []
    ordered = sorted(set(pages))
    index = 0
    while index < len(ordered):
        start = end = ordered[index]
        while index + 1 < len(ordered) and ordered[index + 1] == end + 1:
            index += 1
            end = ordered[index]
        parts.append(str(start) if start == end else f"{start}-{end}")
        index += 1
    return ",".join(parts)
