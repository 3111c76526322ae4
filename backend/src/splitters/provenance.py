"""Best-effort provenance labels pulled from chunk text.

Both helpers return None when nothing matches; they never guess.
"""

import re
from typing import Optional

PAGE_PATTERN = re.compile(r"page\s*(\d+)", re.IGNORECASE)
SECTION_PATTERN = re.compile(
    r"(?:section|figure|table|chapter)\s*\d[\d.]*(?:[A-Za-z](?:[.-]\d+)?)?",
    re.IGNORECASE,
)


def extract_page_number(text: str) -> Optional[int]:
    """Return the first "Page N" number in the text, or None."""
    match = PAGE_PATTERN.search(text)
    if match:
        return int(match.group(1))
    return None


def extract_section_or_figure(text: str) -> Optional[str]:
    """Return the first "Section/Table/Figure/Chapter X" label, or None.

    >>> extract_section_or_figure("See Table 6C-2 for spacing")
    'Table 6C-2'
    """
    match = SECTION_PATTERN.search(text)
    if match:
        return match.group(0).strip().rstrip(".")
    return None
