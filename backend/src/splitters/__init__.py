from .base import BaseTextSplitter
from .provenance import extract_page_number, extract_section_or_figure
from .window import CharacterWindowSplitter, make_chunk_id

TextSplitter = CharacterWindowSplitter

__all__ = [
    "BaseTextSplitter",
    "CharacterWindowSplitter",
    "TextSplitter",
    "extract_page_number",
    "extract_section_or_figure",
    "make_chunk_id",
]
