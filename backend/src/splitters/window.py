from typing import Iterator

from errors import ConfigurationError
from models.chunk import MIN_CHUNK_CHARS, ChunkRecord, FolderType
from .base import BaseTextSplitter
from .provenance import extract_page_number, extract_section_or_figure

DEFAULT_CHUNK_SIZE = 500
DEFAULT_CHUNK_OVERLAP = 100
CHARS_PER_TOKEN = 4


def make_chunk_id(folder_type: str, doc_name: str, sequence: int) -> str:
    """Deterministic chunk id; zero padding keeps string order equal to chunk order."""
    return f"{folder_type}-{doc_name}-chunk-{sequence:05d}"


class CharacterWindowSplitter(BaseTextSplitter):
    """Fixed-size overlapping character windows.

    Sizes are given in tokens and converted with a chars-per-token heuristic,
    so the defaults (500/100) give 2000-character windows advancing by 1600
    characters. Windows are trimmed, and windows shorter than ``min_chars``
    after trimming are dropped.
    """

    def __init__(
        self,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        chunk_overlap: int = DEFAULT_CHUNK_OVERLAP,
        chars_per_token: int = CHARS_PER_TOKEN,
        min_chars: int = MIN_CHUNK_CHARS,
    ):
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self.window_chars = chunk_size * chars_per_token
        self.overlap_chars = chunk_overlap * chars_per_token
        self.min_chars = max(min_chars, MIN_CHUNK_CHARS)

        if self.window_chars <= 0:
            raise ConfigurationError(
                f"chunk_size must be positive, got {chunk_size}"
            )
        if self.overlap_chars < 0:
            raise ConfigurationError(
                f"chunk_overlap must not be negative, got {chunk_overlap}"
            )
        if self.step <= 0:
            raise ConfigurationError(
                f"chunk_overlap ({chunk_overlap}) must be smaller than "
                f"chunk_size ({chunk_size})"
            )

    @property
    def step(self) -> int:
        return self.window_chars - self.overlap_chars

    def iter_windows(self, text: str) -> Iterator[tuple[int, int]]:
        """Yield the untrimmed (start, end) character range of every window."""
        start = 0
        length = len(text)
        while start < length:
            end = min(start + self.window_chars, length)
            yield start, end
            start += self.step

    def split_text(self, text: str) -> list[str]:
        if not text or not text.strip():
            return []

        chunks = []
        for start, end in self.iter_windows(text):
            chunk = text[start:end].strip()
            if len(chunk) >= self.min_chars:
                chunks.append(chunk)
        return chunks

    def split_document(
        self,
        text: str,
        folder_type: FolderType,
        doc_name: str,
        doc_path: str,
    ) -> list[ChunkRecord]:
        """Split a document into chunk records.

        Example:
            >>> splitter = CharacterWindowSplitter()
            >>> records = splitter.split_document(text, "handbook", "MUTCD", "tcp handbooks/MUTCD.pdf")
            >>> records[0].id
            'handbook-MUTCD-chunk-00000'
        """
        return [
            ChunkRecord(
                id=make_chunk_id(folder_type, doc_name, sequence),
                folder_type=folder_type,
                doc_name=doc_name,
                doc_path=doc_path,
                page_number=extract_page_number(chunk),
                section_or_figure=extract_section_or_figure(chunk),
                text=chunk,
            )
            for sequence, chunk in enumerate(self.split_text(text))
        ]
