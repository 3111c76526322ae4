"""Query-time models."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .chunk import FolderType


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RetrievalResult(_CamelModel):
    """A chunk matched by a query.

    Attributes:
        id: Chunk id.
        folder_type: Document class of the chunk.
        doc_name: Source document name.
        doc_path: Source document path relative to the project root.
        page_number: Best-effort page number from the chunk.
        section_or_figure: Best-effort section/figure label from the chunk.
        score: Cosine similarity in [-1, 1].
        snippet: Truncated, whitespace-normalised prefix of the chunk text.
        text: Full chunk text, kept for the coverage gate and excluded from
            the API payload.
    """

    id: str
    folder_type: FolderType
    doc_name: str
    doc_path: str = ""
    page_number: Optional[int] = None
    section_or_figure: Optional[str] = None
    score: float = Field(ge=-1.0, le=1.0)
    snippet: str
    text: str = Field(default="", exclude=True)


class IndexStats(_CamelModel):
    total_chunks: int
    handbook_chunks: int
    example_chunks: int
    unique_docs: int


class SearchRequest(_CamelModel):
    query: str
    k: Optional[int] = None


class SearchResponse(_CamelModel):
    query: str
    index_stats: IndexStats
    handbooks: list[RetrievalResult]
    examples: list[RetrievalResult]
