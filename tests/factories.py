"""Test doubles and record builders shared across the test modules."""

import re
import zlib
from typing import Any

from adapters.base import BaseEmbedder, IndexedEmbedding
from models.chunk import ChunkRecord, EmbeddingRecord

WORD_PATTERN = re.compile(r"[a-z0-9]+")


class MockEmbedder(BaseEmbedder):
    """Deterministic bag-of-words embedder for testing.

    Each word is hashed into one of ``dimension`` buckets, so texts sharing
    vocabulary get a high cosine similarity and unrelated texts a low one.
    """

    provider = "mock"

    def __init__(self, model: str = "mock-embedder", dimension: int = 64, **kwargs: Any):
        super().__init__(model, **kwargs)
        self._dimension = dimension
        self.batch_calls: list[list[str]] = []
        self.query_calls: list[str] = []

    @property
    def dimension(self) -> int:
        return self._dimension

    def _vector(self, text: str) -> list[float]:
        vector = [0.0] * self._dimension
        for word in WORD_PATTERN.findall(text.lower()):
            vector[zlib.crc32(word.encode("utf-8")) % self._dimension] += 1.0
        return vector

    def embed(self, text: str) -> list[float]:
        self.query_calls.append(text)
        return self._vector(text)

    def embed_batch(self, texts: list[str]) -> list[IndexedEmbedding]:
        self.batch_calls.append(list(texts))
        return [
            IndexedEmbedding(index=i, embedding=self._vector(text))
            for i, text in enumerate(texts)
        ]


HANDBOOK_TEXT = (
    "Section 6C.04 Advance Warning Area. Page 12. Table 6C-2 gives the sign "
    "spacing distance A, distance B and distance C for advance warning signs "
    "on urban and rural roads. The merging taper length L is computed from "
    "the posted speed and the lateral offset. "
)

EXAMPLE_TEXT = (
    "Example plan for a shoulder closure on a rural highway. Cones and drums "
    "are placed along the shoulder with an arrow board at the start of the "
    "work area. Crew trucks park inside the closed shoulder. "
)


def make_chunk(
    chunk_id: str,
    folder_type: str = "handbook",
    doc_name: str = "MUTCD",
    text: str = HANDBOOK_TEXT,
    page_number: int | None = None,
    section_or_figure: str | None = None,
) -> ChunkRecord:
    directory = "tcp handbooks" if folder_type == "handbook" else "tcp examples"
    return ChunkRecord(
        id=chunk_id,
        folder_type=folder_type,
        doc_name=doc_name,
        doc_path=f"{directory}/{doc_name}.pdf",
        page_number=page_number,
        section_or_figure=section_or_figure,
        text=text,
    )


def make_embedding(chunk_id: str, vector: list[float]) -> EmbeddingRecord:
    return EmbeddingRecord(id=chunk_id, embedding=vector)


