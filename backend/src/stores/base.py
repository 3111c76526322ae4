from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from models.chunk import ChunkRecord, EmbeddingRecord, IndexManifest


@dataclass(frozen=True)
class IndexSnapshot:
    """The record sets of one ingestion run, as read back from storage."""

    chunks: list[ChunkRecord]
    embeddings: list[EmbeddingRecord]
    manifest: Optional[IndexManifest] = None


class BaseIndexStore(ABC):
    """Abstract base class for persisted indexes.

    Stores only ever write a complete snapshot; there is no append, update
    or delete.
    """

    @abstractmethod
    def save(
        self,
        chunks: list[ChunkRecord],
        embeddings: list[EmbeddingRecord],
        embedding_provider: str,
        embedding_model: str,
    ) -> IndexManifest:
        """Replace any existing index with the given records."""
        pass

    @abstractmethod
    def load(self) -> IndexSnapshot:
        """Read the full index, rejecting it if any record is malformed."""
        pass

    @abstractmethod
    def exists(self) -> bool:
        pass
