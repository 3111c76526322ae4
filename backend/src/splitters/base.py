from abc import ABC, abstractmethod

from models.chunk import ChunkRecord, FolderType


class BaseTextSplitter(ABC):
    """Abstract base class for text splitters."""

    @abstractmethod
    def split_text(self, text: str) -> list[str]:
        """Split raw text into chunk texts, in document order."""
        pass

    @abstractmethod
    def split_document(
        self,
        text: str,
        folder_type: FolderType,
        doc_name: str,
        doc_path: str,
    ) -> list[ChunkRecord]:
        """Split a document's text into chunk records with provenance."""
        pass
