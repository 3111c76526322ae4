from abc import ABC, abstractmethod
from pathlib import Path


class BaseTextExtractor(ABC):
    """Abstract base class for document text extraction.

    Implementations raise ``ExtractionError`` when a file cannot be read.
    """

    @abstractmethod
    def extract_text(self, file_path: Path | str) -> str:
        """Return the plain text of a single document."""
        pass
