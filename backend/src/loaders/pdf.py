from pathlib import Path

from llama_index.core import SimpleDirectoryReader
from llama_index.readers.file import PDFReader

from errors import ExtractionError
from .base import BaseTextExtractor

PAGE_SEPARATOR = "\n\n"


class PDFTextExtractor(BaseTextExtractor):
    """Extracts PDF text using llama-index's SimpleDirectoryReader.

    The pypdf-backed reader yields one document per page; pages are joined
    in order. Unreadable files raise instead of being read as plain text.
    """

    def extract_text(self, file_path: Path | str) -> str:
        try:
            reader = SimpleDirectoryReader(
                input_files=[str(file_path)],
                file_extractor={".pdf": PDFReader()},
                raise_on_error=True,
            )
            documents = reader.load_data()
        except Exception as e:
            raise ExtractionError(
                f"Failed to extract text from {file_path}: {e}", path=str(file_path)
            ) from e
        if not documents:
            raise ExtractionError(f"No pages found in {file_path}", path=str(file_path))
        return PAGE_SEPARATOR.join(doc.get_content() for doc in documents)
