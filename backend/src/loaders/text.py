from pathlib import Path

from errors import ExtractionError
from .base import BaseTextExtractor


class PlainTextExtractor(BaseTextExtractor):
    """Reads .txt/.md documents as UTF-8."""

    def __init__(self, encoding: str = "utf-8"):
        self.encoding = encoding

    def extract_text(self, file_path: Path | str) -> str:
        try:
            return Path(file_path).read_text(encoding=self.encoding)
        except (OSError, UnicodeDecodeError) as e:
            raise ExtractionError(
                f"Failed to read {file_path}: {e}", path=str(file_path)
            ) from e
