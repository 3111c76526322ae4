import logging
from pathlib import Path

from errors import ConfigurationError
from .base import BaseTextExtractor
from .pdf import PDFTextExtractor
from .text import PlainTextExtractor

logger = logging.getLogger(__name__)

DEFAULT_EXTENSIONS = (".pdf",)
SUPPORTED_EXTENSIONS = (".pdf", ".txt", ".md")


def get_extractor_for_file(file_path: Path | str) -> BaseTextExtractor:
    """Get the appropriate extractor for a file based on extension.

    Args:
        file_path: Path to the file

    Returns:
        BaseTextExtractor instance appropriate for the file type
    """
    suffix = Path(file_path).suffix.lower()

    if suffix == ".pdf":
        return PDFTextExtractor()
    if suffix in (".txt", ".md"):
        return PlainTextExtractor()

    raise ValueError(f"No extractor available for file type: {suffix}")


def discover_documents(
    directory: Path,
    extensions: tuple[str, ...] | list[str] = DEFAULT_EXTENSIONS,
) -> list[Path]:
    """List source documents directly inside ``directory``, sorted by name.

    A missing directory is logged and treated as empty.
    """
    wanted = {ext.lower() for ext in extensions}
    unsupported = wanted - set(SUPPORTED_EXTENSIONS)
    if unsupported:
        raise ConfigurationError(f"Unsupported document extensions: {sorted(unsupported)}")

    if not directory.is_dir():
        logger.warning(f"Could not read directory: {directory}")
        return []

    return sorted(
        path
        for path in directory.iterdir()
        if path.is_file() and path.suffix.lower() in wanted
    )


__all__ = [
    "BaseTextExtractor",
    "PDFTextExtractor",
    "PlainTextExtractor",
    "DEFAULT_EXTENSIONS",
    "SUPPORTED_EXTENSIONS",
    "discover_documents",
    "get_extractor_for_file",
]
