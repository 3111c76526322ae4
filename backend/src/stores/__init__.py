from pathlib import Path
from typing import Any

from errors import ConfigurationError
from .base import BaseIndexStore, IndexSnapshot
from .jsonl import JSONLIndexStore

IndexStore = JSONLIndexStore


def create_index_store(
    provider: str,
    directory: Path | str,
    **kwargs: Any,
) -> BaseIndexStore:
    """Create an index store instance based on provider.

    Args:
        provider: Provider name (currently only "jsonl" supported)
        directory: Directory holding the index files
        **kwargs: Additional provider-specific parameters

    Returns:
        BaseIndexStore instance
    """
    if provider == "jsonl":
        return JSONLIndexStore(Path(directory), **kwargs)
    else:
        raise ConfigurationError(f"Unknown index store provider: {provider}")


__all__ = [
    "BaseIndexStore",
    "IndexSnapshot",
    "IndexStore",
    "JSONLIndexStore",
    "create_index_store",
]
