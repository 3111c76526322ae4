from pathlib import Path
from typing import Any

from adapters import BaseEmbedder, BatchEmbedder, create_embedder
from adapters.batching import DEFAULT_COOLDOWN_SECONDS, DEFAULT_EMBED_BATCH_SIZE
from config import get_config_value, get_index_dir
from models.chunk import MIN_CHUNK_CHARS
from splitters import CharacterWindowSplitter
from splitters.window import CHARS_PER_TOKEN, DEFAULT_CHUNK_OVERLAP, DEFAULT_CHUNK_SIZE
from stores import BaseIndexStore, create_index_store

DEFAULT_TOP_K = 5
DEFAULT_MAX_K = 20
DEFAULT_SNIPPET_CHARS = 300
DEFAULT_MAX_WORKERS = 4
DEFAULT_MIN_TEXT_CHARS = 100

# Keys of the [embedding] section consumed by the batcher, not the provider.
_BATCHING_KEYS = ("batch_size", "cooldown_ms")


def create_embedder_from_config(config: dict[str, Any]) -> BaseEmbedder:
    """Create an embedding provider from the [embedding] section.

    Ingestion and querying both go through here, so an index is always
    queried with the model that built it.
    """
    section_config = config.get("embedding", {})
    provider = section_config.get("provider", "openai")
    model = section_config.get("model", "text-embedding-3-small")

    extra_kwargs = {
        k: v
        for k, v in section_config.items()
        if k not in ("provider", "model", *_BATCHING_KEYS)
    }

    return create_embedder(provider, model=model, **extra_kwargs)


def create_batch_embedder_from_config(config: dict[str, Any]) -> BatchEmbedder:
    """Wrap the configured provider in the batching, throttled embedder."""
    embedder = create_embedder_from_config(config)
    batch_size = get_config_value(
        config, "embedding.batch_size", DEFAULT_EMBED_BATCH_SIZE
    )
    cooldown_ms = get_config_value(
        config, "embedding.cooldown_ms", DEFAULT_COOLDOWN_SECONDS * 1000
    )
    return BatchEmbedder(
        embedder, batch_size=int(batch_size), cooldown_seconds=cooldown_ms / 1000
    )


def create_splitter_from_config(config: dict[str, Any]) -> CharacterWindowSplitter:
    return CharacterWindowSplitter(
        chunk_size=get_config_value(config, "chunking.chunk_size", DEFAULT_CHUNK_SIZE),
        chunk_overlap=get_config_value(
            config, "chunking.chunk_overlap", DEFAULT_CHUNK_OVERLAP
        ),
        chars_per_token=get_config_value(
            config, "chunking.chars_per_token", CHARS_PER_TOKEN
        ),
        min_chars=get_config_value(config, "chunking.min_chars", MIN_CHUNK_CHARS),
    )


def create_index_store_from_config(
    config: dict[str, Any], config_path: Path
) -> BaseIndexStore:
    provider = get_config_value(config, "storage.provider", "jsonl")
    return create_index_store(provider, get_index_dir(config, config_path))
