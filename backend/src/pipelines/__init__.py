from .base import (
    DEFAULT_MAX_K,
    DEFAULT_SNIPPET_CHARS,
    DEFAULT_TOP_K,
    create_batch_embedder_from_config,
    create_embedder_from_config,
    create_index_store_from_config,
    create_splitter_from_config,
)
from .ingestion import IngestionPipeline, SourceDocument, run_ingestion
from .retrieval import (
    LoadedIndex,
    RetrievalService,
    Retriever,
    cosine_similarity,
    get_retrieval_service,
    load_index,
)
from .utils import format_citation, make_snippet

__all__ = [
    "IngestionPipeline",
    "SourceDocument",
    "run_ingestion",
    "LoadedIndex",
    "RetrievalService",
    "Retriever",
    "cosine_similarity",
    "get_retrieval_service",
    "load_index",
    "format_citation",
    "make_snippet",
    "create_batch_embedder_from_config",
    "create_embedder_from_config",
    "create_index_store_from_config",
    "create_splitter_from_config",
    "DEFAULT_MAX_K",
    "DEFAULT_SNIPPET_CHARS",
    "DEFAULT_TOP_K",
]
