from .chunk import (
    FOLDER_TYPES,
    MIN_CHUNK_CHARS,
    ChunkRecord,
    EmbeddingRecord,
    FolderType,
    IndexManifest,
)
from .coverage import CoverageDetail, CoverageVerdict, PlanRequest, TopicCoverage
from .retrieval import IndexStats, RetrievalResult, SearchRequest, SearchResponse

__all__ = [
    "FOLDER_TYPES",
    "MIN_CHUNK_CHARS",
    "ChunkRecord",
    "EmbeddingRecord",
    "FolderType",
    "IndexManifest",
    "CoverageDetail",
    "CoverageVerdict",
    "PlanRequest",
    "TopicCoverage",
    "IndexStats",
    "RetrievalResult",
    "SearchRequest",
    "SearchResponse",
]
