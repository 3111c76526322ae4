import logging
import threading
from pathlib import Path
from typing import Any, Optional

import numpy as np

from adapters import BaseEmbedder
from config import get_config_value, load_config
from errors import ConfigurationError, IndexCorruptionError, IndexNotFoundError
from models.chunk import ChunkRecord, FolderType
from models.retrieval import IndexStats, RetrievalResult, SearchResponse
from stores import BaseIndexStore, IndexSnapshot
from .base import (
    DEFAULT_MAX_K,
    DEFAULT_SNIPPET_CHARS,
    DEFAULT_TOP_K,
    create_embedder_from_config,
    create_index_store_from_config,
)
from .utils import make_snippet

logger = logging.getLogger(__name__)

MIN_SCORE = -1.0
MAX_SCORE = 1.0


def cosine_similarity(a: list[float] | np.ndarray, b: list[float] | np.ndarray) -> float:
    """Cosine similarity of two vectors; MIN_SCORE if either has zero norm."""
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    magnitude = np.linalg.norm(a) * np.linalg.norm(b)
    if magnitude == 0:
        return MIN_SCORE
    return float(np.clip(np.dot(a, b) / magnitude, MIN_SCORE, MAX_SCORE))


class LoadedIndex:
    """An immutable, query-ready view of one ingestion run.

    Only chunks with exactly one matching embedding (and vice versa) are
    served; unmatched halves are dropped with a warning. Entries are kept in
    ascending id order, which a stable sort by score then turns into the id
    tie-break.
    """

    def __init__(
        self,
        chunks: list[ChunkRecord],
        vectors: np.ndarray,
        embedding_model: Optional[str] = None,
        run_id: Optional[str] = None,
    ):
        if len(chunks) != len(vectors):
            raise ValueError("chunks and vectors must have the same length")

        order = sorted(range(len(chunks)), key=lambda i: chunks[i].id)
        self._chunks: tuple[ChunkRecord, ...] = tuple(chunks[i] for i in order)
        if chunks:
            self._vectors = np.asarray(vectors, dtype=np.float64)[order]
        else:
            self._vectors = np.zeros((0, 0))
        self._vectors.setflags(write=False)
        self._norms = np.linalg.norm(self._vectors, axis=1)
        self._norms.setflags(write=False)
        self._folder_types = np.array([c.folder_type for c in self._chunks], dtype=str)

        self.embedding_model = embedding_model
        self.run_id = run_id
        self.stats = IndexStats(
            total_chunks=len(self._chunks),
            handbook_chunks=int(np.sum(self._folder_types == "handbook")),
            example_chunks=int(np.sum(self._folder_types == "example")),
            unique_docs=len({c.doc_name for c in self._chunks}),
        )

    @classmethod
    def from_snapshot(cls, snapshot: IndexSnapshot) -> "LoadedIndex":
        """Join chunk and embedding records by id."""
        vectors_by_id = {e.id: e.embedding for e in snapshot.embeddings}
        chunk_ids = {c.id for c in snapshot.chunks}

        matched = [c for c in snapshot.chunks if c.id in vectors_by_id]
        orphan_chunks = len(snapshot.chunks) - len(matched)
        orphan_embeddings = sum(1 for e in snapshot.embeddings if e.id not in chunk_ids)
        if orphan_chunks:
            logger.warning(f"Skipping {orphan_chunks} chunks without an embedding")
        if orphan_embeddings:
            logger.warning(f"Skipping {orphan_embeddings} embeddings without a chunk")

        manifest = snapshot.manifest
        return cls(
            chunks=matched,
            vectors=np.array([vectors_by_id[c.id] for c in matched], dtype=np.float64),
            embedding_model=manifest.embedding_model if manifest else None,
            run_id=manifest.run_id if manifest else None,
        )

    def __len__(self) -> int:
        return len(self._chunks)

    @property
    def chunks(self) -> tuple[ChunkRecord, ...]:
        return self._chunks

    @property
    def dimension(self) -> Optional[int]:
        return self._vectors.shape[1] if len(self._chunks) else None

    def scores(self, query_vector: list[float] | np.ndarray) -> np.ndarray:
        """Cosine similarity of the query against every entry."""
        query = np.asarray(query_vector, dtype=np.float64)
        query_norm = np.linalg.norm(query)
        magnitudes = self._norms * query_norm
        scores = np.full(len(self._chunks), MIN_SCORE)
        nonzero = magnitudes > 0
        if np.any(nonzero):
            dots = self._vectors[nonzero] @ query
            scores[nonzero] = np.clip(dots / magnitudes[nonzero], MIN_SCORE, MAX_SCORE)
        return scores

    def top_k(
        self,
        query_vector: list[float] | np.ndarray,
        k: int,
        folder_type: Optional[FolderType] = None,
    ) -> list[tuple[ChunkRecord, float]]:
        """Best ``k`` entries by descending score, ties by ascending id."""
        if k <= 0 or not self._chunks:
            return []

        scores = self.scores(query_vector)
        candidates = np.arange(len(self._chunks))
        if folder_type is not None:
            candidates = candidates[self._folder_types == folder_type]

        ranked = candidates[np.argsort(-scores[candidates], kind="stable")][:k]
        return [(self._chunks[i], float(scores[i])) for i in ranked]


def load_index(store: BaseIndexStore) -> LoadedIndex:
    """Load and validate a persisted index into memory."""
    index = LoadedIndex.from_snapshot(store.load())
    logger.info(
        f"Loaded index: {index.stats.total_chunks} chunks "
        f"({index.stats.handbook_chunks} handbook, {index.stats.example_chunks} example)"
    )
    return index


class Retriever:
    """Similarity search over a loaded index.

    The query is embedded with ``embedder``, which must be the model the
    index was built with. Searching never mutates the index.
    """

    def __init__(
        self,
        index: LoadedIndex,
        embedder: BaseEmbedder,
        snippet_chars: int = DEFAULT_SNIPPET_CHARS,
    ):
        if index.embedding_model and index.embedding_model != embedder.model:
            raise ConfigurationError(
                f"Index was built with {index.embedding_model!r} but queries would "
                f"be embedded with {embedder.model!r}; re-run ingestion or fix "
                "the [embedding] model"
            )
        self.index = index
        self.embedder = embedder
        self.snippet_chars = snippet_chars

    def embed_query(self, query: str) -> list[float]:
        vector = self.embedder.embed(query)
        if self.index.dimension is not None and len(vector) != self.index.dimension:
            raise ConfigurationError(
                f"Query embedding has dimension {len(vector)}, "
                f"index has {self.index.dimension}"
            )
        return vector

    def search(
        self,
        query: str,
        k: int,
        folder_type: Optional[FolderType] = None,
    ) -> list[RetrievalResult]:
        """Return up to ``k`` results; empty for a blank query or ``k <= 0``."""
        if not query or not query.strip() or k <= 0:
            return []
        logger.info(f"Embedding query: {query[:50]}...")
        return self.search_by_vector(self.embed_query(query), k, folder_type)

    def search_by_vector(
        self,
        query_vector: list[float],
        k: int,
        folder_type: Optional[FolderType] = None,
    ) -> list[RetrievalResult]:
        return [
            self._to_result(chunk, score)
            for chunk, score in self.index.top_k(query_vector, k, folder_type)
        ]

    def _to_result(self, chunk: ChunkRecord, score: float) -> RetrievalResult:
        return RetrievalResult(
            id=chunk.id,
            folder_type=chunk.folder_type,
            doc_name=chunk.doc_name,
            doc_path=chunk.doc_path,
            page_number=chunk.page_number,
            section_or_figure=chunk.section_or_figure,
            score=score,
            snippet=make_snippet(chunk.text, self.snippet_chars),
            text=chunk.text,
        )


class RetrievalService:
    """Serves queries against the current index and swaps in new ones.

    ``reload`` builds and validates a complete replacement before swapping
    it in; a failed reload leaves the current index serving. Each query
    reads the current retriever once, so it never sees a mix of two runs.
    """

    def __init__(
        self,
        store: BaseIndexStore,
        embedder: BaseEmbedder,
        top_k: int = DEFAULT_TOP_K,
        max_k: int = DEFAULT_MAX_K,
        snippet_chars: int = DEFAULT_SNIPPET_CHARS,
    ):
        self.store = store
        self.embedder = embedder
        self.top_k = top_k
        self.max_k = max_k
        self.snippet_chars = snippet_chars

        self._retriever: Optional[Retriever] = None
        self._load_error: Optional[str] = None
        self._reload_lock = threading.Lock()

    @classmethod
    def from_config(
        cls, config: dict[str, Any], config_path: Path
    ) -> "RetrievalService":
        """Create service from configuration dictionary."""
        return cls(
            store=create_index_store_from_config(config, config_path),
            embedder=create_embedder_from_config(config),
            top_k=get_config_value(config, "retrieval.top_k", DEFAULT_TOP_K),
            max_k=get_config_value(config, "retrieval.max_k", DEFAULT_MAX_K),
            snippet_chars=get_config_value(
                config, "retrieval.snippet_chars", DEFAULT_SNIPPET_CHARS
            ),
        )

    def reload(self) -> LoadedIndex:
        """Load the persisted index and swap it in once fully validated."""
        with self._reload_lock:
            try:
                retriever = Retriever(
                    load_index(self.store), self.embedder, self.snippet_chars
                )
            except (IndexNotFoundError, IndexCorruptionError, ConfigurationError) as e:
                self._load_error = str(e)
                logger.error(f"Failed to load index: {e}")
                raise
            self._retriever = retriever
            self._load_error = None
            return retriever.index

    def ensure_loaded(self) -> Retriever:
        retriever = self._retriever
        if retriever is None:
            self.reload()
            retriever = self._retriever
        return retriever

    @property
    def is_ready(self) -> bool:
        try:
            self.ensure_loaded()
        except (IndexNotFoundError, IndexCorruptionError, ConfigurationError):
            return False
        return True

    @property
    def load_error(self) -> Optional[str]:
        return self._load_error

    def index_stats(self) -> IndexStats:
        return self.ensure_loaded().index.stats

    def status(self) -> dict[str, Any]:
        """Readiness check for callers, without issuing a query."""
        if not self.is_ready:
            return {
                "status": "not_ready",
                "error": self._load_error or "Index not available",
                "hint": "Run the ingestion script to build the index",
            }
        return {
            "status": "ready",
            "stats": self.index_stats().model_dump(by_alias=True),
        }

    def normalize_k(self, k: Optional[int]) -> int:
        if not isinstance(k, int) or isinstance(k, bool) or k <= 0:
            return self.top_k
        return min(k, self.max_k)

    def search_handbooks(self, query: str, k: Optional[int] = None) -> list[RetrievalResult]:
        return self.ensure_loaded().search(query, self.normalize_k(k), "handbook")

    def search_examples(self, query: str, k: Optional[int] = None) -> list[RetrievalResult]:
        return self.ensure_loaded().search(query, self.normalize_k(k), "example")

    def query(self, query: str, k: Optional[int] = None) -> SearchResponse:
        """Run separate top-k searches over handbooks and examples.

        The query is embedded once and both searches run against the same
        index snapshot.
        """
        retriever = self.ensure_loaded()
        k = self.normalize_k(k)
        query = (query or "").strip()

        handbooks: list[RetrievalResult] = []
        examples: list[RetrievalResult] = []
        if query:
            logger.info(f"Query: {query[:100]!r} k={k}")
            vector = retriever.embed_query(query)
            handbooks = retriever.search_by_vector(vector, k, "handbook")
            examples = retriever.search_by_vector(vector, k, "example")

        return SearchResponse(
            query=query,
            index_stats=retriever.index.stats,
            handbooks=_rounded(handbooks),
            examples=_rounded(examples),
        )


def _rounded(results: list[RetrievalResult]) -> list[RetrievalResult]:
    """Scores rounded to 4 places; equal rounded scores are ordered by id."""
    rounded = [r.model_copy(update={"score": round(r.score, 4)}) for r in results]
    return sorted(rounded, key=lambda r: (-r.score, r.id))


def get_retrieval_service(
    config_path: Path = Path("config.toml"),
) -> RetrievalService:
    """Create a retrieval service from config.

    Args:
        config_path: Path to configuration file.

    Returns:
        RetrievalService instance. The index is loaded on first use.
    """
    config = load_config(config_path)
    return RetrievalService.from_config(config, config_path)
