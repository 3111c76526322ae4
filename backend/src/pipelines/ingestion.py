import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from adapters import BatchEmbedder
from config import (
    get_config_value,
    get_project_root,
    get_source_dirs,
    load_config,
)
from errors import ExtractionError, IngestionError
from loaders import (
    DEFAULT_EXTENSIONS,
    BaseTextExtractor,
    discover_documents,
    get_extractor_for_file,
)
from models.chunk import FOLDER_TYPES, ChunkRecord, EmbeddingRecord, FolderType
from splitters import BaseTextSplitter
from stores import BaseIndexStore
from .base import (
    DEFAULT_MAX_WORKERS,
    DEFAULT_MIN_TEXT_CHARS,
    create_batch_embedder_from_config,
    create_index_store_from_config,
    create_splitter_from_config,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SourceDocument:
    folder_type: FolderType
    path: Path
    doc_name: str
    doc_path: str


class IngestionPipeline:
    """Builds a complete index from the handbook and example folders.

    A run extracts and chunks every document (optionally on a thread pool),
    embeds all chunks, and writes the index in one snapshot. A document that
    cannot be extracted is logged and skipped; an embedding failure aborts
    the run before anything is written.
    """

    def __init__(
        self,
        embedder: BatchEmbedder,
        splitter: BaseTextSplitter,
        store: BaseIndexStore,
        source_dirs: dict[str, Path],
        project_root: Path | None = None,
        extensions: tuple[str, ...] | list[str] = DEFAULT_EXTENSIONS,
        max_workers: int = DEFAULT_MAX_WORKERS,
        min_text_chars: int = DEFAULT_MIN_TEXT_CHARS,
        extractor_factory: Callable[[Path], BaseTextExtractor] = get_extractor_for_file,
    ):
        self.embedder = embedder
        self.splitter = splitter
        self.store = store
        self.source_dirs = source_dirs
        self.project_root = project_root or Path.cwd()
        self.extensions = tuple(extensions)
        self.max_workers = max(1, max_workers)
        self.min_text_chars = min_text_chars
        self.extractor_factory = extractor_factory

    @classmethod
    def from_config(
        cls, config: dict[str, Any], config_path: Path
    ) -> "IngestionPipeline":
        """Create pipeline from configuration dictionary.

        The embedder is built first so missing credentials fail the run
        before any document is touched.
        """
        embedder = create_batch_embedder_from_config(config)
        splitter = create_splitter_from_config(config)
        store = create_index_store_from_config(config, config_path)

        return cls(
            embedder=embedder,
            splitter=splitter,
            store=store,
            source_dirs=get_source_dirs(config, config_path),
            project_root=get_project_root(config_path),
            extensions=get_config_value(config, "sources.extensions", DEFAULT_EXTENSIONS),
            max_workers=get_config_value(
                config, "ingestion.max_workers", DEFAULT_MAX_WORKERS
            ),
            min_text_chars=get_config_value(
                config, "ingestion.min_text_chars", DEFAULT_MIN_TEXT_CHARS
            ),
        )

    def _relative_path(self, path: Path) -> str:
        try:
            return str(path.resolve().relative_to(self.project_root.resolve()))
        except ValueError:
            return str(path)

    def discover(self) -> list[SourceDocument]:
        """List source documents, handbooks first, each class sorted by name."""
        documents = []
        for folder_type in FOLDER_TYPES:
            directory = self.source_dirs.get(folder_type)
            if directory is None:
                continue

            seen_names: set[str] = set()
            for path in discover_documents(directory, self.extensions):
                if path.stem in seen_names:
                    logger.warning(
                        f"Skipping {path.name}: another {folder_type} document "
                        f"is already named {path.stem!r}"
                    )
                    continue
                seen_names.add(path.stem)
                documents.append(
                    SourceDocument(
                        folder_type=folder_type,
                        path=path,
                        doc_name=path.stem,
                        doc_path=self._relative_path(path),
                    )
                )
        return documents

    def _chunk_document(self, document: SourceDocument) -> list[ChunkRecord]:
        logger.info(f"Processing: {document.doc_path}")
        text = self.extractor_factory(document.path).extract_text(document.path)

        if len(text.strip()) < self.min_text_chars:
            logger.warning(
                f"Skipping {document.doc_name}: insufficient text extracted"
            )
            return []

        records = self.splitter.split_document(
            text, document.folder_type, document.doc_name, document.doc_path
        )
        logger.info(f"Extracted {len(records)} chunks from {document.doc_name}")
        return records

    def chunk_documents(
        self, documents: list[SourceDocument]
    ) -> tuple[list[ChunkRecord], list[SourceDocument]]:
        """Extract and chunk documents concurrently.

        Output follows the order of ``documents`` regardless of completion
        order, so chunk ids and their sequence are reproducible.

        Returns:
            Tuple of (chunks, documents that failed extraction).
        """
        per_document: list[list[ChunkRecord]] = [[] for _ in documents]
        failed: list[SourceDocument] = []

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = {
                executor.submit(self._chunk_document, document): position
                for position, document in enumerate(documents)
            }

            for future in as_completed(futures):
                position = futures[future]
                try:
                    per_document[position] = future.result()
                except ExtractionError as e:
                    logger.warning(
                        f"Failed to process {documents[position].doc_name}: {e}"
                    )
                    failed.append(documents[position])

        chunks = [record for records in per_document for record in records]
        failed.sort(key=lambda d: (FOLDER_TYPES.index(d.folder_type), d.doc_name))
        return chunks, failed

    def run(self) -> dict[str, Any]:
        """Run a full ingestion pass and replace the persisted index."""
        documents = self.discover()
        logger.info(f"Found {len(documents)} source documents")

        chunks, failed = self.chunk_documents(documents)
        if not chunks:
            raise IngestionError(
                "No chunks extracted. Check that source documents exist and are readable."
            )

        handbook_chunks = sum(1 for c in chunks if c.folder_type == "handbook")
        logger.info(
            f"Total chunks to embed: {len(chunks)} "
            f"({handbook_chunks} handbook, {len(chunks) - handbook_chunks} example)"
        )

        vectors = self.embedder.embed_texts([c.text for c in chunks])
        if len(vectors) != len(chunks):
            raise IngestionError(
                f"Embedding count {len(vectors)} does not match chunk count {len(chunks)}"
            )

        embeddings = [
            EmbeddingRecord(id=chunk.id, embedding=vector)
            for chunk, vector in zip(chunks, vectors)
        ]
        manifest = self.store.save(
            chunks,
            embeddings,
            embedding_provider=self.embedder.embedder.provider,
            embedding_model=self.embedder.model,
        )

        return {
            "documents": len(documents),
            "failed_documents": [d.doc_path for d in failed],
            "chunks": len(chunks),
            "handbook_chunks": handbook_chunks,
            "example_chunks": len(chunks) - handbook_chunks,
            "embeddings": len(embeddings),
            "run_id": manifest.run_id,
        }


def run_ingestion(config_path: Path = Path("config.toml")) -> dict[str, Any]:
    """Run the ingestion pipeline.

    Args:
        config_path: Path to configuration file.

    Returns:
        Dictionary with ingestion results.
    """
    config = load_config(config_path)
    pipeline = IngestionPipeline.from_config(config, config_path)
    return pipeline.run()
