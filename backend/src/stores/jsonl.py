import fcntl
import hashlib
import logging
import os
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from errors import IndexCorruptionError, IndexNotFoundError
from models.chunk import ChunkRecord, EmbeddingRecord, IndexManifest
from .base import BaseIndexStore, IndexSnapshot

logger = logging.getLogger(__name__)

CHUNKS_FILENAME = "chunks.jsonl"
EMBEDDINGS_FILENAME = "embeddings.jsonl"
MANIFEST_FILENAME = "manifest.json"
LOCK_FILENAME = ".index.lock"

RecordT = TypeVar("RecordT", bound=BaseModel)


class JSONLIndexStore(BaseIndexStore):
    """Line-delimited JSON index: a chunks file and an embeddings file.

    Each save writes temporary siblings and moves them into place under an
    exclusive lock, then writes ``manifest.json`` with the digests of both
    files. Loads take a shared lock, so they never observe a half-written
    pair, and verify the digests when a manifest is present.
    """

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    @property
    def chunks_path(self) -> Path:
        return self.directory / CHUNKS_FILENAME

    @property
    def embeddings_path(self) -> Path:
        return self.directory / EMBEDDINGS_FILENAME

    @property
    def manifest_path(self) -> Path:
        return self.directory / MANIFEST_FILENAME

    def exists(self) -> bool:
        return self.chunks_path.exists() and self.embeddings_path.exists()

    @contextmanager
    def _locked(self, shared: bool) -> Iterator[None]:
        self.directory.mkdir(parents=True, exist_ok=True)
        with open(self.directory / LOCK_FILENAME, "a") as lock_file:
            fcntl.flock(lock_file.fileno(), fcntl.LOCK_SH if shared else fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)

    def save(
        self,
        chunks: list[ChunkRecord],
        embeddings: list[EmbeddingRecord],
        embedding_provider: str,
        embedding_model: str,
    ) -> IndexManifest:
        chunk_ids = [c.id for c in chunks]
        if len(set(chunk_ids)) != len(chunk_ids):
            raise ValueError("Chunk ids must be unique within an index")
        if set(chunk_ids) != {e.id for e in embeddings} or len(embeddings) != len(chunks):
            raise ValueError("Every chunk must have exactly one embedding")

        dimensions = {len(e.embedding) for e in embeddings}
        if len(dimensions) > 1:
            raise ValueError(f"Embeddings have mixed dimensions: {sorted(dimensions)}")

        with self._locked(shared=False):
            chunks_sha = self._write_snapshot(self.chunks_path, chunks, by_alias=True)
            embeddings_sha = self._write_snapshot(self.embeddings_path, embeddings)

            manifest = IndexManifest(
                run_id=uuid.uuid4().hex,
                embedding_provider=embedding_provider,
                embedding_model=embedding_model,
                dimension=dimensions.pop() if dimensions else 0,
                chunk_count=len(chunks),
                embedding_count=len(embeddings),
                chunks_sha256=chunks_sha,
                embeddings_sha256=embeddings_sha,
            )
            tmp_manifest = self.manifest_path.with_name(MANIFEST_FILENAME + ".tmp")
            tmp_manifest.write_text(
                manifest.model_dump_json(by_alias=True, indent=2), encoding="utf-8"
            )
            os.replace(tmp_manifest, self.manifest_path)

        logger.info(
            f"Wrote {len(chunks)} chunks and {len(embeddings)} embeddings "
            f"to {self.directory} (run {manifest.run_id})"
        )
        return manifest

    @staticmethod
    def _write_snapshot(
        path: Path, records: list[BaseModel], by_alias: bool = False
    ) -> str:
        """Write one record per line to a temp file, then move it over ``path``."""
        hasher = hashlib.sha256()
        tmp_path = path.with_name(path.name + ".tmp")
        try:
            with open(tmp_path, "wb") as f:
                for record in records:
                    line = (record.model_dump_json(by_alias=by_alias) + "\n").encode(
                        "utf-8"
                    )
                    f.write(line)
                    hasher.update(line)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise
        return hasher.hexdigest()

    def load(self) -> IndexSnapshot:
        if not self.exists():
            raise IndexNotFoundError(
                f"Index not found in {self.directory}. Run the ingestion script first."
            )

        with self._locked(shared=True):
            chunks_data = self.chunks_path.read_bytes()
            embeddings_data = self.embeddings_path.read_bytes()
            manifest_data = (
                self.manifest_path.read_bytes() if self.manifest_path.exists() else None
            )

        manifest = self._verify_manifest(manifest_data, chunks_data, embeddings_data)

        chunks = self._parse_lines(self.chunks_path, chunks_data, ChunkRecord)
        embeddings = self._parse_lines(
            self.embeddings_path, embeddings_data, EmbeddingRecord
        )
        self._check_unique_ids(self.chunks_path, chunks)
        self._check_unique_ids(self.embeddings_path, embeddings)
        self._check_dimensions(embeddings, manifest)

        logger.info(
            f"Loaded {len(chunks)} chunks and {len(embeddings)} embeddings "
            f"from {self.directory}"
        )
        return IndexSnapshot(chunks=chunks, embeddings=embeddings, manifest=manifest)

    def _verify_manifest(
        self,
        manifest_data: Optional[bytes],
        chunks_data: bytes,
        embeddings_data: bytes,
    ) -> Optional[IndexManifest]:
        if manifest_data is None:
            logger.warning(
                f"No {MANIFEST_FILENAME} in {self.directory}; "
                "chunk/embedding files cannot be checked against each other"
            )
            return None

        try:
            manifest = IndexManifest.model_validate_json(manifest_data)
        except ValidationError as e:
            raise IndexCorruptionError(
                f"Malformed {MANIFEST_FILENAME}: {e}", path=str(self.manifest_path)
            ) from e

        for path, data, expected in (
            (self.chunks_path, chunks_data, manifest.chunks_sha256),
            (self.embeddings_path, embeddings_data, manifest.embeddings_sha256),
        ):
            if hashlib.sha256(data).hexdigest() != expected:
                raise IndexCorruptionError(
                    f"{path.name} does not match the manifest of run "
                    f"{manifest.run_id}; re-run ingestion",
                    path=str(path),
                )
        return manifest

    @staticmethod
    def _parse_lines(
        path: Path, data: bytes, model_cls: Type[RecordT]
    ) -> list[RecordT]:
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise IndexCorruptionError(
                f"{path.name} is not valid UTF-8: {e}", path=str(path)
            ) from e

        records = []
        for line_number, line in enumerate(text.split("\n"), 1):
            if not line.strip():
                continue
            try:
                records.append(model_cls.model_validate_json(line))
            except ValidationError as e:
                raise IndexCorruptionError(
                    f"Malformed record in {path.name} at line {line_number}: "
                    f"{e.errors()[0]['msg'] if e.errors() else e}",
                    path=str(path),
                    line_number=line_number,
                ) from e
        return records

    @staticmethod
    def _check_unique_ids(path: Path, records: list[BaseModel]) -> None:
        seen: set[str] = set()
        for record in records:
            if record.id in seen:
                raise IndexCorruptionError(
                    f"Duplicate id {record.id!r} in {path.name}", path=str(path)
                )
            seen.add(record.id)

    def _check_dimensions(
        self, embeddings: list[EmbeddingRecord], manifest: Optional[IndexManifest]
    ) -> None:
        dimensions = {len(e.embedding) for e in embeddings}
        if manifest is not None and embeddings:
            dimensions.add(manifest.dimension)
        if len(dimensions) > 1:
            raise IndexCorruptionError(
                f"Embeddings have inconsistent dimensions: {sorted(dimensions)}",
                path=str(self.embeddings_path),
            )
