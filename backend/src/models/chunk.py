"""Persisted index records."""

from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

FolderType = Literal["handbook", "example"]
FOLDER_TYPES: tuple[FolderType, ...] = ("handbook", "example")

MIN_CHUNK_CHARS = 50


class ChunkRecord(BaseModel):
    """One unit of retrievable text.

    Serialized with camelCase keys (``folderType``, ``docName`` ...), one
    record per line of the chunks file.

    Attributes:
        id: Stable identifier derived from (folder type, doc name, sequence).
        folder_type: Document class, "handbook" or "example".
        doc_name: Filename stem of the source document.
        doc_path: Path relative to the project root, for display only.
        page_number: Best-effort page number, None when not detected.
        section_or_figure: Best-effort label such as "Table 6C-2", or None.
        text: The trimmed chunk text.
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    id: str = Field(min_length=1)
    folder_type: FolderType
    doc_name: str
    doc_path: str
    page_number: Optional[int] = None
    section_or_figure: Optional[str] = None
    text: str

    @field_validator("text")
    @classmethod
    def _text_long_enough(cls, value: str) -> str:
        if len(value.strip()) < MIN_CHUNK_CHARS:
            raise ValueError(
                f"chunk text must be at least {MIN_CHUNK_CHARS} characters"
            )
        return value


class EmbeddingRecord(BaseModel):
    """The vector for the chunk with the same ``id``."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    embedding: list[float] = Field(min_length=1)


class IndexManifest(BaseModel):
    """Describes one completed ingestion run.

    Written after both record files so a reader can verify that the chunk
    and embedding files belong to the same run.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    run_id: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    embedding_provider: str
    embedding_model: str
    dimension: int
    chunk_count: int
    embedding_count: int
    chunks_sha256: str
    embeddings_sha256: str
