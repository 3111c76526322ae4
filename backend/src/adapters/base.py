from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class IndexedEmbedding:
    """A vector paired with the position of its input text in the request."""

    index: int
    embedding: list[float]


class BaseEmbedder(ABC):
    """Abstract base class for embedding providers.

    Providers translate every upstream failure into ``EmbeddingServiceError``
    and never retry on their own.
    """

    provider: str = "base"

    def __init__(self, model: str, **kwargs: Any):
        self.model = model
        self.kwargs = kwargs

    @abstractmethod
    def embed(self, text: str) -> list[float]:
        pass

    @abstractmethod
    def embed_batch(self, texts: list[str]) -> list[IndexedEmbedding]:
        """Embed one request's worth of texts.

        Items may come back in any order; each carries the index of the
        input text it belongs to.
        """
        pass

    @property
    @abstractmethod
    def dimension(self) -> int:
        pass
