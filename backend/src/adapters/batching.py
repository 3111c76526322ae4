import logging
import math
import time
from typing import Callable

from adapters.base import BaseEmbedder, IndexedEmbedding
from errors import EmbeddingBatchError, EmbeddingServiceError

logger = logging.getLogger(__name__)

DEFAULT_EMBED_BATCH_SIZE = 100
DEFAULT_COOLDOWN_SECONDS = 0.5


class BatchEmbedder:
    """Embeds an ordered list of texts in size-bounded, throttled batches.

    Batches are sent one after another with a cooldown between them (none
    after the last). Each batch's items are put back into input order by
    their returned index before being appended, so the output lines up with
    the input. Any failed batch aborts the whole call with
    ``EmbeddingBatchError``; nothing is retried here.
    """

    def __init__(
        self,
        embedder: BaseEmbedder,
        batch_size: int = DEFAULT_EMBED_BATCH_SIZE,
        cooldown_seconds: float = DEFAULT_COOLDOWN_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self.embedder = embedder
        self.batch_size = batch_size
        self.cooldown_seconds = max(cooldown_seconds, 0.0)
        self._sleep = sleep

    @property
    def model(self) -> str:
        return self.embedder.model

    def embed_texts(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []

        total_batches = math.ceil(len(texts) / self.batch_size)
        vectors: list[list[float]] = []

        for batch_num, start in enumerate(range(0, len(texts), self.batch_size), 1):
            batch = texts[start : start + self.batch_size]
            logger.info(
                f"Generating embeddings for batch {batch_num}/{total_batches}..."
            )

            try:
                items = self.embedder.embed_batch(batch)
            except EmbeddingServiceError as e:
                logger.error(f"Embedding batch {batch_num}/{total_batches} failed: {e}")
                raise EmbeddingBatchError(
                    f"Embedding batch {batch_num}/{total_batches} failed: {e}",
                    batch_number=batch_num,
                    total_batches=total_batches,
                    status_code=e.status_code,
                ) from e

            vectors.extend(
                self._restore_order(items, len(batch), batch_num, total_batches)
            )

            if start + self.batch_size < len(texts) and self.cooldown_seconds:
                self._sleep(self.cooldown_seconds)

        return vectors

    @staticmethod
    def _restore_order(
        items: list[IndexedEmbedding],
        expected: int,
        batch_num: int,
        total_batches: int,
    ) -> list[list[float]]:
        """Sort a batch response by index, checking every input got one vector."""
        indices = sorted(item.index for item in items)
        if indices != list(range(expected)):
            raise EmbeddingBatchError(
                f"Embedding batch {batch_num}/{total_batches} returned "
                f"{len(items)} vectors with indices {indices[:10]}, "
                f"expected indices 0..{expected - 1}",
                batch_number=batch_num,
                total_batches=total_batches,
            )
        return [item.embedding for item in sorted(items, key=lambda item: item.index)]
