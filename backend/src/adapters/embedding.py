import os
from typing import Any, Optional

import openai
import requests
from openai import OpenAI
from requests.adapters import HTTPAdapter

from adapters.base import BaseEmbedder, IndexedEmbedding
from errors import ConfigurationError, EmbeddingServiceError

EMBEDDING_DIMENSIONS = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
}

DEFAULT_TIMEOUT = 60.0
DEFAULT_OLLAMA_DIMENSION = 768


class OpenAIEmbedder(BaseEmbedder):
    """OpenAI embedding provider.

    The SDK's built-in retries are disabled so a failed request surfaces
    immediately.
    """

    provider = "openai"

    def __init__(self, model: str = "text-embedding-3-small", **kwargs: Any):
        super().__init__(model, **kwargs)
        api_key = kwargs.pop("api_key", None) or os.environ.get("OPENAI_API_KEY")
        if not api_key:
            raise ConfigurationError(
                "OPENAI_API_KEY environment variable required for openai provider"
            )
        base_url = kwargs.pop("base_url", None) or None
        timeout = float(kwargs.pop("timeout", DEFAULT_TIMEOUT))

        self.client = OpenAI(
            api_key=api_key, base_url=base_url, timeout=timeout, max_retries=0
        )
        self._dimension: Optional[int] = kwargs.get("dimensions")

    @property
    def dimension(self) -> int:
        return self._dimension or EMBEDDING_DIMENSIONS.get(self.model, 1536)

    def _create_embedding_params(self, input_data: str | list[str]) -> dict[str, Any]:
        """Build parameters for embedding API call."""
        params = {"model": self.model, "input": input_data}
        if self._dimension is not None:
            params["dimensions"] = self._dimension
        return params

    def _create(self, input_data: str | list[str]) -> Any:
        try:
            return self.client.embeddings.create(
                **self._create_embedding_params(input_data)
            )
        except openai.APIStatusError as e:
            raise EmbeddingServiceError(
                f"OpenAI API error: {e.status_code} - {e.message}",
                status_code=e.status_code,
            ) from e
        except openai.OpenAIError as e:
            raise EmbeddingServiceError(f"OpenAI request failed: {e}") from e

    def embed(self, text: str) -> list[float]:
        response = self._create(text)
        if not response.data:
            raise EmbeddingServiceError("OpenAI returned no embedding")
        return response.data[0].embedding

    def embed_batch(self, texts: list[str]) -> list[IndexedEmbedding]:
        if not texts:
            return []
        response = self._create(texts)
        return [
            IndexedEmbedding(index=item.index, embedding=item.embedding)
            for item in response.data
        ]


class OllamaEmbedder(BaseEmbedder):
    """Ollama local embedding provider with connection pooling.

    ``/api/embed`` answers in input order without indices, so items are
    indexed by response position.
    """

    provider = "ollama"

    def __init__(
        self,
        model: str = "nomic-embed-text",
        base_url: str = "http://localhost:11434",
        timeout: float = DEFAULT_TIMEOUT,
        pool_size: int = 10,
        **kwargs: Any,
    ):
        super().__init__(model, **kwargs)
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._dimension = kwargs.get("dimension", DEFAULT_OLLAMA_DIMENSION)
        self.session = requests.Session()
        # no transport-level retries
        self.session.mount(self.base_url, HTTPAdapter(pool_maxsize=pool_size, max_retries=0))

    @property
    def dimension(self) -> int:
        return self._dimension

    def _post(self, endpoint: str, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            response = self.session.post(
                f"{self.base_url}{endpoint}", json=payload, timeout=self.timeout
            )
            response.raise_for_status()
            return response.json()
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise EmbeddingServiceError(
                f"Ollama API error: {status} - {e}", status_code=status
            ) from e
        except (requests.exceptions.RequestException, ValueError) as e:
            raise EmbeddingServiceError(f"Ollama request failed: {e}") from e

    def embed(self, text: str) -> list[float]:
        data = self._post("/api/embeddings", {"model": self.model, "prompt": text})
        if "embedding" not in data:
            raise EmbeddingServiceError("Ollama response missing 'embedding'")
        return data["embedding"]

    def embed_batch(self, texts: list[str]) -> list[IndexedEmbedding]:
        if not texts:
            return []
        data = self._post("/api/embed", {"model": self.model, "input": texts})
        embeddings = data.get("embeddings")
        if embeddings is None:
            raise EmbeddingServiceError("Ollama response missing 'embeddings'")
        return [
            IndexedEmbedding(index=i, embedding=vector)
            for i, vector in enumerate(embeddings)
        ]
