import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

import openai
import pytest
import requests

sys.path.insert(0, str(Path(__file__).parent.parent.parent / "backend" / "src"))

from adapters import IndexedEmbedding, create_embedder, list_embedder_providers
from adapters.embedding import OpenAIEmbedder, OllamaEmbedder
from errors import ConfigurationError, EmbeddingServiceError


class TestOpenAIEmbedder:
    def test_embed_returns_embedding(self) -> None:
        mock_client = MagicMock()
        mock_response = MagicMock()
        mock_response.data = [MagicMock(index=0, embedding=[0.1, 0.2, 0.3])]
        mock_client.embeddings.create.return_value = mock_response

        embedder = OpenAIEmbedder(model="text-embedding-3-small", api_key="test-key")
        embedder.client = mock_client

        result = embedder.embed("test text")

        assert result == [0.1, 0.2, 0.3]
        mock_client.embeddings.create.assert_called_once_with(
            model="text-embedding-3-small", input="test text"
        )

    def test_embed_batch_keeps_returned_indices(self) -> None:
        mock_client = MagicMock()
        mock_response = MagicMock()
        mock_response.data = [
            MagicMock(index=1, embedding=[0.4, 0.5, 0.6]),
            MagicMock(index=0, embedding=[0.1, 0.2, 0.3]),
        ]
        mock_client.embeddings.create.return_value = mock_response

        embedder = OpenAIEmbedder(model="text-embedding-3-small", api_key="test-key")
        embedder.client = mock_client

        result = embedder.embed_batch(["text 1", "text 2"])

        assert result == [
            IndexedEmbedding(index=1, embedding=[0.4, 0.5, 0.6]),
            IndexedEmbedding(index=0, embedding=[0.1, 0.2, 0.3]),
        ]
        mock_client.embeddings.create.assert_called_once_with(
            model="text-embedding-3-small", input=["text 1", "text 2"]
        )

    def test_sdk_error_becomes_embedding_service_error(self) -> None:
        mock_client = MagicMock()
        mock_client.embeddings.create.side_effect = openai.OpenAIError("quota exceeded")

        embedder = OpenAIEmbedder(model="text-embedding-3-small", api_key="test-key")
        embedder.client = mock_client

        with pytest.raises(EmbeddingServiceError) as exc_info:
            embedder.embed_batch(["text"])

        assert "quota exceeded" in str(exc_info.value)

    def test_missing_api_key_is_configuration_error(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        with pytest.raises(ConfigurationError):
            OpenAIEmbedder(model="text-embedding-3-small", api_key="")

    def test_client_does_not_retry(self) -> None:
        embedder = OpenAIEmbedder(model="text-embedding-3-small", api_key="test-key")
        assert embedder.client.max_retries == 0

    def test_dimension_returns_correct_value(self) -> None:
        embedder = OpenAIEmbedder(model="text-embedding-3-small", api_key="test-key")
        assert embedder.dimension == 1536

        embedder_large = OpenAIEmbedder(
            model="text-embedding-3-large", api_key="test-key"
        )
        assert embedder_large.dimension == 3072


class TestOllamaEmbedder:
    def test_embed_returns_embedding(self) -> None:
        with patch("requests.Session.post") as mock_post:
            mock_response = MagicMock()
            mock_response.json.return_value = {"embedding": [0.1, 0.2, 0.3]}
            mock_response.raise_for_status = MagicMock()
            mock_post.return_value = mock_response

            embedder = OllamaEmbedder(model="nomic-embed-text")
            result = embedder.embed("test text")

            assert result == [0.1, 0.2, 0.3]
            mock_post.assert_called_once()
            call_args = mock_post.call_args
            assert call_args[1]["json"]["model"] == "nomic-embed-text"
            assert call_args[1]["json"]["prompt"] == "test text"

    def test_embed_batch_indexes_by_position(self) -> None:
        with patch("requests.Session.post") as mock_post:
            mock_response = MagicMock()
            # Ollama /api/embed returns "embeddings" in input order
            mock_response.json.return_value = {"embeddings": [[0.1] * 768, [0.2] * 768]}
            mock_response.raise_for_status = MagicMock()
            mock_post.return_value = mock_response

            embedder = OllamaEmbedder(model="nomic-embed-text", dimension=768)
            result = embedder.embed_batch(["text 1", "text 2"])

            assert [item.index for item in result] == [0, 1]
            assert result[1].embedding == [0.2] * 768

    def test_transport_failure_becomes_embedding_service_error(self) -> None:
        with patch("requests.Session.post") as mock_post:
            mock_post.side_effect = requests.exceptions.RequestException(
                "Connection failed"
            )

            embedder = OllamaEmbedder(model="nomic-embed-text")

            with pytest.raises(EmbeddingServiceError) as exc_info:
                embedder.embed_batch(["text 1", "text 2"])

            assert "Connection failed" in str(exc_info.value)
            assert mock_post.call_count == 1

    def test_http_error_carries_status_code(self) -> None:
        with patch("requests.Session.post") as mock_post:
            mock_response = MagicMock()
            mock_response.raise_for_status.side_effect = requests.exceptions.HTTPError(
                "500 Server Error", response=MagicMock(status_code=500)
            )
            mock_post.return_value = mock_response

            embedder = OllamaEmbedder(model="nomic-embed-text")

            with pytest.raises(EmbeddingServiceError) as exc_info:
                embedder.embed("text")

            assert exc_info.value.status_code == 500

    def test_missing_embeddings_key_is_an_error(self) -> None:
        with patch("requests.Session.post") as mock_post:
            mock_response = MagicMock()
            mock_response.json.return_value = {"error": "model not found"}
            mock_post.return_value = mock_response

            embedder = OllamaEmbedder(model="nomic-embed-text")

            with pytest.raises(EmbeddingServiceError):
                embedder.embed_batch(["text"])

    def test_dimension_returns_configured_value(self) -> None:
        embedder = OllamaEmbedder(model="nomic-embed-text", dimension=1024)
        assert embedder.dimension == 1024


class TestEmbedderRegistry:
    def test_builtin_providers_are_registered(self) -> None:
        assert {"openai", "ollama"} <= set(list_embedder_providers())

    def test_unknown_provider_is_configuration_error(self) -> None:
        with pytest.raises(ConfigurationError):
            create_embedder("nonexistent", model="x")

    def test_create_embedder_passes_kwargs(self) -> None:
        embedder = create_embedder("ollama", model="nomic-embed-text", dimension=384)
        assert isinstance(embedder, OllamaEmbedder)
        assert embedder.dimension == 384
