from typing import Any, Type

from adapters.base import BaseEmbedder, IndexedEmbedding
from errors import ConfigurationError

_EMBEDDER_REGISTRY: dict[str, Type[BaseEmbedder]] = {}


def register_embedder(provider: str, cls: Type[BaseEmbedder]) -> None:
    """Make ``cls`` available as ``[embedding].provider = "<provider>"``."""
    _EMBEDDER_REGISTRY[provider] = cls


def create_embedder(provider: str, **kwargs: Any) -> BaseEmbedder:
    """Instantiate the embedder registered under ``provider``.

    Keyword arguments (model, api_key, base_url, timeout ...) go straight to
    the provider class.

    Raises:
        ConfigurationError: If no embedder is registered under that name, or
            the provider rejects its settings.
    """
    try:
        cls = _EMBEDDER_REGISTRY[provider]
    except KeyError:
        raise ConfigurationError(
            f"Unknown embedding provider {provider!r}; "
            f"expected one of {sorted(_EMBEDDER_REGISTRY)}"
        ) from None
    return cls(**kwargs)


def list_embedder_providers() -> list[str]:
    return sorted(_EMBEDDER_REGISTRY)


from adapters.batching import BatchEmbedder
from adapters.embedding import OllamaEmbedder, OpenAIEmbedder

register_embedder(OpenAIEmbedder.provider, OpenAIEmbedder)
register_embedder(OllamaEmbedder.provider, OllamaEmbedder)

__all__ = [
    "BaseEmbedder",
    "BatchEmbedder",
    "IndexedEmbedding",
    "OllamaEmbedder",
    "OpenAIEmbedder",
    "create_embedder",
    "list_embedder_providers",
    "register_embedder",
]
