from pathlib import Path

import pytest

from factories import MockEmbedder
from stores import JSONLIndexStore


@pytest.fixture
def mock_embedder() -> MockEmbedder:
    return MockEmbedder(dimension=64)


@pytest.fixture
def temp_index_dir(tmp_path: Path) -> Path:
    index_dir = tmp_path / "rag_index"
    index_dir.mkdir()
    return index_dir


@pytest.fixture
def temp_index_store(temp_index_dir: Path) -> JSONLIndexStore:
    return JSONLIndexStore(temp_index_dir)


@pytest.fixture
def temp_source_dirs(tmp_path: Path) -> dict[str, Path]:
    handbooks = tmp_path / "tcp handbooks"
    examples = tmp_path / "tcp examples"
    handbooks.mkdir()
    examples.mkdir()
    return {"handbook": handbooks, "example": examples}


@pytest.fixture
def temp_config(tmp_path: Path) -> Path:
    config_content = """
[embedding]
provider = "openai"
model = "text-embedding-3-small"
api_key = "${TEST_OPENAI_KEY:-test-key}"
batch_size = 2
cooldown_ms = 0

[sources]
handbooks = "tcp handbooks"
examples = "tcp examples"
extensions = [".txt"]

[chunking]
chunk_size = 500
chunk_overlap = 100

[storage]
directory = "rag_index"

[retrieval]
top_k = 4
max_k = 10
"""
    config_path = tmp_path / "config.toml"
    config_path.write_text(config_content)
    return config_path
