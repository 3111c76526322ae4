import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "backend" / "src"))

from config import (
    find_config_path,
    get_config_value,
    get_index_dir,
    get_project_root,
    get_source_dirs,
    load_config,
    resolve_path,
)
from errors import ConfigurationError
from pipelines import create_splitter_from_config


class TestLoadConfig:
    def test_env_default_is_used_when_unset(
        self, temp_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv("TEST_OPENAI_KEY", raising=False)
        config = load_config(temp_config)
        assert config["embedding"]["api_key"] == "test-key"

    def test_env_value_overrides_default(
        self, temp_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("TEST_OPENAI_KEY", "from-env")
        config = load_config(temp_config)
        assert config["embedding"]["api_key"] == "from-env"

    def test_substitution_reaches_lists(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("DOC_EXT", ".md")
        config_path = tmp_path / "config.toml"
        config_path.write_text('[sources]\nextensions = [".pdf", "${DOC_EXT}"]\n')
        assert load_config(config_path)["sources"]["extensions"] == [".pdf", ".md"]

    def test_missing_file_is_configuration_error(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError):
            load_config(tmp_path / "absent.toml")

    def test_invalid_toml_is_configuration_error(self, tmp_path: Path) -> None:
        config_path = tmp_path / "config.toml"
        config_path.write_text("[embedding\nmodel = ")
        with pytest.raises(ConfigurationError):
            load_config(config_path)


class TestConfigAccessors:
    def test_get_config_value(self) -> None:
        config = {"retrieval": {"top_k": 4}}
        assert get_config_value(config, "retrieval.top_k") == 4
        assert get_config_value(config, "retrieval.max_k", 20) == 20
        assert get_config_value(config, "coverage.min_score", 0.3) == 0.3

    def test_resolve_path(self, tmp_path: Path) -> None:
        config_path = tmp_path / "config.toml"
        assert resolve_path("rag_index", config_path) == (tmp_path / "rag_index").resolve()
        assert resolve_path("/abs/index", config_path) == Path("/abs/index")

    def test_directories_resolve_against_config_file(self, temp_config: Path) -> None:
        config = load_config(temp_config)
        root = temp_config.parent.resolve()

        assert get_project_root(temp_config) == root
        assert get_index_dir(config, temp_config) == root / "rag_index"
        assert get_source_dirs(config, temp_config) == {
            "handbook": root / "tcp handbooks",
            "example": root / "tcp examples",
        }

    def test_source_dir_defaults(self, tmp_path: Path) -> None:
        source_dirs = get_source_dirs({}, tmp_path / "config.toml")
        assert source_dirs["handbook"].name == "tcp handbooks"
        assert source_dirs["example"].name == "tcp examples"
        assert get_index_dir({}, tmp_path / "config.toml").name == "rag_index"

    def test_overlap_not_smaller_than_window_is_rejected(self) -> None:
        with pytest.raises(ConfigurationError):
            create_splitter_from_config({"chunking": {"chunk_size": 100, "chunk_overlap": 100}})

    def test_find_config_path(
        self, temp_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        explicit = Path("/somewhere/else.toml")
        assert find_config_path(explicit) == explicit

        monkeypatch.chdir(temp_config.parent)
        assert find_config_path() == Path("config.toml")
