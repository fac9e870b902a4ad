"""Tests for config discovery and loading."""

import tomllib
from pathlib import Path

import pytest
from pydantic import ValidationError

from mercury.config.discovery import (
    CONFIG_ENV_VAR,
    CONFIG_FILENAME,
    find_config,
    load_config,
    read_toml,
)
from mercury.config.models import MercuryConfig


class TestFindConfig:
    def test_finds_in_current_dir(self, tmp_path: Path) -> None:
        config_file = tmp_path / CONFIG_FILENAME
        config_file.write_text("[paging]\ndefault_page_size = 10\n")
        assert find_config(tmp_path) == config_file

    def test_walks_up(self, tmp_path: Path) -> None:
        config_file = tmp_path / CONFIG_FILENAME
        config_file.write_text("")
        child = tmp_path / "a" / "b" / "c"
        child.mkdir(parents=True)
        assert find_config(child) == config_file

    def test_returns_none_when_not_found(self, tmp_path: Path) -> None:
        child = tmp_path / "empty"
        child.mkdir()
        assert find_config(child) is None

    def test_env_var_override(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        config_file = tmp_path / "custom.toml"
        config_file.write_text("")
        monkeypatch.setenv(CONFIG_ENV_VAR, str(config_file))
        assert find_config(tmp_path / "elsewhere") == config_file

    def test_env_var_directory(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        config_file = tmp_path / CONFIG_FILENAME
        config_file.write_text("")
        monkeypatch.setenv(CONFIG_ENV_VAR, str(tmp_path))
        assert find_config(tmp_path / "elsewhere") == config_file

    def test_env_var_missing_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (tmp_path / CONFIG_FILENAME).write_text("")
        monkeypatch.setenv(CONFIG_ENV_VAR, str(tmp_path / "nope.toml"))
        assert find_config(tmp_path) is None


class TestLoadConfig:
    def test_loads_from_file(self, tmp_path: Path) -> None:
        config_file = tmp_path / CONFIG_FILENAME
        config_file.write_text(
            '[search]\nvectors_path = "names.vec"\nlowercase = false\n'
            "[paging]\ndefault_page_size = 20\nmax_page_size = 50\n"
        )
        cfg = load_config(config_file)
        assert cfg.search.vectors_path == Path("names.vec")
        assert cfg.search.lowercase is False
        assert cfg.paging.max_page_size == 50
        assert cfg.paging.default_page_size == 20
        assert cfg.search.index_name == "user-names"  # default

    def test_returns_defaults_when_no_file(self, tmp_path: Path) -> None:
        assert load_config(cwd=tmp_path) == MercuryConfig()

    def test_discovers_via_cwd(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILENAME).write_text('[database]\nurl = "sqlite://"\n')
        assert load_config(cwd=tmp_path).database.url == "sqlite://"

    def test_invalid_value(self, tmp_path: Path) -> None:
        config_file = tmp_path / CONFIG_FILENAME
        config_file.write_text("[paging]\ndefault_page_size = 0\n")
        with pytest.raises(ValidationError):
            load_config(config_file)

    def test_malformed_toml(self, tmp_path: Path) -> None:
        config_file = tmp_path / CONFIG_FILENAME
        config_file.write_text("[paging\n")
        with pytest.raises(tomllib.TOMLDecodeError):
            load_config(config_file)


class TestReadToml:
    def test_reads_tables(self, tmp_path: Path) -> None:
        config_file = tmp_path / CONFIG_FILENAME
        config_file.write_text('[search]\nindex_name = "names"\n', encoding="utf-8")
        assert read_toml(config_file) == {"search": {"index_name": "names"}}
