"""Tests for InitService: project bootstrap."""

from __future__ import annotations

import tomllib
from pathlib import Path

from mercury.services.init import InitService, render_config


class TestRenderConfig:
    def test_without_vectors(self) -> None:
        parsed = tomllib.loads(render_config(None))
        assert "vectors_path" not in parsed["search"]
        assert parsed["paging"]["default_page_size"] == 100

    def test_with_vectors_path_escaped(self) -> None:
        path = Path('C:\\data\\"vec".txt')
        parsed = tomllib.loads(render_config(path))
        assert parsed["search"]["vectors_path"] == str(path)


class TestInitProject:
    def test_creates_config_and_database(self, tmp_path: Path, vectors_file: Path) -> None:
        root = tmp_path / "proj"
        result = InitService.init_project(root, vectors_path=vectors_file)
        assert result.ok, result.error
        assert (root / "mercury.toml").is_file()
        assert (root / ".mercury" / "mercury.db").is_file()
        assert result.data["revision"] == "001_baseline"
        assert result.data["vectors_path"] == str(vectors_file)
        assert result.warnings == []

    def test_warns_without_vectors(self, tmp_path: Path) -> None:
        result = InitService.init_project(tmp_path)
        assert result.ok
        assert any("word-vector" in w for w in result.warnings)

    def test_keeps_existing_config(self, tmp_path: Path, vectors_file: Path) -> None:
        config = tmp_path / "mercury.toml"
        config.write_text('[search]\nvectors_path = "vectors.txt"\n', encoding="utf-8")
        result = InitService.init_project(tmp_path)
        assert result.ok
        assert "Kept existing mercury.toml" in result.warnings
        assert config.read_text(encoding="utf-8").startswith("[search]")
        assert result.data["vectors_path"] == "vectors.txt"

    def test_rerun_is_idempotent(self, tmp_path: Path, vectors_file: Path) -> None:
        assert InitService.init_project(tmp_path, vectors_path=vectors_file).ok
        again = InitService.init_project(tmp_path, vectors_path=vectors_file)
        assert again.ok
        assert again.data["revision"] == "001_baseline"

    def test_invalid_config(self, tmp_path: Path) -> None:
        (tmp_path / "mercury.toml").write_text(
            "[paging]\ndefault_page_size = 0\n", encoding="utf-8"
        )
        result = InitService.init_project(tmp_path)
        assert not result.ok
        assert result.error is not None
        assert result.error.code == "INVALID_CONFIG"

    def test_malformed_toml(self, tmp_path: Path) -> None:
        (tmp_path / "mercury.toml").write_text("[search\n", encoding="utf-8")
        result = InitService.init_project(tmp_path)
        assert result.error is not None
        assert result.error.code == "INVALID_CONFIG"
