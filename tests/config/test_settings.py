"""Tests for MercurySettings: unified settings with TOML source."""

from pathlib import Path

import pytest

from mercury.config.settings import DATA_DIRNAME, DB_FILENAME, ConfigError, MercurySettings


class TestDefaults:
    def test_all_defaults(self, tmp_path: Path) -> None:
        settings = MercurySettings.from_cli(root=tmp_path)
        assert settings.root == tmp_path
        assert settings.config_path is None
        assert settings.json_output is False
        assert settings.quiet is False
        assert settings.paging.default_page_size == 100

    def test_default_database_url(self, tmp_path: Path) -> None:
        settings = MercurySettings.from_cli(root=tmp_path)
        assert settings.database_url == f"sqlite:///{tmp_path / DATA_DIRNAME / DB_FILENAME}"

    def test_frozen(self, tmp_path: Path) -> None:
        settings = MercurySettings.from_cli(root=tmp_path)
        with pytest.raises(Exception):
            settings.quiet = True  # type: ignore[misc]


class TestTomlSource:
    def test_loads_from_toml(self, tmp_path: Path) -> None:
        (tmp_path / "mercury.toml").write_text(
            '[search]\nvectors_path = "data/names.vec"\n[paging]\ndefault_page_size = 20\n'
        )
        settings = MercurySettings.from_cli(root=tmp_path)
        assert settings.config_path == tmp_path / "mercury.toml"
        assert settings.paging.default_page_size == 20
        assert settings.paging.max_page_size == 1000  # default preserved
        assert settings.vectors_path == tmp_path / "data" / "names.vec"

    def test_root_from_config_location(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        (tmp_path / "mercury.toml").write_text("")
        child = tmp_path / "sub"
        child.mkdir()
        monkeypatch.chdir(child)
        settings = MercurySettings.from_cli()
        assert settings.root == tmp_path.resolve()

    def test_explicit_config_path(self, tmp_path: Path) -> None:
        custom = tmp_path / "custom.toml"
        custom.write_text('[database]\nurl = "sqlite:///custom.db"\n')
        settings = MercurySettings.from_cli(config_path=str(custom), root=tmp_path)
        assert settings.database_url == "sqlite:///custom.db"

    def test_absolute_vectors_path_kept(self, tmp_path: Path) -> None:
        vec = tmp_path / "abs.vec"
        (tmp_path / "mercury.toml").write_text(f'[search]\nvectors_path = "{vec}"\n')
        settings = MercurySettings.from_cli(root=tmp_path)
        assert settings.vectors_path == vec

    def test_invalid_toml(self, tmp_path: Path) -> None:
        (tmp_path / "mercury.toml").write_text("[paging\n")
        with pytest.raises(ConfigError, match="Invalid TOML"):
            MercurySettings.from_cli(root=tmp_path)


class TestPriority:
    def test_env_overrides_toml(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (tmp_path / "mercury.toml").write_text("[paging]\ndefault_page_size = 20\n")
        monkeypatch.setenv("MERCURY_PAGING__DEFAULT_PAGE_SIZE", "30")
        settings = MercurySettings.from_cli(root=tmp_path)
        assert settings.paging.default_page_size == 30

    def test_cli_flags_override_env(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("MERCURY_QUIET", "false")
        settings = MercurySettings.from_cli(root=tmp_path, quiet=True)
        assert settings.quiet is True

    def test_toml_cannot_set_flags_or_root(self, tmp_path: Path) -> None:
        (tmp_path / "mercury.toml").write_text('quiet = true\nroot = "/elsewhere"\n')
        settings = MercurySettings.from_cli(root=tmp_path)
        assert settings.quiet is False
        assert settings.root == tmp_path

    def test_missing_explicit_config_ignored(self, tmp_path: Path) -> None:
        settings = MercurySettings.from_cli(config_path=str(tmp_path / "nope.toml"), root=tmp_path)
        assert settings.config_path is None
