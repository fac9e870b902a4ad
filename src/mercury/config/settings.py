"""MercurySettings: one frozen object for CLI flags, env vars and mercury.toml.

Sources, strongest first:

1. keyword arguments (the CLI flags)
2. ``MERCURY_*`` environment variables, ``__`` between section and key
   (``MERCURY_PAGING__MAX_PAGE_SIZE=50``)
3. the ``[database]``, ``[search]`` and ``[paging]`` tables of mercury.toml
4. defaults from :mod:`mercury.config.models`
"""

from __future__ import annotations

import tomllib
from contextvars import ContextVar
from pathlib import Path
from typing import Any

from pydantic import Field
from pydantic.fields import FieldInfo
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from mercury.config.discovery import find_config, read_toml
from mercury.config.models import DatabaseConfig, PagingConfig, SearchConfig

DATA_DIRNAME = ".mercury"
DB_FILENAME = "mercury.db"

# Only these tables are read from the file; flags and root are not.
TOML_SECTIONS = ("database", "search", "paging")

# Config file for the settings object under construction.
_active_toml: ContextVar[Path | None] = ContextVar("_active_toml", default=None)


class ConfigError(ValueError):
    """The config file exists but cannot be parsed."""


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Section tables of one ``mercury.toml``."""

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._tables: dict[str, Any] = {}
        if toml_path is None or not toml_path.is_file():
            return
        try:
            raw = read_toml(toml_path)
        except tomllib.TOMLDecodeError as exc:
            msg = f"Invalid TOML in {toml_path}: {exc}"
            raise ConfigError(msg) from exc
        self._tables = {k: v for k, v in raw.items() if k in TOML_SECTIONS}

    def get_field_value(self, field: FieldInfo, field_name: str) -> tuple[Any, str, bool]:
        return self._tables.get(field_name), field_name, field_name in self._tables

    def __call__(self) -> dict[str, Any]:
        return dict(self._tables)


class MercurySettings(BaseSettings):
    """Everything a command needs to know about its environment.

    Attributes:
        root: Project directory; ``.mercury/`` and relative ``vectors_path``
            values resolve against it.
        config_path: The file the TOML tables came from, if any.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "MERCURY_",
        "env_nested_delimiter": "__",
    }

    root: Path = Field(default_factory=Path.cwd)
    config_path: Path | None = None

    # Output flags (CLI or env only)
    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
    paging: PagingConfig = Field(default_factory=PagingConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            TomlSettingsSource(settings_cls, _active_toml.get()),
        )

    @property
    def database_url(self) -> str:
        """``[database] url``, or a SQLite file under ``{root}/.mercury/``."""
        if self.database.url:
            return self.database.url
        return f"sqlite:///{self.root / DATA_DIRNAME / DB_FILENAME}"

    @property
    def vectors_path(self) -> Path | None:
        """``[search] vectors_path`` resolved against ``root``."""
        path = self.search.vectors_path
        if path is None or path.is_absolute():
            return path
        return self.root / path

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        root: Path | None = None,
        **cli_flags: Any,
    ) -> MercurySettings:
        """Build settings for one command invocation.

        An explicit *config_path* is used only if it is a file; without one
        the file is discovered from *root* (or the cwd). *root* defaults to
        the directory of the config file.

        Raises:
            ConfigError: If the config file is not valid TOML.
            pydantic.ValidationError: If a value is out of range.
        """
        toml_path: Path | None
        if config_path:
            candidate = Path(config_path)
            toml_path = candidate if candidate.is_file() else None
        else:
            toml_path = find_config(root)

        if root is None:
            root = toml_path.parent if toml_path else Path.cwd()

        token = _active_toml.set(toml_path)
        try:
            return cls(root=root, config_path=toml_path, **cli_flags)
        finally:
            _active_toml.reset(token)
