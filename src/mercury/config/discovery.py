"""Locating and reading ``mercury.toml``.

Lookup order: ``MERCURY_CONFIG`` (a file, or a directory holding
``mercury.toml``), then the nearest ``mercury.toml`` in the start
directory or any of its parents.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

from mercury.config.models import MercuryConfig

CONFIG_FILENAME = "mercury.toml"
CONFIG_ENV_VAR = "MERCURY_CONFIG"


def _from_env() -> Path | None:
    target = Path(os.environ[CONFIG_ENV_VAR])
    if target.is_dir():
        target = target / CONFIG_FILENAME
    return target if target.is_file() else None


def find_config(start: Path | None = None) -> Path | None:
    """Return the config file that applies to *start* (default: cwd), if any.

    A set but dangling ``MERCURY_CONFIG`` yields None rather than falling
    back to the walk-up search.
    """
    if os.environ.get(CONFIG_ENV_VAR):
        return _from_env()

    here = (start or Path.cwd()).resolve()
    for directory in (here, *here.parents):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def read_toml(path: Path) -> dict[str, Any]:
    """Parse *path* as TOML.

    Raises:
        tomllib.TOMLDecodeError: If the file is not valid TOML.
    """
    with path.open("rb") as fh:
        return tomllib.load(fh)


def load_config(path: Path | None = None, cwd: Path | None = None) -> MercuryConfig:
    """Validate a config file into :class:`MercuryConfig`.

    Without *path* the file is discovered from *cwd*; with no file at all
    the code defaults apply.
    """
    found = path if path is not None else find_config(cwd)
    if found is None:
        return MercuryConfig()
    return MercuryConfig.model_validate(read_toml(found))
