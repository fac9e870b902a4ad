"""Shared pytest fixtures for mercury tests."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest
from click.testing import CliRunner
from sqlalchemy.engine import Engine

from mercury.config.models import SearchConfig
from mercury.config.settings import MercurySettings
from mercury.infrastructure.database.engine import init_database
from mercury.infrastructure.store import GraphStore
from mercury.services.telemetry import disable_telemetry

# Tiny word-vector table: first names lean on axis 0/1/2 like their usual
# surnames, so "anna" is nearest to Anna Nowak.
WORD_VECTORS = """\
8 3
anna 1.0 0.1 0.0
anne 0.95 0.15 0.0
jan 0.0 1.0 0.1
ola 0.1 0.0 1.0
nowak 0.9 0.2 0.1
kowalski 0.1 0.9 0.2
lis 0.2 0.1 0.9
smith 0.5 0.5 0.5
"""


@pytest.fixture(autouse=True)
def _clean_environment(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Keep MERCURY_* env vars and telemetry state from leaking into tests."""
    monkeypatch.delenv("MERCURY_CONFIG", raising=False)
    monkeypatch.delenv("MERCURY_DATABASE__URL", raising=False)
    yield
    disable_telemetry()


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def vectors_file(tmp_path: Path) -> Path:
    """A small word2vec text-format file."""
    path = tmp_path / "vectors.txt"
    path.write_text(WORD_VECTORS, encoding="utf-8")
    return path


@pytest.fixture
def settings(tmp_path: Path, vectors_file: Path) -> MercurySettings:
    """Settings rooted at a temp directory with the test word vectors."""
    return MercurySettings.from_cli(
        root=tmp_path,
        search=SearchConfig(vectors_path=vectors_file),
    )


@pytest.fixture
def store(settings: MercurySettings) -> Iterator[GraphStore]:
    """Fully initialized GraphStore on a temp SQLite file."""
    s = GraphStore(settings)
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def db_engine(tmp_path: Path) -> Iterator[Engine]:
    """Initialized SQLite engine with all tables created."""
    engine = init_database(f"sqlite:///{tmp_path / 'db' / 'mercury.db'}")
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def project_root(tmp_path: Path, vectors_file: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Temp project with a mercury.toml; CWD is moved there for CLI tests."""
    (tmp_path / "mercury.toml").write_text(
        f'[search]\nvectors_path = "{vectors_file.name}"\n', encoding="utf-8"
    )
    monkeypatch.chdir(tmp_path)
    return tmp_path
