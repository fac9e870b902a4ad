"""Tests for the search CLI command."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from mercury.cli import cli


@pytest.fixture
def people(cli_runner: CliRunner, project_root: Path) -> dict[str, str]:
    ids: dict[str, str] = {}
    for first, last, country in (
        ("Anna", "Nowak", "Poland"),
        ("Anne", "Smith", "Poland"),
        ("Ola", "Lis", "Germany"),
    ):
        result = cli_runner.invoke(
            cli,
            [
                "-q", "user", "create", first, last,
                "--mail", f"{first}@example.com", "--password", "h", "--country", country,
            ],  # fmt: skip
        )
        assert result.exit_code == 0, result.output
        ids[first] = result.stdout.strip()
    return ids


def test_phrase_ranking(cli_runner: CliRunner, people: dict[str, str]) -> None:
    result = cli_runner.invoke(cli, ["-q", "search", "anna"])
    assert result.exit_code == 0
    assert result.stdout.split()[:2] == [people["Anna"], people["Anne"]]


def test_table_shows_scores(cli_runner: CliRunner, people: dict[str, str]) -> None:
    result = cli_runner.invoke(cli, ["search", "--country", "Poland"])
    assert result.exit_code == 0
    assert "Score" in result.stdout
    assert "1.0000" in result.stdout
    assert "2 of 2 users" in result.stdout


def test_json_with_exclude(cli_runner: CliRunner, people: dict[str, str]) -> None:
    result = cli_runner.invoke(cli, ["--json", "search", "anna", "--exclude", people["Anna"]])
    data = json.loads(result.stdout)
    ids = [item["id"] for item in data["data"]["items"]]
    assert people["Anna"] not in ids
    assert ids[0] == people["Anne"]


def test_unsupported_phrase(cli_runner: CliRunner, people: dict[str, str]) -> None:
    result = cli_runner.invoke(cli, ["search", "zzyzx"])
    assert result.exit_code == 1
    assert "SEARCH_UNSUPPORTED" in result.stderr


def test_missing_vectors(
    cli_runner: CliRunner, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    config = tmp_path / "mercury.toml"
    config.write_text('[search]\nvectors_path = "gone.txt"\n', encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    result = cli_runner.invoke(cli, ["search", "anna"])
    assert result.exit_code == 1
    assert "VECTORS_UNAVAILABLE" in result.stderr


def test_verbose_renders_span_tree(cli_runner: CliRunner, people: dict[str, str]) -> None:
    result = cli_runner.invoke(cli, ["-v", "search", "anna"])
    assert result.exit_code == 0
    assert "SearchService.search" in result.stdout
    assert "nearest_neighbors" in result.stdout
