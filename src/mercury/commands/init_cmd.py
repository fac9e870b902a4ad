"""``mercury init``: write mercury.toml and create the database."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from mercury.commands._base import MercuryCommand

if TYPE_CHECKING:
    from mercury.commands._context import AppContext


@click.command(
    "init",
    cls=MercuryCommand,
    examples="""
        mercury init
        mercury init /srv/mercury --vectors /srv/data/names.vec
        mercury --json init .
    """,
)
@click.argument(
    "path",
    required=False,
    default=".",
    type=click.Path(file_okay=False, path_type=Path),
)
@click.option(
    "--vectors",
    "vectors_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Word-vector file (word2vec text format) used to embed names.",
)
@click.pass_obj
def init_cmd(app: AppContext, path: Path, vectors_path: Path | None) -> None:
    """Set up a mercury project in PATH (default: current directory).

    Safe to re-run: an existing mercury.toml is left as it is.
    """
    from mercury.services.init import InitService

    app.emit(InitService.init_project(path.resolve(), vectors_path=vectors_path))
