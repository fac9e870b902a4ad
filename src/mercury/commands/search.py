"""Command: name search."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from mercury.commands._base import MercuryCommand, page_options
from mercury.services.search import SearchService

if TYPE_CHECKING:
    from mercury.commands._context import AppContext


@click.command(
    cls=MercuryCommand,
    examples="""\
  mercury search anna
  mercury search nowak --country Poland --page 2 --size 10
  mercury search --country Poland
  mercury --json search anna --exclude 3f2a...""",
)
@click.argument("phrase", required=False, default="")
@click.option("--country", default="", help="Only users from this country.")
@click.option("--exclude", "exclude_id", default="", help="Leave this user id out of results.")
@page_options
@click.pass_obj
def search(
    app: AppContext,
    phrase: str,
    country: str,
    exclude_id: str,
    page: int,
    page_size: int | None,
) -> None:
    """Find users whose names resemble PHRASE (all users when PHRASE is empty)."""
    app.emit(
        SearchService(app.store).search(
            phrase,
            country=country,
            exclude_id=exclude_id,
            **app.page_args(page, page_size),
        )
    )
