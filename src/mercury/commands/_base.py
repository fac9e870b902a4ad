"""Click base classes for mercury commands.

Commands and groups built with these classes accept an ``examples=``
string; it is shown by an eager ``--examples`` flag so ``--help`` stays
short.
"""

from __future__ import annotations

import textwrap
from collections.abc import Callable
from typing import Any, TypeVar

import click

_F = TypeVar("_F", bound=Callable[..., Any])


class _ExamplesMixin:
    """Adds the ``--examples`` flag when ``examples`` text is given."""

    examples: str | None
    params: list[click.Parameter]

    def _init_examples(self, examples: str | None) -> None:
        self.examples = textwrap.dedent(examples).strip("\n") if examples else None
        if self.examples:
            self.params.append(
                click.Option(
                    ["--examples"],
                    is_flag=True,
                    expose_value=False,
                    is_eager=True,
                    callback=self._show_examples,
                    help="Show usage examples and exit.",
                )
            )

    def _show_examples(self, ctx: click.Context, _param: click.Parameter, value: bool) -> None:
        if not value or ctx.resilient_parsing:
            return
        click.echo(f"Examples for '{ctx.command_path}':\n")
        click.echo(textwrap.indent(self.examples or "", "  "))
        ctx.exit(0)


class MercuryCommand(_ExamplesMixin, click.Command):
    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._init_examples(examples)


class MercuryGroup(_ExamplesMixin, click.Group):
    """Group whose subcommands and subgroups use the mercury classes."""

    command_class = MercuryCommand
    group_class = type

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._init_examples(examples)


def page_options(func: _F) -> _F:
    """Add ``--page`` (1-based) and ``--size`` to a listing command."""
    func = click.option(
        "--size",
        "page_size",
        type=int,
        default=None,
        help="Items per page [default: paging.default_page_size].",
    )(func)
    return click.option(
        "--page", type=int, default=1, show_default=True, help="Page number, starting at 1."
    )(func)
