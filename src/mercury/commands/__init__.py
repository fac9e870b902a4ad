"""Click command modules; each is imported only when the root group is built."""

from __future__ import annotations

import importlib
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click

# (module, attribute) of each top-level command.
_COMMANDS = (
    ("mercury.commands.init_cmd", "init_cmd"),
    ("mercury.commands.user", "user"),
    ("mercury.commands.friends", "friends"),
    ("mercury.commands.search", "search"),
    ("mercury.commands.db", "db"),
)


def register_commands(cli: click.Group) -> None:
    """Attach every mercury command and group to *cli*."""
    for module_name, attr in _COMMANDS:
        cli.add_command(getattr(importlib.import_module(module_name), attr))
