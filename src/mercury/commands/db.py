"""Command group: database schema status and migration."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from mercury.commands._base import MercuryGroup
from mercury.services.maintenance import MaintenanceService

if TYPE_CHECKING:
    from mercury.commands._context import AppContext


@click.group(
    cls=MercuryGroup,
    examples="""\
  mercury db status
  mercury db upgrade
  mercury --json db status""",
)
def db() -> None:
    """Inspect and migrate the database schema."""


@db.command(
    examples="""\
  mercury db status
  mercury --json db status"""
)
@click.pass_obj
def status(app: AppContext) -> None:
    """Show pending migrations without applying them."""
    app.emit(MaintenanceService(app.store).check_pending())


@db.command(
    examples="""\
  mercury db upgrade"""
)
@click.pass_obj
def upgrade(app: AppContext) -> None:
    """Back up the database and apply pending migrations."""
    app.emit(MaintenanceService(app.store).apply())
