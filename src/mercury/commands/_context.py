"""AppContext: per-invocation state shared by every command.

The root group builds one AppContext from the merged settings and hands
it to subcommands via ``@click.pass_obj``. It owns the GraphStore (opened
on first use, closed when the Click context closes) and turns a
ServiceResult into output plus an exit code.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from mercury.config.logging import configure_logging
from mercury.output.formatters import OutputSettings, format_result
from mercury.services.telemetry import enable_telemetry

if TYPE_CHECKING:
    from mercury.config.settings import MercurySettings
    from mercury.infrastructure.store import GraphStore
    from mercury.services.result import ServiceResult


class AppContext:
    def __init__(self, settings: MercurySettings) -> None:
        self.settings = settings
        self.output = OutputSettings(
            json_output=settings.json_output,
            quiet=settings.quiet,
            verbose=settings.verbose,
        )
        self._store: GraphStore | None = None

        configure_logging(verbose=settings.verbose, log_json=settings.log_json)
        if settings.verbose:
            enable_telemetry()

    @property
    def store(self) -> GraphStore:
        """The graph store; ``--help`` and ``--examples`` never open it."""
        if self._store is None:
            from mercury.infrastructure.store import GraphStore

            self._store = GraphStore(self.settings)
        return self._store

    def close(self) -> None:
        """Dispose of the store's engine if a command opened it."""
        if self._store is not None:
            self._store.close()
            self._store = None

    def page_args(self, page: int, page_size: int | None) -> dict[str, int]:
        """Map the 1-based ``--page`` and optional ``--size`` to service kwargs.

        ``--page 0`` becomes index -1, which the services reject as
        ``INVALID_PAGE``.
        """
        if page_size is None:
            page_size = self.settings.paging.default_page_size
        return {"page_index": page - 1, "page_size": page_size}

    def emit(self, result: ServiceResult) -> None:
        """Print *result*; a failed result goes to stderr and exits with 1.

        Warnings go to stderr as ``WARNING:`` lines except in JSON mode,
        where they are already part of the payload.
        """
        text = format_result(result, settings=self.output)
        if not result.ok:
            click.echo(text, err=True)
            raise SystemExit(1)

        click.echo(text)
        if not self.output.json_output:
            for warning in result.warnings:
                click.echo(f"WARNING: {warning}", err=True)
