"""``mercury`` entry point: global output flags and command registration."""

from __future__ import annotations

import click
from pydantic import ValidationError

from mercury import __version__
from mercury.commands import register_commands
from mercury.commands._base import MercuryGroup
from mercury.commands._context import AppContext
from mercury.config.settings import ConfigError, MercurySettings

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"], "max_content_width": 100}

_ROOT_EXAMPLES = """\
  mercury init . --vectors names.vec
  mercury user create Anna Nowak --mail anna@example.com --password '$2b$10$...'
  mercury friends send ALICE BOB
  mercury search anna --country Poland
  mercury --json friends suggestions ALICE
  mercury -q user list"""


@click.group(
    cls=MercuryGroup,
    invoke_without_command=True,
    context_settings=CONTEXT_SETTINGS,
    examples=_ROOT_EXAMPLES,
)
@click.version_option(version=__version__, prog_name="mercury")
@click.option("--json", "json_output", is_flag=True, help="Print results as JSON.")
@click.option("-q", "--quiet", is_flag=True, help="Print ids or counts only.")
@click.option("-v", "--verbose", is_flag=True, help="Debug logging and timing spans.")
@click.option("--log-json", is_flag=True, help="Write logs to stderr as JSON lines.")
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Use this config file instead of discovering mercury.toml.",
)
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    quiet: bool,
    verbose: bool,
    log_json: bool,
    config_path: str | None,
) -> None:
    """mercury: friend invites, friendships and name search over a social graph."""
    if quiet and verbose:
        raise click.UsageError("--quiet and --verbose cannot be combined.")
    try:
        settings = MercurySettings.from_cli(
            config_path=config_path,
            json_output=json_output,
            quiet=quiet,
            verbose=verbose,
            log_json=log_json,
        )
    except (ConfigError, ValidationError) as exc:
        raise click.ClickException(f"Bad configuration: {exc}") from exc
    app = AppContext(settings)
    ctx.obj = app
    ctx.call_on_close(app.close)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
