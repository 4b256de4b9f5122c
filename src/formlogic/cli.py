"""Root CLI group for formlogic with global flags and command registration."""

from __future__ import annotations

import click

from formlogic import __version__
from formlogic.commands import register_commands
from formlogic.commands._context import AppContext
from formlogic.config.settings import FormLogicSettings


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="formlogic")
@click.option("--json", "json_output", is_flag=True, help="Structured JSON output.")
@click.option("-q", "--quiet", is_flag=True, help="Minimal output.")
@click.option("-v", "--verbose", is_flag=True, help="Detailed output with debug info.")
@click.option("--log-json", is_flag=True, help="Structured JSON log output to stderr.")
@click.option("-c", "--config", "config_path", default=None, help="Override config file path.")
@click.option(
    "--fields",
    "fields_path",
    type=click.Path(path_type=str),
    default=None,
    help="Fields document (overrides [files] fields).",
)
@click.option(
    "--rules",
    "rules_path",
    type=click.Path(path_type=str),
    default=None,
    help="Rules document (overrides [files] rules).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    quiet: bool,
    verbose: bool,
    log_json: bool,
    config_path: str | None,
    fields_path: str | None,
    rules_path: str | None,
) -> None:
    """formlogic — conditional visibility, requirement and value rules for forms."""
    ctx.ensure_object(dict)
    settings = FormLogicSettings.from_cli(
        config_path=config_path,
        json_output=json_output,
        quiet=quiet,
        verbose=verbose,
        log_json=log_json,
        fields_path=fields_path,
        rules_path=rules_path,
    )
    ctx.obj = AppContext(settings)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
