"""CLI entry point: ``jh`` launches the TUI; ``jh config`` inspects the stored settings."""

from __future__ import annotations

import logging

import click

from . import __version__
from .config import ConfigStore
from .errors import JhError
from .logging_setup import configure_logging, resolve_level

logger = logging.getLogger(__name__)


@click.group(invoke_without_command=True)
@click.version_option(__version__, prog_name="jh")
@click.option("--setup", "force_setup", is_flag=True, help="Run the setup wizard even if jh is configured")
@click.option("--debug", is_flag=True, help="Write debug logs to ~/.local/state/jh-cli/jh.log")
@click.pass_context
def main(ctx: click.Context, force_setup: bool, debug: bool) -> None:
    """Link your git workflow to Jira tickets and pull requests."""
    configure_logging(resolve_level(debug))
    if ctx.invoked_subcommand is not None:
        return

    from .tui.app import JhApp

    logger.info("Starting jh %s", __version__)
    try:
        JhApp(force_setup=force_setup).run()
    except JhError as e:
        raise click.ClickException(str(e)) from e


@main.group("config")
def cmd_config() -> None:
    """Inspect the jh configuration."""


@cmd_config.command("path")
def config_path() -> None:
    """Print where the config and credentials files live."""
    store = ConfigStore()
    click.echo(f"config      = {store.path}")
    click.echo(f"credentials = {store.credentials_path}")


@cmd_config.command("show")
def config_show() -> None:
    """Print the configuration, with tokens masked."""
    store = ConfigStore()
    try:
        config = store.load()
    except JhError as e:
        raise click.ClickException(str(e)) from e

    d = config.defaults
    click.echo(f"defaults.branch_format = {d.branch_format}")
    click.echo(f"defaults.slug_max_length = {d.slug_max_length}")
    click.echo(f"defaults.default_issue_type = {d.default_issue_type}")
    click.echo(f"defaults.base_branch = {d.base_branch}")

    if config.workspaces:
        click.echo()
    for name, ws in sorted(config.workspaces.items()):
        token = "****" if store.get_token(name) else "(not set)"
        click.echo(f"workspace.{name}")
        click.echo(f"  domain:          {ws.domain}")
        click.echo(f"  email:           {ws.email}")
        click.echo(f"  default_project: {ws.default_project}")
        click.echo(f"  token:           {token}")

    click.echo()
    if not config.mappings:
        click.echo("No repository mappings configured.")
    for repo, ws_name in sorted(config.mappings.items()):
        click.echo(f"mapping.{repo} = {ws_name}")
