"""compnav CLI - cnav command."""

from pathlib import Path

import click

from compnav import __version__
from compnav.cli.inspect import index_command
from compnav.cli.resolve import resolve_command
from compnav.config import load_config
from compnav.core.errors import ConfigError
from compnav.core.logging import configure_logging


@click.group()
@click.version_option(version=__version__, prog_name="cnav")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.option(
    "--config",
    "config_file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Config file to use instead of .compnav/config.yaml",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, config_file: Path | None) -> None:
    """compnav - go-to-definition for options-style UI components."""
    ctx.ensure_object(dict)
    try:
        config = load_config(config_file=config_file)
    except ConfigError as e:
        raise click.ClickException(str(e)) from e
    ctx.obj["config"] = config
    ctx.obj["verbose"] = verbose
    if verbose:
        configure_logging(level="DEBUG")
    else:
        configure_logging(config=config.logging)


cli.add_command(resolve_command, name="resolve")
cli.add_command(index_command, name="index")


if __name__ == "__main__":
    cli()
