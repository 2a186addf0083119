"""cnav resolve command - find where a name is defined."""

import json
from pathlib import Path

import click

from compnav.cli.utils import open_resolver


@click.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("name")
@click.option("--line", "line", default=1, show_default=True, help="1-based cursor line")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def resolve_command(ctx: click.Context, file: Path, name: str, line: int, as_json: bool) -> None:
    """Resolve NAME (an identifier or `this.x` chain) as seen from FILE.

    Prints PATH:LINE:COLUMN (1-based) of the definition.
    """
    resolver, doc = open_resolver(ctx, file)
    loc = resolver.resolve(doc.resource_id, name, max(line - 1, 0))
    if loc is None:
        if as_json:
            click.echo(json.dumps({"found": False, "name": name}))
        else:
            click.echo("no definition found", err=True)
        ctx.exit(1)

    if as_json:
        click.echo(
            json.dumps(
                {
                    "found": True,
                    "name": name,
                    "resource_id": loc.resource_id,
                    "line": loc.line,
                    "column": loc.column,
                    "context": loc.context,
                }
            )
        )
        return

    suffix = f"  (from {loc.context})" if loc.context else ""
    click.echo(f"{loc.resource_id}:{loc.line + 1}:{loc.column + 1}{suffix}")
