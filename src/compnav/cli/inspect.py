"""cnav index command - show what a file's index contains."""

import json
from pathlib import Path
from typing import Any

import click

from compnav.cli.utils import open_resolver
from compnav.index.models import ALL_PRIORITY, ComponentIndex, TemplateIndex


def _index_payload(index: ComponentIndex) -> dict[str, Any]:
    return {
        "content_hash": index.content_hash,
        "categories": {
            category.value: {
                name: {"line": loc.line, "column": loc.column, "context": loc.context}
                for name, loc in index.category(category).items()
            }
            for category in ALL_PRIORITY
        },
        "templates": {
            template_id: _index_payload(sub)
            for template_id, sub in index.components_by_template_id.items()
        },
    }


def _template_payload(index: TemplateIndex) -> list[dict[str, Any]]:
    return [
        {
            "name": v.name,
            "line": v.location.line,
            "column": v.location.column,
            "scope_start": v.scope_start,
            "scope_end": v.scope_end,
        }
        for v in index.variables
    ]


def _echo_index(index: ComponentIndex, indent: str = "") -> None:
    for category in ALL_PRIORITY:
        names = index.category(category)
        if names:
            click.echo(f"{indent}{category.value}: {', '.join(names)}")
    for template_id, sub in index.components_by_template_id.items():
        click.echo(f"{indent}x-template #{template_id}:")
        _echo_index(sub, indent + "  ")


@click.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def index_command(ctx: click.Context, file: Path, as_json: bool) -> None:
    """Show the component index of FILE (and template bindings for markup)."""
    resolver, doc = open_resolver(ctx, file)
    index = resolver.component_index(doc.resource_id)
    templates = resolver.template_index(doc.resource_id) if doc.is_markup else None

    if as_json:
        payload: dict[str, Any] = {
            "resource_id": doc.resource_id,
            "component": _index_payload(index) if index is not None else None,
        }
        if templates is not None:
            payload["template_variables"] = _template_payload(templates)
        click.echo(json.dumps(payload, indent=2))
        return

    click.echo(f"File: {doc.resource_id}")
    if index is None or index.is_empty:
        click.echo("No component found")
    else:
        _echo_index(index)
    if templates is not None and templates.variables:
        click.echo("Template variables:")
        for v in templates.variables:
            click.echo(f"  {v.name}  lines {v.scope_start + 1}-{v.scope_end + 1}")
