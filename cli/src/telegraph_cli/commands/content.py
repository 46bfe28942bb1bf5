"""Offline content commands: conversion, rendering and template listing."""

import json
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from backend.app.services.content_normalizer import normalize_content
from backend.app.services.node_serializers import serialize_nodes
from backend.app.services.page_templates import list_templates

from ..config import FORMATS

console = Console()


def infer_format(path: Path, explicit: str | None) -> str:
    """Pick the content format from the flag, falling back to the file extension."""
    if explicit:
        return explicit
    if path.suffix.lower() in {".md", ".markdown"}:
        return "markdown"
    return "html"


@click.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--format", "-f", "content_format", type=click.Choice(FORMATS), default=None)
def convert(file: Path, content_format: str | None):
    """Print the Telegraph node JSON for an HTML or Markdown file."""
    nodes = normalize_content(file.read_text(encoding="utf-8"), infer_format(file, content_format))
    console.print_json(json.dumps(nodes, ensure_ascii=False))


@click.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--format", "-f", "content_format", type=click.Choice(FORMATS), default="markdown")
def render(file: Path, content_format: str):
    """Render a node JSON file as Markdown or HTML."""
    try:
        nodes = json.loads(file.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise click.BadParameter(f"not a JSON node array: {exc}", param_hint="FILE") from exc
    if not isinstance(nodes, list):
        raise click.BadParameter("not a JSON node array", param_hint="FILE")

    click.echo(serialize_nodes(nodes, content_format))


@click.command()
def templates():
    """List page templates and their fields."""
    table = Table(title="Page templates")
    table.add_column("Template", style="cyan")
    table.add_column("Description")
    table.add_column("Fields")

    for template in list_templates():
        fields = ", ".join(
            f"{field['name']}{'' if field['required'] else '?'}" for field in template["fields"]
        )
        table.add_row(template["name"], template["description"], fields)

    console.print(table)
