"""Commands that talk to Telegraph: accounts, publishing and export."""

from pathlib import Path
from typing import Any
from uuid import uuid4

import click
from rich.console import Console

from backend.app.dependencies import get_dispatcher
from backend.app.models.tool_contracts import ToolName, ToolRequest, ToolResponse

from ..config import FORMATS, Config
from .content import infer_format

console = Console()


def run_tool(tool: ToolName, payload: dict[str, Any]) -> dict[str, Any]:
    """Execute a tool through the dispatcher and exit non-zero on a tool error."""
    request = ToolRequest(tool=tool, request_id=uuid4(), payload=payload)
    response: ToolResponse = get_dispatcher().execute(tool, request)
    if not response.ok:
        error = response.error
        code = error.code if error is not None else "unknown_error"
        message = error.message if error is not None else "Tool call failed."
        console.print(f"[red]{code}:[/red] {message}")
        raise SystemExit(1)
    return response.result


def _require_token(token: str | None) -> str:
    resolved = token or Config.load().access_token
    if not resolved:
        console.print(
            "[red]No access token.[/red] Run [cyan]telegraph-tools create-account[/cyan] "
            "or pass --token."
        )
        raise SystemExit(1)
    return resolved


@click.command(name="create-account")
@click.option("--short-name", required=True, help="Account name (1-32 characters)")
@click.option("--author-name", default=None, help="Default author name")
@click.option("--author-url", default=None, help="Default author profile link")
def create_account(short_name: str, author_name: str | None, author_url: str | None):
    """Create a Telegraph account and save its access token."""
    result = run_tool(
        "telegraph_create_account",
        {"short_name": short_name, "author_name": author_name, "author_url": author_url},
    )
    account = result["account"]

    config = Config.load()
    config.access_token = account.get("access_token")
    config.author_name = author_name or config.author_name
    config.author_url = author_url or config.author_url
    saved_to = config.save()

    console.print(f"[green]Created account:[/green] {account.get('short_name', short_name)}")
    if account.get("auth_url"):
        console.print(f"Browser login: {account['auth_url']}")
    console.print(f"Token saved to {saved_to}")


@click.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--title", "-t", required=True, help="Page title")
@click.option("--format", "-f", "content_format", type=click.Choice(FORMATS), default=None)
@click.option("--token", default=None, help="Access token (defaults to the saved one)")
@click.option("--path", "page_path", default=None, help="Edit this existing page instead")
def publish(
    file: Path,
    title: str,
    content_format: str | None,
    token: str | None,
    page_path: str | None,
):
    """Publish an HTML or Markdown file as a Telegraph page."""
    config = Config.load()
    payload: dict[str, Any] = {
        "access_token": _require_token(token),
        "title": title,
        "content": file.read_text(encoding="utf-8"),
        "format": infer_format(file, content_format),
        "author_name": config.author_name,
        "author_url": config.author_url,
    }

    if page_path:
        result = run_tool("telegraph_edit_page", {**payload, "path": page_path})
        verb = "Updated"
    else:
        result = run_tool("telegraph_create_page", payload)
        verb = "Published"

    page = result["page"]
    console.print(f"[green]{verb}:[/green] {page['url']}")


@click.command()
@click.argument("path")
@click.option("--format", "-f", "content_format", type=click.Choice(FORMATS), default=None)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write to this file instead of stdout",
)
def export(path: str, content_format: str | None, output: Path | None):
    """Export a Telegraph page as Markdown or HTML."""
    resolved_format = content_format or Config.load().default_format
    result = run_tool("telegraph_export_page", {"path": path, "format": resolved_format})

    if output is None:
        click.echo(result["content"])
        return

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(result["content"] + "\n", encoding="utf-8")
    console.print(f"[green]Exported[/green] {result['title']} to {output}")
