"""Main CLI entry point for Telegraph Tools."""

import click
import uvicorn

from backend.app.logging_config import configure_cli_logging

from .commands import content, pages


@click.group()
@click.version_option(version="0.1.0")
@click.option("--verbose", "-v", is_flag=True, help="Log debug output to stderr.")
def main(verbose: bool):
    """Telegraph Tools - publish and export Telegraph pages."""
    configure_cli_logging(verbose=verbose)


@click.command()
@click.option("--host", default="127.0.0.1", show_default=True)
@click.option("--port", default=8000, show_default=True, type=int)
def serve(host: str, port: int):
    """Run the tool API server."""
    uvicorn.run("backend.app.main:app", host=host, port=port)


# Content commands
main.add_command(content.convert)
main.add_command(content.render)
main.add_command(content.templates)

# Telegraph commands
main.add_command(pages.create_account)
main.add_command(pages.publish)
main.add_command(pages.export)

# Server
main.add_command(serve)


if __name__ == "__main__":
    main()
