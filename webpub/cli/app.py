"""Main Typer application — registers all CLI commands.

Entry point: ``webpub`` (configured via pyproject.toml console_scripts).
"""

from __future__ import annotations

import logging

import typer
from rich.console import Console
from rich.logging import RichHandler

from webpub.cli.commands.cid_cmd import cid_cmd
from webpub.cli.commands.publish import publish_cmd

err_console = Console(stderr=True)

app = typer.Typer(
    name="webpub",
    help="Publish a directory as a web app on content-addressed storage.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

app.command(name="publish", help="Upload a directory and publish its manifest.")(publish_cmd)
app.command(name="cid", help="Decode a CID, optionally re-tagging it.")(cid_cmd)


@app.callback()
def configure(
    log_level: str = typer.Option(
        "INFO",
        "--log-level",
        envvar="LOG_LEVEL",
        help="Logging level (DEBUG, INFO, WARNING, ERROR).",
    ),
) -> None:
    """Configure logging before any command runs."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
