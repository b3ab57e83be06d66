"""``webpub publish`` — upload a directory and publish its manifest.

Prints the manifest CID and, when ``APP_SEED`` is configured, the resolver
CID of the registry entry.  Exits 1 on any failure.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pydantic
import typer
from rich.console import Console
from rich.markup import escape

from webpub.config import PublishConfig
from webpub.core.pipeline import Publisher
from webpub.errors import PublishError

console = Console()
err_console = Console(stderr=True)


def publish_cmd(
    directory: Path = typer.Option(
        None,
        "--dir",
        "-d",
        help="Directory to publish (overrides DIR).",
    ),
    parallel: int = typer.Option(
        None,
        "--parallel",
        "-p",
        help="Maximum concurrent uploads (overrides PARALLEL_UPLOADS).",
    ),
    portal_url: str = typer.Option(
        None,
        "--portal-url",
        help="Upload to this portal instead of the local object store.",
    ),
    store: Path = typer.Option(
        None,
        "--store",
        help="Local object store directory (overrides OBJECT_STORE_PATH).",
    ),
    peer_timeout: float = typer.Option(
        None,
        "--peer-timeout",
        help="Seconds to wait for a registry peer (overrides PEER_TIMEOUT_SECONDS).",
    ),
) -> None:
    """Publish a directory as a web app.

    PORTAL_PRIVATE_KEY is read from the environment or a .env file;
    APP_SEED, when set, also publishes a registry entry.
    """
    overrides: dict[str, Any] = {
        "dir": directory,
        "parallel_uploads": parallel,
        "portal_url": portal_url,
        "object_store_path": store,
        "peer_timeout_seconds": peer_timeout,
    }
    try:
        config = PublishConfig(**{k: v for k, v in overrides.items() if v is not None})
    except pydantic.ValidationError as exc:
        err_console.print(f"[bold red]Invalid configuration:[/bold red] {escape(str(exc))}")
        raise typer.Exit(code=1)

    try:
        result = Publisher(config).run()
    except PublishError as exc:
        err_console.print(f"[bold red]Failed to publish:[/bold red] {escape(str(exc))}")
        raise typer.Exit(code=1)

    console.print(
        f"[green]Web App successfully published[/green]: {result.manifest_cid}",
        soft_wrap=True,
    )
    if result.resolver_cid is not None:
        console.print(
            f"[green]Resolver entry successfully published[/green]: {result.resolver_cid}",
            soft_wrap=True,
        )
