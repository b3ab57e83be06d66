"""``webpub cid CID`` — inspect a content identifier."""

from __future__ import annotations

import typer
from rich.console import Console
from rich.markup import escape

from webpub.errors import ValidationError
from webpub.models.cid import CIDType, ContentIdentifier

console = Console()
err_console = Console(stderr=True)


def cid_cmd(
    cid: str = typer.Argument(..., help="CID string (multibase base58btc)."),
    retag: str = typer.Option(
        None,
        "--retag",
        help="Print the CID re-tagged with this type, e.g. METADATA_WEBAPP.",
    ),
) -> None:
    """Decode a CID and show its parts."""
    try:
        decoded = ContentIdentifier.decode(cid)
    except ValidationError as exc:
        err_console.print(f"[bold red]Invalid CID:[/bold red] {escape(str(exc))}")
        raise typer.Exit(code=1)

    if retag:
        try:
            new_type = CIDType[retag.upper()]
        except KeyError:
            names = ", ".join(t.name for t in CIDType)
            err_console.print(f"[bold red]Unknown CID type {escape(retag)!r}.[/bold red] Choose from: {names}")
            raise typer.Exit(code=1)
        console.print(decoded.retag(new_type).to_string(), soft_wrap=True)
        return

    rows = [
        ("type", f"{decoded.cid_type.name} (0x{decoded.cid_type:02x})"),
        ("hash type", f"{decoded.hash_type.name} (0x{decoded.hash_type:02x})"),
        ("digest", decoded.digest.hex()),
        ("size", "-" if decoded.size is None else str(decoded.size)),
    ]
    for field, value in rows:
        console.print(f"[cyan]{field:<10}[/cyan]{value}", soft_wrap=True)
