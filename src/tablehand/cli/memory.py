"""Session memory commands against a running server."""

from __future__ import annotations

from typing import Any

import click
import httpx

from tablehand.cli.ui import console, render_history_table
from tablehand.config import settings


def _request(method: str, path: str, **kwargs: Any) -> dict[str, Any]:
    headers = {"X-API-Key": settings.api_key}
    try:
        response = httpx.request(
            method, f"{settings.api_url.rstrip('/')}{path}", headers=headers, timeout=10, **kwargs
        )
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise click.ClickException(
            f"Server returned {exc.response.status_code}: {exc.response.text}"
        ) from exc
    except httpx.HTTPError as exc:
        raise click.ClickException(f"Could not reach {settings.api_url}: {exc}") from exc
    return response.json()


@click.group()
def memory() -> None:
    """Inspect or clear a sender's conversation memory."""


@memory.command()
@click.argument("sender")
@click.option("--json", "as_json", is_flag=True, help="Print the raw response")
def show(sender: str, as_json: bool) -> None:
    """Show a sender's session."""
    data = _request("GET", f"/v1/memory/{sender}")
    if as_json:
        console.print_json(data=data)
        return
    console.print(f"[bold]Sender[/bold] {data['sender']}")
    console.print(f"[bold]Context[/bold] {data.get('context_id') or '-'}")
    console.print(f"[bold]History[/bold] {data['history_length']} entries")
    pending = ", ".join(data.get("pending_tools") or []) if data["has_pending_action"] else "-"
    console.print(f"[bold]Pending[/bold] {pending}")
    if data.get("history"):
        render_history_table(data["history"])


@memory.command()
@click.argument("sender")
def clear(sender: str) -> None:
    """Clear a sender's session and pending action."""
    data = _request("POST", "/v1/memory/clear", json={"sender": sender})
    console.print(data.get("message", f"Memory cleared for {sender}"))


def register(cli: click.Group) -> None:
    cli.add_command(memory)
