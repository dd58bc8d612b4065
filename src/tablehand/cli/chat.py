"""Local chat REPL against the configured providers."""

from __future__ import annotations

import anyio
import click
from rich.panel import Panel

from tablehand.cli.ui import console, format_kind
from tablehand.conversation.orchestrator import Orchestrator
from tablehand.reasoning import ReasoningTransportError, get_reasoning_engine
from tablehand.records import RecordToolExecutor, get_record_store

_EXIT_WORDS = {"exit", "quit", "יציאה"}


@click.command()
@click.option("--sender", default="cli", show_default=True, help="Sender id for the session")
def chat(sender: str) -> None:
    """Chat with the assistant in this terminal (no server needed)."""

    async def _run() -> None:
        store = get_record_store()
        orchestrator = Orchestrator(get_reasoning_engine(), RecordToolExecutor(store))
        console.print("[grey62]Type 'exit' to quit.[/grey62]")
        try:
            while True:
                message = (await anyio.to_thread.run_sync(console.input, "[bold]> [/bold]")).strip()
                if not message:
                    continue
                if message.lower() in _EXIT_WORDS:
                    break
                try:
                    reply = await orchestrator.handle_message(sender, message)
                except ReasoningTransportError as exc:
                    console.print(f"[red]Reasoning engine unavailable:[/red] {exc}")
                    continue
                console.print(
                    Panel(
                        reply.text,
                        title=format_kind(reply.kind.value),
                        subtitle=", ".join(reply.tools_executed) or None,
                    )
                )
        finally:
            await store.aclose()

    try:
        anyio.run(_run)
    except (KeyboardInterrupt, EOFError):
        console.print()


def register(cli: click.Group) -> None:
    cli.add_command(chat)
