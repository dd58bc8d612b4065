"""Shared CLI UI helpers (Rich formatting)."""

from __future__ import annotations

from typing import Any, Iterable

from rich.console import Console
from rich.table import Table

console = Console()

_KIND_COLORS = {
    "answer": "white",
    "awaiting_confirmation": "yellow",
    "needs_clarification": "yellow",
    "action_completed": "green",
    "action_cancelled": "red",
    "error": "red",
}


def format_kind(kind: str) -> str:
    """Return colorized reply kind for terminal output."""
    color = _KIND_COLORS.get(kind, "white")
    return f"[{color}]{kind}[/{color}]"


def render_history_table(history: Iterable[dict[str, Any]]) -> None:
    """Render a session transcript using Rich."""
    table = Table(title="Transcript", show_lines=False)
    table.add_column("#", style="grey62")
    table.add_column("Role", style="cyan")
    table.add_column("Content", style="white")
    table.add_column("Tools", style="magenta")

    for index, turn in enumerate(history, start=1):
        tools = [r.get("name", "") for r in turn.get("tool_requests", [])]
        tools += [r.get("name", "") for r in turn.get("tool_results", [])]
        content = str(turn.get("content", ""))
        if len(content) > 120:
            content = content[:120] + "..."
        table.add_row(str(index), turn.get("role", ""), content, ", ".join(tools) or "-")

    console.print(table)
