"""tablehand command-line interface.

The CLI is organized into submodules under `tablehand.cli.*`, each exposing a
``register(cli)`` hook.
"""

from __future__ import annotations

import click

from tablehand.app_version import get_app_version
from tablehand.observability import init_observability


@click.group()
@click.version_option(version=get_app_version(), prog_name="tablehand")
def cli() -> None:
    """tablehand - talk to the Airtable CRM in plain language."""
    init_observability()


def _register_commands() -> None:
    from tablehand.cli import chat, memory, serve, store

    chat.register(cli)
    memory.register(cli)
    serve.register(cli)
    store.register(cli)


_register_commands()


if __name__ == "__main__":
    cli()
