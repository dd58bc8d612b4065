"""Record store commands."""

from __future__ import annotations

import anyio
import click

from tablehand.cli.ui import console
from tablehand.config import effective_record_store_provider, settings
from tablehand.records import RecordStoreError, get_record_store


@click.group()
def store() -> None:
    """Record store utilities."""


@store.command()
@click.option(
    "--table",
    default=None,
    help="Table id to sample (defaults to the projects table)",
)
def check(table: str | None) -> None:
    """Check the record store connection and print one sample record."""
    table_id = table or settings.airtable_projects_table

    async def _run() -> list[dict]:
        record_store = get_record_store()
        try:
            return await record_store.list_all(table_id, 1)
        finally:
            await record_store.aclose()

    try:
        records = anyio.run(_run)
    except RecordStoreError as exc:
        raise click.ClickException(f"[{exc.kind}] {exc}") from exc

    provider = effective_record_store_provider(settings)
    console.print(f"[green]Connection OK[/green] (provider={provider}, table={table_id})")
    console.print_json(data={"sampleRecord": records[0] if records else None})


def register(cli: click.Group) -> None:
    cli.add_command(store)
