"""Journal note command for Tradelytics CLI."""

import asyncio
from datetime import datetime
from typing import Optional

import click
from rich.panel import Panel

from tradelytics.cli.common import (
    console,
    fail,
    get_config,
    get_data_store,
    require_account,
)
from tradelytics.exceptions import NoteStoreError
from tradelytics.journal import NoteSyncController, SaveState
from tradelytics.stores.local import LocalNoteStore


@click.command()
@click.argument("day", type=click.DateTime(formats=["%Y-%m-%d"]))
@click.argument("text")
@click.option("--account", default=None, help="Account id (default: from config).")
@click.pass_context
def note(ctx: click.Context, day: datetime, text: str, account: Optional[str]) -> None:
    """Save the journal note of a day.

    The note replaces any earlier note of the same day and is shown in
    the calendar when the day has trades.

    \b
    Examples:
      tradelytics note 2024-01-01 "Patient entries, cut the loser fast"
    """
    config = get_config(ctx)
    account_id = require_account(config, account)
    store = get_data_store(config)

    messages: list[tuple[str, str]] = []
    controller = NoteSyncController(
        LocalNoteStore(store),
        account_id,
        notify=lambda level, message: messages.append((level, message)),
    )

    try:
        state = asyncio.run(controller.save(day.date(), text))
    except NoteStoreError as e:
        fail(f"[red]{e}[/red]")

    if state is SaveState.ROLLED_BACK:
        detail = messages[-1][1] if messages else "Note was not saved"
        fail(f"[red]✗[/red] {detail}", title="Note Not Saved")

    console.print(Panel(
        f"[green]✓[/green] Note saved for [bold]{day.date().isoformat()}[/bold]\n\n"
        f"[dim]{text}[/dim]",
        title="[bold green]Journal[/bold green]",
        border_style="green",
    ))
