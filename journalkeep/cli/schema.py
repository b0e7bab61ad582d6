"""
journalkeep schema — print the journal entry layout, its reserved space
and the storage deposit a create costs.
"""

import json
import sys

import click

from journalkeep.core.config import JournalConfig
from journalkeep.core.crypto import IDENTITY_LENGTH
from journalkeep.core.exceptions import ConfigError
from journalkeep.core.models import (
    DISCRIMINATOR_LENGTH,
    JOURNAL_ENTRY_DISCRIMINATOR,
    JOURNAL_ENTRY_SPACE,
    LENGTH_PREFIX,
    MAX_MESSAGE_LENGTH,
    MAX_TITLE_LENGTH,
)
from journalkeep.host.host import rent_exempt_minimum

_LAYOUT = [
    ("discriminator", DISCRIMINATOR_LENGTH),
    ("owner",         IDENTITY_LENGTH),
    ("title",         LENGTH_PREFIX + MAX_TITLE_LENGTH),
    ("message",       LENGTH_PREFIX + MAX_MESSAGE_LENGTH),
]


@click.command(name="schema")
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["text", "json"], case_sensitive=False),
    default="text",
    show_default=True,
)
def schema_command(fmt: str) -> None:
    """Show the JournalEntryState layout and deposit."""
    try:
        config = JournalConfig.load()
    except ConfigError as exc:
        click.echo(f"❌  ERROR: {exc}", err=True)
        sys.exit(2)
    deposit = rent_exempt_minimum(JOURNAL_ENTRY_SPACE, config)

    if fmt == "json":
        click.echo(json.dumps({
            "discriminator": JOURNAL_ENTRY_DISCRIMINATOR.hex(),
            "layout":        [{"field": name, "bytes": size} for name, size in _LAYOUT],
            "space":         JOURNAL_ENTRY_SPACE,
            "deposit":       deposit,
        }, indent=2))
        return

    for name, size in _LAYOUT:
        click.echo(f"{name:<14}{size:>6}")
    click.echo(f"{'space':<14}{JOURNAL_ENTRY_SPACE:>6}")
    click.echo(f"deposit       {deposit} lamports")
