"""
journalkeep derive — print the slot address of a (title, owner) pair.

Exit codes:
    0  address derived
    1  derivation failed (no valid bump)
    2  bad input (title too long, malformed owner, unreadable key)
"""

import json
import sys
from typing import Optional

import click

from journalkeep.core.address import derive_journal_address
from journalkeep.core.config import JournalConfig
from journalkeep.core.crypto import Ed25519KeyManager, is_identity_hex
from journalkeep.core.exceptions import (
    ConfigError,
    FieldTooLongError,
    InvalidSeedsError,
    NoValidBumpError,
)
from journalkeep.core.models import check_title


@click.command(name="derive")
@click.option("--title", required=True, help="Entry title (at most 50 UTF-8 bytes).")
@click.option("--owner", default=None, help="Owner public key, 64 hex chars.")
@click.option(
    "--key",
    "key_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Read the owner from a PEM private key instead.",
)
@click.option(
    "--program-id",
    default=None,
    help="Program id, 64 hex chars. Defaults to config / JOURNALKEEP_PROGRAM_ID.",
)
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["text", "json"], case_sensitive=False),
    default="text",
    show_default=True,
)
def derive_command(
    title: str,
    owner: Optional[str],
    key_path: Optional[str],
    program_id: Optional[str],
    fmt: str,
) -> None:
    """Derive the journal entry address for TITLE and an owner."""
    if (owner is None) == (key_path is None):
        _fail("exactly one of --owner or --key is required")

    if key_path:
        try:
            owner = Ed25519KeyManager.from_file(key_path).public_key_hex
        except ValueError as exc:
            _fail(str(exc))
    if not is_identity_hex(owner):
        _fail(f"owner must be 64 hex chars, got {owner!r}")

    try:
        program_id = (program_id or JournalConfig.load().program_id).lower()
        check_title(title)
        address, bump = derive_journal_address(title, owner.lower(), program_id)
    except (ConfigError, FieldTooLongError, InvalidSeedsError) as exc:
        _fail(str(exc))
    except NoValidBumpError as exc:
        click.echo(f"❌  ERROR: {exc}", err=True)
        sys.exit(1)

    if fmt == "json":
        click.echo(json.dumps({
            "title":      title,
            "owner":      owner.lower(),
            "program_id": program_id,
            "address":    address,
            "bump":       bump,
        }, indent=2))
    else:
        click.echo(f"address  {address}")
        click.echo(f"bump     {bump}")


def _fail(msg: str) -> None:
    click.echo(f"❌  ERROR: {msg}", err=True)
    sys.exit(2)
