"""
journalkeep keygen — write a fresh Ed25519 owner key as PEM.
"""

import sys
from pathlib import Path

import click

from journalkeep.core.crypto import Ed25519KeyManager


@click.command(name="keygen")
@click.argument("out", type=click.Path(dir_okay=False))
@click.option("--force", is_flag=True, default=False, help="Overwrite an existing file.")
def keygen_command(out: str, force: bool) -> None:
    """Generate an owner key at OUT and print its public key hex."""
    path = Path(out)
    if path.exists() and not force:
        click.echo(f"❌  ERROR: {path} already exists (use --force)", err=True)
        sys.exit(2)

    key = Ed25519KeyManager.generate()
    try:
        key.save(path)
    except RuntimeError as exc:
        click.echo(f"❌  ERROR: {exc}", err=True)
        sys.exit(2)
    click.echo(key.public_key_hex)
