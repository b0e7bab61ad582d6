"""
journalkeep/cli/__init__.py

journalkeep CLI — root Click command group.

Registered in pyproject.toml as:

    [project.scripts]
    journalkeep = "journalkeep.cli:cli"
"""

import click

from journalkeep.cli.derive import derive_command
from journalkeep.cli.keygen import keygen_command
from journalkeep.cli.schema import schema_command


@click.group()
@click.version_option(package_name="journalkeep")
def cli() -> None:
    """
    journalkeep — deterministic, owner-signed journal entries.

    \b
    Commands:
      keygen    Write a new Ed25519 owner key.
      derive    Show the slot address of a (title, owner) pair.
      schema    Show the record layout and storage deposit.

    \b
    Quick start:
      journalkeep keygen owner.pem
      journalkeep derive --title "Day 1" --key owner.pem
      journalkeep schema --format json
    """
    pass


cli.add_command(keygen_command)
cli.add_command(derive_command)
cli.add_command(schema_command)
