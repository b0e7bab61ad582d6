"""
journalkeep/runtime/client.py

Owner-side helper: builds, signs and submits journal transactions for
one key, and reads entries back.
"""

from typing import List, Optional, Tuple

from journalkeep.core.address import derive_journal_address
from journalkeep.core.crypto import Ed25519KeyManager
from journalkeep.core.exceptions import NotFoundError
from journalkeep.core.models import (
    JOURNAL_ENTRY_DISCRIMINATOR,
    Instruction,
    InstructionName,
    JournalEntryState,
    Transaction,
)
from journalkeep.host.host import InMemoryHost


class JournalClient:
    """
    Usage:
        client = JournalClient(host, key, program_id)
        sig    = client.create_entry("Day 1", "hello")
        entry  = client.fetch(client.find_entry_address("Day 1"))
    """

    def __init__(
        self,
        host:        InMemoryHost,
        key_manager: Ed25519KeyManager,
        program_id:  str,
    ) -> None:
        self.host        = host
        self.key_manager = key_manager
        self.program_id  = program_id.lower()

    @property
    def owner(self) -> str:
        return self.key_manager.public_key_hex

    def find_entry_address(self, title: str, owner: Optional[str] = None) -> str:
        address, _ = derive_journal_address(title, owner or self.owner, self.program_id)
        return address

    # ── Writes ────────────────────────────────────────────────

    def build_transaction(
        self,
        name:  str,
        title: str,
        message: Optional[str] = None,
        owner: Optional[str] = None,
    ) -> Transaction:
        """Signed transaction for one instruction, owner defaulting to this key."""
        owner = owner or self.owner
        args  = {"title": title}
        if message is not None:
            args["message"] = message
        instruction = Instruction(
            name=     name,
            args=     args,
            accounts= {
                "owner":         owner,
                "journal_entry": self.find_entry_address(title, owner),
            },
        )
        return Transaction.create(
            program_id=  self.program_id,
            signer=      self.owner,
            instruction= instruction,
        ).sign(self.key_manager)

    def create_entry(self, title: str, message: str) -> str:
        tx = self.build_transaction(InstructionName.CREATE, title, message)
        return self.host.process_transaction(tx)

    def update_entry(self, title: str, message: str) -> str:
        tx = self.build_transaction(InstructionName.UPDATE, title, message)
        return self.host.process_transaction(tx)

    def delete_entry(self, title: str) -> str:
        tx = self.build_transaction(InstructionName.DELETE, title)
        return self.host.process_transaction(tx)

    # ── Reads ─────────────────────────────────────────────────

    def fetch(self, address: str) -> JournalEntryState:
        account = self.host.get_account(address)
        if account is None or account.owner_program != self.program_id:
            raise NotFoundError("No journal entry at address", {"address": address[:16]})
        return JournalEntryState.decode(bytes(account.data))

    def all(self, owner: Optional[str] = None) -> List[Tuple[str, JournalEntryState]]:
        """Every journal entry of the program, optionally only owner's."""
        entries = []
        accounts = self.host.get_program_accounts(
            self.program_id, discriminator=JOURNAL_ENTRY_DISCRIMINATOR
        )
        for account in accounts:
            entry = JournalEntryState.decode(bytes(account.data))
            if owner is None or entry.owner == owner.lower():
                entries.append((account.address, entry))
        return sorted(entries, key=lambda item: (item[1].owner, item[1].title))
