"""
journalkeep/program/journal.py

The journal program: create, update and delete one journal entry per
(title, owner) slot.

    ABSENT --create--> ACTIVE --update--> ACTIVE --delete--> ABSENT

Every rule checks all of its preconditions before touching the slot.
Anything raised after a mutation is rolled back by the host.
"""

import logging
from typing import Optional, Tuple

from journalkeep.core.address import journal_entry_seeds
from journalkeep.core.config import DEFAULT_PROGRAM_ID
from journalkeep.core.exceptions import (
    AddressMismatchError,
    InvalidSignatureError,
    NotFoundError,
    UnauthorizedError,
    UnknownInstructionError,
)
from journalkeep.core.logger import get_logger
from journalkeep.core.models import (
    JOURNAL_ENTRY_SPACE,
    InstructionName,
    JournalEntryState,
    check_message,
    check_title,
)
from journalkeep.host.host import InstructionContext


class JournalProgram:
    """Lifecycle rules for journal entries."""

    def __init__(
        self,
        program_id: str = DEFAULT_PROGRAM_ID,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.program_id = program_id.lower()
        self.log        = logger or get_logger("journalkeep.program")

    def process_instruction(self, ctx: InstructionContext) -> None:
        """Dispatch one instruction to its rule."""
        ix   = ctx.instruction
        args = ix.args
        if ix.name == InstructionName.CREATE:
            self.create_journal_entry(ctx, args["title"], args["message"])
        elif ix.name == InstructionName.UPDATE:
            self.update_journal_entry(ctx, args["title"], args["message"])
        elif ix.name == InstructionName.DELETE:
            self.delete_journal_entry(ctx, args["title"])
        else:
            raise UnknownInstructionError(
                f"Unknown instruction '{ix.name}'",
                {"program_id": self.program_id[:16]},
            )

    # ── Rules ─────────────────────────────────────────────────

    def create_journal_entry(
        self, ctx: InstructionContext, title: str, message: str
    ) -> None:
        check_title(title)
        check_message(message)

        owner = ctx.accounts["owner"].lower()
        if not ctx.host.verify_signature(owner):
            raise InvalidSignatureError(
                "Transaction is not signed by the claimed owner",
                {"owner": owner[:16]},
            )

        address, bump = self._resolve(ctx, title, owner)
        ctx.host.allocate(address, JOURNAL_ENTRY_SPACE, payer=owner)

        entry = JournalEntryState(owner=owner, title=title, message=message)
        ctx.host.write_account_data(address, entry.encode(JOURNAL_ENTRY_SPACE))
        self.log.info(f"created {address[:16]} bump={bump} owner={owner[:16]}")

    def update_journal_entry(
        self, ctx: InstructionContext, title: str, message: str
    ) -> None:
        """title only locates the slot; it is never rewritten."""
        check_title(title)
        check_message(message)

        owner      = ctx.accounts["owner"].lower()
        address, _ = self._resolve(ctx, title, owner)
        entry      = self._load(ctx, address)
        self._authorize(ctx, entry, address)

        # Same worst-case size every time, so this is a no-op after create.
        ctx.host.reallocate(address, JOURNAL_ENTRY_SPACE, payer=entry.owner)

        entry.message = message
        ctx.host.write_account_data(address, entry.encode(JOURNAL_ENTRY_SPACE))
        self.log.info(f"updated {address[:16]}")

    def delete_journal_entry(self, ctx: InstructionContext, title: str) -> None:
        check_title(title)

        owner      = ctx.accounts["owner"].lower()
        address, _ = self._resolve(ctx, title, owner)
        entry      = self._load(ctx, address)
        self._authorize(ctx, entry, address)

        ctx.host.deallocate(address, refund_to=entry.owner)
        self.log.info(f"deleted {address[:16]}")

    # ── Helpers ───────────────────────────────────────────────

    def _resolve(
        self, ctx: InstructionContext, title: str, owner: str
    ) -> Tuple[str, int]:
        address, bump = ctx.derive_address(journal_entry_seeds(title, owner))
        claimed = ctx.accounts.get("journal_entry")
        if claimed is not None and claimed.lower() != address:
            raise AddressMismatchError(
                "Supplied journal_entry does not match (title, owner)",
                {"expected": address[:16], "got": claimed[:16]},
            )
        return address, bump

    def _load(self, ctx: InstructionContext, address: str) -> JournalEntryState:
        account = ctx.host.get_account(address)
        if account is None or account.owner_program != self.program_id:
            raise NotFoundError(
                "No journal entry at address",
                {"address": address[:16]},
            )
        return JournalEntryState.decode(bytes(account.data))

    def _authorize(
        self, ctx: InstructionContext, entry: JournalEntryState, address: str
    ) -> None:
        if ctx.signer != entry.owner or not ctx.host.verify_signature(entry.owner):
            raise UnauthorizedError(
                "Signer is not the owner of this journal entry",
                {"address": address[:16], "signer": ctx.signer[:16]},
            )
