"""
journalkeep/__init__.py

journalkeep: owner-signed journal entries at deterministic addresses.

Each entry lives in the slot derived from (title, owner). Create, update
and delete are signed Ed25519 transactions run atomically by a ledger host.
"""

__version__ = "0.1.0"

from journalkeep.core.address import derive_journal_address, find_program_address
from journalkeep.core.config import DEFAULT_PROGRAM_ID, JournalConfig
from journalkeep.core.crypto import Ed25519KeyManager
from journalkeep.core.exceptions import (
    AlreadyExistsError,
    FieldTooLongError,
    InsufficientFundsError,
    InvalidSignatureError,
    JournalKeepError,
    NotFoundError,
    NoValidBumpError,
    UnauthorizedError,
)
from journalkeep.core.models import (
    JOURNAL_ENTRY_SPACE,
    MAX_MESSAGE_LENGTH,
    MAX_TITLE_LENGTH,
    Instruction,
    InstructionName,
    JournalEntryState,
    Transaction,
)
from journalkeep.host import InMemoryHost, LedgerHost
from journalkeep.program import JournalProgram
from journalkeep.runtime import JournalClient, RuntimeContext

__all__ = [
    # Core types
    "JournalEntryState",
    "Transaction",
    "Instruction",
    "InstructionName",
    "Ed25519KeyManager",
    "JournalConfig",
    # Components
    "InMemoryHost",
    "LedgerHost",
    "JournalProgram",
    "JournalClient",
    "RuntimeContext",
    # Helpers
    "derive_journal_address",
    "find_program_address",
    # Errors
    "JournalKeepError",
    "AlreadyExistsError",
    "FieldTooLongError",
    "InsufficientFundsError",
    "InvalidSignatureError",
    "NotFoundError",
    "NoValidBumpError",
    "UnauthorizedError",
    # Constants
    "DEFAULT_PROGRAM_ID",
    "JOURNAL_ENTRY_SPACE",
    "MAX_MESSAGE_LENGTH",
    "MAX_TITLE_LENGTH",
]
