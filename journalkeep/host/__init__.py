"""
journalkeep Ledger Host

Reference execution environment: signature checks, address derivation,
slot allocation with storage deposits, one atomic transaction at a time.
"""

from journalkeep.host.host import (
    ACCOUNT_STORAGE_OVERHEAD,
    Account,
    InMemoryHost,
    InstructionContext,
    LedgerHost,
    rent_exempt_minimum,
)

__all__ = [
    "ACCOUNT_STORAGE_OVERHEAD",
    "Account",
    "InMemoryHost",
    "InstructionContext",
    "LedgerHost",
    "rent_exempt_minimum",
]
