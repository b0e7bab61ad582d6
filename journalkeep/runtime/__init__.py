"""
journalkeep Runtime - client and wiring for an owner talking to a host.
"""

from journalkeep.runtime.client import JournalClient
from journalkeep.runtime.context import RuntimeContext

__all__ = [
    "JournalClient",
    "RuntimeContext",
]
