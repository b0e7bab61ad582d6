"""
journalkeep Journal Program - create / update / delete lifecycle rules.
"""

from journalkeep.program.journal import JournalProgram

__all__ = ["JournalProgram"]
