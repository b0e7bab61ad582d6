"""
Runtime context for journalkeep.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from journalkeep.core.config import JournalConfig
from journalkeep.core.crypto import Ed25519KeyManager
from journalkeep.core.logger import get_logger
from journalkeep.host.host import InMemoryHost
from journalkeep.program.journal import JournalProgram
from journalkeep.runtime.client import JournalClient


@dataclass
class RuntimeContext:
    """Config, key, host, program and client wired together."""

    config:      JournalConfig
    key_manager: Ed25519KeyManager
    host:        InMemoryHost
    program:     JournalProgram
    client:      JournalClient

    @classmethod
    def from_config(
        cls,
        config_file: Optional[Path] = None,
        key_path:    Optional[Path] = None,
    ) -> "RuntimeContext":
        """
        Build a runtime from an optional YAML file and JOURNALKEEP_* env vars.
        A missing key_path is created with a fresh key.
        """
        config = JournalConfig.load(config_file)

        if key_path and Path(key_path).exists():
            key_manager = Ed25519KeyManager.from_file(key_path)
        else:
            key_manager = Ed25519KeyManager.generate()
            if key_path:
                key_manager.save(key_path)

        host_log    = get_logger("journalkeep.host", config.log_level_int, config.log_file)
        program_log = get_logger("journalkeep.program", config.log_level_int, config.log_file)

        host    = InMemoryHost(config=config, logger=host_log)
        program = JournalProgram(program_id=config.program_id, logger=program_log)
        host.register_program(program)

        return cls(
            config=      config,
            key_manager= key_manager,
            host=        host,
            program=     program,
            client=      JournalClient(host, key_manager, config.program_id),
        )

    def __repr__(self) -> str:
        return (
            f"RuntimeContext("
            f"program_id={self.config.program_id[:16]}..., "
            f"owner={self.key_manager.public_key_hex[:16]}...)"
        )
