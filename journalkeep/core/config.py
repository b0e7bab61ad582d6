"""
journalkeep/core/config.py

Host and program configuration.

Sources, later wins:
    1. dataclass defaults
    2. YAML file            JournalConfig.from_yaml(path)
    3. environment          JOURNALKEEP_PROGRAM_ID, JOURNALKEEP_LOG_LEVEL,
                            JOURNALKEEP_LOG_FILE
"""

import hashlib
import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from journalkeep.core.crypto import is_identity_hex
from journalkeep.core.exceptions import ConfigError

# Fixed program id of the journal program.
DEFAULT_PROGRAM_ID = hashlib.sha256(b"journalkeep:journal-program").hexdigest()

# Solana rent defaults.
DEFAULT_LAMPORTS_PER_BYTE_YEAR    = 3480
DEFAULT_EXEMPTION_THRESHOLD_YEARS = 2

# Receipts kept by a host; older ones are dropped first.
DEFAULT_MAX_RECEIPTS = 10_000

_ENV_PREFIX = "JOURNALKEEP_"


@dataclass(frozen=True)
class JournalConfig:
    program_id:                str = DEFAULT_PROGRAM_ID
    lamports_per_byte_year:    int = DEFAULT_LAMPORTS_PER_BYTE_YEAR
    exemption_threshold_years: int = DEFAULT_EXEMPTION_THRESHOLD_YEARS
    max_receipts:              int = DEFAULT_MAX_RECEIPTS
    log_level:                 str = "INFO"
    log_file:                  Optional[str] = None

    def __post_init__(self) -> None:
        if not is_identity_hex(self.program_id):
            raise ConfigError(
                "program_id must be a 64-char hex string",
                {"program_id": self.program_id},
            )
        for name in ("lamports_per_byte_year", "exemption_threshold_years"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                raise ConfigError(f"{name} must be a non-negative int, got {value!r}")
        if (
            not isinstance(self.max_receipts, int)
            or isinstance(self.max_receipts, bool)
            or self.max_receipts < 1
        ):
            raise ConfigError(f"max_receipts must be a positive int, got {self.max_receipts!r}")
        if not isinstance(logging.getLevelName(str(self.log_level).upper()), int):
            raise ConfigError(f"Unknown log_level {self.log_level!r}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "JournalConfig":
        known   = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError("Unknown configuration keys", {"keys": unknown})
        return cls(**data)

    @classmethod
    def from_yaml(cls, path: Path) -> "JournalConfig":
        """Load from a YAML mapping. Missing keys keep their defaults."""
        path = Path(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except FileNotFoundError as exc:
            raise ConfigError(f"Config file not found: {path}") from exc
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")
        return cls.from_dict(data)

    @classmethod
    def from_env(cls, base: Optional["JournalConfig"] = None) -> "JournalConfig":
        """Apply JOURNALKEEP_* overrides on top of base (or defaults)."""
        config = base or cls()
        overrides: Dict[str, Any] = {}
        for name in ("program_id", "log_level", "log_file"):
            value = os.environ.get(_ENV_PREFIX + name.upper())
            if value:
                overrides[name] = value.lower() if name == "program_id" else value
        return replace(config, **overrides) if overrides else config

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "JournalConfig":
        base = cls.from_yaml(path) if path else cls()
        return cls.from_env(base)

    @property
    def log_level_int(self) -> int:
        return logging.getLevelName(self.log_level.upper())
