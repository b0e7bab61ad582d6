"""
journalkeep/core/models.py

Record Schema & Transaction Model

═══════════════════════════════════════════════════════════════════
CONTRACT 1 — Record layout (little-endian, length-prefixed)
    discriminator[8] | owner[32] | u32 len | title | u32 len | message
    zero padding up to JOURNAL_ENTRY_SPACE

CONTRACT 2 — Space
    JOURNAL_ENTRY_SPACE = 8 + 32 + (4 + 50) + (4 + 1000) = 1098
    reserved at create, reconciled to the same value on every update

CONTRACT 3 — Field bounds (UTF-8 bytes)
    title   <= 50
    message <= 1000

CONTRACT 4 — Transaction signing
    bytes_signed = canonicalize(tx.to_signing_dict())
    algorithm    = Ed25519
    encoding     = base64url, no padding
    tx signature doubles as the transaction's identifier once processed
═══════════════════════════════════════════════════════════════════
"""

import hashlib
import secrets
import struct
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from journalkeep.core.canonical import canonicalize
from journalkeep.core.crypto import (
    IDENTITY_HEX_LENGTH,
    IDENTITY_LENGTH,
    Ed25519KeyManager,
    is_identity_hex,
)
from journalkeep.core.exceptions import FieldTooLongError, SchemaError
from journalkeep.core.time import TIMESTAMP_RE, utc_timestamp


# ─────────────────────────────────────────────────────────────
# Schema Constants
# ─────────────────────────────────────────────────────────────

TX_VERSION = "1.0"

DISCRIMINATOR_LENGTH = 8
LENGTH_PREFIX        = 4

MAX_TITLE_LENGTH   = 50
MAX_MESSAGE_LENGTH = 1000

JOURNAL_ENTRY_INIT_SPACE = (
    IDENTITY_LENGTH
    + LENGTH_PREFIX + MAX_TITLE_LENGTH
    + LENGTH_PREFIX + MAX_MESSAGE_LENGTH
)
JOURNAL_ENTRY_SPACE = DISCRIMINATOR_LENGTH + JOURNAL_ENTRY_INIT_SPACE

JOURNAL_ENTRY_DISCRIMINATOR = hashlib.sha256(
    b"account:JournalEntryState"
).digest()[:DISCRIMINATOR_LENGTH]

_NONCE_HEX_LENGTH = 32

_U32 = struct.Struct("<I")


def check_field_length(name: str, value: str, maximum: int) -> bytes:
    """
    Encode value as UTF-8 and enforce its byte-length bound.
    Returns the encoded bytes.
    """
    if not isinstance(value, str):
        raise TypeError(f"{name} must be str, got {type(value).__name__}")
    encoded = value.encode("utf-8")
    if len(encoded) > maximum:
        raise FieldTooLongError(
            f"{name} exceeds maximum length",
            {"field": name, "length": len(encoded), "max": maximum},
        )
    return encoded


def check_title(title: str) -> bytes:
    return check_field_length("title", title, MAX_TITLE_LENGTH)


def check_message(message: str) -> bytes:
    return check_field_length("message", message, MAX_MESSAGE_LENGTH)


# ─────────────────────────────────────────────────────────────
# JournalEntryState
# ─────────────────────────────────────────────────────────────

@dataclass
class JournalEntryState:
    """One journal entry as stored in its slot."""

    owner:   str
    title:   str
    message: str

    def encode(self, space: int = JOURNAL_ENTRY_SPACE) -> bytes:
        """
        Serialize to the fixed layout, zero-padded to space bytes.
        Raises FieldTooLongError if a field is out of bounds.
        """
        if not is_identity_hex(self.owner):
            raise SchemaError(f"owner must be a 64-char hex identity, got {self.owner!r}")
        title   = check_title(self.title)
        message = check_message(self.message)

        body = b"".join([
            JOURNAL_ENTRY_DISCRIMINATOR,
            bytes.fromhex(self.owner),
            _U32.pack(len(title)),
            title,
            _U32.pack(len(message)),
            message,
        ])
        if len(body) > space:
            raise SchemaError(
                "Encoded entry does not fit its slot",
                {"encoded": len(body), "space": space},
            )
        return body + b"\x00" * (space - len(body))

    @classmethod
    def decode(cls, data: bytes) -> "JournalEntryState":
        """
        Parse slot bytes. Trailing padding is ignored.
        Raises SchemaError on a wrong discriminator or truncated data.
        """
        if data[:DISCRIMINATOR_LENGTH] != JOURNAL_ENTRY_DISCRIMINATOR:
            raise SchemaError("Slot does not hold a JournalEntryState")

        offset = DISCRIMINATOR_LENGTH
        owner  = data[offset:offset + IDENTITY_LENGTH]
        if len(owner) != IDENTITY_LENGTH:
            raise SchemaError("Slot truncated inside owner")
        offset += IDENTITY_LENGTH

        title, offset   = cls._read_text(data, offset, "title")
        message, offset = cls._read_text(data, offset, "message")
        return cls(owner=owner.hex(), title=title, message=message)

    @staticmethod
    def _read_text(data: bytes, offset: int, name: str):
        if offset + LENGTH_PREFIX > len(data):
            raise SchemaError(f"Slot truncated before {name} length")
        (length,) = _U32.unpack_from(data, offset)
        offset += LENGTH_PREFIX
        if offset + length > len(data):
            raise SchemaError(
                f"Slot truncated inside {name}",
                {"declared": length, "available": len(data) - offset},
            )
        try:
            text = data[offset:offset + length].decode("utf-8")
        except UnicodeDecodeError as exc:
            raise SchemaError(f"{name} is not valid UTF-8: {exc}") from exc
        return text, offset + length

    def to_dict(self) -> Dict[str, Any]:
        return {"owner": self.owner, "title": self.title, "message": self.message}


# ─────────────────────────────────────────────────────────────
# SchemaValidationResult
# ─────────────────────────────────────────────────────────────

@dataclass
class SchemaValidationResult:
    """
    Result of Transaction.validate_schema().

    Returned, not raised, so callers can choose hard fail vs log.
    bool(result) is True iff valid.
    """
    valid:  bool
    errors: List[str]

    def __bool__(self) -> bool:
        return self.valid

    def __repr__(self) -> str:
        if self.valid:
            return "SchemaValidationResult(VALID)"
        return f"SchemaValidationResult(INVALID, errors={self.errors})"


# ─────────────────────────────────────────────────────────────
# Instruction & Transaction
# ─────────────────────────────────────────────────────────────

class InstructionName:
    """The three entry points of the journal program."""
    CREATE = "create_journal_entry"
    UPDATE = "update_journal_entry"
    DELETE = "delete_journal_entry"


VALID_INSTRUCTIONS = {
    InstructionName.CREATE,
    InstructionName.UPDATE,
    InstructionName.DELETE,
}


@dataclass
class Instruction:
    """
    One program call.

    args     — {"title": ..., "message": ...} (message absent for delete)
    accounts — {"owner": hex, "journal_entry": hex or absent}
               journal_entry is only a hint; the program re-derives it.
    """
    name:     str
    args:     Dict[str, Any]
    accounts: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name":     self.name,
            "args":     dict(self.args),
            "accounts": dict(self.accounts),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Instruction":
        return cls(
            name=     data["name"],
            args=     dict(data.get("args", {})),
            accounts= dict(data.get("accounts", {})),
        )


def _lower_hex(value):
    return value.lower() if isinstance(value, str) else value


@dataclass
class Transaction:
    """
    A signed request to run one instruction against one program.

    Create with Transaction.create(...).sign(key_manager).
    """

    tx_version:  str
    tx_id:       str
    program_id:  str
    signer:      str
    instruction: Instruction
    nonce:       str
    timestamp:   str
    signature:   Optional[str] = None

    # ── Constructor ───────────────────────────────────────────

    @classmethod
    def create(
        cls,
        program_id:  str,
        signer:      str,
        instruction: Instruction,
    ) -> "Transaction":
        """
        Create an unsigned Transaction.

        Hard enforces:
            program_id  — 64-char hex
            signer      — 64-char hex
            instruction — an Instruction
        """
        if not is_identity_hex(program_id):
            raise ValueError(
                f"program_id must be {IDENTITY_HEX_LENGTH}-char hex string, got {program_id!r}"
            )
        if not is_identity_hex(signer):
            raise ValueError(
                f"signer must be {IDENTITY_HEX_LENGTH}-char hex string, got {signer!r}"
            )
        if not isinstance(instruction, Instruction):
            raise TypeError(
                f"instruction must be Instruction, got {type(instruction).__name__}"
            )

        return cls(
            tx_version=  TX_VERSION,
            tx_id=       f"tx-{uuid.uuid4()}",
            program_id=  program_id.lower(),
            signer=      signer.lower(),
            instruction= instruction,
            nonce=       secrets.token_hex(_NONCE_HEX_LENGTH // 2),
            timestamp=   utc_timestamp(),
            signature=   None,
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Transaction":
        """
        Deserialize from a JSON dict. Hex identities are lowercased the
        way create() stores them; callers MUST still call validate_schema()
        before acting on the result.
        """
        try:
            return cls(
                tx_version=  data["tx_version"],
                tx_id=       data["tx_id"],
                program_id=  _lower_hex(data["program_id"]),
                signer=      _lower_hex(data["signer"]),
                instruction= Instruction.from_dict(data["instruction"]),
                nonce=       data["nonce"],
                timestamp=   data["timestamp"],
                signature=   data.get("signature"),
            )
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise SchemaError(f"Malformed transaction: {exc}") from exc

    # ── Schema Validation ─────────────────────────────────────

    def validate_schema(self) -> SchemaValidationResult:
        errors: List[str] = []

        if self.tx_version != TX_VERSION:
            errors.append(
                f"tx_version: expected '{TX_VERSION}', got '{self.tx_version}'"
            )
        if not isinstance(self.tx_id, str) or not self.tx_id.startswith("tx-"):
            errors.append(f"tx_id must start with 'tx-', got {self.tx_id!r}")
        if not is_identity_hex(self.program_id):
            errors.append("program_id must be 64 hex chars")
        if not is_identity_hex(self.signer):
            errors.append("signer must be 64 hex chars")

        if not isinstance(self.nonce, str) or len(self.nonce) != _NONCE_HEX_LENGTH:
            errors.append(f"nonce must be exactly {_NONCE_HEX_LENGTH} hex chars")
        else:
            try:
                bytes.fromhex(self.nonce)
            except ValueError:
                errors.append(f"nonce is not valid hex: {self.nonce!r}")

        if not isinstance(self.timestamp, str) or not TIMESTAMP_RE.match(self.timestamp):
            errors.append(
                f"timestamp {self.timestamp!r} does not match YYYY-MM-DDTHH:MM:SS.mmmZ"
            )

        ix = self.instruction
        if ix.name not in VALID_INSTRUCTIONS:
            errors.append(
                f"instruction '{ix.name}' not in {sorted(VALID_INSTRUCTIONS)}"
            )
        if not isinstance(ix.args.get("title"), str):
            errors.append("instruction args must carry a string 'title'")
        if ix.name != InstructionName.DELETE and not isinstance(ix.args.get("message"), str):
            errors.append(f"{ix.name} args must carry a string 'message'")
        if not is_identity_hex(ix.accounts.get("owner")):
            errors.append("instruction accounts must name an 'owner' identity")
        hint = ix.accounts.get("journal_entry")
        if hint is not None and not is_identity_hex(hint):
            errors.append("journal_entry account hint must be 64 hex chars")

        return SchemaValidationResult(valid=len(errors) == 0, errors=errors)

    # ── Signing ───────────────────────────────────────────────

    def to_signing_dict(self) -> Dict[str, Any]:
        """The exact dict signed by Ed25519: every field except signature."""
        return {
            "instruction": self.instruction.to_dict(),
            "nonce":       self.nonce,
            "program_id":  self.program_id,
            "signer":      self.signer,
            "timestamp":   self.timestamp,
            "tx_id":       self.tx_id,
            "tx_version":  self.tx_version,
        }

    def to_dict(self) -> Dict[str, Any]:
        d = self.to_signing_dict()
        d["signature"] = self.signature
        return d

    def canonical_bytes_for_signing(self) -> bytes:
        return canonicalize(self.to_signing_dict())

    def sign(self, key_manager: Ed25519KeyManager) -> "Transaction":
        """
        Sign in place and return self:
            tx = Transaction.create(...).sign(key_manager)
        """
        self.signature = key_manager.sign(self.canonical_bytes_for_signing())
        return self

    def verify_signature(self, identity: Optional[str] = None) -> bool:
        """
        True iff the transaction carries a valid Ed25519 signature for
        identity (defaults to self.signer). Never raises.
        """
        if not self.signature:
            return False
        pubkey_hex = (identity or self.signer).lower()
        if pubkey_hex != self.signer.lower():
            return False
        return Ed25519KeyManager.verify_detached(
            self.canonical_bytes_for_signing(), self.signature, pubkey_hex
        )

    def is_signed(self) -> bool:
        return bool(self.signature)


# ─────────────────────────────────────────────────────────────
# TransactionReceipt
# ─────────────────────────────────────────────────────────────

class TxStatus:
    OK     = "ok"
    FAILED = "failed"


@dataclass
class TransactionReceipt:
    """Outcome of one processed transaction, kept by the host."""
    signature:   str
    tx_id:       str
    instruction: str
    signer:      str
    status:      str
    timestamp:   str
    error:       Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "signature":   self.signature,
            "tx_id":       self.tx_id,
            "instruction": self.instruction,
            "signer":      self.signer,
            "status":      self.status,
            "timestamp":   self.timestamp,
            "error":       self.error,
        }
