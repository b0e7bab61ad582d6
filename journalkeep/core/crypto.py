"""
journalkeep/core/crypto.py

Identity & Signature Layer

An identity in journalkeep is a raw 32-byte Ed25519 public key, carried
everywhere as 64-char lowercase hex. Record owners, transaction signers
and the program id all share that representation.

Key contracts:
    public_key_hex          : @property -> 64-char lowercase hex
    public_key_bytes        : @property -> raw 32 bytes
    sign(data)              : bytes -> base64url str, no padding
    decode_signature(sig)   : canonical base64url str -> raw 64 bytes, or None
    verify_detached(...)    : @staticmethod, verifies with ONLY a pubkey hex string
"""

import base64
from pathlib import Path
from typing import Optional

from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
    load_pem_private_key,
)

IDENTITY_LENGTH     = 32
IDENTITY_HEX_LENGTH = 64
SIGNATURE_LENGTH    = 64


def is_identity_hex(value) -> bool:
    """True iff value is a 64-char hex string (a 32-byte identity)."""
    if not isinstance(value, str) or len(value) != IDENTITY_HEX_LENGTH:
        return False
    try:
        bytes.fromhex(value)
    except ValueError:
        return False
    return True


def decode_signature(signature_b64) -> Optional[bytes]:
    """
    Raw signature bytes of a base64url string, or None.

    Only the canonical encoding is accepted: the string must be exactly what
    sign() would produce for those bytes, so one signature has one spelling.
    """
    if not isinstance(signature_b64, str):
        return None
    padded = signature_b64 + "=" * (-len(signature_b64) % 4)
    try:
        raw = base64.b64decode(padded, altchars=b"-_", validate=True)
    except (ValueError, TypeError):
        return None
    if len(raw) != SIGNATURE_LENGTH:
        return None
    if base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii") != signature_b64:
        return None
    return raw


class Ed25519KeyManager:
    """
    Ed25519 key manager for record owners.

    Public surface:
        Ed25519KeyManager.generate()                        -> new random key
        Ed25519KeyManager.from_file(path)                  -> load PEM private key
        Ed25519KeyManager.verify_detached(data, sig, hex)  -> @staticmethod

        key.public_key_hex          (@property) -> 64-char lowercase hex
        key.public_key_bytes        (@property) -> raw 32 bytes
        key.sign(data: bytes)                   -> base64url str (no padding)
        key.save(path)                          -> write PEM private key
    """

    def __init__(self, private_key: Ed25519PrivateKey) -> None:
        self._private_key:      Ed25519PrivateKey = private_key
        self._public_key:       Ed25519PublicKey  = private_key.public_key()
        self._public_key_bytes: bytes = self._public_key.public_bytes(
            Encoding.Raw, PublicFormat.Raw
        )

    # ── Construction ──────────────────────────────────────────

    @classmethod
    def generate(cls) -> "Ed25519KeyManager":
        """Generate a new random Ed25519 key pair."""
        return cls(Ed25519PrivateKey.generate())

    @classmethod
    def from_file(cls, path: Path) -> "Ed25519KeyManager":
        """
        Load an Ed25519 private key from a PEM file.
        Raises FileNotFoundError if path does not exist.
        Raises ValueError if the file is not a valid Ed25519 PEM key.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Key file not found: {path}")
        try:
            private_key = load_pem_private_key(path.read_bytes(), password=None)
        except (ValueError, TypeError) as exc:
            raise ValueError(
                f"Failed to load Ed25519 key from {path}: {exc}"
            ) from exc
        if not isinstance(private_key, Ed25519PrivateKey):
            raise ValueError(
                f"Key file {path} does not contain an Ed25519 private key"
            )
        return cls(private_key)

    # ── Public Key ────────────────────────────────────────────

    @property
    def public_key_hex(self) -> str:
        """64-character lowercase hex of the public key. Access without parentheses."""
        return self._public_key_bytes.hex()

    @property
    def public_key_bytes(self) -> bytes:
        return self._public_key_bytes

    # ── Signing ───────────────────────────────────────────────

    def sign(self, data: bytes) -> str:
        """
        Sign data with Ed25519. Returns base64url string, no '=' padding.
        Caller is responsible for canonicalization.
        """
        raw_sig = self._private_key.sign(data)
        return base64.urlsafe_b64encode(raw_sig).rstrip(b"=").decode("ascii")

    @staticmethod
    def verify_detached(
        data:           bytes,
        signature_b64:  str,
        public_key_hex: str,
    ) -> bool:
        """
        Verify an Ed25519 signature using ONLY a public key hex string.

        Returns:
            True if the signature is valid over data with the given public key.
            False for ANY failure (wrong key, non-canonical encoding,
            wrong length, corrupted signature). Never raises.
        """
        raw_sig = decode_signature(signature_b64)
        if raw_sig is None or not is_identity_hex(public_key_hex):
            return False
        try:
            pub = Ed25519PublicKey.from_public_bytes(bytes.fromhex(public_key_hex))
            pub.verify(raw_sig, data)
            return True

        except Exception:
            return False

    # ── Persistence ───────────────────────────────────────────

    def save(self, path: Path) -> None:
        """
        Write the private key to disk as a PEM file.
        Creates parent directories if needed.
        Raises RuntimeError on write failure.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        pem = self._private_key.private_bytes(
            encoding=             Encoding.PEM,
            format=               PrivateFormat.PKCS8,
            encryption_algorithm= NoEncryption(),
        )
        try:
            path.write_bytes(pem)
        except OSError as exc:
            raise RuntimeError(
                f"Failed to save Ed25519 key to {path}: {exc}"
            ) from exc

    def __repr__(self) -> str:
        return (
            f"Ed25519KeyManager(public_key_hex={self.public_key_hex[:16]}...)"
        )
