"""
journalkeep/core/address.py

Address Deriver

    address = SHA-256(seed_0 || ... || seed_n || bump || program_id || MARKER)

bump is searched from 255 down to 0. The first candidate that is NOT an
Ed25519 curve point wins, so no private key can ever sign for the slot.

Journal entries use the seeds [title (UTF-8), owner (32 raw bytes)], so
the same (title, owner) always resolves to the same (address, bump) and
the host can recompute the slot instead of trusting a caller-supplied one.

Addresses are 64-char lowercase hex, the same shape as identities.
"""

import hashlib
from typing import List, Sequence, Tuple

from journalkeep.core.crypto import is_identity_hex
from journalkeep.core.curve import is_on_curve
from journalkeep.core.exceptions import (
    InvalidSeedsError,
    NoValidBumpError,
)

PDA_MARKER = b"ProgramDerivedAddress"

# One seed slot is reserved for the bump.
MAX_SEEDS = 16

# Room for a 50-unit title of four-byte UTF-8 code points.
MAX_SEED_LENGTH = 200


def _check_seeds(seeds: Sequence[bytes]) -> None:
    if len(seeds) > MAX_SEEDS:
        raise InvalidSeedsError(
            "Too many seeds",
            {"count": len(seeds), "max": MAX_SEEDS},
        )
    for i, seed in enumerate(seeds):
        if not isinstance(seed, (bytes, bytearray)):
            raise InvalidSeedsError(
                f"Seed {i} must be bytes, got {type(seed).__name__}"
            )
        if len(seed) > MAX_SEED_LENGTH:
            raise InvalidSeedsError(
                f"Seed {i} exceeds maximum length",
                {"length": len(seed), "max": MAX_SEED_LENGTH},
            )


def _program_id_bytes(program_id: str) -> bytes:
    if not is_identity_hex(program_id):
        raise InvalidSeedsError(
            f"program_id must be a 64-char hex string, got {program_id!r}"
        )
    return bytes.fromhex(program_id)


def _hash_candidate(seeds: Sequence[bytes], program_id: bytes) -> bytes:
    hasher = hashlib.sha256()
    for seed in seeds:
        hasher.update(seed)
    hasher.update(program_id)
    hasher.update(PDA_MARKER)
    return hasher.digest()


def create_program_address(seeds: Sequence[bytes], program_id: str) -> str:
    """
    Hash one candidate address from seeds (bump included by the caller).

    Raises InvalidSeedsError if the seeds are malformed or the candidate
    is a valid curve point.
    """
    _check_seeds(seeds)
    candidate = _hash_candidate(seeds, _program_id_bytes(program_id))
    if is_on_curve(candidate):
        raise InvalidSeedsError(
            "Derived address lies on the Ed25519 curve",
            {"candidate": candidate.hex()[:16]},
        )
    return candidate.hex()


def find_program_address(
    seeds: Sequence[bytes],
    program_id: str,
) -> Tuple[str, int]:
    """
    Search bumps 255..0 and return the first off-curve (address, bump).

    Raises NoValidBumpError if the whole range is exhausted.
    """
    # The bump takes one seed slot.
    base: List[bytes] = list(seeds) + [b"\x00"]
    _check_seeds(base)
    pid = _program_id_bytes(program_id)

    for bump in range(255, -1, -1):
        base[-1] = bytes([bump])
        candidate = _hash_candidate(base, pid)
        if not is_on_curve(candidate):
            return candidate.hex(), bump
    raise NoValidBumpError(
        "No bump in 255..0 produced an off-curve address",
        {"program_id": program_id[:16]},
    )


def journal_entry_seeds(title: str, owner: str) -> List[bytes]:
    """Seeds for a journal entry: [title UTF-8 bytes, raw owner key]."""
    if not is_identity_hex(owner):
        raise InvalidSeedsError(
            f"owner must be a 64-char hex identity, got {owner!r}"
        )
    return [title.encode("utf-8"), bytes.fromhex(owner)]


def derive_journal_address(
    title: str,
    owner: str,
    program_id: str,
) -> Tuple[str, int]:
    """(address, bump) of the journal entry owned by owner under title."""
    return find_program_address(journal_entry_seeds(title, owner), program_id)

