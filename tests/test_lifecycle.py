"""
tests/test_lifecycle.py

Journal entry lifecycle: ABSENT -> ACTIVE -> ABSENT.

  EXCLUSIVITY    create twice -> AlreadyExists; update/delete absent -> NotFound
  AUTHORIZATION  foreign signer -> Unauthorized / InvalidSignature
  BOUNDS         50/1000 accepted, 51/1001 -> FieldTooLong
  ROUND-TRIP     create, read, update, delete, re-create
  RESIZE         repeated updates never change the reserved size
"""

import logging

import pytest

from journalkeep.core.config import JournalConfig
from journalkeep.core.crypto import Ed25519KeyManager
from journalkeep.core.exceptions import (
    AddressMismatchError,
    AlreadyExistsError,
    FieldTooLongError,
    InsufficientFundsError,
    InvalidSignatureError,
    NotFoundError,
    UnauthorizedError,
)
from journalkeep.core.models import JOURNAL_ENTRY_SPACE, InstructionName
from journalkeep.host.host import InMemoryHost
from journalkeep.program.journal import JournalProgram
from journalkeep.runtime.client import JournalClient

FUNDS = 10 ** 9


@pytest.fixture
def host():
    config  = JournalConfig()
    log     = logging.getLogger("journalkeep.test")
    host    = InMemoryHost(config=config, logger=log)
    host.register_program(JournalProgram(config.program_id, logger=log))
    return host


def make_client(host, funds=FUNDS):
    key = Ed25519KeyManager.generate()
    host.airdrop(key.public_key_hex, funds)
    return JournalClient(host, key, host.config.program_id)


@pytest.fixture
def alice(host):
    return make_client(host)


@pytest.fixture
def bob(host):
    return make_client(host)


# ─────────────────────────────────────────────────────────────
# Round trip
# ─────────────────────────────────────────────────────────────

class TestRoundTrip:

    def test_create_then_read(self, alice):
        alice.create_entry("T", "M1")
        entry = alice.fetch(alice.find_entry_address("T"))
        assert entry.owner == alice.owner
        assert entry.title == "T"
        assert entry.message == "M1"

    def test_update_changes_only_message(self, alice):
        alice.create_entry("T", "M1")
        alice.update_entry("T", "M2")
        entry = alice.fetch(alice.find_entry_address("T"))
        assert (entry.owner, entry.title, entry.message) == (alice.owner, "T", "M2")

    def test_update_to_shorter_message_leaves_no_residue(self, alice):
        alice.create_entry("T", "a much longer first message")
        alice.update_entry("T", "x")
        assert alice.fetch(alice.find_entry_address("T")).message == "x"

    def test_delete_then_recreate(self, alice, host):
        alice.create_entry("T", "M1")
        alice.delete_entry("T")
        assert host.get_account(alice.find_entry_address("T")) is None

        alice.create_entry("T", "again")
        assert alice.fetch(alice.find_entry_address("T")).message == "again"

    def test_operations_return_transaction_signature(self, alice, host):
        sig = alice.create_entry("T", "M1")
        assert isinstance(sig, str) and len(sig) == 86
        assert host.get_receipts()[-1].signature == sig

    def test_all_lists_entries_by_owner(self, alice, bob):
        alice.create_entry("a", "1")
        alice.create_entry("b", "2")
        bob.create_entry("a", "3")

        assert len(alice.all()) == 3
        mine = alice.all(owner=alice.owner)
        assert [e.title for _, e in mine] == ["a", "b"]
        assert all(addr == alice.find_entry_address(e.title) for addr, e in mine)

    def test_same_title_different_owners_coexist(self, alice, bob):
        alice.create_entry("shared", "from alice")
        bob.create_entry("shared", "from bob")
        assert alice.fetch(alice.find_entry_address("shared")).message == "from alice"
        assert bob.fetch(bob.find_entry_address("shared")).message == "from bob"


# ─────────────────────────────────────────────────────────────
# Exclusivity
# ─────────────────────────────────────────────────────────────

class TestExclusivity:

    def test_create_twice_fails(self, alice):
        alice.create_entry("T", "M1")
        with pytest.raises(AlreadyExistsError):
            alice.create_entry("T", "M2")
        assert alice.fetch(alice.find_entry_address("T")).message == "M1"

    def test_update_absent_fails(self, alice):
        with pytest.raises(NotFoundError):
            alice.update_entry("never", "M")

    def test_delete_absent_fails(self, alice):
        with pytest.raises(NotFoundError):
            alice.delete_entry("never")

    def test_delete_twice_fails(self, alice):
        alice.create_entry("T", "M1")
        alice.delete_entry("T")
        with pytest.raises(NotFoundError):
            alice.delete_entry("T")

    def test_fetch_absent_fails(self, alice):
        with pytest.raises(NotFoundError):
            alice.fetch(alice.find_entry_address("never"))


# ─────────────────────────────────────────────────────────────
# Authorization
# ─────────────────────────────────────────────────────────────

class TestAuthorization:

    def test_update_by_non_owner_is_unauthorized(self, alice, bob, host):
        alice.create_entry("T", "M1")
        tx = bob.build_transaction(
            InstructionName.UPDATE, "T", "hijacked", owner=alice.owner
        )
        with pytest.raises(UnauthorizedError):
            host.process_transaction(tx)
        assert alice.fetch(alice.find_entry_address("T")).message == "M1"

    def test_delete_by_non_owner_is_unauthorized(self, alice, bob, host):
        alice.create_entry("T", "M1")
        tx = bob.build_transaction(InstructionName.DELETE, "T", owner=alice.owner)
        with pytest.raises(UnauthorizedError):
            host.process_transaction(tx)
        assert host.get_account(alice.find_entry_address("T")) is not None

    def test_create_for_someone_else_is_invalid_signature(self, alice, bob, host):
        tx = bob.build_transaction(
            InstructionName.CREATE, "T", "forged", owner=alice.owner
        )
        with pytest.raises(InvalidSignatureError):
            host.process_transaction(tx)
        assert host.get_account(alice.find_entry_address("T")) is None

    def test_non_owner_own_slot_is_not_found(self, alice, bob):
        """Bob's (title, bob) slot is a different address from Alice's."""
        alice.create_entry("T", "M1")
        with pytest.raises(NotFoundError):
            bob.update_entry("T", "M2")

    def test_tampered_transaction_rejected(self, alice, host):
        alice.create_entry("T", "M1")
        tx = alice.build_transaction(InstructionName.UPDATE, "T", "M2")
        tx.instruction.args["message"] = "TAMPERED"
        with pytest.raises(InvalidSignatureError):
            host.process_transaction(tx)
        assert alice.fetch(alice.find_entry_address("T")).message == "M1"

    def test_mismatched_address_hint_rejected(self, alice, host):
        alice.create_entry("T", "M1")
        tx = alice.build_transaction(InstructionName.UPDATE, "T", "M2")
        tx.instruction.accounts["journal_entry"] = alice.find_entry_address("other")
        tx.sign(alice.key_manager)
        with pytest.raises(AddressMismatchError):
            host.process_transaction(tx)

    def test_owner_succeeds(self, alice):
        alice.create_entry("T", "M1")
        alice.update_entry("T", "M2")
        alice.delete_entry("T")


# ─────────────────────────────────────────────────────────────
# Field bounds
# ─────────────────────────────────────────────────────────────

class TestFieldBounds:

    def test_limits_accepted(self, alice):
        alice.create_entry("t" * 50, "m" * 1000)
        alice.update_entry("t" * 50, "n" * 1000)
        entry = alice.fetch(alice.find_entry_address("t" * 50))
        assert entry.message == "n" * 1000

    def test_create_with_long_title_fails(self, alice, host):
        with pytest.raises(FieldTooLongError):
            alice.create_entry("t" * 51, "M")
        assert host.get_program_accounts(host.config.program_id) == []

    def test_create_with_long_message_fails(self, alice):
        with pytest.raises(FieldTooLongError):
            alice.create_entry("T", "m" * 1001)
        with pytest.raises(NotFoundError):
            alice.fetch(alice.find_entry_address("T"))

    def test_update_with_long_message_fails(self, alice):
        alice.create_entry("T", "M1")
        with pytest.raises(FieldTooLongError):
            alice.update_entry("T", "m" * 1001)
        assert alice.fetch(alice.find_entry_address("T")).message == "M1"

    def test_update_with_long_title_fails(self, alice):
        with pytest.raises(FieldTooLongError):
            alice.update_entry("t" * 51, "M")


# ─────────────────────────────────────────────────────────────
# Storage & deposits
# ─────────────────────────────────────────────────────────────

class TestStorage:

    def test_create_reserves_worst_case_space(self, alice, host):
        alice.create_entry("T", "M1")
        account = host.get_account(alice.find_entry_address("T"))
        assert len(account.data) == JOURNAL_ENTRY_SPACE
        assert account.lamports == host.rent_exempt_minimum(JOURNAL_ENTRY_SPACE)

    def test_create_charges_owner(self, alice, host):
        alice.create_entry("T", "M1")
        deposit = host.rent_exempt_minimum(JOURNAL_ENTRY_SPACE)
        assert host.balance(alice.owner) == FUNDS - deposit

    def test_repeated_updates_keep_size_and_balance(self, alice, host):
        alice.create_entry("T", "M1")
        address = alice.find_entry_address("T")
        balance = host.balance(alice.owner)
        for message in ("", "m" * 1000, "short", "m" * 500):
            alice.update_entry("T", message)
            account = host.get_account(address)
            assert len(account.data) == JOURNAL_ENTRY_SPACE
            assert host.balance(alice.owner) == balance

    def test_delete_refunds_full_deposit(self, alice, host):
        alice.create_entry("T", "M1")
        alice.update_entry("T", "M2")
        alice.delete_entry("T")
        assert host.balance(alice.owner) == FUNDS

    def test_create_without_funds_fails(self, host):
        broke = make_client(host, funds=0)
        with pytest.raises(InsufficientFundsError):
            broke.create_entry("T", "M1")
        assert host.get_account(broke.find_entry_address("T")) is None

    def test_create_with_exact_deposit_succeeds(self, host):
        exact = make_client(host, funds=host.rent_exempt_minimum(JOURNAL_ENTRY_SPACE))
        exact.create_entry("T", "M1")
        assert host.balance(exact.owner) == 0
