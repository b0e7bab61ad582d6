"""
journalkeep/host/host.py

Ledger Host — the execution environment a program runs inside.

The host owns everything the journal program must not do itself:
    - verify transaction signatures
    - derive program addresses
    - allocate / resize / free slots and move storage deposits
    - run each transaction atomically and one at a time

process_transaction() MUST, in this exact order:
  1. Validate the transaction schema
  2. Verify the signer's signature
  3. Acquire lock, reject a signature whose raw bytes were already processed
  4. Dispatch to the registered program, keeping the prior state of
     every slot and balance it touches
  5. On any exception, restore that prior state and re-raise
  6. Record the signature and a receipt only after success
"""

import logging
import threading
from abc import ABC, abstractmethod
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Deque, Dict, Iterator, List, Optional, Sequence, Set, Tuple

from journalkeep.core.address import find_program_address
from journalkeep.core.config import JournalConfig
from journalkeep.core.crypto import decode_signature
from journalkeep.core.exceptions import (
    AlreadyExistsError,
    DuplicateTransactionError,
    InsufficientFundsError,
    InvalidSignatureError,
    JournalKeepError,
    NotFoundError,
    SchemaError,
    StorageError,
    UnknownInstructionError,
)
from journalkeep.core.logger import get_logger
from journalkeep.core.models import (
    Instruction,
    Transaction,
    TransactionReceipt,
    TxStatus,
)
from journalkeep.core.time import utc_timestamp

# Per-account bytes the host charges for on top of the data itself.
ACCOUNT_STORAGE_OVERHEAD = 128


def rent_exempt_minimum(size: int, config: JournalConfig) -> int:
    """Deposit that keeps a slot of size bytes alive indefinitely."""
    return (
        (ACCOUNT_STORAGE_OVERHEAD + size)
        * config.lamports_per_byte_year
        * config.exemption_threshold_years
    )


@dataclass
class Account:
    """One allocated slot."""
    address:       str
    owner_program: str
    lamports:      int
    data:          bytearray

    def snapshot(self) -> "Account":
        return Account(
            address=       self.address,
            owner_program= self.owner_program,
            lamports=      self.lamports,
            data=          bytearray(self.data),
        )


@dataclass
class InstructionContext:
    """What a program sees while one of its instructions runs."""
    host:        "LedgerHost"
    program_id:  str
    signer:      str
    instruction: Instruction

    @property
    def accounts(self) -> Dict[str, str]:
        return self.instruction.accounts

    def derive_address(self, seeds: Sequence[bytes]) -> Tuple[str, int]:
        return self.host.derive_address(seeds, self.program_id)


class LedgerHost(ABC):
    """The contract a program relies on."""

    @abstractmethod
    def derive_address(
        self, seeds: Sequence[bytes], program_id: str
    ) -> Tuple[str, int]:
        """(address, bump), or NoValidBumpError."""

    @abstractmethod
    def allocate(self, address: str, size: int, payer: str) -> Account:
        """New zeroed slot, or AlreadyExistsError / InsufficientFundsError."""

    @abstractmethod
    def reallocate(self, address: str, new_size: int, payer: str) -> None:
        """Resize a slot, settling the deposit difference with payer."""

    @abstractmethod
    def deallocate(self, address: str, refund_to: str) -> None:
        """Free a slot and return its whole deposit to refund_to."""

    @abstractmethod
    def verify_signature(self, identity: str) -> bool:
        """True iff the running transaction is validly signed by identity."""

    @abstractmethod
    def get_account(self, address: str) -> Optional[Account]:
        """Copy of the slot at address, or None."""

    @abstractmethod
    def write_account_data(self, address: str, data: bytes) -> None:
        """Overwrite a slot's bytes; length must equal the slot size."""


class InMemoryHost(LedgerHost):
    """
    Reference host keeping accounts and balances in process memory.

    Thread-safe: every transaction runs under one re-entrant lock, so two
    transactions never interleave and slot operations from any other
    thread wait until the running transaction is finished. State does not
    outlive the process.
    """

    def __init__(
        self,
        config: Optional[JournalConfig] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.config = config or JournalConfig()
        self.log    = logger or get_logger("journalkeep.host")

        self._lock:       threading.RLock              = threading.RLock()
        self._accounts:   Dict[str, Account]           = {}
        self._balances:   Dict[str, int]               = {}
        self._programs:   Dict[str, object]            = {}
        self._processed:  Set[bytes]                   = set()
        self._receipts:   Deque[TransactionReceipt]    = deque(maxlen=self.config.max_receipts)
        self._current_tx: Optional[Transaction]        = None

        # Prior state of everything the running transaction touched.
        self._undo_accounts: Dict[str, Optional[Account]] = {}
        self._undo_balances: Dict[str, Optional[int]]     = {}

    # ── Programs & funds ──────────────────────────────────────

    def register_program(self, program) -> None:
        """Make program reachable by transactions naming its program_id."""
        self._programs[program.program_id] = program

    def airdrop(self, identity: str, lamports: int) -> int:
        """Credit lamports to identity. Returns the new balance."""
        if lamports < 0:
            raise ValueError(f"airdrop amount must be non-negative, got {lamports}")
        with self._lock:
            identity = identity.lower()
            self._balances[identity] = self._balances.get(identity, 0) + lamports
            return self._balances[identity]

    def balance(self, identity: str) -> int:
        with self._lock:
            return self._balances.get(identity.lower(), 0)

    def rent_exempt_minimum(self, size: int) -> int:
        return rent_exempt_minimum(size, self.config)

    # ── Transactions ──────────────────────────────────────────

    def process_transaction(self, tx: Transaction) -> str:
        """
        Run one signed transaction atomically.

        Returns the transaction signature. Raises the program's
        JournalKeepError unchanged; no state change is left behind.
        """
        schema = tx.validate_schema()
        if not schema:
            raise SchemaError("Malformed transaction", {"errors": schema.errors})
        if not tx.verify_signature():
            raise InvalidSignatureError(
                "Transaction signature does not verify",
                {"signer": tx.signer[:16]},
            )

        program = self._programs.get(tx.program_id)
        if program is None:
            raise UnknownInstructionError(
                "No program registered under program_id",
                {"program_id": tx.program_id[:16]},
            )

        # verify_signature() accepted it, so this is the canonical decoding.
        raw_signature = decode_signature(tx.signature)

        with self._lock:
            if raw_signature in self._processed:
                raise DuplicateTransactionError(
                    "Transaction already processed",
                    {"tx_id": tx.tx_id},
                )

            ctx = InstructionContext(
                host=        self,
                program_id=  tx.program_id,
                signer=      tx.signer,
                instruction= tx.instruction,
            )
            try:
                with self._atomic(tx):
                    program.process_instruction(ctx)
            except JournalKeepError as exc:
                self._record(tx, TxStatus.FAILED, error=f"{type(exc).__name__}: {exc}")
                self.log.warning(
                    f"tx {tx.tx_id} {tx.instruction.name} failed: "
                    f"{type(exc).__name__}: {exc}"
                )
                raise

            self._processed.add(raw_signature)
            self._record(tx, TxStatus.OK)
            self.log.info(f"tx {tx.tx_id} {tx.instruction.name} ok")
            return tx.signature

    @contextmanager
    def _atomic(self, tx: Transaction) -> Iterator[None]:
        self._undo_accounts = {}
        self._undo_balances = {}
        self._current_tx    = tx
        try:
            yield
        except BaseException:
            self._rollback()
            raise
        finally:
            self._current_tx    = None
            self._undo_accounts = {}
            self._undo_balances = {}

    def _rollback(self) -> None:
        for address, prior in self._undo_accounts.items():
            if prior is None:
                self._accounts.pop(address, None)
            else:
                self._accounts[address] = prior
        for identity, prior in self._undo_balances.items():
            if prior is None:
                self._balances.pop(identity, None)
            else:
                self._balances[identity] = prior

    def _touch(self, address: str) -> None:
        if address not in self._undo_accounts:
            account = self._accounts.get(address)
            self._undo_accounts[address] = account.snapshot() if account else None

    def _touch_balance(self, identity: str) -> None:
        if identity not in self._undo_balances:
            self._undo_balances[identity] = self._balances.get(identity)

    def _record(self, tx: Transaction, status: str, error: Optional[str] = None) -> None:
        self._receipts.append(TransactionReceipt(
            signature=   tx.signature,
            tx_id=       tx.tx_id,
            instruction= tx.instruction.name,
            signer=      tx.signer,
            status=      status,
            timestamp=   utc_timestamp(),
            error=       error,
        ))

    def get_receipts(self) -> List[TransactionReceipt]:
        """The most recent receipts, oldest first, at most config.max_receipts."""
        with self._lock:
            return list(self._receipts)

    # ── LedgerHost contract ───────────────────────────────────

    def derive_address(
        self, seeds: Sequence[bytes], program_id: str
    ) -> Tuple[str, int]:
        return find_program_address(seeds, program_id)

    def verify_signature(self, identity: str) -> bool:
        with self._lock:
            tx = self._current_tx
            if tx is None or not isinstance(identity, str):
                return False
            return tx.verify_signature(identity)

    def allocate(self, address: str, size: int, payer: str) -> Account:
        with self._lock:
            program_id = self._executing_program()
            if address in self._accounts:
                raise AlreadyExistsError(
                    "Slot already in use",
                    {"address": address[:16]},
                )
            if not self.verify_signature(payer):
                raise InvalidSignatureError(
                    "Payer did not sign the transaction",
                    {"payer": payer[:16]},
                )
            deposit = self.rent_exempt_minimum(size)
            self._debit(payer, deposit)

            account = Account(
                address=       address,
                owner_program= program_id,
                lamports=      deposit,
                data=          bytearray(size),
            )
            self._touch(address)
            self._accounts[address] = account
            self.log.debug(f"allocated {address[:16]} size={size} deposit={deposit}")
            return account

    def reallocate(self, address: str, new_size: int, payer: str) -> None:
        with self._lock:
            account  = self._require_owned(address)
            old_size = len(account.data)
            if new_size == old_size:
                return

            required = self.rent_exempt_minimum(new_size)
            delta    = required - account.lamports
            if delta > 0:
                if not self.verify_signature(payer):
                    raise InvalidSignatureError(
                        "Payer did not sign the transaction",
                        {"payer": payer[:16]},
                    )
                self._debit(payer, delta)
            elif delta < 0:
                self._credit(payer, -delta)

            self._touch(address)
            account.lamports = required
            if new_size > old_size:
                account.data.extend(bytes(new_size - old_size))
            else:
                del account.data[new_size:]
            self.log.debug(f"reallocated {address[:16]} {old_size}->{new_size}")

    def deallocate(self, address: str, refund_to: str) -> None:
        with self._lock:
            account = self._require_owned(address)
            self._credit(refund_to, account.lamports)
            self._touch(address)
            del self._accounts[address]
            self.log.debug(f"deallocated {address[:16]} refund={account.lamports}")

    def get_account(self, address: str) -> Optional[Account]:
        with self._lock:
            account = self._accounts.get(address.lower())
            return account.snapshot() if account else None

    def write_account_data(self, address: str, data: bytes) -> None:
        with self._lock:
            account = self._require_owned(address)
            if len(data) != len(account.data):
                raise StorageError(
                    "Data length must equal slot size",
                    {"data": len(data), "slot": len(account.data)},
                )
            self._touch(address)
            account.data[:] = data

    # ── Read side ─────────────────────────────────────────────

    def get_program_accounts(
        self,
        program_id: str,
        discriminator: Optional[bytes] = None,
    ) -> List[Account]:
        """Copies of every slot owned by program_id, optionally filtered by prefix."""
        with self._lock:
            return [
                acct.snapshot()
                for acct in self._accounts.values()
                if acct.owner_program == program_id
                and (discriminator is None or acct.data.startswith(discriminator))
            ]

    # ── Internal ──────────────────────────────────────────────

    def _executing_program(self) -> str:
        if self._current_tx is None:
            raise StorageError("Slot operations require a running transaction")
        return self._current_tx.program_id

    def _require(self, address: str) -> Account:
        account = self._accounts.get(address)
        if account is None:
            raise NotFoundError("No slot at address", {"address": address[:16]})
        return account

    def _require_owned(self, address: str) -> Account:
        """The slot at address, provided the running program owns it."""
        program_id = self._executing_program()
        account    = self._require(address)
        if account.owner_program != program_id:
            raise StorageError(
                "Only the owning program may modify a slot",
                {"address": address[:16]},
            )
        return account

    def _debit(self, identity: str, amount: int) -> None:
        identity  = identity.lower()
        available = self._balances.get(identity, 0)
        if available < amount:
            raise InsufficientFundsError(
                "Payer cannot cover storage deposit",
                {"payer": identity[:16], "required": amount, "available": available},
            )
        self._touch_balance(identity)
        self._balances[identity] = available - amount

    def _credit(self, identity: str, amount: int) -> None:
        identity = identity.lower()
        self._touch_balance(identity)
        self._balances[identity] = self._balances.get(identity, 0) + amount
