"""
journalkeep Exception Hierarchy

All exceptions inherit from JournalKeepError for easy catching.
Every lifecycle failure is raised before any state is mutated, or
rolled back by the host when raised mid-transaction.
"""


class JournalKeepError(Exception):
    """Base exception for all journalkeep errors"""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class ConfigError(JournalKeepError):
    """Raised when configuration is missing or malformed"""
    pass


class SchemaError(JournalKeepError):
    """Raised when stored record bytes or a transaction fail to decode"""
    pass


class FieldTooLongError(JournalKeepError):
    """Raised when title or message exceeds its declared maximum"""
    pass


# ── Address derivation ────────────────────────────────────────

class DerivationError(JournalKeepError):
    """Raised when a program address cannot be derived"""
    pass


class InvalidSeedsError(DerivationError):
    """Raised when seeds are malformed or the candidate lies on the curve"""
    pass


class NoValidBumpError(DerivationError):
    """Raised when every bump in 255..0 produces an on-curve candidate"""
    pass


class AddressMismatchError(DerivationError):
    """Raised when a caller-supplied address differs from the derived one"""
    pass


# ── Authorization ─────────────────────────────────────────────

class AuthorizationError(JournalKeepError):
    """Raised when authorization fails"""
    pass


class InvalidSignatureError(AuthorizationError):
    """Raised when a transaction carries no valid signature for the identity"""
    pass


class UnauthorizedError(AuthorizationError):
    """Raised when the signer is not the stored owner of the record"""
    pass


class DuplicateTransactionError(AuthorizationError):
    """Raised when an already processed transaction signature is resubmitted"""
    pass


# ── Storage ───────────────────────────────────────────────────

class StorageError(JournalKeepError):
    """Raised when slot allocation or lookup fails"""
    pass


class AlreadyExistsError(StorageError):
    """Raised when allocating a slot that is already occupied"""
    pass


class NotFoundError(StorageError):
    """Raised when updating or deleting a slot that is unoccupied"""
    pass


class InsufficientFundsError(StorageError):
    """Raised when the payer cannot cover a storage deposit"""
    pass


class UnknownInstructionError(JournalKeepError):
    """Raised when a transaction names an instruction the program lacks"""
    pass
