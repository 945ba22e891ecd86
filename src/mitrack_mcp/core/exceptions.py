"""
Custom exceptions for the mitrack ledger engine.
"""

from typing import List, Optional


class LedgerError(Exception):
    """Base exception for ledger errors."""
    pass


class DecodeError(LedgerError):
    """Raised when encoded input is malformed or ends early."""
    pass


class EncodingOverflowError(LedgerError):
    """Raised when a value does not fit the binary format."""
    pass


class InvalidIDError(LedgerError):
    """Raised when a string is not a valid hex identifier."""
    pass


class InvalidIDLengthError(InvalidIDError):
    """Raised when an identifier string is not 64 characters long."""
    pass


class InvalidIDEncodingError(InvalidIDError):
    """Raised when an identifier string is not valid hex."""
    pass


class InvalidHashError(InvalidIDError):
    """Raised when a transaction hash string is malformed."""
    pass


class NotFoundError(LedgerError):
    """Raised when no record exists for the given key."""
    pass


class AccountNotFoundError(NotFoundError):
    """Raised when a transaction references an alias with no account."""

    def __init__(self, alias: str) -> None:
        self.alias = alias
        super().__init__(f"Account of alias {alias!r} not found")


class CorruptRecordError(LedgerError):
    """Raised when a record file exists but cannot be decoded."""
    pass


class HashMismatchError(CorruptRecordError):
    """Raised when a transaction file does not hash to its own name."""
    pass


class AmbiguousPrefixError(LedgerError):
    """Raised when an identifier prefix matches more than one record."""

    def __init__(self, prefix: str, matches: List[str]) -> None:
        self.prefix = prefix
        self.matches = matches
        super().__init__(
            f"Prefix {prefix!r} is ambiguous: matches {len(matches)} records"
        )


class InvalidTransactionError(LedgerError):
    """Raised when debit/credit input cannot form a valid transaction."""
    pass


class BalanceMismatchError(InvalidTransactionError):
    """Raised when total debits differ from total credits."""

    def __init__(self, debits: int, credits: int) -> None:
        self.debits = debits
        self.credits = credits
        super().__init__(
            f"Transaction is not balanced: debits={debits}, credits={credits}"
        )


class DuplicateAliasError(LedgerError):
    """Raised when registering an account whose alias is already taken."""

    def __init__(self, alias: str, existing_id: Optional[str] = None) -> None:
        self.alias = alias
        self.existing_id = existing_id
        super().__init__(f"Alias {alias!r} is already used by another account")


class AccountInUseError(LedgerError):
    """Raised when changing an account that other records reference."""
    pass


class StorageError(LedgerError):
    """Raised when the underlying storage fails (permissions, disk, ...)."""
    pass


class UnsupportedFormatError(LedgerError):
    """Raised when a store directory carries an unknown format marker."""

    def __init__(self, tag: str, path: Optional[str] = None) -> None:
        self.tag = tag
        self.path = path
        super().__init__(f"Unsupported store format {tag!r} at {path}")


class StoreLockedError(LedgerError):
    """Raised when another process holds the store's writer lock."""
    pass
