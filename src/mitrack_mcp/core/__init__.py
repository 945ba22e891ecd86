"""
Core ledger engine: codec, content addressing and errors.

The stores live in their own modules (they depend on the models):

    from mitrack_mcp.core.accounts import AccountStore
    from mitrack_mcp.core.transactions import TransactionStore
    from mitrack_mcp.core.ledger import Ledger
"""

from mitrack_mcp.core.encoding import FORMAT_TAG, FORMAT_VERSION
from mitrack_mcp.core.exceptions import (
    AccountInUseError,
    AccountNotFoundError,
    AmbiguousPrefixError,
    BalanceMismatchError,
    CorruptRecordError,
    DecodeError,
    DuplicateAliasError,
    EncodingOverflowError,
    HashMismatchError,
    InvalidHashError,
    InvalidIDEncodingError,
    InvalidIDError,
    InvalidIDLengthError,
    InvalidTransactionError,
    LedgerError,
    NotFoundError,
    StorageError,
    StoreLockedError,
    UnsupportedFormatError,
)
from mitrack_mcp.core.identity import parse_id, short_form, to_hex

__all__ = [
    "FORMAT_TAG",
    "FORMAT_VERSION",
    "parse_id",
    "short_form",
    "to_hex",
    "AccountInUseError",
    "AccountNotFoundError",
    "AmbiguousPrefixError",
    "BalanceMismatchError",
    "CorruptRecordError",
    "DecodeError",
    "DuplicateAliasError",
    "EncodingOverflowError",
    "HashMismatchError",
    "InvalidHashError",
    "InvalidIDEncodingError",
    "InvalidIDError",
    "InvalidIDLengthError",
    "InvalidTransactionError",
    "LedgerError",
    "NotFoundError",
    "StorageError",
    "StoreLockedError",
    "UnsupportedFormatError",
]
