"""
Content addressing: account IDs and transaction hashes.

Account IDs are SHA-256 over the codec encoding of the account's creation
fields, in this fixed order:

    name, alias, description   length-prefixed strings
    account type               uint8
    parent ID                  32 bytes
    created_at                 int64

Transaction hashes are SHA-256 over the exact bytes persisted for the
transaction body (see encode_transaction_body).
"""

import hashlib
import string
from typing import Iterable, Tuple

from mitrack_mcp.core.encoding import (
    encode_fixed_bytes,
    encode_numeric,
    encode_string,
)
from mitrack_mcp.core.exceptions import (
    EncodingOverflowError,
    InvalidIDEncodingError,
    InvalidIDLengthError,
)

ID_SIZE = hashlib.sha256().digest_size
ID_STRING_LENGTH = ID_SIZE * 2
ID_SHORT_LENGTH = 8
ZERO_ID = bytes(ID_SIZE)

_HEX_DIGITS = frozenset(string.hexdigits)

# (operation, account_id, amount)
EntryFields = Tuple[int, bytes, int]


def derive_account_id(
    name: str,
    alias: str,
    description: str,
    account_type: int,
    parent_id: bytes,
    created_at: int,
) -> bytes:
    """
    Derive the identifier of an account from its creation fields.

    Returns:
        32-byte SHA-256 digest
    """
    digest = hashlib.sha256()
    digest.update(encode_string(name))
    digest.update(encode_string(alias))
    digest.update(encode_string(description))
    digest.update(encode_numeric("uint8", int(account_type)))
    digest.update(encode_fixed_bytes(parent_id, ID_SIZE))
    digest.update(encode_numeric("int64", created_at))
    return digest.digest()


def encode_transaction_body(
    timestamp: int, entries: Iterable[EntryFields], note: str
) -> bytes:
    """
    Encode a transaction body exactly as it is written to disk.

    Layout: int64 timestamp, uint16 entry count, each entry as
    (uint8 operation, 32-byte account ID, int64 amount), then the note.
    """
    entries = list(entries)
    if len(entries) > 0xFFFF:
        raise EncodingOverflowError(f"Too many entries: {len(entries)}")
    parts = [
        encode_numeric("int64", timestamp),
        encode_numeric("uint16", len(entries)),
    ]
    for operation, account_id, amount in entries:
        parts.append(encode_numeric("uint8", int(operation)))
        parts.append(encode_fixed_bytes(account_id, ID_SIZE))
        parts.append(encode_numeric("int64", amount))
    parts.append(encode_string(note))
    return b"".join(parts)


def derive_transaction_hash(body: bytes) -> bytes:
    """Hash an encoded transaction body."""
    return hashlib.sha256(body).digest()


def to_hex(identifier: bytes) -> str:
    """Render an identifier as 64 lowercase hex characters."""
    return identifier.hex()


def short_form(identifier: bytes) -> str:
    """
    Render the first 4 bytes of an identifier as 8 hex characters.

    For display only: short forms are not unique.
    """
    return identifier[: ID_SHORT_LENGTH // 2].hex()


def parse_id(value: str) -> bytes:
    """
    Parse a 64-character hex string into an identifier.

    Raises:
        InvalidIDLengthError: If value is not exactly 64 characters
        InvalidIDEncodingError: If value is not valid hex
    """
    if len(value) != ID_STRING_LENGTH:
        raise InvalidIDLengthError(
            f"Invalid ID length: expected {ID_STRING_LENGTH} characters, "
            f"got {len(value)}"
        )
    if not _HEX_DIGITS.issuperset(value):
        raise InvalidIDEncodingError(f"Invalid hex string: {value!r}")
    return bytes.fromhex(value)


def is_id_string(value: str) -> bool:
    """Check whether value is a lowercase 64-char hex identifier."""
    return (
        len(value) == ID_STRING_LENGTH
        and value == value.lower()
        and _HEX_DIGITS.issuperset(value)
    )


def is_hex_prefix(value: str) -> bool:
    """Check whether value is a non-empty hex string no longer than an ID."""
    return 0 < len(value) <= ID_STRING_LENGTH and _HEX_DIGITS.issuperset(value)
