"""
Transaction store: an append-only table of immutable transactions.

Each transaction lives in a file named by the SHA-256 of its contents:
    int64 timestamp, uint16 entry count,
    entries (uint8 operation, 32-byte account id, int64 amount),
    note (length-prefixed string)
"""

import logging
import time
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple

from pydantic import ValidationError

from mitrack_mcp.core.accounts import AccountStore
from mitrack_mcp.core.encoding import (
    decode_fixed_bytes,
    decode_numeric,
    decode_string,
    ensure_consumed,
)
from mitrack_mcp.core.exceptions import (
    AccountNotFoundError,
    AmbiguousPrefixError,
    BalanceMismatchError,
    CorruptRecordError,
    DecodeError,
    InvalidHashError,
    InvalidIDError,
    InvalidTransactionError,
    HashMismatchError,
    NotFoundError,
)
from mitrack_mcp.core.identity import (
    ID_SIZE,
    derive_transaction_hash,
    encode_transaction_body,
    is_hex_prefix,
    parse_id,
    to_hex,
)
from mitrack_mcp.core.storage import RecordDirectory
from mitrack_mcp.models.transaction import INT64_MAX, Entry, Operation, Transaction

logger = logging.getLogger(__name__)


def decode_transaction(tx_hash: bytes, data: bytes, verify: bool = True) -> Transaction:
    """
    Decode a transaction file.

    Args:
        tx_hash: Hash taken from the filename
        data: File contents
        verify: Check that data hashes to tx_hash

    Raises:
        CorruptRecordError: If data cannot be decoded
        HashMismatchError: If data does not hash to tx_hash
    """
    try:
        timestamp, pos = decode_numeric("int64", data, 0)
        entry_count, pos = decode_numeric("uint16", data, pos)
        entries: List[Entry] = []
        for _ in range(entry_count):
            operation, pos = decode_numeric("uint8", data, pos)
            account_id, pos = decode_fixed_bytes(data, pos, ID_SIZE)
            amount, pos = decode_numeric("int64", data, pos)
            entries.append(
                Entry(operation=Operation(operation), account_id=account_id, amount=amount)
            )
        note, pos = decode_string(data, pos)
        ensure_consumed(data, pos)
    except (DecodeError, ValueError, ValidationError) as e:
        raise CorruptRecordError(
            f"Invalid transaction file format for {to_hex(tx_hash)}: {e}"
        ) from e

    if verify:
        actual = derive_transaction_hash(data)
        if actual != tx_hash:
            raise HashMismatchError(
                f"Transaction {to_hex(tx_hash)} hashes to {to_hex(actual)}"
            )

    return Transaction(hash=tx_hash, timestamp=timestamp, entries=entries, note=note)


def _validate_amounts(side: str, amounts: Mapping[str, int]) -> int:
    if not amounts:
        raise InvalidTransactionError(f"At least one {side} entry is required")
    total = 0
    for alias, amount in amounts.items():
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise InvalidTransactionError(
                f"Amount for {alias!r} must be an integer, got {amount!r}"
            )
        if not 0 < amount <= INT64_MAX:
            raise InvalidTransactionError(
                f"Amount for {alias!r} must be positive and fit in 64 bits, got {amount}"
            )
        total += amount
    return total


class TransactionStore:
    """
    Directory-backed, append-only table of transactions.

    Recording resolves account aliases through an AccountStore, which is
    only ever read from here.
    """

    def __init__(
        self,
        transactions_dir: Path,
        account_store: AccountStore,
        strict: bool = False,
    ):
        """
        Open the transaction store.

        Args:
            transactions_dir: Directory holding transaction files
            account_store: Store used to resolve aliases when recording
            strict: If True, list() raises on unreadable files
        """
        self.records = RecordDirectory(transactions_dir, "transaction")
        self.accounts = account_store
        self.strict = strict

    @property
    def path(self) -> Path:
        return self.records.path

    # ==== CREATE ====

    def record_from_alias_maps(
        self,
        note: str,
        debits: Mapping[str, int],
        credits: Mapping[str, int],
        timestamp: Optional[int] = None,
    ) -> Transaction:
        """
        Record a transaction from alias -> amount maps.

        Entries are ordered debits first, then credits, each sorted by
        alias, so the same input always hashes the same.

        Args:
            note: Description or reason of the transaction
            debits: Debit amounts keyed by account alias
            credits: Credit amounts keyed by account alias
            timestamp: Unix timestamp (UTC); defaults to now

        Returns:
            The recorded Transaction

        Raises:
            InvalidTransactionError: If a side is empty or an amount is invalid
            BalanceMismatchError: If total debits differ from total credits
            AccountNotFoundError: If an alias matches no account
        """
        total_debits = _validate_amounts("debit", debits)
        total_credits = _validate_amounts("credit", credits)
        if total_debits != total_credits:
            raise BalanceMismatchError(total_debits, total_credits)

        aliased: List[Tuple[Operation, str, int]] = [
            (Operation.DEBIT, alias, debits[alias]) for alias in sorted(debits)
        ] + [(Operation.CREDIT, alias, credits[alias]) for alias in sorted(credits)]

        with self.records.writer():
            resolved: Dict[str, bytes] = {}
            entries: List[Entry] = []
            for operation, alias, amount in aliased:
                if alias not in resolved:
                    try:
                        resolved[alias] = self.accounts.get_by_alias(alias).id
                    except NotFoundError:
                        raise AccountNotFoundError(alias) from None
                entries.append(
                    Entry(operation=operation, account_id=resolved[alias], amount=amount)
                )

            if timestamp is None:
                timestamp = int(time.time())
            body = encode_transaction_body(
                timestamp, (e.to_fields() for e in entries), note
            )
            tx_hash = derive_transaction_hash(body)

            self.records.write(to_hex(tx_hash), body)
        logger.debug("Recorded transaction %s with %d entries", to_hex(tx_hash)[:8], len(entries))

        return Transaction(hash=tx_hash, timestamp=timestamp, entries=entries, note=note)

    # ==== READ ====

    def count(self) -> int:
        """Return the number of transaction files in the store."""
        return len(self.records.record_names())

    def list(self) -> List[Transaction]:
        """
        Return all transactions, ordered by hex hash.

        Unreadable or tampered files are skipped with a warning unless the
        store is strict.
        """
        transactions: List[Transaction] = []
        for name in self.records.record_names():
            try:
                transactions.append(self.get_by_hash(name))
            except (CorruptRecordError, NotFoundError) as e:
                if self.strict:
                    raise
                logger.warning("Skipping unreadable transaction file %s: %s", name, e)
        return transactions

    def get(self, ref: str) -> Transaction:
        """Find a transaction by full hex hash or unique hash prefix."""
        try:
            return self.get_by_hash(ref)
        except InvalidHashError:
            return self.get_by_prefix(ref)

    def get_by_hash(self, hex_hash: str) -> Transaction:
        """
        Return the transaction stored under a 64-character hex hash.

        Raises:
            InvalidHashError: If hex_hash is malformed
            NotFoundError: If no such transaction exists
            CorruptRecordError: If the file cannot be decoded
            HashMismatchError: If the file contents do not match the hash
        """
        try:
            tx_hash = parse_id(hex_hash)
        except InvalidIDError as e:
            raise InvalidHashError(f"Invalid transaction hash: {e}") from e
        data = self.records.read(to_hex(tx_hash))
        return decode_transaction(tx_hash, data)

    def get_by_prefix(self, prefix: str) -> Transaction:
        """
        Return the only transaction whose hex hash starts with prefix.

        Raises:
            InvalidHashError: If prefix is empty or not hex
            AmbiguousPrefixError: If several hashes match
            NotFoundError: If no hash matches
        """
        if not is_hex_prefix(prefix):
            raise InvalidHashError(f"Invalid hash prefix: {prefix!r}")
        prefix = prefix.lower()
        matches = [n for n in self.records.record_names() if n.startswith(prefix)]
        if len(matches) > 1:
            raise AmbiguousPrefixError(prefix, matches)
        if not matches:
            raise NotFoundError(f"Transaction not found: {prefix}")
        return self.get_by_hash(matches[0])

    def references(self, account_id: bytes) -> List[Transaction]:
        """Return the transactions with an entry on the given account."""
        return [tx for tx in self.list() if account_id in tx.account_ids()]

    def close(self) -> None:
        pass

    def __enter__(self) -> "TransactionStore":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
