"""
Account store: a durable table of accounts, one file per account.

Record layout (the id is implicit in the filename):
    uint8 type, 32-byte parent id, int64 created_at,
    alias, name, description (length-prefixed strings)
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import ValidationError

from mitrack_mcp.core.encoding import (
    decode_fixed_bytes,
    decode_numeric,
    decode_string,
    encode_fixed_bytes,
    encode_numeric,
    encode_string,
    ensure_consumed,
)
from mitrack_mcp.core.exceptions import (
    AmbiguousPrefixError,
    CorruptRecordError,
    DecodeError,
    DuplicateAliasError,
    InvalidIDError,
    NotFoundError,
)
from mitrack_mcp.core.identity import (
    ID_SIZE,
    is_hex_prefix,
    is_id_string,
    parse_id,
    to_hex,
)
from mitrack_mcp.core.storage import RecordDirectory
from mitrack_mcp.models.account import Account, AccountType

logger = logging.getLogger(__name__)


def encode_account(account: Account) -> bytes:
    """Encode an account record body."""
    return b"".join(
        [
            encode_numeric("uint8", int(account.account_type)),
            encode_fixed_bytes(account.parent_id, ID_SIZE),
            encode_numeric("int64", account.created_at),
            encode_string(account.alias),
            encode_string(account.name),
            encode_string(account.description),
        ]
    )


def decode_account(account_id: bytes, data: bytes) -> Account:
    """
    Decode an account record body.

    Raises:
        CorruptRecordError: If data does not hold a valid account
    """
    try:
        type_code, pos = decode_numeric("uint8", data, 0)
        parent_id, pos = decode_fixed_bytes(data, pos, ID_SIZE)
        created_at, pos = decode_numeric("int64", data, pos)
        alias, pos = decode_string(data, pos)
        name, pos = decode_string(data, pos)
        description, pos = decode_string(data, pos)
        ensure_consumed(data, pos)
        return Account(
            id=account_id,
            name=name,
            alias=alias,
            description=description,
            account_type=AccountType(type_code),
            parent_id=parent_id,
            created_at=created_at,
        )
    except (DecodeError, ValueError, ValidationError) as e:
        raise CorruptRecordError(
            f"Invalid account file format for {to_hex(account_id)}: {e}"
        ) from e


class AccountStore:
    """
    Directory-backed table of accounts keyed by their identifier.

    Aliases are unique: registering a different account with an alias
    already in use fails. Lookups by alias go through an in-memory
    alias -> id index rebuilt from a directory scan on first use.
    """

    def __init__(
        self,
        accounts_dir: Path,
        strict: bool = False,
        use_alias_index: bool = True,
    ):
        """
        Open the account store.

        Args:
            accounts_dir: Directory holding account files (created if missing)
            strict: If True, list() raises on unreadable files instead of
                    skipping them
            use_alias_index: If False, every alias lookup scans the directory
        """
        self.records = RecordDirectory(accounts_dir, "account")
        self.strict = strict
        self.use_alias_index = use_alias_index
        self._alias_index: Optional[Dict[str, bytes]] = None

    @property
    def path(self) -> Path:
        return self.records.path

    # ==== CREATE ====

    def register(self, account: Account) -> None:
        """
        Persist an account under its hex id.

        Registering the same account twice is harmless.

        Raises:
            DuplicateAliasError: If another account already uses the alias
        """
        with self.records.writer():
            existing = self._find_by_alias(account.alias)
            if existing is not None and existing.id != account.id:
                raise DuplicateAliasError(account.alias, existing.hex_id)

            self.records.write(account.hex_id, encode_account(account))
            if self._alias_index is not None:
                self._alias_index[account.alias] = account.id
        logger.debug("Registered account %s (%s)", account.short_id, account.alias)

    # ==== READ ====

    def count(self) -> int:
        """Return the number of account files in the store."""
        return len(self.records.record_names())

    def list(self) -> List[Account]:
        """
        Return all accounts, ordered by hex id.

        Unreadable files are skipped with a warning unless the store is strict.
        """
        return self._load_all(self.strict)

    def _load_all(self, strict: bool) -> List[Account]:
        accounts: List[Account] = []
        for name in self.records.record_names():
            try:
                accounts.append(self.get_by_actual_id(parse_id(name)))
            except (CorruptRecordError, NotFoundError) as e:
                if strict:
                    raise
                logger.warning("Skipping unreadable account file %s: %s", name, e)
        return accounts

    def get(self, ref: str) -> Account:
        """
        Find an account by full hex id, alias, or unique id prefix (in that order).
        """
        if is_id_string(ref.lower()):
            try:
                return self.get_by_id(ref)
            except NotFoundError:
                pass
        account = self._find_by_alias(ref)
        if account is not None:
            return account
        if is_hex_prefix(ref):
            return self.get_by_prefix(ref)
        raise NotFoundError(f"Account not found: {ref}")

    def get_by_id(self, hex_id: str) -> Account:
        """
        Return the account identified by a 64-character hex id.

        Raises:
            InvalidIDError: If hex_id is not a valid id string
        """
        return self.get_by_actual_id(parse_id(hex_id))

    def get_by_actual_id(self, account_id: bytes) -> Account:
        """
        Return the account with the given raw id.

        Raises:
            NotFoundError: If no such account exists
            CorruptRecordError: If the account file cannot be decoded
        """
        data = self.records.read(to_hex(account_id))
        return decode_account(account_id, data)

    def get_by_alias(self, alias: str) -> Account:
        """
        Return the account with the given alias.

        Raises:
            NotFoundError: If no account has this alias
        """
        account = self._find_by_alias(alias)
        if account is None:
            raise NotFoundError(f"Account not found: {alias}")
        return account

    def get_by_prefix(self, prefix: str) -> Account:
        """
        Return the only account whose hex id starts with prefix.

        Raises:
            InvalidIDError: If prefix is empty or not hex
            AmbiguousPrefixError: If several ids match
            NotFoundError: If no id matches
        """
        if not is_hex_prefix(prefix):
            raise InvalidIDError(f"Invalid id prefix: {prefix!r}")
        prefix = prefix.lower()
        matches = [n for n in self.records.record_names() if n.startswith(prefix)]
        if len(matches) > 1:
            raise AmbiguousPrefixError(prefix, matches)
        if not matches:
            raise NotFoundError(f"Account not found: {prefix}")
        return self.get_by_id(matches[0])

    # ==== UPDATE ====

    def update(
        self,
        ref: str,
        *,
        name: Optional[str] = None,
        description: Optional[str] = None,
        parent_id: Optional[bytes] = None,
    ) -> Account:
        """
        Replace an account with a changed copy.

        Every field feeds the id, so the result is a new account with a
        new id (and an alias derived from the new name); creation time is
        kept. The old record is removed.

        Returns:
            The new account
        """
        with self.records.writer():
            old = self.get(ref)
            new = Account.create(
                name=name if name is not None else old.name,
                account_type=old.account_type,
                description=description if description is not None else old.description,
                parent_id=parent_id if parent_id is not None else old.parent_id,
                created_at=old.created_at,
            )
            if new.id == old.id:
                return old

            clash = self._find_by_alias(new.alias)
            if clash is not None and clash.id not in (old.id, new.id):
                raise DuplicateAliasError(new.alias, clash.hex_id)

            self.records.write(new.hex_id, encode_account(new))
            self.records.remove(old.hex_id)
            if self._alias_index is not None:
                self._alias_index.pop(old.alias, None)
                self._alias_index[new.alias] = new.id
        logger.debug("Updated account %s -> %s", old.short_id, new.short_id)
        return new

    # ==== DELETE ====

    def delete(self, ref: str) -> Account:
        """Remove an account record and return it."""
        with self.records.writer():
            account = self.get(ref)
            self.records.remove(account.hex_id)
            if self._alias_index is not None and self._alias_index.get(account.alias) == account.id:
                del self._alias_index[account.alias]
        logger.debug("Deleted account %s", account.short_id)
        return account

    # ==== ALIAS INDEX ====

    def rebuild_alias_index(self) -> None:
        """Rebuild the alias -> id index from the directory contents."""
        index: Dict[str, bytes] = {}
        for account in self._scan():
            # first match wins, in hex-id order
            index.setdefault(account.alias, account.id)
        self._alias_index = index

    def _scan(self) -> List[Account]:
        # alias lookups skip unreadable files even in a strict store
        with self.records.lock:
            return self._load_all(strict=False)

    def _find_by_alias(self, alias: str) -> Optional[Account]:
        if not self.use_alias_index:
            return next((a for a in self._scan() if a.alias == alias), None)

        with self.records.lock:
            if self._alias_index is None:
                self.rebuild_alias_index()
            account_id = self._alias_index.get(alias)  # type: ignore[union-attr]
            if account_id is not None:
                try:
                    return self.get_by_actual_id(account_id)
                except NotFoundError:
                    pass
            # records may have been added or removed by another process
            self.rebuild_alias_index()
            account_id = self._alias_index.get(alias)  # type: ignore[union-attr]
            if account_id is None:
                return None
            return self.get_by_actual_id(account_id)

    def close(self) -> None:
        """Release cached state."""
        self._alias_index = None

    def __enter__(self) -> "AccountStore":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()