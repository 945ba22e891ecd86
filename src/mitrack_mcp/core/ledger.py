"""
Ledger abstraction over the account and transaction stores.

Lays out a ledger home directory as:
    <home>/accounts/       account store
    <home>/transactions/   transaction store
"""

import logging
from pathlib import Path
from typing import List, Mapping, Optional

from mitrack_mcp.config import LedgerConfig
from mitrack_mcp.core.accounts import AccountStore
from mitrack_mcp.core.exceptions import (
    AccountInUseError,
    CorruptRecordError,
    NotFoundError,
)
from mitrack_mcp.core.identity import short_form
from mitrack_mcp.core.transactions import TransactionStore
from mitrack_mcp.models.account import Account, AccountType
from mitrack_mcp.models.transaction import Transaction

logger = logging.getLogger(__name__)

ACCOUNTS_DIR_NAME = "accounts"
TRANSACTIONS_DIR_NAME = "transactions"


class Ledger:
    """
    Entry point for callers: owns both stores and checks the references
    between them.
    """

    def __init__(
        self,
        home: Path,
        strict: bool = False,
        use_alias_index: bool = True,
    ):
        """
        Open (and initialize if needed) a ledger.

        Args:
            home: Ledger home directory
            strict: Raise on unreadable records when listing
            use_alias_index: Keep an in-memory alias -> id index
        """
        self.home = Path(home)
        self.accounts = AccountStore(
            self.home / ACCOUNTS_DIR_NAME,
            strict=strict,
            use_alias_index=use_alias_index,
        )
        self.transactions = TransactionStore(
            self.home / TRANSACTIONS_DIR_NAME,
            self.accounts,
            strict=strict,
        )
        logger.debug("Opened ledger at %s", self.home)

    @classmethod
    def from_config(cls, config: LedgerConfig) -> "Ledger":
        return cls(config.home, strict=config.strict, use_alias_index=config.alias_index)

    # ==== ACCOUNTS ====

    def register_account(
        self,
        name: str,
        account_type: AccountType,
        description: str = "",
        parent: Optional[str] = None,
    ) -> Account:
        """
        Create and register a new account.

        Args:
            name: Account name; the alias is derived from it
            account_type: Account type
            description: Optional description
            parent: Id, alias or id prefix of an existing parent account

        Returns:
            The registered account

        Raises:
            NotFoundError: If parent does not exist
            DuplicateAliasError: If the derived alias is taken
        """
        parent_id = self.accounts.get(parent).id if parent else None
        account = Account.create(
            name=name,
            account_type=account_type,
            description=description,
            parent_id=parent_id,
        )
        self.accounts.register(account)
        return account

    def get_account(self, ref: str) -> Account:
        """Find an account by id, alias or id prefix."""
        return self.accounts.get(ref)

    def list_accounts(self, account_type: Optional[AccountType] = None) -> List[Account]:
        """List accounts, optionally only those of one type."""
        accounts = self.accounts.list()
        if account_type is not None:
            accounts = [a for a in accounts if a.account_type == account_type]
        return accounts

    def update_account(
        self,
        ref: str,
        *,
        name: Optional[str] = None,
        description: Optional[str] = None,
        parent: Optional[str] = None,
    ) -> Account:
        """
        Replace an account with a changed copy under a new id.

        Raises:
            AccountInUseError: If transactions or child accounts reference it
        """
        account = self.accounts.get(ref)
        self._ensure_unreferenced(account)
        parent_id = self.accounts.get(parent).id if parent else None
        return self.accounts.update(
            account.hex_id, name=name, description=description, parent_id=parent_id
        )

    def delete_account(self, ref: str) -> Account:
        """
        Delete an account nothing references.

        Raises:
            AccountInUseError: If transactions or child accounts reference it
        """
        account = self.accounts.get(ref)
        self._ensure_unreferenced(account)
        return self.accounts.delete(account.hex_id)

    def _ensure_unreferenced(self, account: Account) -> None:
        used_by = self.transactions.references(account.id)
        if used_by:
            raise AccountInUseError(
                f"Account {account.alias!r} is used by {len(used_by)} transaction(s)"
            )
        children = [a for a in self.accounts.list() if a.parent_id == account.id]
        if children:
            raise AccountInUseError(
                f"Account {account.alias!r} is the parent of {len(children)} account(s)"
            )

    # ==== TRANSACTIONS ====

    def record_transaction(
        self,
        note: str,
        debits: Mapping[str, int],
        credits: Mapping[str, int],
    ) -> Transaction:
        """Record a transaction from alias -> amount debit and credit maps."""
        return self.transactions.record_from_alias_maps(note, debits, credits)

    def get_transaction(self, ref: str) -> Transaction:
        """Find a transaction by full hash or hash prefix."""
        return self.transactions.get(ref)

    def list_transactions(
        self,
        start: Optional[int] = None,
        end: Optional[int] = None,
    ) -> List[Transaction]:
        """
        List transactions, oldest first.

        Args:
            start: Only include timestamps >= this (Unix seconds)
            end: Only include timestamps <= this (Unix seconds)
        """
        result = self.transactions.list()
        if start is not None:
            result = [tx for tx in result if tx.timestamp >= start]
        if end is not None:
            result = [tx for tx in result if tx.timestamp <= end]
        result.sort(key=lambda tx: (tx.timestamp, tx.hash))
        return result

    def resolve_account_name(self, account_id: bytes) -> str:
        """Name of the account with this id, or its short id if it cannot be read."""
        try:
            return self.accounts.get_by_actual_id(account_id).name
        except NotFoundError:
            return short_form(account_id)
        except CorruptRecordError as e:
            logger.warning("Could not read account %s: %s", short_form(account_id), e)
            return short_form(account_id)

    def close(self) -> None:
        self.transactions.close()
        self.accounts.close()

    def __enter__(self) -> "Ledger":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
