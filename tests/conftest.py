"""
Pytest configuration and fixtures for mitrack-mcp tests.
"""

from pathlib import Path

import pytest

from mitrack_mcp.core.accounts import AccountStore
from mitrack_mcp.core.ledger import Ledger
from mitrack_mcp.core.transactions import TransactionStore
from mitrack_mcp.models.account import Account, AccountType


@pytest.fixture
def ledger_home(tmp_path: Path) -> Path:
    """Empty ledger home directory."""
    return tmp_path / "mitrack"


@pytest.fixture
def account_store(tmp_path: Path) -> AccountStore:
    """Account store in a fresh directory."""
    return AccountStore(tmp_path / "accounts")


@pytest.fixture
def transaction_store(tmp_path: Path, account_store: AccountStore) -> TransactionStore:
    """Transaction store resolving aliases through account_store."""
    return TransactionStore(tmp_path / "transactions", account_store)


@pytest.fixture
def cash_in_wallet(account_store: AccountStore) -> Account:
    """Registered asset account 'Cash in Wallet'."""
    account = Account.create("Cash in Wallet", AccountType.ASSET, created_at=1_700_000_000)
    account_store.register(account)
    return account


@pytest.fixture
def initial_balance(account_store: AccountStore) -> Account:
    """Registered equity account 'Initial Balance'."""
    account = Account.create("Initial Balance", AccountType.EQUITY, created_at=1_700_000_000)
    account_store.register(account)
    return account


@pytest.fixture
def ledger(ledger_home: Path) -> Ledger:
    """Ledger in a fresh home directory."""
    with Ledger(ledger_home) as ledger:
        yield ledger
