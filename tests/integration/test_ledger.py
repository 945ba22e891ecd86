"""
Integration tests for the Ledger facade.
"""

import pytest

from mitrack_mcp.config import LedgerConfig
from mitrack_mcp.core.exceptions import AccountInUseError, NotFoundError
from mitrack_mcp.core.ledger import Ledger
from mitrack_mcp.core.transactions import TransactionStore
from mitrack_mcp.models.account import AccountType


@pytest.fixture
def funded(ledger):
    """Ledger with a wallet, an equity account and an opening transaction."""
    ledger.register_account("Cash in Wallet", AccountType.ASSET)
    ledger.register_account("Initial Balance", AccountType.EQUITY)
    ledger.record_transaction(
        "Opening balance", {"cash-in-wallet": 5_000}, {"initial-balance": 5_000}
    )
    return ledger


@pytest.mark.integration
def test_layout(ledger, ledger_home):
    assert (ledger_home / "accounts" / ".dbinfo").is_file()
    assert (ledger_home / "transactions" / ".dbinfo").is_file()


@pytest.mark.integration
def test_from_config(tmp_path):
    config = LedgerConfig(home=tmp_path / "home", strict=True, alias_index=False)
    with Ledger.from_config(config) as ledger:
        assert ledger.home == tmp_path / "home"
        assert ledger.accounts.strict is True
        assert ledger.accounts.use_alias_index is False
        assert ledger.transactions.strict is True


@pytest.mark.integration
def test_register_with_parent(ledger):
    bank = ledger.register_account("Bank", AccountType.ASSET)
    savings = ledger.register_account(
        "Savings", AccountType.ASSET, description="rainy days", parent="bank"
    )

    assert savings.parent_id == bank.id
    assert savings.has_parent
    assert ledger.get_account(savings.short_id) == savings


@pytest.mark.integration
def test_register_with_missing_parent(ledger):
    with pytest.raises(NotFoundError):
        ledger.register_account("Savings", AccountType.ASSET, parent="bank")
    assert ledger.list_accounts() == []


@pytest.mark.integration
def test_list_accounts_by_type(funded):
    assets = funded.list_accounts(account_type=AccountType.ASSET)
    assert [a.alias for a in assets] == ["cash-in-wallet"]
    assert len(funded.list_accounts()) == 2
    assert funded.list_accounts(account_type=AccountType.REVENUE) == []


@pytest.mark.integration
def test_list_transactions_order_and_bounds(ledger):
    ledger.register_account("Cash in Wallet", AccountType.ASSET)
    ledger.register_account("Salary", AccountType.REVENUE)
    store: TransactionStore = ledger.transactions
    for ts in (300, 100, 200):
        store.record_from_alias_maps(
            f"Pay {ts}", {"cash-in-wallet": ts}, {"salary": ts}, timestamp=ts
        )

    assert [tx.timestamp for tx in ledger.list_transactions()] == [100, 200, 300]
    assert [tx.timestamp for tx in ledger.list_transactions(start=200)] == [200, 300]
    assert [tx.timestamp for tx in ledger.list_transactions(end=200)] == [100, 200]
    assert [tx.timestamp for tx in ledger.list_transactions(start=150, end=250)] == [200]


@pytest.mark.integration
def test_get_transaction(funded):
    tx = funded.list_transactions()[0]
    assert funded.get_transaction(tx.short_hash) == tx
    assert funded.get_transaction(tx.hex_hash) == tx


@pytest.mark.integration
def test_delete_refused_when_used(funded):
    with pytest.raises(AccountInUseError):
        funded.delete_account("cash-in-wallet")
    with pytest.raises(AccountInUseError):
        funded.update_account("initial-balance", description="opening equity")
    assert len(funded.list_accounts()) == 2


@pytest.mark.integration
def test_delete_refused_for_parent(ledger):
    ledger.register_account("Bank", AccountType.ASSET)
    ledger.register_account("Savings", AccountType.ASSET, parent="bank")

    with pytest.raises(AccountInUseError):
        ledger.delete_account("bank")

    ledger.delete_account("savings")
    ledger.delete_account("bank")
    assert ledger.list_accounts() == []


@pytest.mark.integration
def test_update_unused_account(funded):
    food = funded.register_account("Food", AccountType.EXPENSE)

    updated = funded.update_account("food", name="Groceries", description="weekly shop")

    assert updated.id != food.id
    assert updated.alias == "groceries"
    assert updated.created_at == food.created_at
    with pytest.raises(NotFoundError):
        funded.get_account("food")


@pytest.mark.integration
def test_resolve_account_name(funded):
    tx = funded.list_transactions()[0]
    cash = funded.get_account("cash-in-wallet")

    assert funded.resolve_account_name(cash.id) == "Cash in Wallet"
    assert funded.resolve_account_name(b"\xab" * 32) == "abababab"
    assert funded.resolve_account_name(tx.entries[1].account_id) == "Initial Balance"


@pytest.mark.integration
def test_reopen_sees_everything(ledger_home, funded):
    funded.close()
    with Ledger(ledger_home) as reopened:
        assert len(reopened.list_accounts()) == 2
        assert len(reopened.list_transactions()) == 1
        assert reopened.get_account("cash-in-wallet").name == "Cash in Wallet"


@pytest.mark.integration
def test_resolve_account_name_of_corrupt_account(funded):
    cash = funded.get_account("cash-in-wallet")
    path = funded.accounts.path / cash.hex_id
    path.write_bytes(path.read_bytes()[:-2])

    assert funded.resolve_account_name(cash.id) == cash.short_id
