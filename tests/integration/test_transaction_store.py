"""
Integration tests for TransactionStore against a temporary directory.
"""

import random

import pytest

from mitrack_mcp.core.accounts import AccountStore
from mitrack_mcp.core.encoding import (
    decode_fixed_bytes,
    decode_numeric,
    decode_string,
)
from mitrack_mcp.core.exceptions import (
    AccountNotFoundError,
    AmbiguousPrefixError,
    BalanceMismatchError,
    CorruptRecordError,
    HashMismatchError,
    InvalidHashError,
    InvalidTransactionError,
    NotFoundError,
)
from mitrack_mcp.core.identity import derive_transaction_hash, encode_transaction_body
from mitrack_mcp.core.transactions import TransactionStore, decode_transaction
from mitrack_mcp.models.account import Account, AccountType
from mitrack_mcp.models.transaction import Operation

TIMESTAMP = 1_700_000_000


@pytest.fixture
def opening(transaction_store, cash_in_wallet, initial_balance):
    """Opening balance: 10,000 into the wallet from equity."""
    return transaction_store.record_from_alias_maps(
        "Opening balance",
        {"cash-in-wallet": 10_000},
        {"initial-balance": 10_000},
        timestamp=TIMESTAMP,
    )


@pytest.mark.integration
def test_record_creates_file(transaction_store, opening, cash_in_wallet, initial_balance):
    """Test that a recorded transaction lands under its hash with the expected layout."""
    path = transaction_store.path / opening.hex_hash
    assert path.is_file()
    data = path.read_bytes()
    assert derive_transaction_hash(data) == opening.hash

    timestamp, pos = decode_numeric("int64", data, 0)
    count, pos = decode_numeric("uint16", data, pos)
    entries = []
    for _ in range(count):
        operation, pos = decode_numeric("uint8", data, pos)
        account_id, pos = decode_fixed_bytes(data, pos, 32)
        amount, pos = decode_numeric("int64", data, pos)
        entries.append((operation, account_id, amount))
    note, pos = decode_string(data, pos)

    assert timestamp == TIMESTAMP
    assert entries == [
        (Operation.DEBIT, cash_in_wallet.id, 10_000),
        (Operation.CREDIT, initial_balance.id, 10_000),
    ]
    assert note == "Opening balance"
    assert pos == len(data)


@pytest.mark.integration
def test_record_resolves_aliases(opening, cash_in_wallet, initial_balance):
    assert opening.account_ids() == [cash_in_wallet.id, initial_balance.id]
    assert opening.is_balanced
    assert opening.total_debits == 10_000


@pytest.mark.integration
def test_record_defaults_timestamp_to_now(transaction_store, cash_in_wallet, initial_balance):
    tx = transaction_store.record_from_alias_maps(
        "", {"cash-in-wallet": 1}, {"initial-balance": 1}
    )
    assert tx.timestamp > TIMESTAMP


@pytest.mark.integration
def test_record_unknown_alias(transaction_store, cash_in_wallet):
    """Test that an unknown alias fails and writes nothing."""
    with pytest.raises(AccountNotFoundError) as exc_info:
        transaction_store.record_from_alias_maps(
            "Lunch", {"jiro-sy-rano": 500}, {"cash-in-wallet": 500}
        )

    assert exc_info.value.alias == "jiro-sy-rano"
    assert transaction_store.count() == 0


@pytest.mark.integration
def test_record_hash_ignores_map_order(account_store, transaction_store):
    """Test that the same entries hash the same whatever the map order."""
    for name in ("Food", "Rent", "Bank"):
        account_store.register(Account.create(name, AccountType.EXPENSE))
    account_store.register(Account.create("Salary", AccountType.REVENUE))

    first = transaction_store.record_from_alias_maps(
        "Month", {"food": 300, "rent": 700, "bank": 5}, {"salary": 1005}, timestamp=TIMESTAMP
    )
    second = transaction_store.record_from_alias_maps(
        "Month", {"rent": 700, "bank": 5, "food": 300}, {"salary": 1005}, timestamp=TIMESTAMP
    )

    assert first.hash == second.hash
    assert [e.operation for e in first.entries] == [
        Operation.DEBIT,
        Operation.DEBIT,
        Operation.DEBIT,
        Operation.CREDIT,
    ]
    debit_aliases = [account_store.get_by_actual_id(a).alias for a in first.account_ids()[:3]]
    assert debit_aliases == ["bank", "food", "rent"]
    assert transaction_store.count() == 1


@pytest.mark.integration
def test_balance_is_enforced(transaction_store, cash_in_wallet, initial_balance):
    """Test random amounts: equal totals record, different totals are refused."""
    rng = random.Random(42)
    recorded = 0
    for i in range(50):
        debit = rng.randint(1, 1_000_000)
        credit = rng.randint(1, 1_000_000)
        args = ("Random", {"cash-in-wallet": debit}, {"initial-balance": credit})
        if debit == credit:
            tx = transaction_store.record_from_alias_maps(*args, timestamp=TIMESTAMP + i)
            assert tx.is_balanced
            recorded += 1
        else:
            with pytest.raises(BalanceMismatchError) as exc_info:
                transaction_store.record_from_alias_maps(*args, timestamp=TIMESTAMP + i)
            assert exc_info.value.debits == debit
            assert exc_info.value.credits == credit

        balanced = rng.randint(1, 1_000_000)
        tx = transaction_store.record_from_alias_maps(
            "Balanced",
            {"cash-in-wallet": balanced},
            {"initial-balance": balanced},
            timestamp=TIMESTAMP + i,
        )
        assert tx.total_debits == tx.total_credits == balanced
        recorded += 1

    assert transaction_store.count() == recorded


@pytest.mark.integration
def test_balance_checked_before_aliases(transaction_store):
    """Test that an unbalanced transaction fails even with unknown aliases."""
    with pytest.raises(BalanceMismatchError):
        transaction_store.record_from_alias_maps("", {"nope": 2}, {"nada": 1})
    assert transaction_store.count() == 0


@pytest.mark.integration
@pytest.mark.parametrize(
    "debits,credits",
    [
        ({}, {"initial-balance": 1}),
        ({"cash-in-wallet": 1}, {}),
        ({"cash-in-wallet": 0}, {"initial-balance": 0}),
        ({"cash-in-wallet": -5}, {"initial-balance": -5}),
        ({"cash-in-wallet": 2**63}, {"initial-balance": 2**63}),
        ({"cash-in-wallet": "10"}, {"initial-balance": "10"}),
        ({"cash-in-wallet": True}, {"initial-balance": True}),
    ],
)
def test_invalid_transactions(transaction_store, cash_in_wallet, initial_balance, debits, credits):
    with pytest.raises(InvalidTransactionError):
        transaction_store.record_from_alias_maps("Bad", debits, credits)
    assert transaction_store.count() == 0


@pytest.mark.integration
def test_get_by_hash(transaction_store, opening):
    assert transaction_store.get_by_hash(opening.hex_hash) == opening


@pytest.mark.integration
def test_get_by_hash_not_found(transaction_store):
    with pytest.raises(NotFoundError):
        transaction_store.get_by_hash("0" * 64)


@pytest.mark.integration
def test_get_by_hash_invalid(transaction_store):
    with pytest.raises(InvalidHashError):
        transaction_store.get_by_hash("xyz")


@pytest.mark.integration
def test_get_by_hash_detects_tampering(transaction_store, opening):
    """Test that a modified body no longer matches its file name."""
    path = transaction_store.path / opening.hex_hash
    data = bytearray(path.read_bytes())
    data[0] ^= 0xFF
    path.write_bytes(bytes(data))

    with pytest.raises(HashMismatchError):
        transaction_store.get_by_hash(opening.hex_hash)


@pytest.mark.integration
def test_get_by_hash_truncated(transaction_store, opening):
    path = transaction_store.path / opening.hex_hash
    path.write_bytes(path.read_bytes()[:20])

    with pytest.raises(CorruptRecordError):
        transaction_store.get_by_hash(opening.hex_hash)


@pytest.mark.integration
def test_list_skips_unreadable_files(transaction_store, opening):
    (transaction_store.path / ("cd" * 32)).write_bytes(b"garbage")

    assert transaction_store.list() == [opening]
    assert transaction_store.count() == 2


@pytest.mark.integration
def test_strict_list(tmp_path, account_store, opening):
    store = TransactionStore(tmp_path / "transactions", account_store, strict=True)
    assert store.list() == [opening]

    (store.path / ("cd" * 32)).write_bytes(b"garbage")
    with pytest.raises(CorruptRecordError):
        store.list()


@pytest.mark.integration
def test_get_by_prefix(transaction_store, opening, cash_in_wallet, initial_balance):
    second = transaction_store.record_from_alias_maps(
        "Refund", {"initial-balance": 1}, {"cash-in-wallet": 1}, timestamp=TIMESTAMP
    )

    assert transaction_store.get_by_prefix(opening.short_hash) == opening
    assert transaction_store.get(second.short_hash.upper()) == second
    assert transaction_store.get(opening.hex_hash) == opening


@pytest.mark.integration
def test_get_by_prefix_ambiguous(transaction_store):
    """Test ambiguity with two files sharing a prefix."""
    for suffix in ("01", "02"):
        (transaction_store.path / ("ab" * 31 + suffix)).write_bytes(b"")

    with pytest.raises(AmbiguousPrefixError) as exc_info:
        transaction_store.get_by_prefix("abab")
    assert len(exc_info.value.matches) == 2


@pytest.mark.integration
def test_get_by_prefix_errors(transaction_store, opening):
    with pytest.raises(InvalidHashError):
        transaction_store.get_by_prefix("")
    with pytest.raises(InvalidHashError):
        transaction_store.get("not-hex")

    missing = "0" if not opening.hex_hash.startswith("0") else "f"
    with pytest.raises(NotFoundError):
        transaction_store.get_by_prefix(missing)


@pytest.mark.integration
def test_references(transaction_store, opening, cash_in_wallet, account_store):
    other = Account.create("Trosa", AccountType.LIABILITY)
    account_store.register(other)

    assert transaction_store.references(cash_in_wallet.id) == [opening]
    assert transaction_store.references(other.id) == []


@pytest.mark.unit
def test_decode_transaction_without_verify():
    body = encode_transaction_body(TIMESTAMP, [(1, b"\x01" * 32, 5), (2, b"\x02" * 32, 5)], "x")
    wrong = b"\x00" * 32

    tx = decode_transaction(wrong, body, verify=False)

    assert tx.hash == wrong
    assert tx.note == "x"
    with pytest.raises(HashMismatchError):
        decode_transaction(wrong, body)


@pytest.mark.unit
def test_decode_transaction_unknown_operation():
    body = encode_transaction_body(TIMESTAMP, [(7, b"\x01" * 32, 5)], "")
    with pytest.raises(CorruptRecordError):
        decode_transaction(derive_transaction_hash(body), body)


@pytest.mark.integration
def test_strict_store_records_beside_corrupt_account(tmp_path):
    """Test that alias resolution in a strict ledger skips unreadable accounts."""
    accounts = AccountStore(tmp_path / "accounts", strict=True)
    transactions = TransactionStore(tmp_path / "transactions", accounts, strict=True)
    (accounts.path / ("ab" * 32)).write_bytes(b"garbage")
    accounts.register(Account.create("Cash in Wallet", AccountType.ASSET))
    accounts.register(Account.create("Initial Balance", AccountType.EQUITY))

    tx = transactions.record_from_alias_maps(
        "Opening balance", {"cash-in-wallet": 1}, {"initial-balance": 1}
    )

    assert transactions.list() == [tx]
