"""
MCP tool definitions for the mitrack ledger.

Exposes ledger functionality through the Model Context Protocol.
"""

from typing import Any, Dict, List, Optional

from mitrack_mcp.core.ledger import Ledger
from mitrack_mcp.models.account import Account, AccountType
from mitrack_mcp.models.transaction import Transaction
from mitrack_mcp.utils.date_utils import (
    PERIODS,
    date_range_to_timestamps,
    format_timestamp,
    parse_period,
)


class LedgerTools:
    """Collection of MCP tools for managing a mitrack ledger."""

    def __init__(self, ledger: Ledger):
        """
        Initialize tools with a ledger.

        Args:
            ledger: Ledger instance
        """
        self.ledger = ledger

    def _account_dict(self, account: Account) -> Dict[str, Any]:
        data = account.model_dump(mode="json")
        data["type_initial"] = account.account_type.initial
        if not account.has_parent:
            data["parent_id"] = None
        return data

    def _transaction_dict(self, tx: Transaction) -> Dict[str, Any]:
        data = tx.model_dump(mode="json")
        data["date"] = format_timestamp(tx.timestamp)
        for entry in data["entries"]:
            entry["account_name"] = self.ledger.resolve_account_name(
                bytes.fromhex(entry["account_id"])
            )
        return data

    def register_account(
        self,
        name: str,
        account_type: str,
        description: str = "",
        parent: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Register a new account.

        Args:
            name: Account name; the alias is derived from it
            account_type: asset, liability, equity, expense or revenue
            description: Optional description
            parent: Id, alias or id prefix of the parent account

        Returns:
            Dict with the registered account

        Raises:
            ValueError: If account_type is not recognized
        """
        account = self.ledger.register_account(
            name=name,
            account_type=AccountType.from_string(account_type),
            description=description,
            parent=parent,
        )
        return {"account": self._account_dict(account)}

    def list_accounts(self, account_type: Optional[str] = None) -> Dict[str, Any]:
        """
        List all accounts.

        Args:
            account_type: Optional filter by account type

        Returns:
            Dict with account count and list of accounts
        """
        type_filter = AccountType.from_string(account_type) if account_type else None
        accounts = self.ledger.list_accounts(account_type=type_filter)
        return {
            "count": len(accounts),
            "accounts": [self._account_dict(acc) for acc in accounts],
        }

    def get_account(self, ref: str) -> Dict[str, Any]:
        """
        Get one account by full id, alias or id prefix.

        Args:
            ref: Account reference

        Returns:
            Dict with account details
        """
        return self._account_dict(self.ledger.get_account(ref))

    def record_transaction(
        self,
        note: str,
        debits: Dict[str, int],
        credits: Dict[str, int],
    ) -> Dict[str, Any]:
        """
        Record a transaction.

        Args:
            note: Description or reason of the transaction
            debits: Debit amounts (minor units) keyed by account alias
            credits: Credit amounts (minor units) keyed by account alias

        Returns:
            Dict with the recorded transaction
        """
        tx = self.ledger.record_transaction(note, debits, credits)
        return {"transaction": self._transaction_dict(tx)}

    def list_transactions(
        self,
        period: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        limit: int = 100,
    ) -> Dict[str, Any]:
        """
        List transactions, oldest first.

        Args:
            period: Period shorthand (this_month, last_30_days, ytd, etc.)
            start_date: Filter by date >= this (YYYY-MM-DD, UTC)
            end_date: Filter by date <= this (YYYY-MM-DD, UTC)
            limit: Maximum number of transactions to return (default: 100)

        Returns:
            Dict with transaction count and list of transactions

        Raises:
            ValueError: If limit is less than 1 or a date is invalid
        """
        if limit < 1:
            raise ValueError(f"limit must be at least 1, got {limit}")
        if period:
            start_date, end_date = parse_period(period)

        start, end = date_range_to_timestamps(start_date, end_date)
        transactions = self.ledger.list_transactions(start=start, end=end)[:limit]

        return {
            "count": len(transactions),
            "transactions": [self._transaction_dict(tx) for tx in transactions],
        }

    def get_transaction(self, ref: str) -> Dict[str, Any]:
        """
        Get one transaction by full hash or hash prefix.

        Args:
            ref: Transaction reference

        Returns:
            Dict with transaction details
        """
        return self._transaction_dict(self.ledger.get_transaction(ref))


def create_tool_schemas() -> List[Dict[str, Any]]:
    """
    Create MCP tool schemas for all tools.

    Returns:
        List of tool schema definitions
    """
    account_types = [t.label for t in AccountType]
    amount_map = {
        "type": "object",
        "additionalProperties": {"type": "integer", "minimum": 1},
        "minProperties": 1,
    }

    return [
        {
            "name": "register_account",
            "description": (
                "Register a new ledger account. The alias used when recording "
                "transactions is the lowercased name with spaces replaced by hyphens."
            ),
            "inputSchema": {
                "type": "object",
                "properties": {
                    "name": {
                        "type": "string",
                        "description": "Account name, e.g. 'Cash in Wallet'",
                        "minLength": 1,
                    },
                    "account_type": {
                        "type": "string",
                        "description": "Account type",
                        "enum": account_types,
                    },
                    "description": {
                        "type": "string",
                        "description": "Optional description",
                    },
                    "parent": {
                        "type": "string",
                        "description": "Id, alias or id prefix of the parent account",
                    },
                },
                "required": ["name", "account_type"],
            },
        },
        {
            "name": "list_accounts",
            "description": "List all accounts. Optionally filter by account type.",
            "inputSchema": {
                "type": "object",
                "properties": {
                    "account_type": {
                        "type": "string",
                        "description": "Filter by account type",
                        "enum": account_types,
                    },
                },
            },
        },
        {
            "name": "get_account",
            "description": "Get an account by full id, alias, or unique id prefix.",
            "inputSchema": {
                "type": "object",
                "properties": {
                    "ref": {
                        "type": "string",
                        "description": "Account id, alias or id prefix",
                    },
                },
                "required": ["ref"],
            },
        },
        {
            "name": "record_transaction",
            "description": (
                "Record a balanced transaction. Debits and credits map account "
                "aliases to amounts in minor currency units; their totals must be equal."
            ),
            "inputSchema": {
                "type": "object",
                "properties": {
                    "note": {
                        "type": "string",
                        "description": "Description or reason of the transaction",
                    },
                    "debits": {**amount_map, "description": "Debit amounts by alias"},
                    "credits": {**amount_map, "description": "Credit amounts by alias"},
                },
                "required": ["note", "debits", "credits"],
            },
        },
        {
            "name": "list_transactions",
            "description": (
                "List recorded transactions, oldest first. Use 'period' for "
                "common date ranges (this_month, last_30_days, ytd, etc.)."
            ),
            "inputSchema": {
                "type": "object",
                "properties": {
                    "period": {
                        "type": "string",
                        "description": "Period shorthand",
                        "enum": list(PERIODS),
                    },
                    "start_date": {
                        "type": "string",
                        "description": "Start date (YYYY-MM-DD, UTC)",
                        "pattern": r"^\d{4}-\d{2}-\d{2}$",
                    },
                    "end_date": {
                        "type": "string",
                        "description": "End date (YYYY-MM-DD, UTC)",
                        "pattern": r"^\d{4}-\d{2}-\d{2}$",
                    },
                    "limit": {
                        "type": "integer",
                        "description": "Maximum number of results (default: 100)",
                        "default": 100,
                        "minimum": 1,
                    },
                },
            },
        },
        {
            "name": "get_transaction",
            "description": "Get a transaction by full hash or unique hash prefix.",
            "inputSchema": {
                "type": "object",
                "properties": {
                    "ref": {
                        "type": "string",
                        "description": "Transaction hash or hash prefix",
                    },
                },
                "required": ["ref"],
            },
        },
    ]
