"""
Pydantic models for mitrack ledger records.
"""

from mitrack_mcp.models.account import Account, AccountType, derive_alias
from mitrack_mcp.models.transaction import Entry, Operation, Transaction

__all__ = ["Account", "AccountType", "Entry", "Operation", "Transaction", "derive_alias"]
