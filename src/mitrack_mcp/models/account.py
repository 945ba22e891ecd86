"""
Account model for the mitrack ledger.
"""

import time
from enum import IntEnum
from typing import Optional

from pydantic import BaseModel, Field, computed_field, field_serializer

from mitrack_mcp.core.identity import (
    ID_SIZE,
    ZERO_ID,
    derive_account_id,
    short_form,
    to_hex,
)


class AccountType(IntEnum):
    """
    Classification of accounts in double-entry bookkeeping.

    Debit increases: ASSET, EXPENSE
    Credit increases: LIABILITY, EQUITY, REVENUE

    Values are the uint8 codes stored on disk.
    """

    ASSET = 1
    LIABILITY = 2
    EQUITY = 3
    EXPENSE = 4
    REVENUE = 5

    @property
    def label(self) -> str:
        """Lowercase name (asset, liability, ...)."""
        return self.name.lower()

    @property
    def initial(self) -> str:
        """One-letter code: A, L, O (owner's equity), E, R."""
        return _INITIALS[self]

    @classmethod
    def from_string(cls, value: str) -> "AccountType":
        """
        Parse an account type from a name, plural or initial.

        Raises:
            ValueError: If value is not a recognised account type
        """
        try:
            return _FROM_STRING[value.strip()]
        except KeyError:
            raise ValueError(f"Invalid account type: {value!r}") from None


_INITIALS = {
    AccountType.ASSET: "A",
    AccountType.LIABILITY: "L",
    AccountType.EQUITY: "O",
    AccountType.EXPENSE: "E",
    AccountType.REVENUE: "R",
}

_FROM_STRING = {
    "Asset": AccountType.ASSET,
    "A": AccountType.ASSET,
    "assets": AccountType.ASSET,
    "asset": AccountType.ASSET,
    "Liability": AccountType.LIABILITY,
    "L": AccountType.LIABILITY,
    "liabilities": AccountType.LIABILITY,
    "liability": AccountType.LIABILITY,
    "Equity": AccountType.EQUITY,
    "O": AccountType.EQUITY,
    "equity": AccountType.EQUITY,
    "Expense": AccountType.EXPENSE,
    "E": AccountType.EXPENSE,
    "expenses": AccountType.EXPENSE,
    "expense": AccountType.EXPENSE,
    "Revenue": AccountType.REVENUE,
    "R": AccountType.REVENUE,
    "revenues": AccountType.REVENUE,
    "revenue": AccountType.REVENUE,
}


def derive_alias(name: str) -> str:
    """Lowercase the name and replace spaces with hyphens."""
    return name.lower().replace(" ", "-")


class Account(BaseModel):
    """
    Represents a financial account in the ledger.

    The id is derived from every other field at creation time, so an
    account never changes: a different name or description is a
    different account.
    """

    model_config = {"strict": True, "frozen": True}

    id: bytes = Field(min_length=ID_SIZE, max_length=ID_SIZE)
    name: str = Field(min_length=1)
    alias: str
    description: str = ""
    account_type: AccountType
    parent_id: bytes = Field(default=ZERO_ID, min_length=ID_SIZE, max_length=ID_SIZE)
    created_at: int

    @classmethod
    def create(
        cls,
        name: str,
        account_type: AccountType,
        description: str = "",
        parent_id: Optional[bytes] = None,
        created_at: Optional[int] = None,
    ) -> "Account":
        """
        Create a new account, deriving its alias and id.

        Args:
            name: Display name (required, non-empty)
            account_type: Account type
            description: Optional free text
            parent_id: ID of the parent account, if any
            created_at: Unix timestamp (UTC); defaults to now

        Returns:
            New Account
        """
        alias = derive_alias(name)
        parent_id = parent_id if parent_id is not None else ZERO_ID
        if created_at is None:
            created_at = int(time.time())
        account_id = derive_account_id(
            name, alias, description, account_type, parent_id, created_at
        )
        return cls(
            id=account_id,
            name=name,
            alias=alias,
            description=description,
            account_type=account_type,
            parent_id=parent_id,
            created_at=created_at,
        )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def hex_id(self) -> str:
        """Full 64-character hex id."""
        return to_hex(self.id)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def short_id(self) -> str:
        """8-character display id."""
        return short_form(self.id)

    @property
    def has_parent(self) -> bool:
        return self.parent_id != ZERO_ID

    def expected_id(self) -> bytes:
        """Recompute the id from the account's fields."""
        return derive_account_id(
            self.name,
            self.alias,
            self.description,
            self.account_type,
            self.parent_id,
            self.created_at,
        )

    @field_serializer("id", "parent_id")
    def _serialize_id(self, value: bytes) -> str:
        return to_hex(value)

    @field_serializer("account_type", when_used="json")
    def _serialize_account_type(self, value: AccountType) -> str:
        return value.label

    def __str__(self) -> str:
        return (
            f"Account(ID={self.short_id},Name='{self.name}',"
            f"Alias='{self.alias}',Type='{self.account_type.initial}')"
        )
