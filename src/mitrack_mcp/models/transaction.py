"""
Transaction and entry models for the mitrack ledger.
"""

from enum import IntEnum
from typing import List, Tuple

from pydantic import BaseModel, Field, computed_field, field_serializer, field_validator

from mitrack_mcp.core.identity import ID_SIZE, short_form, to_hex

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


class Operation(IntEnum):
    """Debit (Dr) or credit (Cr); values are the uint8 codes stored on disk."""

    DEBIT = 1
    CREDIT = 2

    @property
    def label(self) -> str:
        return self.name.lower()


class Entry(BaseModel):
    """
    One debit or credit line of a transaction.

    The account is referenced by id only; the full account is loaded
    lazily by callers that need it.
    """

    model_config = {"strict": True, "frozen": True}

    operation: Operation
    account_id: bytes = Field(min_length=ID_SIZE, max_length=ID_SIZE)
    amount: int  # minor currency units

    @field_validator("amount")
    @classmethod
    def validate_amount_range(cls, v: int) -> int:
        """Validate that amount fits a signed 64-bit integer."""
        if not INT64_MIN <= v <= INT64_MAX:
            raise ValueError(f"Amount {v} does not fit in 64 bits")
        return v

    def to_fields(self) -> Tuple[int, bytes, int]:
        """Return (operation, account_id, amount) for encoding."""
        return int(self.operation), self.account_id, self.amount

    @field_serializer("account_id")
    def _serialize_account_id(self, value: bytes) -> str:
        return to_hex(value)

    @field_serializer("operation", when_used="json")
    def _serialize_operation(self, value: Operation) -> str:
        return value.label


class Transaction(BaseModel):
    """
    An immutable ledger transaction.

    The hash is the SHA-256 of the encoded body (timestamp, entries,
    note) and doubles as the record's storage key.
    """

    model_config = {"strict": True, "frozen": True}

    hash: bytes = Field(min_length=ID_SIZE, max_length=ID_SIZE)
    timestamp: int
    entries: List[Entry]
    note: str

    @computed_field  # type: ignore[prop-decorator]
    @property
    def hex_hash(self) -> str:
        return to_hex(self.hash)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def short_hash(self) -> str:
        return short_form(self.hash)

    @property
    def total_debits(self) -> int:
        """Sum of all debit amounts."""
        return sum(e.amount for e in self.entries if e.operation == Operation.DEBIT)

    @property
    def total_credits(self) -> int:
        """Sum of all credit amounts."""
        return sum(e.amount for e in self.entries if e.operation == Operation.CREDIT)

    @property
    def is_balanced(self) -> bool:
        """Check if debits equal credits."""
        return self.total_debits == self.total_credits

    def account_ids(self) -> List[bytes]:
        """IDs of the accounts referenced by this transaction, in entry order."""
        return [e.account_id for e in self.entries]

    @field_serializer("hash")
    def _serialize_hash(self, value: bytes) -> str:
        return to_hex(value)
