"""
Values -- enumerations shared by the ORM models and the pure domain.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  Models import these
    enums; these enums import nothing from models.
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum

from coa_kernel.exceptions import InvalidAccountTypeError

ZERO = Decimal("0")


class AccountType(str, Enum):
    """Types of accounts in the chart of accounts."""

    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    REVENUE = "revenue"
    EXPENSE = "expense"

    @property
    def label(self) -> str:
        """Display label, e.g. ``"Asset"``."""
        return self.value.capitalize()

    @classmethod
    def parse(cls, value: AccountType | str) -> AccountType:
        """Coerce a string to an AccountType, raising InvalidAccountTypeError."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise InvalidAccountTypeError(str(value)) from None


class PostingSide(str, Enum):
    """Which side a posting is on.  Exactly one side carries a positive amount."""

    DEBIT = "debit"
    CREDIT = "credit"
