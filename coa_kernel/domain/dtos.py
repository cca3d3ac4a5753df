"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Defines the immutable data structures that cross the kernel boundary:
    command objects accepted by ``ChartOfAccountsService`` and the
    ``AccountInfo`` / ``PostingInfo`` snapshots returned by services and
    consumed by the tree and balance functions.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    from_model() class methods exist as boundary converters but are only
    invoked from the service and selector layers.

Invariants enforced:
    - Domain logic accepts/returns DTOs, never ORM entities.
    - Monetary fields are Decimal, never float.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from coa_kernel.domain.values import ZERO, AccountType, PostingSide

if TYPE_CHECKING:
    from coa_kernel.models.account import Account as AccountModel
    from coa_kernel.models.posting import Posting as PostingModel


# ---------------------------------------------------------------------------
# Snapshots
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AccountInfo:
    """Immutable snapshot of one account row."""

    id: UUID
    code: str
    name: str
    account_type: AccountType
    is_active: bool
    parent_id: UUID | None
    opening_balance: Decimal
    description: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def type_label(self) -> str:
        return self.account_type.label

    @property
    def full_name(self) -> str:
        return f"{self.code} - {self.name}"

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    @classmethod
    def from_model(cls, account: AccountModel) -> AccountInfo:
        return cls(
            id=account.id,
            code=account.code,
            name=account.name,
            account_type=AccountType(account.account_type),
            is_active=account.is_active,
            parent_id=account.parent_id,
            opening_balance=account.opening_balance,
            description=account.description,
            created_at=account.created_at,
            updated_at=account.updated_at,
        )


@dataclass(frozen=True)
class PostingInfo:
    """Immutable snapshot of one posting (transaction) row."""

    id: UUID
    account_id: UUID
    transaction_date: date
    description: str
    debit: Decimal
    credit: Decimal
    notes: str | None = None
    created_at: datetime | None = None

    @property
    def amount(self) -> Decimal:
        """Signed amount: debit minus credit."""
        return self.debit - self.credit

    @property
    def side(self) -> PostingSide:
        return PostingSide.DEBIT if self.debit > ZERO else PostingSide.CREDIT

    @classmethod
    def from_model(cls, posting: PostingModel) -> PostingInfo:
        return cls(
            id=posting.id,
            account_id=posting.account_id,
            transaction_date=posting.transaction_date,
            description=posting.description,
            debit=posting.debit,
            credit=posting.credit,
            notes=posting.notes,
            created_at=posting.created_at,
        )


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CreateAccountCommand:
    """Create an account.  The code is always system-assigned."""

    name: str
    account_type: AccountType | str
    opening_balance: Decimal = ZERO
    parent_id: UUID | None = None
    description: str | None = None
    is_active: bool = True


@dataclass(frozen=True)
class UpdateAccountCommand:
    """
    Update an account.  ``None`` leaves a field unchanged.

    ``parent_id`` moves the account under a new parent; ``detach_parent``
    turns it into a root account.  The two are mutually exclusive.
    """

    account_id: UUID
    name: str | None = None
    account_type: AccountType | str | None = None
    parent_id: UUID | None = None
    detach_parent: bool = False
    opening_balance: Decimal | None = None
    description: str | None = None
    is_active: bool | None = None

    def __post_init__(self) -> None:
        if self.detach_parent and self.parent_id is not None:
            raise ValueError("parent_id and detach_parent are mutually exclusive")


@dataclass(frozen=True)
class DeleteAccountCommand:
    account_id: UUID


@dataclass(frozen=True)
class ToggleAccountCommand:
    """Flip an account between active and inactive."""

    account_id: UUID


@dataclass(frozen=True)
class PostTransactionCommand:
    """Post a single debit or credit against one leaf account."""

    account_id: UUID
    transaction_date: date
    description: str
    debit: Decimal = ZERO
    credit: Decimal = ZERO
    notes: str | None = None


@dataclass(frozen=True)
class UpdateTransactionCommand:
    """Edit a posting.  ``None`` leaves a field unchanged."""

    posting_id: UUID
    account_id: UUID | None = None
    transaction_date: date | None = None
    description: str | None = None
    debit: Decimal | None = None
    credit: Decimal | None = None
    notes: str | None = None


@dataclass(frozen=True)
class DeleteTransactionCommand:
    posting_id: UUID
