"""
Module: coa_kernel.models.account
Responsibility: ORM persistence for the chart of accounts.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/values.py only.

Invariants enforced:
    - code is globally unique (uq_account_code), soft-deleted rows included,
      so a code is never re-issued.
    - parent_id is a weak back-reference by id; the tree is rebuilt from the
      flat table by domain/tree.py rather than through ORM relationships.
    - Type matching, acyclicity and leaf-only rules are enforced by
      domain/integrity.py in the service layer before any write.

Failure modes:
    - IntegrityError on duplicate code (surfaced by CodeAllocator as
      CodeAllocationConflictError).
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from coa_kernel.db.base import SoftDeleteMixin, TrackedBase, UUIDString
from coa_kernel.domain.values import AccountType


class Account(SoftDeleteMixin, TrackedBase):
    """
    Chart of Accounts entry -- a single node in the account hierarchy.

    Contract:
        Account.code is system-assigned and globally unique.  account_type
        matches the parent's type and never changes after creation.
    """

    __tablename__ = "accounts"

    __table_args__ = (
        UniqueConstraint("code", name="uq_account_code"),
        Index("idx_account_code_active", "code", "is_active"),
        Index("idx_account_type_parent", "account_type", "parent_id"),
    )

    code: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    account_type: Mapped[AccountType] = mapped_column(
        String(20),
        nullable=False,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    parent_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    opening_balance: Mapped[Decimal] = mapped_column(
        Numeric(15, 2),
        default=Decimal("0"),
        nullable=False,
    )

    description: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<Account {self.code}: {self.name}>"

    @property
    def type_label(self) -> str:
        return AccountType(self.account_type).label

    @property
    def full_name(self) -> str:
        return f"{self.code} - {self.name}"
