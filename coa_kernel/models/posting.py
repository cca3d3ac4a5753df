"""
Module: coa_kernel.models.posting
Responsibility: ORM persistence for postings (transactions) -- single
    debit or credit entries against one leaf account.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Exactly one of debit/credit is strictly positive (checked by
      domain/integrity.py before insert and update).
    - Postings never mutate stored balances; balances are derived on read.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from coa_kernel.db.base import SoftDeleteMixin, TrackedBase, UUIDString


class Posting(SoftDeleteMixin, TrackedBase):
    """A single debit or credit against one account."""

    __tablename__ = "postings"

    __table_args__ = (
        Index("idx_posting_date", "transaction_date"),
        Index("idx_posting_date_account", "transaction_date", "account_id"),
    )

    transaction_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    description: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
    )

    account_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    debit: Mapped[Decimal] = mapped_column(
        Numeric(15, 2),
        default=Decimal("0"),
        nullable=False,
    )

    credit: Mapped[Decimal] = mapped_column(
        Numeric(15, 2),
        default=Decimal("0"),
        nullable=False,
    )

    notes: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<Posting {self.transaction_date} {self.debit}/{self.credit}>"

    @property
    def amount(self) -> Decimal:
        """Signed amount: debit minus credit."""
        return self.debit - self.credit
