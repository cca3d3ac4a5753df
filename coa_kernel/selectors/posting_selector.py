"""
Module: coa_kernel.selectors.posting_selector
Responsibility: Read-only posting queries -- filtered transaction listings,
    their debit/credit statistics and point-in-time reports.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Only live postings on live, active accounts are listed.
    - Statistics are computed over exactly the rows the same filters list.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Mapping
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from coa_kernel.domain.balances import posting_totals
from coa_kernel.domain.clock import Clock, SystemClock
from coa_kernel.domain.dtos import PostingInfo
from coa_kernel.domain.values import PostingSide
from coa_kernel.logging_config import get_logger
from coa_kernel.models.account import Account
from coa_kernel.models.posting import Posting
from coa_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.posting")


@dataclass(frozen=True)
class PostingStatistics:
    """Totals over a filtered set of postings."""

    total_debit: Decimal
    total_credit: Decimal
    transaction_count: int
    start_date: date | None = None
    end_date: date | None = None

    @property
    def net_amount(self) -> Decimal:
        return self.total_debit - self.total_credit


@dataclass(frozen=True)
class PostingReport:
    """Filtered postings with their statistics, stamped with the time it was built."""

    postings: tuple[PostingInfo, ...]
    statistics: PostingStatistics
    filters: Mapping[str, Any]
    generated_at: datetime


def _statistics(
    postings: list[PostingInfo],
    start_date: date | None,
    end_date: date | None,
) -> PostingStatistics:
    total_debit, total_credit, count = posting_totals(postings)
    return PostingStatistics(
        total_debit=total_debit,
        total_credit=total_credit,
        transaction_count=count,
        start_date=start_date,
        end_date=end_date,
    )


class PostingSelector(BaseSelector[Posting]):
    """Selector for postings, newest first."""

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    def list_postings(
        self,
        start_date: date | None = None,
        end_date: date | None = None,
        account_id: UUID | None = None,
        search: str | None = None,
        side: PostingSide | str | None = None,
    ) -> list[PostingInfo]:
        """
        List postings ordered by transaction date, then creation, newest first.

        Args:
            start_date: Inclusive lower bound on transaction_date.
            end_date: Inclusive upper bound on transaction_date.
            account_id: Only postings against this account.
            search: Case-insensitive substring of description or notes.
            side: Only debit or only credit postings.
        """
        stmt = (
            select(Posting)
            .join(Account, Posting.account_id == Account.id)
            .where(
                Posting.deleted_at.is_(None),
                Account.deleted_at.is_(None),
                Account.is_active.is_(True),
            )
        )
        if start_date is not None:
            stmt = stmt.where(Posting.transaction_date >= start_date)
        if end_date is not None:
            stmt = stmt.where(Posting.transaction_date <= end_date)
        if account_id is not None:
            stmt = stmt.where(Posting.account_id == account_id)
        if search:
            stmt = stmt.where(
                or_(
                    Posting.description.icontains(search, autoescape=True),
                    Posting.notes.icontains(search, autoescape=True),
                )
            )
        if side is not None:
            if PostingSide(side) == PostingSide.DEBIT:
                stmt = stmt.where(Posting.debit > 0)
            else:
                stmt = stmt.where(Posting.credit > 0)

        stmt = stmt.order_by(
            Posting.transaction_date.desc(),
            Posting.created_at.desc(),
        )
        return [PostingInfo.from_model(p) for p in self.session.execute(stmt).scalars()]

    def get_statistics(
        self,
        start_date: date | None = None,
        end_date: date | None = None,
        account_id: UUID | None = None,
        search: str | None = None,
        side: PostingSide | str | None = None,
    ) -> PostingStatistics:
        """Debit and credit totals over the postings ``list_postings`` returns."""
        postings = self.list_postings(
            start_date=start_date,
            end_date=end_date,
            account_id=account_id,
            search=search,
            side=side,
        )
        return _statistics(postings, start_date, end_date)

    def get_report(
        self,
        start_date: date | None = None,
        end_date: date | None = None,
        account_id: UUID | None = None,
        search: str | None = None,
        side: PostingSide | str | None = None,
    ) -> PostingReport:
        """
        Postings and statistics for one set of filters, read once.

        ``filters`` holds only the filters that were given.
        """
        filters = {
            "start_date": start_date,
            "end_date": end_date,
            "account_id": account_id,
            "search": search,
            "side": PostingSide(side) if side is not None else None,
        }
        postings = self.list_postings(**filters)
        report = PostingReport(
            postings=tuple(postings),
            statistics=_statistics(postings, start_date, end_date),
            filters={k: v for k, v in filters.items() if v is not None},
            generated_at=self._clock.now(),
        )
        logger.info(
            "posting_report_generated",
            extra={"transaction_count": len(postings), "filters": sorted(report.filters)},
        )
        return report
