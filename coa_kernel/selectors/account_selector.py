"""
Module: coa_kernel.selectors.account_selector
Responsibility: Read-only account queries -- the ordered account tree,
    per-account balance summaries, chart-wide statistics and flat listings.
    Balances are derived on every read from live postings; nothing is
    stored.
Architecture position: Kernel > Selectors.  Loads snapshots through the
    ORM and delegates to domain/tree.py and domain/balances.py.

Invariants enforced:
    - Soft-deleted accounts and postings never appear in a snapshot, and
      postings whose account is soft-deleted are excluded with it.
    - Every tree is built from one snapshot per call, so a summary never
      mixes rows read at different times within the caller's transaction.

Failure modes:
    - AccountNotFoundError for a missing or deleted account id.
    - CorruptHierarchyError when stored parent links form a cycle or the
      configured depth guard trips.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Iterable, Iterator
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from coa_kernel.domain.balances import (
    AccountBalance,
    AccountSummary,
    FinancialSummary,
    financial_summary,
    index_postings,
    own_balance,
    summarize_tree,
    top_accounts_by_balance,
)
from coa_kernel.domain.dtos import AccountInfo, PostingInfo
from coa_kernel.domain.tree import AccountNode, build_tree
from coa_kernel.domain.values import AccountType
from coa_kernel.exceptions import AccountNotFoundError
from coa_kernel.logging_config import get_logger
from coa_kernel.models.account import Account
from coa_kernel.models.posting import Posting
from coa_kernel.selectors.base import BaseSelector

if TYPE_CHECKING:
    from coa_config.schema import KernelConfig

logger = get_logger("selectors.account")


def _iter_summaries(summaries: Iterable[AccountSummary]) -> Iterator[AccountSummary]:
    stack = list(reversed(tuple(summaries)))
    while stack:
        summary = stack.pop()
        yield summary
        stack.extend(reversed(summary.child_summaries))


def _matches(account: AccountInfo, search: str | None) -> bool:
    if not search:
        return True
    needle = search.lower()
    return needle in account.name.lower() or needle in account.code.lower()


class AccountSelector(BaseSelector[Account]):
    """
    Selector for the chart of accounts and derived balances.

    Contract:
        Results are ordered by account code.  Inactive accounts appear in
        the tree and in summaries of their ancestors; chart-wide statistics
        (financial summary, top balances) only count active accounts.
    """

    def __init__(self, session: Session, max_depth: int | None = None):
        super().__init__(session)
        self._max_depth = max_depth

    @classmethod
    def from_config(cls, session: Session, config: KernelConfig) -> AccountSelector:
        """Selector with the tree depth guard from ``config.tree``."""
        return cls(session, max_depth=config.tree.max_depth)

    # ------------------------------------------------------------------
    # Snapshot loading
    # ------------------------------------------------------------------

    def _load_accounts(self) -> list[AccountInfo]:
        stmt = (
            select(Account)
            .where(Account.deleted_at.is_(None))
            .order_by(Account.code)
        )
        return [AccountInfo.from_model(a) for a in self.session.execute(stmt).scalars()]

    def _load_postings(
        self,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> dict[UUID, list[PostingInfo]]:
        stmt = (
            select(Posting)
            .join(Account, Posting.account_id == Account.id)
            .where(
                Posting.deleted_at.is_(None),
                Account.deleted_at.is_(None),
            )
        )
        if start_date is not None:
            stmt = stmt.where(Posting.transaction_date >= start_date)
        if end_date is not None:
            stmt = stmt.where(Posting.transaction_date <= end_date)
        return index_postings(
            PostingInfo.from_model(p) for p in self.session.execute(stmt).scalars()
        )

    def _summaries(self) -> tuple[AccountSummary, ...]:
        nodes = build_tree(self._load_accounts(), max_depth=self._max_depth)
        return summarize_tree(nodes, self._load_postings())

    # ------------------------------------------------------------------
    # Tree
    # ------------------------------------------------------------------

    def get_tree(self) -> tuple[AccountNode, ...]:
        """
        Ordered account forest of all live accounts.

        Each root carries its children recursively, siblings in code order,
        with ``level`` counted from the root (0).
        """
        nodes = build_tree(self._load_accounts(), max_depth=self._max_depth)
        logger.debug("tree_built", extra={"root_count": len(nodes)})
        return nodes

    # ------------------------------------------------------------------
    # Summaries and balances
    # ------------------------------------------------------------------

    def get_account_summary(self, account_id: UUID) -> AccountSummary:
        """
        Balance summary of one account and, recursively, its children.

        Raises:
            AccountNotFoundError: The account doesn't exist or is deleted.
        """
        for summary in _iter_summaries(self._summaries()):
            if summary.account.id == account_id:
                return summary
        raise AccountNotFoundError(str(account_id))

    def get_account_summaries(
        self,
        account_type: AccountType | str | None = None,
        search: str | None = None,
    ) -> list[AccountSummary]:
        """
        Summaries of every active account matching the filters.

        Each summary carries its own subtree, so a parent and its children
        can both appear at the top level of the result.

        Args:
            account_type: Only accounts of this type.
            search: Case-insensitive substring of name or code.
        """
        wanted = AccountType.parse(account_type) if account_type is not None else None
        return sorted(
            (
                s for s in _iter_summaries(self._summaries())
                if s.account.is_active
                and (wanted is None or s.account.account_type == wanted)
                and _matches(s.account, search)
            ),
            key=lambda s: s.account.code,
        )

    def get_account_balance(self, account_id: UUID) -> Decimal | None:
        """
        Own balance: opening balance plus debits minus credits.

        Returns None for an inactive account, which has no reportable
        balance.

        Raises:
            AccountNotFoundError: The account doesn't exist or is deleted.
        """
        account = self.session.get(Account, account_id)
        if account is None or account.is_deleted:
            raise AccountNotFoundError(str(account_id))
        if not account.is_active:
            return None
        stmt = select(Posting).where(
            Posting.account_id == account_id,
            Posting.deleted_at.is_(None),
        )
        postings = [PostingInfo.from_model(p) for p in self.session.execute(stmt).scalars()]
        return own_balance(account.opening_balance, postings)

    def get_financial_summary(
        self,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> FinancialSummary:
        """
        Own-balance totals per type over active accounts, net income, and
        debit/credit totals.

        Args:
            start_date: Inclusive lower bound on posting transaction_date.
            end_date: Inclusive upper bound on posting transaction_date.
        """
        return financial_summary(
            self._load_accounts(),
            self._load_postings(start_date, end_date),
            start_date=start_date,
            end_date=end_date,
        )

    def get_top_accounts_by_balance(self, limit: int = 10) -> list[AccountBalance]:
        """Active accounts with the highest own balances, highest first."""
        return top_accounts_by_balance(
            self._load_accounts(), self._load_postings(), limit=limit
        )

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    def list_accounts(
        self,
        account_type: AccountType | str | None = None,
        is_active: bool | None = None,
        parent_id: UUID | None = None,
        roots_only: bool = False,
        search: str | None = None,
    ) -> list[AccountInfo]:
        """
        Flat, code-ordered listing of live accounts.

        Args:
            account_type: Only accounts of this type.
            is_active: Only active (True) or inactive (False) accounts.
            parent_id: Only direct children of this account.
            roots_only: Only accounts without a parent.
            search: Case-insensitive substring of name or code.
        """
        stmt = select(Account).where(Account.deleted_at.is_(None))
        if account_type is not None:
            stmt = stmt.where(Account.account_type == AccountType.parse(account_type).value)
        if is_active is not None:
            stmt = stmt.where(Account.is_active == is_active)
        if parent_id is not None:
            stmt = stmt.where(Account.parent_id == parent_id)
        if roots_only:
            stmt = stmt.where(Account.parent_id.is_(None))
        if search:
            stmt = stmt.where(
                or_(
                    Account.name.icontains(search, autoescape=True),
                    Account.code.icontains(search, autoescape=True),
                )
            )
        stmt = stmt.order_by(Account.code)
        return [AccountInfo.from_model(a) for a in self.session.execute(stmt).scalars()]
