"""
BalanceAggregator -- derived balances over a snapshot of accounts and postings.

Responsibility:
    Computes an account's own balance from its direct postings, its roll-up
    balance including all descendants, and chart-wide statistics.  Nothing
    here is ever stored; every balance is recomputed on read.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  Selectors load the
    snapshot and call into this module.

Invariants enforced:
    - own_balance = opening_balance + sum(debit) - sum(credit) over the
      account's own live postings.
    - rollup_balance = own_balance + sum(child.rollup_balance), resolved
      children-before-parents so no subtree is computed twice.
    - The financial summary is a flat pass over own balances and never
      folds a child's balance into its parent's type total.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, Mapping, Sequence
from uuid import UUID

from coa_kernel.domain.dtos import AccountInfo, PostingInfo
from coa_kernel.domain.tree import AccountNode, iter_tree
from coa_kernel.domain.values import ZERO, AccountType

PostingsByAccount = Mapping[UUID, Sequence[PostingInfo]]


@dataclass(frozen=True)
class AccountSummary:
    """Balances for one account and, recursively, its children."""

    account: AccountInfo
    own_balance: Decimal
    total_debit: Decimal
    total_credit: Decimal
    rollup_balance: Decimal
    transaction_count: int
    child_summaries: tuple[AccountSummary, ...] = ()

    @property
    def children_count(self) -> int:
        return len(self.child_summaries)

    @property
    def has_children(self) -> bool:
        return bool(self.child_summaries)

    def to_dict(self) -> dict[str, Any]:
        account = self.account
        return {
            "id": account.id,
            "code": account.code,
            "name": account.name,
            "full_name": account.full_name,
            "type": account.account_type.value,
            "type_label": account.type_label,
            "is_active": account.is_active,
            "parent_id": account.parent_id,
            "opening_balance": account.opening_balance,
            "total_debit": self.total_debit,
            "total_credit": self.total_credit,
            "balance": self.own_balance,
            "total_balance": self.rollup_balance,
            "has_children": self.has_children,
            "children_count": self.children_count,
            "children": [child.to_dict() for child in self.child_summaries],
            "transaction_count": self.transaction_count,
        }


@dataclass(frozen=True)
class FinancialSummary:
    """
    Chart-wide statistics over active accounts.

    ``totals_by_type`` sums own balances per account type.  The debit,
    credit and count figures cover the postings in the period only.
    """

    totals_by_type: Mapping[AccountType, Decimal]
    account_count: int
    total_debit: Decimal = ZERO
    total_credit: Decimal = ZERO
    transaction_count: int = 0
    start_date: date | None = None
    end_date: date | None = None

    def total_for(self, account_type: AccountType | str) -> Decimal:
        return self.totals_by_type.get(AccountType.parse(account_type), ZERO)

    @property
    def net_income(self) -> Decimal:
        return self.total_for(AccountType.REVENUE) - self.total_for(AccountType.EXPENSE)

    @property
    def net_amount(self) -> Decimal:
        return self.total_debit - self.total_credit


@dataclass(frozen=True)
class AccountBalance:
    """Own balance of a single account."""

    account: AccountInfo
    balance: Decimal


def index_postings(postings: Iterable[PostingInfo]) -> dict[UUID, list[PostingInfo]]:
    """Group postings by account id."""
    by_account: dict[UUID, list[PostingInfo]] = defaultdict(list)
    for posting in postings:
        by_account[posting.account_id].append(posting)
    return dict(by_account)


def posting_totals(postings: Iterable[PostingInfo]) -> tuple[Decimal, Decimal, int]:
    """Return (total_debit, total_credit, count)."""
    total_debit = ZERO
    total_credit = ZERO
    count = 0
    for posting in postings:
        total_debit += posting.debit
        total_credit += posting.credit
        count += 1
    return total_debit, total_credit, count


def own_balance(opening_balance: Decimal, postings: Iterable[PostingInfo]) -> Decimal:
    """Opening balance plus debits minus credits over the account's own postings."""
    total_debit, total_credit, _ = posting_totals(postings)
    return opening_balance + total_debit - total_credit


def summarize_tree(
    nodes: Iterable[AccountNode],
    postings_by_account: PostingsByAccount,
) -> tuple[AccountSummary, ...]:
    """
    Summaries for every tree rooted at ``nodes``.

    Nodes are visited in reverse pre-order, which places every descendant
    before its ancestor, so each child's summary is ready when its parent
    is computed.
    """
    nodes = tuple(nodes)
    done: dict[UUID, AccountSummary] = {}
    for node in reversed(list(iter_tree(nodes))):
        postings = postings_by_account.get(node.id, ())
        total_debit, total_credit, count = posting_totals(postings)
        own = node.account.opening_balance + total_debit - total_credit
        child_summaries = tuple(done.pop(child.id) for child in node.children)
        rollup = own + sum((c.rollup_balance for c in child_summaries), ZERO)
        done[node.id] = AccountSummary(
            account=node.account,
            own_balance=own,
            total_debit=total_debit,
            total_credit=total_credit,
            rollup_balance=rollup,
            transaction_count=count,
            child_summaries=child_summaries,
        )
    return tuple(done[node.id] for node in nodes)


def rollup_balance(node: AccountNode, postings_by_account: PostingsByAccount) -> Decimal:
    """Own balance of ``node`` plus the roll-up balances of all its children."""
    return summarize_tree((node,), postings_by_account)[0].rollup_balance


def financial_summary(
    accounts: Iterable[AccountInfo],
    postings_by_account: PostingsByAccount,
    start_date: date | None = None,
    end_date: date | None = None,
) -> FinancialSummary:
    """
    Sum own balances of active accounts per type in one flat pass.

    ``postings_by_account`` is expected to hold only the period's postings;
    ``start_date`` and ``end_date`` are recorded on the result.
    """
    totals: dict[AccountType, Decimal] = {t: ZERO for t in AccountType}
    count = 0
    total_debit = total_credit = ZERO
    transaction_count = 0
    for account in accounts:
        if not account.is_active:
            continue
        debit, credit, n = posting_totals(postings_by_account.get(account.id, ()))
        totals[account.account_type] += account.opening_balance + debit - credit
        total_debit += debit
        total_credit += credit
        transaction_count += n
        count += 1
    return FinancialSummary(
        totals_by_type=totals,
        account_count=count,
        total_debit=total_debit,
        total_credit=total_credit,
        transaction_count=transaction_count,
        start_date=start_date,
        end_date=end_date,
    )


def top_accounts_by_balance(
    accounts: Iterable[AccountInfo],
    postings_by_account: PostingsByAccount,
    limit: int = 10,
) -> list[AccountBalance]:
    """Active accounts with the highest own balances, highest first."""
    balances = [
        AccountBalance(
            account=account,
            balance=own_balance(
                account.opening_balance, postings_by_account.get(account.id, ())
            ),
        )
        for account in accounts
        if account.is_active
    ]
    balances.sort(key=lambda b: (-b.balance, b.account.code))
    return balances[:limit]
