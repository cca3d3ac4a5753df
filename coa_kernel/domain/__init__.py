"""
Pure domain layer.

This module contains pure data transfer objects and domain logic
with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O

All domain objects are immutable and deterministic.
"""

from coa_kernel.domain.balances import (
    AccountBalance,
    AccountSummary,
    FinancialSummary,
    financial_summary,
    index_postings,
    own_balance,
    rollup_balance,
    summarize_tree,
    top_accounts_by_balance,
)
from coa_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from coa_kernel.domain.codes import next_child_code, next_root_code, type_prefix
from coa_kernel.domain.dtos import (
    AccountInfo,
    CreateAccountCommand,
    DeleteAccountCommand,
    DeleteTransactionCommand,
    PostingInfo,
    PostTransactionCommand,
    ToggleAccountCommand,
    UpdateAccountCommand,
    UpdateTransactionCommand,
)
from coa_kernel.domain.tree import AccountNode, build_tree, iter_tree
from coa_kernel.domain.values import AccountType, PostingSide

__all__ = [
    "AccountBalance",
    "AccountInfo",
    "AccountNode",
    "AccountSummary",
    "AccountType",
    "Clock",
    "CreateAccountCommand",
    "DeleteAccountCommand",
    "DeleteTransactionCommand",
    "DeterministicClock",
    "FinancialSummary",
    "PostTransactionCommand",
    "PostingInfo",
    "PostingSide",
    "SystemClock",
    "ToggleAccountCommand",
    "UpdateAccountCommand",
    "UpdateTransactionCommand",
    "build_tree",
    "financial_summary",
    "index_postings",
    "iter_tree",
    "next_child_code",
    "next_root_code",
    "own_balance",
    "rollup_balance",
    "summarize_tree",
    "top_accounts_by_balance",
    "type_prefix",
]
