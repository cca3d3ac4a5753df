"""
IntegrityValidator -- structural checks run before every mutation.

Responsibility:
    Pure, synchronous guards over the chart-of-accounts invariants.  Each
    check either returns None or raises a typed kernel error.  Services
    gather the inputs (DTOs, child and posting counts, an ancestor lookup)
    and run every applicable check before the first write.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  Storage access is
    injected as the ``parent_of`` callable for the cycle check.

Invariants enforced:
    - A child's type always equals its parent's type.
    - The parent relation is acyclic.
    - Accounts with live children or postings cannot be deleted,
      reparented or retyped.
    - Only active leaf accounts receive postings.
    - Exactly one of debit/credit is strictly positive.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Callable
from uuid import UUID

from coa_kernel.domain.dtos import AccountInfo
from coa_kernel.domain.values import ZERO, AccountType
from coa_kernel.exceptions import (
    AccountCycleError,
    AccountHasChildrenError,
    AccountHasPostingsError,
    AccountInactiveError,
    AccountNotLeafError,
    AccountTypeImmutableError,
    AccountTypeMismatchError,
    AmountExclusivityError,
    CorruptHierarchyError,
    FieldRequiredError,
    NegativeAmountError,
)

ParentLookup = Callable[[UUID], UUID | None]


def check_type_match(
    parent_type: AccountType | str,
    child_type: AccountType | str,
) -> None:
    """Reject a child whose type differs from its parent's."""
    parent = AccountType.parse(parent_type)
    child = AccountType.parse(child_type)
    if parent != child:
        raise AccountTypeMismatchError(parent.value, child.value)


def check_no_cycle(
    candidate_parent_id: UUID,
    account_id: UUID,
    parent_of: ParentLookup,
) -> None:
    """
    Reject ``candidate_parent_id`` if it is ``account_id`` or a descendant.

    Walks the ancestor chain upward from the candidate parent.  The walk is
    iterative and bounded by a visited set, so a cycle already present in
    stored data raises CorruptHierarchyError instead of looping.

    Args:
        candidate_parent_id: Proposed new parent.
        account_id: Account being (re)parented.
        parent_of: Returns the parent id of an account id, or None for a
            root or unknown account.
    """
    if candidate_parent_id == account_id:
        raise AccountCycleError(str(account_id), str(candidate_parent_id))

    visited: set[UUID] = set()
    current: UUID | None = candidate_parent_id
    while current is not None:
        if current == account_id:
            raise AccountCycleError(str(account_id), str(candidate_parent_id))
        if current in visited:
            raise CorruptHierarchyError(
                [str(v) for v in visited], "cycle in stored parent links"
            )
        visited.add(current)
        current = parent_of(current)


def check_leaf_deletable(
    account: AccountInfo,
    child_count: int,
    posting_count: int,
) -> None:
    """Only leaf accounts without live postings may be deleted."""
    if child_count > 0:
        raise AccountHasChildrenError(str(account.id), "delete", child_count)
    if posting_count > 0:
        raise AccountHasPostingsError(str(account.id), "delete", posting_count)


def check_type_immutable(
    account: AccountInfo,
    requested_type: AccountType | str | None,
    child_count: int,
    posting_count: int,
) -> None:
    """
    Reject any real type change.

    The type is encoded in the code's prefix, so once a code is assigned
    the type is frozen.  Children and postings are reported first because
    they are the more specific reason.  Re-stating the current type is not
    a change.
    """
    if requested_type is None:
        return
    requested = AccountType.parse(requested_type)
    if requested == account.account_type:
        return
    if child_count > 0:
        raise AccountHasChildrenError(str(account.id), "change type of", child_count)
    if posting_count > 0:
        raise AccountHasPostingsError(str(account.id), "change type of", posting_count)
    raise AccountTypeImmutableError(
        str(account.id), account.account_type.value, requested.value
    )


def check_parent_mutable(
    account: AccountInfo,
    child_count: int,
    posting_count: int,
) -> None:
    """Reparenting is allowed only while the account has no children or postings."""
    if child_count > 0:
        raise AccountHasChildrenError(str(account.id), "reparent", child_count)
    if posting_count > 0:
        raise AccountHasPostingsError(str(account.id), "reparent", posting_count)


def check_postable(account: AccountInfo, child_count: int) -> None:
    """Only active leaf accounts may receive postings."""
    if not account.is_active:
        raise AccountInactiveError(str(account.id))
    if child_count > 0:
        raise AccountNotLeafError(str(account.id), child_count)


def check_amount_exclusive(debit: Decimal | None, credit: Decimal | None) -> None:
    """Exactly one of debit and credit must be strictly positive."""
    debit = ZERO if debit is None else Decimal(debit)
    credit = ZERO if credit is None else Decimal(credit)
    if debit < ZERO:
        raise NegativeAmountError("debit", str(debit))
    if credit < ZERO:
        raise NegativeAmountError("credit", str(credit))
    if debit > ZERO and credit > ZERO:
        raise AmountExclusivityError(str(debit), str(credit), both_filled=True)
    if debit == ZERO and credit == ZERO:
        raise AmountExclusivityError(str(debit), str(credit), both_filled=False)


def check_opening_balance(amount: Decimal) -> None:
    if Decimal(amount) < ZERO:
        raise NegativeAmountError("opening_balance", str(amount))


def check_required(value: str | None, field_name: str) -> None:
    if value is None or not value.strip():
        raise FieldRequiredError(field_name)
