"""
Account code generation -- pure functions.

Responsibility:
    Computes the next hierarchical account code for a scope, given the
    scope's current greatest code.  Reading that maximum atomically is the
    job of ``coa_kernel.services.code_allocator``; this module never
    touches storage.

Code layout:
    Root codes are a one-character type prefix followed by a fixed-width
    numeric suffix (``1000``, ``1001``, ...).  Child codes append a fixed
    two-digit suffix to the parent code (``100001``, ``100002``, ...).
    Because every level has a fixed width, an ascending sort on code
    reproduces the depth-first, sibling-ordered traversal of the tree.

Failure modes:
    - RootCodeCapacityError when the root suffix would exceed 999.
    - ChildCodeCapacityError when a parent would get a 100th child.
    - CodeLengthCapacityError when a child code would not fit the column.
"""

from __future__ import annotations

from types import MappingProxyType

from coa_kernel.domain.values import AccountType
from coa_kernel.exceptions import (
    ChildCodeCapacityError,
    CodeLengthCapacityError,
    RootCodeCapacityError,
)

ROOT_SUFFIX_WIDTH = 3
CHILD_SUFFIX_WIDTH = 2
MAX_ROOT_SUFFIX = 10**ROOT_SUFFIX_WIDTH - 1
MAX_CHILD_SUFFIX = 10**CHILD_SUFFIX_WIDTH - 1
CODE_MAX_LENGTH = 50

_TYPE_PREFIXES = MappingProxyType({
    AccountType.ASSET: "1",
    AccountType.LIABILITY: "2",
    AccountType.EQUITY: "3",
    AccountType.REVENUE: "4",
    AccountType.EXPENSE: "5",
})


def type_prefix(account_type: AccountType | str) -> str:
    """Return the fixed one-character code prefix for an account type."""
    return _TYPE_PREFIXES[AccountType.parse(account_type)]


def next_root_code(account_type: AccountType | str, current_max: str | None) -> str:
    """
    Next root code for ``account_type``.

    Args:
        account_type: Type of the new root account.
        current_max: Lexicographically greatest existing root code of that
            type, or None if there is none.
    """
    prefix = type_prefix(account_type)
    if current_max is None:
        return prefix + "0" * ROOT_SUFFIX_WIDTH

    suffix = int(current_max[len(prefix):]) + 1
    if suffix > MAX_ROOT_SUFFIX:
        raise RootCodeCapacityError(AccountType.parse(account_type).value, current_max)
    return prefix + str(suffix).zfill(ROOT_SUFFIX_WIDTH)


def next_child_code(parent_code: str, current_max_child: str | None) -> str:
    """
    Next child code under ``parent_code``.

    The suffix is always derived from the previous sibling's code, never
    from the parent's own code.

    Args:
        parent_code: Code of the parent account.
        current_max_child: Lexicographically greatest existing child code
            of that parent, or None if the parent has no children yet.
    """
    if len(parent_code) + CHILD_SUFFIX_WIDTH > CODE_MAX_LENGTH:
        raise CodeLengthCapacityError(parent_code, CODE_MAX_LENGTH)

    if current_max_child is None:
        return parent_code + "1".zfill(CHILD_SUFFIX_WIDTH)

    suffix = int(current_max_child[-CHILD_SUFFIX_WIDTH:]) + 1
    if suffix > MAX_CHILD_SUFFIX:
        raise ChildCodeCapacityError(parent_code, current_max_child)
    return current_max_child[:-CHILD_SUFFIX_WIDTH] + str(suffix).zfill(CHILD_SUFFIX_WIDTH)
