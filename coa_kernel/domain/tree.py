"""
TreeBuilder -- reconstructs the account forest from a flat snapshot.

Responsibility:
    Turns a flat collection of ``AccountInfo`` rows (child stores parent id
    only) into ordered ``AccountNode`` trees.  Siblings are ordered by code
    at every level and each node carries its depth from the nearest root.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Structural flags (leaf / parent / posting eligibility) derive from the
      node's own ``children``, never from storage-side counters.
    - Nodes are built bottom-up with an explicit stack; there is no depth
      cap, but an optional ``max_depth`` guard and an unreachable-node
      check turn corrupt parent links into CorruptHierarchyError.

Failure modes:
    - CorruptHierarchyError when stored parent links form a cycle (the
      nodes on it are unreachable from any root) or the depth guard trips.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Iterable, Iterator
from uuid import UUID

from coa_kernel.domain.dtos import AccountInfo
from coa_kernel.exceptions import CorruptHierarchyError


@dataclass(frozen=True)
class AccountNode:
    """One account in the tree, with its children in code order."""

    account: AccountInfo
    level: int
    children: tuple[AccountNode, ...] = ()

    @property
    def id(self) -> UUID:
        return self.account.id

    @property
    def code(self) -> str:
        return self.account.code

    @property
    def children_count(self) -> int:
        return len(self.children)

    @property
    def has_children(self) -> bool:
        return bool(self.children)

    @property
    def is_leaf_account(self) -> bool:
        return not self.children

    @property
    def is_parent_account(self) -> bool:
        return bool(self.children)

    @property
    def can_be_used_in_transactions(self) -> bool:
        return self.account.is_active and not self.children

    def to_dict(self) -> dict[str, Any]:
        """Plain-data rendering for the transport layer."""
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
            "description": account.description,
            "can_be_used_in_transactions": self.can_be_used_in_transactions,
            "is_leaf_account": self.is_leaf_account,
            "is_parent_account": self.is_parent_account,
            "level": self.level,
            "created_at": account.created_at,
            "updated_at": account.updated_at,
            "children": [child.to_dict() for child in self.children],
            "children_count": self.children_count,
            "has_children": self.has_children,
        }


def group_children(
    accounts: Iterable[AccountInfo],
) -> tuple[list[AccountInfo], dict[UUID, list[AccountInfo]]]:
    """
    Index a flat snapshot into (roots, children-by-parent-id).

    An account whose parent is missing from the snapshot is treated as a
    root so that it stays visible.  Every list is sorted by code.
    """
    accounts = list(accounts)
    known = {a.id for a in accounts}
    roots: list[AccountInfo] = []
    children: dict[UUID, list[AccountInfo]] = defaultdict(list)
    for account in accounts:
        if account.parent_id is None or account.parent_id not in known:
            roots.append(account)
        else:
            children[account.parent_id].append(account)

    roots.sort(key=lambda a: a.code)
    for siblings in children.values():
        siblings.sort(key=lambda a: a.code)
    return roots, dict(children)


def build_tree(
    accounts: Iterable[AccountInfo],
    max_depth: int | None = None,
) -> tuple[AccountNode, ...]:
    """
    Build the ordered account forest.

    Args:
        accounts: Flat snapshot of live accounts, in any order.
        max_depth: Optional guard; a node deeper than this raises
            CorruptHierarchyError.  None means unlimited.

    Returns:
        Root nodes ordered by code.
    """
    accounts = list(accounts)
    roots, children = group_children(accounts)

    built: dict[UUID, AccountNode] = {}
    visited: set[UUID] = set()
    # (account, level, children_ready)
    stack: list[tuple[AccountInfo, int, bool]] = [
        (root, 0, False) for root in reversed(roots)
    ]
    while stack:
        account, level, children_ready = stack.pop()
        kids = children.get(account.id, ())
        if children_ready:
            built[account.id] = AccountNode(
                account=account,
                level=level,
                children=tuple(built.pop(kid.id) for kid in kids),
            )
            continue

        if max_depth is not None and level > max_depth:
            raise CorruptHierarchyError(
                [str(account.id)], f"depth exceeds {max_depth}"
            )
        visited.add(account.id)
        stack.append((account, level, True))
        stack.extend((kid, level + 1, False) for kid in reversed(kids))

    if len(visited) != len(accounts):
        unreachable = sorted(str(a.id) for a in accounts if a.id not in visited)
        raise CorruptHierarchyError(unreachable, "cycle in stored parent links")

    return tuple(built[root.id] for root in roots)


def iter_tree(nodes: Iterable[AccountNode]) -> Iterator[AccountNode]:
    """Yield nodes depth-first in canonical (code) display order."""
    stack = list(reversed(tuple(nodes)))
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))
