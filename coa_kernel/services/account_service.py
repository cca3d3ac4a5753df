"""
AccountService -- account lifecycle writes.

Responsibility:
    Creates, edits, toggles and soft-deletes accounts.  Gathers the inputs
    for the pure checks in ``coa_kernel.domain.integrity`` (snapshots,
    live child and posting counts, an ancestor lookup), runs every check
    that applies, and only then writes.

Architecture position:
    Kernel > Services -- imperative shell.
    Called by ChartOfAccountsService, which owns the transaction.

Invariants enforced:
    - Codes are system-assigned through CodeAllocator, on create and on
      reparent.
    - Parent and child types match; the parent relation stays acyclic.
    - Type never changes once the account exists; parent only changes
      while the account has no live children and no live postings.
    - Deletion is a soft delete of a leaf without live postings.

Failure modes:
    - AccountNotFoundError / ParentAccountNotFoundError for missing rows.
    - ValidationError / ConflictError subclasses from the integrity checks.
    - CapacityError / CodeAllocationConflictError from CodeAllocator.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from coa_kernel.domain.clock import Clock, SystemClock
from coa_kernel.domain.dtos import (
    AccountInfo,
    CreateAccountCommand,
    UpdateAccountCommand,
)
from coa_kernel.domain.integrity import (
    check_leaf_deletable,
    check_no_cycle,
    check_opening_balance,
    check_parent_mutable,
    check_required,
    check_type_immutable,
    check_type_match,
)
from coa_kernel.domain.values import AccountType
from coa_kernel.exceptions import AccountNotFoundError, ParentAccountNotFoundError
from coa_kernel.logging_config import get_logger
from coa_kernel.models.account import Account
from coa_kernel.models.posting import Posting
from coa_kernel.services.base import BaseService
from coa_kernel.services.code_allocator import CodeAllocator

logger = get_logger("services.account")


class AccountService(BaseService[Account]):
    """
    Service for managing chart-of-accounts entries.

    All public methods return AccountInfo DTOs, not ORM Account entities.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._codes = CodeAllocator(session)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _get_live(self, account_id: UUID) -> Account:
        """Get a non-deleted account by ID, raising if not found."""
        account = self.session.get(Account, account_id)
        if account is None or account.is_deleted:
            raise AccountNotFoundError(str(account_id))
        return account

    def _get_parent(self, parent_id: UUID) -> Account:
        parent = self.session.get(Account, parent_id)
        if parent is None or parent.is_deleted:
            raise ParentAccountNotFoundError(str(parent_id))
        return parent

    def child_count(self, account_id: UUID) -> int:
        """Number of live direct children."""
        stmt = select(func.count(Account.id)).where(
            Account.parent_id == account_id,
            Account.deleted_at.is_(None),
        )
        return self.session.execute(stmt).scalar_one()

    def posting_count(self, account_id: UUID) -> int:
        """Number of live postings against the account."""
        stmt = select(func.count(Posting.id)).where(
            Posting.account_id == account_id,
            Posting.deleted_at.is_(None),
        )
        return self.session.execute(stmt).scalar_one()

    def _parent_of(self, account_id: UUID) -> UUID | None:
        account = self.session.get(Account, account_id)
        return account.parent_id if account is not None else None

    def get_account(self, account_id: UUID) -> AccountInfo:
        """
        Get account by ID.

        Raises:
            AccountNotFoundError: If the account doesn't exist or is deleted.
        """
        return AccountInfo.from_model(self._get_live(account_id))

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_account(self, command: CreateAccountCommand, actor_id: UUID) -> AccountInfo:
        """
        Create an account with a system-assigned code.

        Args:
            command: Account fields; the code is never caller-supplied.
            actor_id: UUID of the user/actor creating the account.

        Returns:
            The created AccountInfo, code included.

        Raises:
            InvalidAccountTypeError: Unknown type.
            FieldRequiredError: Blank name.
            NegativeAmountError: Negative opening balance.
            ParentAccountNotFoundError: parent_id does not exist.
            AccountTypeMismatchError: Parent has a different type.
            CapacityError: The scope's code space is exhausted.
        """
        account_type = AccountType.parse(command.account_type)
        check_required(command.name, "name")
        check_opening_balance(command.opening_balance)

        if command.parent_id is not None:
            parent = self._get_parent(command.parent_id)
            check_type_match(parent.account_type, account_type)

        account = Account(
            name=command.name.strip(),
            account_type=account_type.value,
            is_active=command.is_active,
            opening_balance=command.opening_balance,
            description=command.description,
            created_by_id=actor_id,
        )
        self._codes.assign_code(account, command.parent_id)

        logger.info(
            "account_created",
            extra={
                "account_id": str(account.id),
                "account_code": account.code,
                "account_type": account_type.value,
                "parent_id": str(command.parent_id) if command.parent_id else None,
            },
        )
        return AccountInfo.from_model(account)

    def update_account(self, command: UpdateAccountCommand, actor_id: UUID) -> AccountInfo:
        """
        Apply the non-None fields of ``command`` to an account.

        Name, description, opening balance and the active flag are freely
        editable.  A real type change is always rejected.  Moving the
        account (``parent_id`` or ``detach_parent``) is allowed only while
        it has no live children and no live postings, and assigns a new
        code in the destination scope.

        Raises:
            AccountNotFoundError: The account doesn't exist.
            ParentAccountNotFoundError: The new parent doesn't exist.
            AccountTypeMismatchError: The new parent has a different type.
            AccountCycleError: The new parent is the account or a descendant.
            ConflictError: Type or parent change blocked by children or
                postings, or any type change at all.
        """
        account = self._get_live(command.account_id)
        info = AccountInfo.from_model(account)
        child_count = self.child_count(account.id)
        posting_count = self.posting_count(account.id)

        if command.detach_parent:
            new_parent_id = None
            moving = account.parent_id is not None
        else:
            new_parent_id = command.parent_id
            moving = new_parent_id is not None and new_parent_id != account.parent_id

        if moving:
            if new_parent_id is not None:
                parent = self._get_parent(new_parent_id)
                check_type_match(parent.account_type, account.account_type)
                check_no_cycle(new_parent_id, account.id, self._parent_of)
            check_parent_mutable(info, child_count, posting_count)

        check_type_immutable(info, command.account_type, child_count, posting_count)

        if command.name is not None:
            check_required(command.name, "name")
        if command.opening_balance is not None:
            check_opening_balance(command.opening_balance)

        changed: list[str] = []
        if moving:
            old_code = account.code
            self._codes.assign_code(account, new_parent_id)
            changed.append("parent_id")
            logger.info(
                "account_moved",
                extra={
                    "account_id": str(account.id),
                    "old_code": old_code,
                    "new_code": account.code,
                    "parent_id": str(new_parent_id) if new_parent_id else None,
                },
            )
        if command.name is not None:
            account.name = command.name.strip()
            changed.append("name")
        if command.description is not None:
            account.description = command.description
            changed.append("description")
        if command.opening_balance is not None:
            account.opening_balance = command.opening_balance
            changed.append("opening_balance")
        if command.is_active is not None:
            account.is_active = command.is_active
            changed.append("is_active")

        account.updated_by_id = actor_id
        self.session.flush()

        logger.info(
            "account_updated",
            extra={
                "account_id": str(account.id),
                "account_code": account.code,
                "fields": changed,
            },
        )
        return AccountInfo.from_model(account)

    def toggle_active(self, account_id: UUID, actor_id: UUID) -> AccountInfo:
        """Flip the active flag; code, type and parent are untouched."""
        account = self._get_live(account_id)
        account.is_active = not account.is_active
        account.updated_by_id = actor_id
        self.session.flush()

        logger.info(
            "account_toggled",
            extra={
                "account_id": str(account.id),
                "account_code": account.code,
                "is_active": account.is_active,
            },
        )
        return AccountInfo.from_model(account)

    def delete_account(self, account_id: UUID, actor_id: UUID) -> None:
        """
        Soft-delete a leaf account without live postings.

        The row keeps its code, so the code is never re-issued.

        Raises:
            AccountNotFoundError: The account doesn't exist.
            AccountHasChildrenError: The account has live children.
            AccountHasPostingsError: The account has live postings.
        """
        account = self._get_live(account_id)
        check_leaf_deletable(
            AccountInfo.from_model(account),
            self.child_count(account.id),
            self.posting_count(account.id),
        )
        account.deleted_at = self._clock.now()
        account.updated_by_id = actor_id
        self.session.flush()

        logger.info(
            "account_deleted",
            extra={"account_id": str(account.id), "account_code": account.code},
        )
