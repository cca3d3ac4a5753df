"""
CodeAllocator -- scope-locked account code allocation.

Responsibility:
    Implements ``generate_code(type, parent_id)``: serializes allocation per
    code scope (roots of one type, or children of one parent), reads the
    scope's current greatest code, and delegates the arithmetic to the pure
    functions in ``coa_kernel.domain.codes``.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.
    Called by AccountService on account creation and reparenting.

Invariants enforced:
    - Per-scope mutual exclusion: a ``code_scopes`` counter row is locked
      (``SELECT ... FOR UPDATE``) and bumped before the scope maximum is
      read, so concurrent allocators for the same scope queue behind the
      first transaction until it commits.
    - Monotonic codes: the scope's last issued code is remembered on the
      counter row, so codes that left the scope are never re-issued.
    - No silent duplicates: the insert runs inside a savepoint and a hit on
      uq_account_code surfaces as CodeAllocationConflictError (retryable).

Failure modes:
    - ParentAccountNotFoundError when parent_id does not exist.
    - CapacityError subclasses from domain/codes.py.
    - CodeAllocationConflictError on a duplicate code insert.
"""

from uuid import UUID

from sqlalchemy import BigInteger, String, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Mapped, Session, mapped_column

from coa_kernel.db.base import Base
from coa_kernel.domain.codes import next_child_code, next_root_code, type_prefix
from coa_kernel.domain.values import AccountType
from coa_kernel.exceptions import CodeAllocationConflictError, ParentAccountNotFoundError
from coa_kernel.logging_config import get_logger
from coa_kernel.models.account import Account

logger = get_logger("services.code_allocator")


class CodeScope(Base):
    """
    Code scope lock table.

    Each row represents one code scope.  Row-level locking on it serializes
    code allocation within the scope.
    """

    __tablename__ = "code_scopes"

    # "root:<type>" or "parent:<uuid>"
    scope_key: Mapped[str] = mapped_column(
        String(80),
        nullable=False,
        unique=True,
    )

    allocations: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
    )

    last_code: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
    )


def scope_key_for(account_type: AccountType | str, parent_id: UUID | None) -> str:
    if parent_id is not None:
        return f"parent:{parent_id}"
    return f"root:{AccountType.parse(account_type).value}"


def _is_code_collision(exc: IntegrityError) -> bool:
    message = str(exc.orig)
    return "uq_account_code" in message or "accounts.code" in message


class CodeAllocator:
    """
    Allocates system-assigned account codes.

    Contract:
        ``assign_code`` must run inside the caller's transaction; the scope
        lock is held until that transaction commits or rolls back.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
        - Does NOT validate type matching; the caller runs the integrity
          checks first.
    """

    def __init__(self, session: Session):
        self._session = session

    def _lock_scope(self, scope_key: str) -> CodeScope:
        """Lock (creating if needed) the counter row for ``scope_key``."""
        stmt = (
            select(CodeScope)
            .where(CodeScope.scope_key == scope_key)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        scope = self._session.execute(stmt).scalar_one_or_none()
        if scope is not None:
            return scope

        # First use of this scope; another transaction may create it at the
        # same time, so insert under a savepoint and re-lock on collision.
        savepoint = self._session.begin_nested()
        try:
            scope = CodeScope(scope_key=scope_key, allocations=0)
            self._session.add(scope)
            self._session.flush()
            savepoint.commit()
            return scope
        except IntegrityError:
            logger.debug("code_scope_race_retry", extra={"scope": scope_key})
            savepoint.rollback()
            return self._session.execute(stmt).scalar_one()

    def _current_max(
        self, account_type: AccountType, parent_id: UUID | None, prefix: str,
    ) -> str | None:
        # Soft-deleted rows still hold their codes.  Children left behind by a
        # moved parent keep its old code as prefix and are skipped.
        stmt = select(func.max(Account.code)).where(Account.code.startswith(prefix))
        if parent_id is not None:
            stmt = stmt.where(Account.parent_id == parent_id)
        else:
            stmt = stmt.where(
                Account.parent_id.is_(None),
                Account.account_type == account_type.value,
            )
        return self._session.execute(stmt).scalar_one_or_none()

    def generate_code(
        self,
        account_type: AccountType | str,
        parent_id: UUID | None = None,
    ) -> str:
        """
        Allocate the next code for the (type, parent) scope.

        The scope stays locked until the caller's transaction ends, so the
        returned code must be inserted in that same transaction.

        Args:
            account_type: Type of the new account.
            parent_id: Parent account, or None for a root account.

        Returns:
            The allocated code.

        Raises:
            ParentAccountNotFoundError: parent_id does not exist.
            CapacityError: the scope's code space is exhausted.
        """
        account_type = AccountType.parse(account_type)
        key = scope_key_for(account_type, parent_id)

        parent_code = None
        if parent_id is not None:
            parent = self._session.get(Account, parent_id)
            if parent is None or parent.is_deleted:
                raise ParentAccountNotFoundError(str(parent_id))
            parent_code = parent.code

        scope = self._lock_scope(key)
        scope.allocations += 1
        self._session.flush()

        prefix = parent_code if parent_code is not None else type_prefix(account_type)
        candidates = [
            c for c in (self._current_max(account_type, parent_id, prefix), scope.last_code)
            if c and c.startswith(prefix)
        ]
        current_max = max(candidates) if candidates else None

        if parent_code is not None:
            code = next_child_code(parent_code, current_max)
        else:
            code = next_root_code(account_type, current_max)

        scope.last_code = code
        self._session.flush()
        logger.debug(
            "code_allocated",
            extra={"scope": key, "code": code, "allocations": scope.allocations},
        )
        return code

    def assign_code(self, account: Account, parent_id: UUID | None) -> str:
        """
        Place ``account`` in the scope of ``parent_id`` with a fresh code.

        Works for new (pending) accounts and for existing accounts being
        moved; ``account.parent_id`` must still hold its old value so the
        account is not counted in its new scope.  The write is flushed
        inside a savepoint.

        Raises:
            CodeAllocationConflictError: the allocated code was taken by a
                concurrent insert.
        """
        code = self.generate_code(account.account_type, parent_id)
        key = scope_key_for(account.account_type, parent_id)
        savepoint = self._session.begin_nested()
        try:
            account.parent_id = parent_id
            account.code = code
            self._session.add(account)
            self._session.flush()
            savepoint.commit()
        except IntegrityError as exc:
            savepoint.rollback()
            if not _is_code_collision(exc):
                raise
            logger.warning(
                "code_allocation_conflict",
                extra={"scope": key, "code": code},
            )
            raise CodeAllocationConflictError(key, code) from exc
        return code
