"""
ChartOfAccountsService -- atomic command facade.

Responsibility:
    Single entry point for every mutating command.  Each command runs as
    one atomic unit: validate, allocate a code where needed, flush, then
    commit.  Any failure rolls the whole unit back, so no partially applied
    mutation is ever visible.

Architecture position:
    Kernel > Services -- outermost write boundary.  Delegates to
    AccountService and PostingService, which only flush.

Invariants enforced:
    - Transaction boundaries: with ``auto_commit=True`` the facade commits
      on success and rolls back on failure.  With ``auto_commit=False`` each
      command runs in a savepoint inside the caller's transaction; the
      savepoint is released on success and rolled back on failure.
    - Every command is logged with a correlation id, the actor and the
      command name bound into LogContext.

Failure modes:
    - Re-raises every CoaKernelError (and any unexpected exception) after
      rollback.  CodeAllocationConflictError is safe to retry.
"""

from __future__ import annotations

import time
from typing import Callable, TypeVar
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from coa_kernel.domain.clock import Clock, SystemClock
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
from coa_kernel.exceptions import CoaKernelError
from coa_kernel.logging_config import LogContext, get_logger
from coa_kernel.services.account_service import AccountService
from coa_kernel.services.posting_service import PostingService

logger = get_logger("services.chart")

T = TypeVar("T")


class ChartOfAccountsService:
    """
    Applies chart-of-accounts commands atomically.

    Usage:
        service = ChartOfAccountsService(session, clock=clock)
        info = service.create_account(
            CreateAccountCommand(name="Cash", account_type="asset"),
            actor_id=actor_id,
        )
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        auto_commit: bool = True,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._auto_commit = auto_commit
        self._accounts = AccountService(session, clock=self._clock)
        self._postings = PostingService(session, clock=self._clock)

    def _execute(
        self,
        command_name: str,
        actor_id: UUID,
        operation: Callable[[], T],
        *,
        account_id: UUID | None = None,
        posting_id: UUID | None = None,
    ) -> T:
        with LogContext.bind(
            correlation_id=str(uuid4()),
            actor_id=str(actor_id),
            command=command_name,
            account_id=str(account_id) if account_id else None,
            posting_id=str(posting_id) if posting_id else None,
        ):
            logger.info("command_started")
            t0 = time.monotonic()
            savepoint = None if self._auto_commit else self._session.begin_nested()

            try:
                result = operation()
                if savepoint is not None:
                    savepoint.commit()
                else:
                    self._session.commit()
            except Exception as exc:
                duration_ms = round((time.monotonic() - t0) * 1000, 2)
                if savepoint is not None:
                    if savepoint.is_active:
                        savepoint.rollback()
                else:
                    self._session.rollback()
                if isinstance(exc, CoaKernelError):
                    logger.warning(
                        "command_failed",
                        extra={"duration_ms": duration_ms, "error_code": exc.code},
                        exc_info=True,
                    )
                else:
                    logger.error(
                        "command_failed",
                        extra={"duration_ms": duration_ms},
                        exc_info=True,
                    )
                raise

            duration_ms = round((time.monotonic() - t0) * 1000, 2)
            logger.info("command_completed", extra={"duration_ms": duration_ms})
            return result

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def create_account(self, command: CreateAccountCommand, actor_id: UUID) -> AccountInfo:
        """Create an account; its code is allocated by the system."""
        return self._execute(
            "create_account",
            actor_id,
            lambda: self._accounts.create_account(command, actor_id),
        )

    def update_account(self, command: UpdateAccountCommand, actor_id: UUID) -> AccountInfo:
        return self._execute(
            "update_account",
            actor_id,
            lambda: self._accounts.update_account(command, actor_id),
            account_id=command.account_id,
        )

    def toggle_account(self, command: ToggleAccountCommand, actor_id: UUID) -> AccountInfo:
        return self._execute(
            "toggle_account",
            actor_id,
            lambda: self._accounts.toggle_active(command.account_id, actor_id),
            account_id=command.account_id,
        )

    def delete_account(self, command: DeleteAccountCommand, actor_id: UUID) -> None:
        self._execute(
            "delete_account",
            actor_id,
            lambda: self._accounts.delete_account(command.account_id, actor_id),
            account_id=command.account_id,
        )

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def post_transaction(self, command: PostTransactionCommand, actor_id: UUID) -> PostingInfo:
        return self._execute(
            "post_transaction",
            actor_id,
            lambda: self._postings.post_transaction(command, actor_id),
            account_id=command.account_id,
        )

    def update_transaction(
        self, command: UpdateTransactionCommand, actor_id: UUID,
    ) -> PostingInfo:
        return self._execute(
            "update_transaction",
            actor_id,
            lambda: self._postings.update_transaction(command, actor_id),
            posting_id=command.posting_id,
        )

    def delete_transaction(self, command: DeleteTransactionCommand, actor_id: UUID) -> None:
        self._execute(
            "delete_transaction",
            actor_id,
            lambda: self._postings.delete_transaction(command.posting_id, actor_id),
            posting_id=command.posting_id,
        )
