"""
PostingService -- transaction (posting) writes.

Responsibility:
    Records, edits and soft-deletes single-sided postings against leaf
    accounts.  Balances are never stored: a posting write touches only the
    ``postings`` table, and every balance is derived on read.

Architecture position:
    Kernel > Services -- imperative shell.
    Called by ChartOfAccountsService, which owns the transaction.

Invariants enforced:
    - Exactly one of debit/credit is strictly positive (on create and on
      the merged result of an edit).
    - The target account exists, is active and is a leaf (on create, and on
      edit whenever the posting is re-targeted).
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from coa_kernel.domain.clock import Clock, SystemClock
from coa_kernel.domain.dtos import (
    AccountInfo,
    PostingInfo,
    PostTransactionCommand,
    UpdateTransactionCommand,
)
from coa_kernel.domain.integrity import (
    check_amount_exclusive,
    check_postable,
    check_required,
)
from coa_kernel.exceptions import AccountNotFoundError, PostingNotFoundError
from coa_kernel.logging_config import get_logger
from coa_kernel.models.account import Account
from coa_kernel.models.posting import Posting
from coa_kernel.services.account_service import AccountService
from coa_kernel.services.base import BaseService

logger = get_logger("services.posting")


class PostingService(BaseService[Posting]):
    """Service for postings.  Public methods return PostingInfo DTOs."""

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._accounts = AccountService(session, clock=self._clock)

    def _get_live(self, posting_id: UUID) -> Posting:
        posting = self.session.get(Posting, posting_id)
        if posting is None or posting.is_deleted:
            raise PostingNotFoundError(str(posting_id))
        return posting

    def _postable_account(self, account_id: UUID) -> Account:
        account = self.session.get(Account, account_id)
        if account is None or account.is_deleted:
            raise AccountNotFoundError(str(account_id))
        check_postable(
            AccountInfo.from_model(account),
            self._accounts.child_count(account.id),
        )
        return account

    def get_posting(self, posting_id: UUID) -> PostingInfo:
        """
        Get posting by ID.

        Raises:
            PostingNotFoundError: If the posting doesn't exist or is deleted.
        """
        return PostingInfo.from_model(self._get_live(posting_id))

    def post_transaction(self, command: PostTransactionCommand, actor_id: UUID) -> PostingInfo:
        """
        Record one debit or credit against a leaf account.

        Raises:
            AccountNotFoundError: The account doesn't exist.
            AccountInactiveError: The account is inactive.
            AccountNotLeafError: The account has children.
            AmountExclusivityError / NegativeAmountError: Invalid amounts.
            FieldRequiredError: Blank description.
        """
        check_required(command.description, "description")
        check_amount_exclusive(command.debit, command.credit)
        account = self._postable_account(command.account_id)

        posting = Posting(
            account_id=account.id,
            transaction_date=command.transaction_date,
            description=command.description.strip(),
            debit=command.debit,
            credit=command.credit,
            notes=command.notes,
            created_by_id=actor_id,
        )
        self.session.add(posting)
        self.session.flush()

        info = PostingInfo.from_model(posting)
        logger.info(
            "transaction_posted",
            extra={
                "posting_id": str(posting.id),
                "account_id": str(account.id),
                "side": info.side.value,
                "amount": str(info.debit or info.credit),
            },
        )
        return info

    def update_transaction(
        self, command: UpdateTransactionCommand, actor_id: UUID,
    ) -> PostingInfo:
        """
        Apply the non-None fields of ``command`` to a posting.

        Amounts are validated on the merged result: supplying only
        ``credit`` on a debit posting leaves both sides filled and is
        rejected, so switching sides means passing the other side as zero.
        A re-targeted posting must land on an active leaf account.

        Raises:
            PostingNotFoundError: The posting doesn't exist.
            AccountNotFoundError: The new account doesn't exist.
            AccountInactiveError / AccountNotLeafError: Invalid new account.
            AmountExclusivityError / NegativeAmountError: Invalid amounts.
        """
        posting = self._get_live(command.posting_id)

        debit = command.debit if command.debit is not None else posting.debit
        credit = command.credit if command.credit is not None else posting.credit
        check_amount_exclusive(debit, credit)
        if command.description is not None:
            check_required(command.description, "description")
        if command.account_id is not None and command.account_id != posting.account_id:
            self._postable_account(command.account_id)
            posting.account_id = command.account_id

        posting.debit = debit
        posting.credit = credit
        if command.transaction_date is not None:
            posting.transaction_date = command.transaction_date
        if command.description is not None:
            posting.description = command.description.strip()
        if command.notes is not None:
            posting.notes = command.notes
        posting.updated_by_id = actor_id
        self.session.flush()

        logger.info(
            "transaction_updated",
            extra={"posting_id": str(posting.id), "account_id": str(posting.account_id)},
        )
        return PostingInfo.from_model(posting)

    def delete_transaction(self, posting_id: UUID, actor_id: UUID) -> None:
        """Soft-delete a posting.  Balances reflect it on the next read."""
        posting = self._get_live(posting_id)
        posting.deleted_at = self._clock.now()
        posting.updated_by_id = actor_id
        self.session.flush()

        logger.info(
            "transaction_deleted",
            extra={"posting_id": str(posting.id), "account_id": str(posting.account_id)},
        )
