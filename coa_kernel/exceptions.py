"""
Typed Exception Hierarchy for the Chart-of-Accounts Kernel.

Every error the kernel raises is a subclass of ``CoaKernelError`` with a
static ``code`` class attribute (machine-readable, API-safe) and the
structured context of the failure stored as attributes.  Callers catch by
type and read attributes; they never parse messages.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    CoaKernelError (base)
    |
    +-- ValidationError
    |   +-- InvalidAccountTypeError
    |   +-- AccountTypeMismatchError
    |   +-- AccountCycleError
    |   +-- AmountExclusivityError
    |   +-- NegativeAmountError
    |   +-- AccountInactiveError
    |   +-- AccountNotLeafError
    |   +-- FieldRequiredError
    |
    +-- NotFoundError
    |   +-- AccountNotFoundError
    |   +-- ParentAccountNotFoundError
    |   +-- PostingNotFoundError
    |
    +-- ConflictError
    |   +-- AccountHasChildrenError
    |   +-- AccountHasPostingsError
    |   +-- AccountTypeImmutableError
    |
    +-- CapacityError
    |   +-- RootCodeCapacityError
    |   +-- ChildCodeCapacityError
    |   +-- CodeLengthCapacityError
    |
    +-- HierarchyIntegrityError
    |   +-- CorruptHierarchyError
    |
    +-- ConcurrencyError
        +-- CodeAllocationConflictError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                        | When Raised
-------------|-----------------------------|--------------------------------------
Validation   | INVALID_ACCOUNT_TYPE        | Type is not one of the five types
             | ACCOUNT_TYPE_MISMATCH       | Child type differs from parent type
             | ACCOUNT_CYCLE               | Parent would be self or a descendant
             | AMOUNT_EXCLUSIVITY          | Both/neither of debit, credit positive
             | NEGATIVE_AMOUNT             | Debit, credit or opening balance < 0
             | ACCOUNT_INACTIVE            | Posting to an inactive account
             | ACCOUNT_NOT_LEAF            | Posting to an account with children
             | FIELD_REQUIRED              | Blank account name or posting text
-------------|-----------------------------|--------------------------------------
Not found    | ACCOUNT_NOT_FOUND           | Account ID doesn't exist
             | PARENT_ACCOUNT_NOT_FOUND    | Designated parent doesn't exist
             | POSTING_NOT_FOUND           | Posting ID doesn't exist
-------------|-----------------------------|--------------------------------------
Conflict     | ACCOUNT_HAS_CHILDREN        | Delete/reparent/retype with children
             | ACCOUNT_HAS_POSTINGS        | Delete/reparent/retype with postings
             | ACCOUNT_TYPE_IMMUTABLE      | Type change after code assignment
-------------|-----------------------------|--------------------------------------
Capacity     | ROOT_CODE_CAPACITY          | Root suffix would exceed 999
             | CHILD_CODE_CAPACITY         | 100th child under one parent
             | CODE_LENGTH_CAPACITY        | Code would exceed column width
-------------|-----------------------------|--------------------------------------
Integrity    | CORRUPT_HIERARCHY           | Stored parent links form a cycle
-------------|-----------------------------|--------------------------------------
Concurrency  | CODE_ALLOCATION_CONFLICT    | Duplicate code from a racing insert

ConcurrencyError subclasses are retryable: re-running the same command in a
fresh transaction allocates the next free code.
"""


class CoaKernelError(Exception):
    """
    Base exception for all chart-of-accounts kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "COA_KERNEL_ERROR"


# Validation errors


class ValidationError(CoaKernelError):
    """Base exception for rejected inputs and structural rule violations."""

    code: str = "VALIDATION_ERROR"


class InvalidAccountTypeError(ValidationError):
    """Account type is not one of the supported types."""

    code: str = "INVALID_ACCOUNT_TYPE"

    def __init__(self, account_type: str):
        self.account_type = account_type
        super().__init__(f"Invalid account type: {account_type}")


class AccountTypeMismatchError(ValidationError):
    """Child account type does not match its parent's type."""

    code: str = "ACCOUNT_TYPE_MISMATCH"

    def __init__(self, parent_type: str, child_type: str):
        self.parent_type = parent_type
        self.child_type = child_type
        super().__init__(
            f"Parent account type '{parent_type}' must match child "
            f"account type '{child_type}'"
        )


class AccountCycleError(ValidationError):
    """Requested parent is the account itself or one of its descendants."""

    code: str = "ACCOUNT_CYCLE"

    def __init__(self, account_id: str, parent_id: str):
        self.account_id = account_id
        self.parent_id = parent_id
        super().__init__(
            f"Cannot set {parent_id} as parent of {account_id}: "
            "it is the account itself or one of its descendants"
        )


class AmountExclusivityError(ValidationError):
    """Exactly one of debit and credit must be strictly positive."""

    code: str = "AMOUNT_EXCLUSIVITY"

    def __init__(self, debit: str, credit: str, both_filled: bool):
        self.debit = debit
        self.credit = credit
        if both_filled:
            reason = "cannot fill both debit and credit"
        else:
            reason = "either debit or credit must be filled"
        self.reason = reason
        super().__init__(f"Invalid amounts (debit={debit}, credit={credit}): {reason}")


class NegativeAmountError(ValidationError):
    """A monetary field that must be non-negative is negative."""

    code: str = "NEGATIVE_AMOUNT"

    def __init__(self, field_name: str, amount: str):
        self.field_name = field_name
        self.amount = amount
        super().__init__(f"{field_name} must not be negative: {amount}")


class AccountInactiveError(ValidationError):
    """Account is not active for posting."""

    code: str = "ACCOUNT_INACTIVE"

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(f"Account is inactive: {account_id}")


class AccountNotLeafError(ValidationError):
    """Account has children; only leaf accounts receive postings."""

    code: str = "ACCOUNT_NOT_LEAF"

    def __init__(self, account_id: str, child_count: int):
        self.account_id = account_id
        self.child_count = child_count
        super().__init__(
            f"Account {account_id} has {child_count} child account(s); "
            "only leaf accounts can receive postings"
        )


class FieldRequiredError(ValidationError):
    """A required text field is missing or blank."""

    code: str = "FIELD_REQUIRED"

    def __init__(self, field_name: str):
        self.field_name = field_name
        super().__init__(f"{field_name} is required")


# Not-found errors


class NotFoundError(CoaKernelError):
    """Base exception for missing references."""

    code: str = "NOT_FOUND"


class AccountNotFoundError(NotFoundError):
    """Account was not found."""

    code: str = "ACCOUNT_NOT_FOUND"

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(f"Account not found: {account_id}")


class ParentAccountNotFoundError(NotFoundError):
    """Designated parent account was not found."""

    code: str = "PARENT_ACCOUNT_NOT_FOUND"

    def __init__(self, parent_id: str):
        self.parent_id = parent_id
        super().__init__(f"Parent account not found: {parent_id}")


class PostingNotFoundError(NotFoundError):
    """Posting (transaction) was not found."""

    code: str = "POSTING_NOT_FOUND"

    def __init__(self, posting_id: str):
        self.posting_id = posting_id
        super().__init__(f"Posting not found: {posting_id}")


# Conflict errors


class ConflictError(CoaKernelError):
    """Base exception for mutations blocked by existing children or postings."""

    code: str = "CONFLICT"


class AccountHasChildrenError(ConflictError):
    """Account has child accounts."""

    code: str = "ACCOUNT_HAS_CHILDREN"

    def __init__(self, account_id: str, operation: str, child_count: int):
        self.account_id = account_id
        self.operation = operation
        self.child_count = child_count
        super().__init__(
            f"Cannot {operation} account {account_id}: "
            f"it has {child_count} child account(s)"
        )


class AccountHasPostingsError(ConflictError):
    """Account has postings."""

    code: str = "ACCOUNT_HAS_POSTINGS"

    def __init__(self, account_id: str, operation: str, posting_count: int):
        self.account_id = account_id
        self.operation = operation
        self.posting_count = posting_count
        super().__init__(
            f"Cannot {operation} account {account_id}: "
            f"it has {posting_count} posting(s)"
        )


class AccountTypeImmutableError(ConflictError):
    """Account type cannot change once a code has been assigned."""

    code: str = "ACCOUNT_TYPE_IMMUTABLE"

    def __init__(self, account_id: str, current_type: str, requested_type: str):
        self.account_id = account_id
        self.current_type = current_type
        self.requested_type = requested_type
        super().__init__(
            f"Cannot change type of account {account_id} from "
            f"'{current_type}' to '{requested_type}'"
        )


# Capacity errors


class CapacityError(CoaKernelError):
    """Base exception for an exhausted code space."""

    code: str = "CAPACITY_ERROR"


class RootCodeCapacityError(CapacityError):
    """No further root codes are available for an account type."""

    code: str = "ROOT_CODE_CAPACITY"

    def __init__(self, account_type: str, last_code: str):
        self.account_type = account_type
        self.last_code = last_code
        super().__init__(
            f"Maximum root accounts reached for type '{account_type}' "
            f"(last code {last_code})"
        )


class ChildCodeCapacityError(CapacityError):
    """Parent already has the maximum number of direct children."""

    code: str = "CHILD_CODE_CAPACITY"

    def __init__(self, parent_code: str, last_code: str):
        self.parent_code = parent_code
        self.last_code = last_code
        super().__init__(
            f"Maximum child accounts reached for parent: {parent_code}"
        )


class CodeLengthCapacityError(CapacityError):
    """The next code would exceed the maximum stored code length."""

    code: str = "CODE_LENGTH_CAPACITY"

    def __init__(self, parent_code: str, max_length: int):
        self.parent_code = parent_code
        self.max_length = max_length
        super().__init__(
            f"Child codes under {parent_code} would exceed {max_length} characters"
        )


# Read-time integrity errors


class HierarchyIntegrityError(CoaKernelError):
    """Base exception for stored data that breaks the tree invariants."""

    code: str = "HIERARCHY_INTEGRITY_ERROR"


class CorruptHierarchyError(HierarchyIntegrityError):
    """Stored parent links contain a cycle or exceed the depth guard."""

    code: str = "CORRUPT_HIERARCHY"

    def __init__(self, account_ids: list[str], reason: str):
        self.account_ids = account_ids
        self.reason = reason
        super().__init__(f"Corrupt account hierarchy ({reason}): {account_ids}")


# Concurrency errors


class ConcurrencyError(CoaKernelError):
    """Base exception for concurrency-related errors (retryable)."""

    code: str = "CONCURRENCY_ERROR"


class CodeAllocationConflictError(ConcurrencyError):
    """A concurrent writer claimed the same code first."""

    code: str = "CODE_ALLOCATION_CONFLICT"

    def __init__(self, scope: str, account_code: str):
        self.scope = scope
        self.account_code = account_code
        super().__init__(
            f"Code {account_code} in scope {scope} was allocated concurrently; retry"
        )
