"""
Typed Exception Hierarchy for the MFI Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (HTTP handlers, batch jobs, tests) must be able to tell a bad
request from a conflict from a storage failure without parsing messages:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example:
    try:
        loans.record_payment(loan_id, 3, Decimal("11200.00"), date(2024, 4, 1), actor_id=actor)
    except InstallmentAlreadyPaidError as e:
        api_response(code=e.code, installment=e.installment_number)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    MfiKernelError (base)
    |
    +-- LoanError
    |   +-- InvalidLoanParametersError
    |   +-- InvalidStateTransitionError
    |   +-- LoanNotFoundError
    |   +-- LoanProductNotFoundError
    |   +-- InstallmentNotFoundError
    |   +-- InstallmentAlreadyPaidError
    |   +-- InsufficientPaymentAmountError
    |
    +-- PostingError
    |   +-- EmptyJournalEntryError
    |   +-- InvalidJournalLineError
    |   +-- UnbalancedJournalEntryError
    |   +-- JournalEntryNotFoundError
    |   +-- AlreadyPostedError
    |
    +-- AccountError
    |   +-- AccountNotFoundError
    |   +-- AccountInactiveError
    |   +-- DuplicateAccountCodeError
    |   +-- InvalidAccountError
    |
    +-- PersistenceFailureError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                         | When Raised
-------------|------------------------------|------------------------------------------
Loan         | INVALID_LOAN_PARAMETERS      | principal <= 0, rate < 0, tenure < 1,
             |                              | unknown mode or status, outside product
             |                              | limits
             | INVALID_STATE_TRANSITION     | e.g. disbursing a non-pending loan
             | LOAN_NOT_FOUND               | Loan ID doesn't exist
             | LOAN_PRODUCT_NOT_FOUND       | Loan product ID doesn't exist
             | INSTALLMENT_NOT_FOUND        | No installment with that sequence
             | INSTALLMENT_ALREADY_PAID     | Installment already paid (conflict)
             | INSUFFICIENT_PAYMENT_AMOUNT  | Amount below the installment EMI (or,
             |                              | on the last one, the principal left)
-------------|------------------------------|------------------------------------------
Posting      | EMPTY_JOURNAL_ENTRY          | No detail lines
             | INVALID_JOURNAL_LINE         | Negative / two-sided / zero line
             | UNBALANCED_JOURNAL_ENTRY     | |debits - credits| > 0.001
             | JOURNAL_ENTRY_NOT_FOUND      | Entry ID doesn't exist
             | ALREADY_POSTED               | Entry already posted (conflict)
-------------|------------------------------|------------------------------------------
Account      | ACCOUNT_NOT_FOUND            | Account ID doesn't exist
             | ACCOUNT_INACTIVE             | Account is deactivated
             | DUPLICATE_ACCOUNT_CODE       | Account code already used
             | INVALID_ACCOUNT              | Unknown account type, own parent
-------------|------------------------------|------------------------------------------
Persistence  | PERSISTENCE_FAILURE          | Database error; unit of work rolled back

===============================================================================
HANDLING PATTERNS
===============================================================================

1. Validation errors (INVALID_*, *_NOT_FOUND, UNBALANCED_*) are raised
   before anything is written.  Fix the input and call again.

2. Conflicts (ALREADY_POSTED, INSTALLMENT_ALREADY_PAID) are never retried
   by the kernel.  Re-fetch current state before deciding what to do.

3. PersistenceFailureError means the whole unit of work was rolled back.
   The original database error is chained as ``__cause__``.
"""


class MfiKernelError(Exception):
    """
    Base exception for all kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "MFI_KERNEL_ERROR"


# Loan-related exceptions


class LoanError(MfiKernelError):
    """Base exception for loan-related errors."""

    code: str = "LOAN_ERROR"


class InvalidLoanParametersError(LoanError):
    """Loan inputs are out of range or inconsistent."""

    code: str = "INVALID_LOAN_PARAMETERS"

    def __init__(self, field: str, value: object, reason: str):
        self.field = field
        self.value = str(value)
        self.reason = reason
        super().__init__(f"Invalid loan parameter {field}={value}: {reason}")


class InvalidStateTransitionError(LoanError):
    """Requested status change or operation is not allowed in the current loan status."""

    code: str = "INVALID_STATE_TRANSITION"

    def __init__(self, loan_id: str, current_status: str, requested_status: str):
        self.loan_id = loan_id
        self.current_status = current_status
        self.requested_status = requested_status
        super().__init__(
            f"Loan {loan_id} is {current_status}; cannot apply {requested_status}"
        )


class LoanNotFoundError(LoanError):
    """Loan was not found."""

    code: str = "LOAN_NOT_FOUND"

    def __init__(self, loan_id: str):
        self.loan_id = loan_id
        super().__init__(f"Loan not found: {loan_id}")


class LoanProductNotFoundError(LoanError):
    """Loan product was not found or is inactive."""

    code: str = "LOAN_PRODUCT_NOT_FOUND"

    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"Loan product not found or inactive: {product_id}")


class InstallmentNotFoundError(LoanError):
    """Loan has no installment with the given sequence number."""

    code: str = "INSTALLMENT_NOT_FOUND"

    def __init__(self, loan_id: str, installment_number: int):
        self.loan_id = loan_id
        self.installment_number = installment_number
        super().__init__(
            f"Installment #{installment_number} not found for loan {loan_id}"
        )


class InstallmentAlreadyPaidError(LoanError):
    """Installment has already been paid."""

    code: str = "INSTALLMENT_ALREADY_PAID"

    def __init__(self, loan_id: str, installment_number: int):
        self.loan_id = loan_id
        self.installment_number = installment_number
        super().__init__(
            f"Installment #{installment_number} of loan {loan_id} is already paid"
        )


class InsufficientPaymentAmountError(LoanError):
    """Payment amount is below the installment EMI."""

    code: str = "INSUFFICIENT_PAYMENT_AMOUNT"

    def __init__(self, loan_id: str, installment_number: int, amount: str, required: str):
        self.loan_id = loan_id
        self.installment_number = installment_number
        self.amount = amount
        self.required = required
        super().__init__(
            f"Payment {amount} for installment #{installment_number} of loan "
            f"{loan_id} is below the EMI {required}"
        )


# Posting-related exceptions


class PostingError(MfiKernelError):
    """Base exception for journal entry errors."""

    code: str = "POSTING_ERROR"


class EmptyJournalEntryError(PostingError):
    """Journal entry has no detail lines."""

    code: str = "EMPTY_JOURNAL_ENTRY"

    def __init__(self, reference_number: str | None = None):
        self.reference_number = reference_number
        super().__init__("At least one journal entry detail is required")


class InvalidJournalLineError(PostingError):
    """A detail line is negative, two-sided, or zero on both sides."""

    code: str = "INVALID_JOURNAL_LINE"

    def __init__(self, line_index: int, reason: str):
        self.line_index = line_index
        self.reason = reason
        super().__init__(f"Invalid journal line {line_index}: {reason}")


class UnbalancedJournalEntryError(PostingError):
    """Journal entry debits do not equal credits."""

    code: str = "UNBALANCED_JOURNAL_ENTRY"

    def __init__(self, debits: str, credits: str):
        self.debits = debits
        self.credits = credits
        super().__init__(
            f"Total debits must equal total credits: debits={debits}, credits={credits}"
        )


class JournalEntryNotFoundError(PostingError):
    """Journal entry was not found."""

    code: str = "JOURNAL_ENTRY_NOT_FOUND"

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"Journal entry not found: {entry_id}")


class AlreadyPostedError(PostingError):
    """Journal entry has already been posted."""

    code: str = "ALREADY_POSTED"

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"Journal entry is already posted: {entry_id}")


# Account-related exceptions


class AccountError(MfiKernelError):
    """Base exception for account-related errors."""

    code: str = "ACCOUNT_ERROR"


class AccountNotFoundError(AccountError):
    """Account was not found."""

    code: str = "ACCOUNT_NOT_FOUND"

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(f"Account not found: {account_id}")


class AccountInactiveError(AccountError):
    """Account is not active for posting."""

    code: str = "ACCOUNT_INACTIVE"

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(f"Account is inactive: {account_id}")


class DuplicateAccountCodeError(AccountError):
    """Account code is already used by another account."""

    code: str = "DUPLICATE_ACCOUNT_CODE"

    def __init__(self, account_code: str):
        self.account_code = account_code
        super().__init__(f"Account code already exists: {account_code}")



class InvalidAccountError(AccountError):
    """Account attributes are not acceptable."""

    code: str = "INVALID_ACCOUNT"

    def __init__(self, field: str, value: object, reason: str):
        self.field = field
        self.value = str(value)
        self.reason = reason
        super().__init__(f"Invalid account {field}={value}: {reason}")


# Persistence


class PersistenceFailureError(MfiKernelError):
    """
    The database rejected or failed a unit of work.

    The whole unit of work has been rolled back; no partial state is
    visible.  The driver error is chained as ``__cause__``.
    """

    code: str = "PERSISTENCE_FAILURE"

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"Persistence failure during {operation}: {detail}")
